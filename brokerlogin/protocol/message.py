"""RPC messages exchanged with the broker"""

import itertools
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

_request_ids: Iterator[int] = itertools.count(1)


@dataclass
class RpcMessage:
    """
    Generic RPC request or response

    A message with no `error` is a success; the empty message is therefore a
    success carrying an empty result.
    """

    request_id: Optional[int] = None
    method: Optional[str] = None
    path: str = ""
    params: Any = None
    result: Any = None
    error: Any = None

    def is_success(self) -> bool:
        """Check whether this message is a non-error response"""
        return self.error is None

    def result_map(self) -> Dict[str, Any]:
        """
        Result as a mapping

        Returns:
            The result dictionary, or an empty one when the result is absent
            or not a mapping
        """
        if isinstance(self.result, dict):
            return self.result
        return {}

    def error_text(self) -> str:
        """
        Render the error payload in compact form for diagnostics

        Returns:
            Compact JSON text of the error, or an empty string on success
        """
        if self.error is None:
            return ""
        return json.dumps(self.error, separators=(",", ":"), ensure_ascii=False)

    def json_serialize(self) -> str:
        """
        Serialize message to a single-line JSON string

        Returns:
            JSON text without absent fields
        """
        data: Dict[str, Any] = {}
        if self.request_id is not None:
            data["requestId"] = self.request_id
        if self.method is not None:
            data["method"] = self.method
            data["shvPath"] = self.path
        if self.params is not None:
            data["params"] = self.params
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False)

    @staticmethod
    def json_deserialize(data: str) -> "RpcMessage":
        """
        Deserialize message from JSON string

        Args:
            data: JSON string

        Returns:
            Deserialized RpcMessage

        Raises:
            ValueError: If data is not JSON or not a JSON object
        """
        parsed = json.loads(data)
        if not isinstance(parsed, dict):
            raise ValueError("RPC message must be a JSON object")
        return RpcMessage(
            request_id=parsed.get("requestId"),
            method=parsed.get("method"),
            path=parsed.get("shvPath", ""),
            params=parsed.get("params"),
            result=parsed.get("result"),
            error=parsed.get("error"),
        )


class MessageBuilder:
    """Builds RPC messages"""

    @staticmethod
    def request_create(path: str, method: str, params: Any = None) -> RpcMessage:
        """
        Create a request with a fresh request id

        Args:
            path: Target service path; empty for the broker itself
            method: Method name
            params: Optional single parameter value

        Returns:
            Request message
        """
        return RpcMessage(
            request_id=next(_request_ids),
            method=method,
            path=path,
            params=params,
        )

    @staticmethod
    def response_create(request: RpcMessage, result: Any) -> RpcMessage:
        """Create a success response to a request"""
        return RpcMessage(request_id=request.request_id, result=result)

    @staticmethod
    def errorResponse_create(request: RpcMessage, error: Any) -> RpcMessage:
        """Create an error response to a request"""
        return RpcMessage(request_id=request.request_id, error=error)
