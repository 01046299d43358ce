"""
brokerlogin: RPC broker client login
Challenge-response handshake and persisted client configuration
"""

__version__ = "0.3.0"
__author__ = "brokerlogin contributors"
