"""Bluefin auth — session / credential package."""

from .endpoints import AuthRequirement, EndpointGroup, base_url
from .session_manager import SessionManager
from .transport import AuthTransport, HttpAuthTransport

__all__ = [
    "AuthRequirement",
    "AuthTransport",
    "EndpointGroup",
    "HttpAuthTransport",
    "SessionManager",
    "base_url",
]
