"""
Bearer JWT authentication.
"""

from .tokens import authenticate, get_bearer_token, make_jwt, validate_jwt

__all__ = ["authenticate", "get_bearer_token", "make_jwt", "validate_jwt"]
