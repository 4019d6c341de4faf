"""
API layer for user-service.

Contains HTTP endpoints and adapts external requests to the users service.
"""

from .http_server import UsersAPI

__all__ = ["UsersAPI"]
