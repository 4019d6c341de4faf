"""
Service layer for user-service.
"""

from .users_service import UsersService

__all__ = ["UsersService"]
