# user_service/__init__.py
"""
User Service

HTTP CRUD API for users backed by MongoDB, emitting change events
to Redis Streams on every successful mutation.
"""

__version__ = "1.0.0"
__description__ = "User Service with best-effort change events"
