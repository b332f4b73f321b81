"""
Mapped models shipped with crudkit.

Importing this package registers every model with `Base.metadata`.
"""

from .user import User, USER_COLUMN_POLICY

__all__ = [
    "User",
    "USER_COLUMN_POLICY",
]
