"""
Repository layer.

Usage:
    from crudkit.repositories import Repository
"""

from .repository import Repository, parse_identifier

__all__ = [
    "Repository",
    "parse_identifier",
]
