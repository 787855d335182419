"""Tabular store data models."""

from tabular_store.models.posts import Post
from tabular_store.models.query import QueryOptions, SortOrder
from tabular_store.models.users import Address, User, UserRole

__all__ = [
    "Address",
    "Post",
    "QueryOptions",
    "SortOrder",
    "User",
    "UserRole",
]
