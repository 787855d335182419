"""
User Repository — typed access to a table of users.

Rows are stored as plain dicts in a TabularStore and surfaced as User models.
"""

from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Union

from tabular_store.models.query import QueryOptions
from tabular_store.models.users import Address, User, UserRole
from tabular_store.repositories.clock import utcnow
from tabular_store.store.table import TabularStore, make_id


class UserRepository:
    """CRUD over users. Owns its table; share the repository, not the table."""

    def __init__(
        self,
        table: Optional[TabularStore] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.table = table if table is not None else TabularStore(id_prefix="user_")
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def create(
        self,
        username: str,
        email: str,
        role: UserRole = UserRole.USER,
        addresses: Optional[List[Address]] = None,
        metadata: Optional[dict] = None,
    ) -> User:
        """Create a user with a fresh ``user_`` id and matching created/updated stamps."""
        now = self.now()
        user = User(
            id=make_id(self.table.id_prefix),
            username=username,
            email=email,
            role=role,
            created_at=now,
            updated_at=now,
            addresses=addresses or [],
            metadata=metadata or {},
        )
        return User.model_validate(self.table.insert(user.model_dump()))

    def find_by_id(self, user_id: str) -> Optional[User]:
        row = self.table.get(user_id)
        return User.model_validate(row) if row is not None else None

    def find_by_email(self, email: str) -> Optional[User]:
        rows = self.table.query({"filter": {"email": email}, "limit": 1})
        return User.model_validate(rows[0]) if rows else None

    def query(
        self, options: Union[QueryOptions, Mapping[str, Any], None] = None
    ) -> List[User]:
        return [User.model_validate(r) for r in self.table.query(options)]

    def update(self, user_id: str, patch: Mapping[str, Any]) -> Optional[User]:
        """
        Apply a partial update and stamp ``updated_at``.

        The merged result is validated before it is stored, so an invalid
        patch raises pydantic's ValidationError and leaves the row unchanged.
        """
        existing = self.table.get(user_id)
        if existing is None:
            return None
        changes = {**patch, "updated_at": self.now()}
        merged = User.model_validate({**existing, **changes, "id": user_id})
        row = self.table.update(user_id, merged.model_dump(include=set(changes)))
        return User.model_validate(row)

    def delete(self, user_id: str) -> bool:
        return self.table.delete(user_id)

    def clear(self) -> None:
        self.table.clear()

    def count(self) -> int:
        return self.table.count()
