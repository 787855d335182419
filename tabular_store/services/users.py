"""
User Service — registration and profile management.

Write operations are wrapped with ``timed`` and report to the sink given at
construction (DEBUG log lines by default).
"""

import logging
from typing import Any, List, Mapping, Optional, Union

from tabular_store.models.query import QueryOptions
from tabular_store.models.users import Address, User, UserRole
from tabular_store.observability.timing import TimingSink, timed
from tabular_store.repositories.users import UserRepository
from tabular_store.services.errors import EmailAlreadyRegisteredError, EntityNotFoundError
from tabular_store.store.table import make_id

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, repo: UserRepository, timing_sink: Optional[TimingSink] = None):
        self.repo = repo
        self.register_user = timed(
            self.register_user, timing_sink, "UserService.register_user"
        )
        self.add_address = timed(self.add_address, timing_sink, "UserService.add_address")
        self.update_user = timed(self.update_user, timing_sink, "UserService.update_user")

    def register_user(
        self, username: str, email: str, role: UserRole = UserRole.USER
    ) -> User:
        """Create a user. Emails are unique across users."""
        if self.repo.find_by_email(email) is not None:
            raise EmailAlreadyRegisteredError(email)
        user = self.repo.create(username=username, email=email, role=role)
        logger.info("Registered user %s (%s)", user.id, user.role.value)
        return user

    def add_address(
        self,
        user_id: str,
        street: str,
        city: str,
        zip: str,
        country: str,
        state: Optional[str] = None,
    ) -> Address:
        """Attach a new address to an existing user and return it."""
        user = self.get_user(user_id)
        address = Address(
            id=make_id("addr_"),
            street=street,
            city=city,
            state=state,
            zip=zip,
            country=country,
            created_at=self.repo.now(),
        )
        self.repo.update(user_id, {"addresses": [*user.addresses, address]})
        logger.info("Added address %s to user %s", address.id, user_id)
        return address

    def get_user(self, user_id: str) -> User:
        user = self.repo.find_by_id(user_id)
        if user is None:
            raise EntityNotFoundError("User", user_id)
        return user

    def get_users_by_role(self, role: UserRole) -> List[User]:
        return self.repo.query({"filter": {"role": role}})

    def list_users(
        self, options: Union[QueryOptions, Mapping[str, Any], None] = None
    ) -> List[User]:
        return self.repo.query(options)

    def update_user(self, user_id: str, patch: Mapping[str, Any]) -> User:
        self.get_user(user_id)
        if "email" in patch:
            owner = self.repo.find_by_email(patch["email"])
            if owner is not None and owner.id != user_id:
                raise EmailAlreadyRegisteredError(patch["email"])
        user = self.repo.update(user_id, patch)
        if user is None:
            raise EntityNotFoundError("User", user_id)
        return user

    def delete_user(self, user_id: str) -> bool:
        deleted = self.repo.delete(user_id)
        if deleted:
            logger.info("Deleted user %s", user_id)
        return deleted
