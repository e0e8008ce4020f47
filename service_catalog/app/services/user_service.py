"""
Direct user operations.

Email addresses are unique across live users, compared case-insensitively.
A write that would break that is rejected with ``ConflictError`` before the
store is touched.
"""

import threading
from dataclasses import replace
from typing import List, Optional

from shared.errors import ConflictError
from shared.logging import get_logger

from ..caching.region_cache import CacheRegionManager
from ..domain.models import RecordKind, User, validate_user
from ..filters.predicates import compose, name_contains
from ..store.record_store import RecordStore


class UserService:
    """User CRUD against the record store."""

    kind = RecordKind.USER

    def __init__(self, store: RecordStore, cache: Optional[CacheRegionManager] = None):
        self.store = store
        self.cache = cache
        self.logger = get_logger("catalog.users")
        # Serializes the email uniqueness check with the write that depends on it
        self._write_lock = threading.Lock()

    def get(self, user_id: int) -> Optional[User]:
        return self.store.get_by_key(self.kind, user_id)

    def list(self, name: Optional[str] = None) -> List[User]:
        if name:
            return self.store.get_by_predicate(self.kind, compose(name_contains(name)))
        return self.store.get_all(self.kind)

    def find_by_email(self, email: str) -> Optional[User]:
        return self.store.get_by_unique_field(self.kind, "email", email)

    def count(self) -> int:
        return self.store.count(self.kind)

    def create(self, user: User) -> User:
        validate_user(user)
        with self._write_lock:
            if self.find_by_email(user.email) is not None:
                self.logger.warning("Rejected duplicate email on create", email=user.email)
                raise ConflictError("Email already in use", details={"email": user.email})

            try:
                saved = self.store.upsert(self.kind, replace(user, id=None))
            finally:
                self._invalidate()
        self.logger.info("User created", user_id=saved.id)
        return saved

    def update(self, user_id: int, user: User) -> Optional[User]:
        """Replace name, email and address; keep the stored password when ``user.password`` is blank.

        Returns ``None`` if the user does not exist.
        """
        validate_user(user, require_password=False)
        with self._write_lock:
            existing = self.store.get_by_key(self.kind, user_id)
            if existing is None:
                return None

            holder = self.find_by_email(user.email)
            if holder is not None and holder.id != user_id:
                self.logger.warning("Rejected duplicate email on update", user_id=user_id, email=user.email)
                raise ConflictError("Email already in use", details={"email": user.email})

            password = user.password if user.password and user.password.strip() else existing.password
            try:
                updated = self.store.upsert(self.kind, replace(
                    existing,
                    name=user.name,
                    email=user.email,
                    address=user.address,
                    password=password
                ))
            finally:
                self._invalidate()
        self.logger.info("User updated", user_id=user_id)
        return updated

    def delete(self, user_id: int) -> bool:
        """Delete a user; ``False`` if it does not exist."""
        with self._write_lock:
            if not self.store.exists_by_key(self.kind, user_id):
                return False
            try:
                self.store.delete_by_key(self.kind, user_id)
            finally:
                self._invalidate()
        self.logger.info("User deleted", user_id=user_id)
        return True

    def _invalidate(self) -> None:
        if self.cache is not None:
            self.cache.invalidate_kind(self.kind)
