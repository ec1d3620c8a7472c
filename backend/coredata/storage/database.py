"""SQL storage adapter backed by a profile-partitioned key/value table."""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from typing import Any, Callable, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.models import ProfileRecordModel
from ..db.session import session_scope
from ..errors import StorageError
from ..profiles import ProfileSession

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractContextManager[Session]]


class SqlStorageAdapter:
    def __init__(self, profiles: ProfileSession, scope: Optional[SessionScope] = None) -> None:
        self._profiles = profiles
        self._scope = scope or session_scope

    def _find(self, session: Session, profile_id: str, key: str) -> Optional[ProfileRecordModel]:
        stmt = select(ProfileRecordModel).where(
            ProfileRecordModel.profile_id == profile_id,
            ProfileRecordModel.key == key,
        )
        return session.execute(stmt).scalar_one_or_none()

    def get(self, key: str) -> Optional[Any]:
        profile_id = self._profiles.require()
        try:
            with self._scope() as session:
                record = self._find(session, profile_id, key)
                return None if record is None else record.value
        except SQLAlchemyError as exc:
            logger.exception("Failed to read %s for profile %s", key, profile_id)
            raise StorageError(f"Database read failed for '{key}': {exc}") from exc

    def set(self, key: str, value: Any) -> None:
        profile_id = self._profiles.require()
        try:
            with self._scope() as session:
                record = self._find(session, profile_id, key)
                if record is None:
                    session.add(ProfileRecordModel(profile_id=profile_id, key=key, value=value))
                else:
                    record.value = value
        except SQLAlchemyError as exc:
            logger.exception("Failed to write %s for profile %s", key, profile_id)
            raise StorageError(f"Database write failed for '{key}': {exc}") from exc

    def delete(self, key: str) -> None:
        profile_id = self._profiles.require()
        try:
            with self._scope() as session:
                session.execute(
                    delete(ProfileRecordModel).where(
                        ProfileRecordModel.profile_id == profile_id,
                        ProfileRecordModel.key == key,
                    )
                )
        except SQLAlchemyError as exc:
            raise StorageError(f"Database delete failed for '{key}': {exc}") from exc

    def exists(self, key: str) -> bool:
        profile_id = self._profiles.require()
        try:
            with self._scope() as session:
                return self._find(session, profile_id, key) is not None
        except SQLAlchemyError as exc:
            raise StorageError(f"Database lookup failed for '{key}': {exc}") from exc

    def clear(self) -> None:
        profile_id = self._profiles.require()
        try:
            with self._scope() as session:
                session.execute(delete(ProfileRecordModel).where(ProfileRecordModel.profile_id == profile_id))
        except SQLAlchemyError as exc:
            raise StorageError(f"Database clear failed for profile '{profile_id}': {exc}") from exc


__all__ = ["SqlStorageAdapter"]
