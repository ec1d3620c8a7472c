"""ORM model for the profile-partitioned key/value table."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


class ProfileRecordModel(TimestampMixin, Base):
    __tablename__ = "coredata_profile_records"
    __table_args__ = (UniqueConstraint("profile_id", "key", name="uq_profile_record_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    key: Mapped[str] = mapped_column(String(128), nullable=False)
    value: Mapped[Any] = mapped_column(JSONType, nullable=True)


__all__ = ["ProfileRecordModel"]
