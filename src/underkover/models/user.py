# src/underkover/models/user.py
"""SQLAlchemy model for the anonymous accounts the API acts on behalf of."""

from __future__ import annotations

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from underkover.db.session import Base


class User(Base):
    """Anonymous account.

    Rows are written by the identity service; this API only reads the alias
    and avatar to snapshot them onto content, and the college/area profile
    fields used as feed defaults by clients.
    """

    __tablename__ = "app_user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    anonymous_alias: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_emoji: Mapped[str | None] = mapped_column(Text, nullable=True)
    college: Mapped[str | None] = mapped_column(Text, nullable=True)
    area: Mapped[str | None] = mapped_column(Text, nullable=True)
