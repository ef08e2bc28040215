"""CvDocument ORM model: the entity a cv_parsing job fills in."""
from __future__ import annotations

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cvextract.db.base import Base, IdMixin, TimestampMixin


class CvDocument(Base, IdMixin, TimestampMixin):
    __tablename__ = "cv_documents"

    source_name: Mapped[str] = mapped_column(String(512), nullable=False)
    # pending | processing | completed | failed
    parsing_status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending", index=True)
    parsed_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
