"""
QuickFolio Models — SQLAlchemy models for the records database.

Tables:
1. files   — Folder-like groupings of folios
2. folios  — Letter/document records (optional FK to files)

A File owns zero or more Folios through ``folios.file_id``. Deleting a File
orphans its Folios (``file_id`` becomes NULL).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from quickfolio.db.base import Base, TimestampMixin, ensure_aware, new_id


def _iso(value: Optional[datetime]) -> Optional[str]:
    value = ensure_aware(value)
    return value.isoformat() if value is not None else None


# ---------------------------------------------------------------------------
# 1. Files
# ---------------------------------------------------------------------------

class File(Base, TimestampMixin):
    __tablename__ = "files"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    created_by = Column(String(200), nullable=False)

    folios = relationship(
        "Folio",
        back_populates="file",
        lazy="selectin",
        order_by="Folio.created_at.desc()",
    )

    # JSON key → column attribute
    FIELD_MAP = {
        "name": "name",
        "description": "description",
        "createdBy": "created_by",
    }

    def to_dict(self, include_folios: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdBy": self.created_by,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
        if include_folios:
            data["folios"] = [folio.to_dict() for folio in self.folios]
        return data

    def __repr__(self) -> str:
        return f"<File(id='{self.id}', name='{self.name}')>"


# ---------------------------------------------------------------------------
# 2. Folios
# ---------------------------------------------------------------------------

class Folio(Base, TimestampMixin):
    __tablename__ = "folios"

    id = Column(String(36), primary_key=True, default=new_id)
    item = Column(String(255), nullable=False, index=True)
    running_no = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    drafted_by = Column(String(200), nullable=False)
    letter_date = Column(DateTime(timezone=True), nullable=False)
    file_id = Column(
        String(36),
        ForeignKey("files.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    file = relationship("File", back_populates="folios")

    FIELD_MAP = {
        "item": "item",
        "runningNo": "running_no",
        "description": "description",
        "draftedBy": "drafted_by",
        "letterDate": "letter_date",
        "fileId": "file_id",
    }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "item": self.item,
            "runningNo": self.running_no,
            "description": self.description,
            "draftedBy": self.drafted_by,
            "letterDate": _iso(self.letter_date),
            "fileId": self.file_id,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Folio(id='{self.id}', item='{self.item}')>"
