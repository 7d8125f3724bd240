"""
Sequence Counter Model

One row per (entity, key, year). The row is created lazily by the first
increment for a key in a calendar year, so a new year starts back at 1.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from schoolhub.core.database import Base


class SequenceCounter(Base):
    """Atomic per-tenant-per-year counter."""

    __tablename__ = "sequence_counters"

    entity: Mapped[str] = mapped_column(String(50), primary_key=True)
    key: Mapped[str] = mapped_column(String(50), primary_key=True)
    year: Mapped[int] = mapped_column(Integer, primary_key=True)
    seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<SequenceCounter({self.entity}:{self.key}:{self.year}={self.seq})>"
