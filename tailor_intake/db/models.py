"""
SQLAlchemy models for the order-intake service.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


# =============================================================================
# WIZARD SNAPSHOTS
# =============================================================================


class WizardSnapshot(Base):
    """Serialized in-progress order, one row per snapshot slot."""

    __tablename__ = "wizard_snapshots"

    slot: Mapped[str] = mapped_column(String(255), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)  # JSON text
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<WizardSnapshot(slot='{self.slot}', updated_at={self.updated_at})>"
