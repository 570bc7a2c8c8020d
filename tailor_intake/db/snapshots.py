"""
Wizard snapshot repository backed by the SQL database.
"""

import json
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select

from tailor_intake.core.orders.snapshot import SnapshotRepository
from tailor_intake.db.models import WizardSnapshot
from tailor_intake.db.sqlite import Database, db as default_db

logger = logging.getLogger(__name__)


class SqlSnapshotRepository(SnapshotRepository):
    """Stores each slot's snapshot as JSON text in `wizard_snapshots`."""

    def __init__(self, database: Optional[Database] = None):
        self.database = database or default_db

    async def load(self, slot: str) -> Optional[dict]:
        async with self.database.session() as session:
            row = await session.get(WizardSnapshot, slot)
            if row is None:
                return None
            return json.loads(row.payload)

    async def save(self, slot: str, snapshot: dict) -> None:
        payload = json.dumps(snapshot, ensure_ascii=False)
        async with self.database.session() as session:
            row = await session.get(WizardSnapshot, slot)
            if row is None:
                session.add(WizardSnapshot(slot=slot, payload=payload))
            else:
                row.payload = payload
                row.updated_at = datetime.utcnow()
        logger.debug(f"Saved snapshot {slot} ({len(payload)} chars)")

    async def clear(self, slot: str) -> None:
        async with self.database.session() as session:
            await session.execute(delete(WizardSnapshot).where(WizardSnapshot.slot == slot))

    async def slots(self) -> list[str]:
        """Names of all stored slots."""
        async with self.database.session() as session:
            result = await session.execute(select(WizardSnapshot.slot).order_by(WizardSnapshot.slot))
            return list(result.scalars())
