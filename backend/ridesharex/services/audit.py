from __future__ import annotations
import logging
import os
from typing import Optional, Dict, Any, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ridesharex.core.errors import StorageError
from ridesharex.models.transition import TransitionRecord
from ridesharex.utils.audit_sink import write_event

logger = logging.getLogger(__name__)

AUDIT_MIRROR_ENABLED = os.getenv("AUDIT_MIRROR_ENABLED", "1") == "1"


def serialize_record(row: TransitionRecord) -> Dict[str, Any]:
    return {
        "id": row.id,
        "entity_id": row.entity_id,
        "entity_kind": row.entity_kind,
        "from_status": row.from_status,
        "to_status": row.to_status,
        "actor_id": row.actor_id,
        "actor_role": row.actor_role,
        "reason": row.reason,
        "occurred_at": row.occurred_at.isoformat() if row.occurred_at else None,
    }


class AuditTrailRecorder:
    """
    Append-only log of TransitionRecords.

    ``append`` joins the caller's transaction and never commits on its own; the
    owning transition commits or rolls back both together. There is no update
    or delete.
    """

    def __init__(self, db: Session, mirror_enabled: Optional[bool] = None):
        self.db = db
        self.mirror_enabled = AUDIT_MIRROR_ENABLED if mirror_enabled is None else mirror_enabled

    def append(self, record: TransitionRecord) -> None:
        try:
            self.db.add(record)
            self.db.flush()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to append transition record: {e}") from e

    def query(self, entity_kind: str, entity_id: str) -> List[TransitionRecord]:
        try:
            return (
                self.db.query(TransitionRecord)
                .filter(
                    TransitionRecord.entity_kind == entity_kind,
                    TransitionRecord.entity_id == entity_id,
                )
                .order_by(TransitionRecord.occurred_at.asc(), TransitionRecord.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to query transition history: {e}") from e

    def latest(self, entity_kind: str, entity_id: str) -> Optional[TransitionRecord]:
        return (
            self.db.query(TransitionRecord)
            .filter(
                TransitionRecord.entity_kind == entity_kind,
                TransitionRecord.entity_id == entity_id,
            )
            .order_by(TransitionRecord.occurred_at.desc(), TransitionRecord.id.desc())
            .first()
        )

    def recent(
        self,
        entity_kind: Optional[str] = None,
        actor_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[TransitionRecord]:
        q = self.db.query(TransitionRecord)
        if entity_kind:
            q = q.filter(TransitionRecord.entity_kind == entity_kind)
        if actor_id:
            q = q.filter(TransitionRecord.actor_id == actor_id)
        return q.order_by(TransitionRecord.occurred_at.desc(), TransitionRecord.id.desc()).limit(limit).all()

    def mirror(self, record: TransitionRecord) -> None:
        """Mirror a committed record to the JSONL sink. Best-effort."""
        if not self.mirror_enabled:
            return
        try:
            write_event(serialize_record(record))
        except OSError as e:
            logger.warning("[audit] JSONL mirror failed for record %s: %s", record.id, e)
