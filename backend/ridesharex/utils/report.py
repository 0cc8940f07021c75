from __future__ import annotations
from collections import Counter
from datetime import datetime
from typing import Dict, Any

from sqlalchemy.orm import Session

from ridesharex.core.time import utc_now
from ridesharex.models.listing import Listing
from ridesharex.models.user import User
from ridesharex.services.audit import serialize_record
from ridesharex.services.lifecycle import ApprovalLifecycleService
from ridesharex.services.transitions import parse_kind, allowed_targets

def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def serialize_entity(entity) -> Dict[str, Any]:
    common = {
        "id": entity.id,
        "status": entity.status,
        "status_reason": entity.status_reason,
        "last_reviewed_by": entity.last_reviewed_by,
        "last_reviewed_at": _iso(entity.last_reviewed_at),
        "version": entity.version,
        "created_at": _iso(entity.created_at),
        "updated_at": _iso(entity.updated_at),
    }
    if isinstance(entity, User):
        common.update(kind="user", email=entity.email, full_name=entity.full_name, role=entity.role)
    elif isinstance(entity, Listing):
        common.update(
            kind="listing",
            host_id=entity.host_id,
            title=entity.title,
            make=entity.make,
            model=entity.model,
            year=entity.year,
            daily_rate=str(entity.daily_rate) if entity.daily_rate is not None else None,
            is_available=bool(entity.is_available),
            is_bookable=entity.is_bookable,
        )
    return common


def generate_history_pack(db: Session, kind: str, entity_id: str) -> Dict[str, Any]:
    """Entity snapshot + full transition history + derived-status check in one JSON."""
    kind = parse_kind(kind)
    svc = ApprovalLifecycleService(db)
    entity = svc.get_entity(kind, entity_id)
    history = svc.get_history(kind, entity_id)
    derived = svc.current_status(kind, entity_id)

    by_target = Counter(r.to_status for r in history)
    pack: Dict[str, Any] = {
        "generated_at": _iso(utc_now()),
        "entity": serialize_entity(entity),
        "history": [serialize_record(r) for r in history],
        "summary": {
            "transitions": len(history),
            "by_target_status": dict(by_target),
            "derived_status": derived,
            "consistent": derived == entity.status,
            "allowed_next": allowed_targets(kind, entity.status),
        },
    }
    return pack
