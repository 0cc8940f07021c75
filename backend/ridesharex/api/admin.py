from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ridesharex.api.schemas import TransitionOut, entity_out
from ridesharex.core.database import get_db
from ridesharex.crud.entities import EntityStore
from ridesharex.deps.auth import CurrentUser, require_role
from ridesharex.models.status import EntityKind
from ridesharex.services.audit import AuditTrailRecorder
from ridesharex.services.transitions import parse_kind

router = APIRouter(prefix="/api", tags=["admin"])


@router.get("/admin/review-queue", response_model=dict)
def review_queue(
    kind: Optional[str] = None,
    limit: int = 100,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_role("admin")),
):
    """Entities waiting for an admin decision, oldest first."""
    store = EntityStore(db)
    kinds = [parse_kind(kind)] if kind else list(EntityKind)
    return {k.value: [entity_out(e) for e in store.pending(k, limit=limit)] for k in kinds}


@router.get("/admin/stats", response_model=dict)
def stats_overview(db: Session = Depends(get_db), user: CurrentUser = Depends(require_role("admin"))):
    store = EntityStore(db)
    by_kind = {k.value: store.status_counts(k) for k in EntityKind}
    return {
        "status_counts": by_kind,
        "pending_total": sum(c.get("pending", 0) for c in by_kind.values()),
    }


@router.get("/audit", response_model=List[TransitionOut])
def audit_feed(
    kind: Optional[str] = None,
    actor_id: Optional[str] = None,
    limit: int = 50,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_role("admin")),
):
    k = parse_kind(kind).value if kind else None
    rows = AuditTrailRecorder(db).recent(entity_kind=k, actor_id=actor_id, limit=limit)
    return [TransitionOut.model_validate(r) for r in rows]
