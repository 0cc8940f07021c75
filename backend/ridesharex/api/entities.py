from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ridesharex.api.schemas import TransitionIn, BulkTransitionIn, TransitionOut, entity_out
from ridesharex.core.database import get_db
from ridesharex.core.errors import Unauthorized
from ridesharex.deps.auth import CurrentUser, get_current_user, require_role
from ridesharex.deps.services import get_lifecycle
from ridesharex.services.lifecycle import ApprovalLifecycleService
from ridesharex.services.transitions import parse_kind, allowed_targets
from ridesharex.utils.pack_sink import write_pack
from ridesharex.utils.report import generate_history_pack

router = APIRouter(prefix="/entities", tags=["lifecycle"])


def _ensure_can_view(entity, user: CurrentUser) -> None:
    if user.role != "admin" and str(entity.owner_id) != user.id:
        raise Unauthorized("Only the owner or an admin can view this history")


@router.post("/{kind}/{entity_id}/transition", response_model=dict)
def request_transition(
    kind: str,
    entity_id: str,
    body: TransitionIn,
    user: CurrentUser = Depends(get_current_user),
    svc: ApprovalLifecycleService = Depends(get_lifecycle),
):
    record = svc.request_transition(
        kind, entity_id, body.target_status, user,
        reason=body.reason, expected_version=body.expected_version,
    )
    entity = svc.get_entity(kind, entity_id)
    return {"entity": entity_out(entity), "transition": TransitionOut.model_validate(record)}


@router.post("/{kind}/bulk-transition", response_model=dict)
def bulk_transition(
    kind: str,
    body: BulkTransitionIn,
    user: CurrentUser = Depends(require_role("admin")),
    svc: ApprovalLifecycleService = Depends(get_lifecycle),
):
    result = svc.bulk_transition(kind, body.ids, body.target_status, user, reason=body.reason)
    return {
        "applied": [TransitionOut.model_validate(r) for r in result.applied],
        "failed": result.failed,
        "applied_count": len(result.applied),
        "failed_count": len(result.failed),
    }


@router.get("/{kind}/{entity_id}/history", response_model=List[TransitionOut])
def get_history(
    kind: str,
    entity_id: str,
    user: CurrentUser = Depends(get_current_user),
    svc: ApprovalLifecycleService = Depends(get_lifecycle),
):
    _ensure_can_view(svc.get_entity(kind, entity_id), user)
    return [TransitionOut.model_validate(r) for r in svc.get_history(kind, entity_id)]


@router.get("/{kind}/{entity_id}/status", response_model=dict)
def get_status(
    kind: str,
    entity_id: str,
    user: CurrentUser = Depends(get_current_user),
    svc: ApprovalLifecycleService = Depends(get_lifecycle),
):
    k = parse_kind(kind)
    entity = svc.get_entity(k, entity_id)
    _ensure_can_view(entity, user)
    derived = svc.current_status(k, entity_id)
    return {
        "kind": k.value,
        "id": entity_id,
        "status": derived,
        "stored_status": entity.status,
        "consistent": derived == entity.status,
        "version": entity.version,
        "allowed_next": allowed_targets(k, entity.status),
    }


@router.get("/{kind}/{entity_id}/history/export", response_model=dict)
def export_history(
    kind: str,
    entity_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_role("admin")),
):
    pack = generate_history_pack(db, kind, entity_id)
    fp = write_pack(parse_kind(kind).value, entity_id, pack)
    return {"file": fp.name, "pack": pack}
