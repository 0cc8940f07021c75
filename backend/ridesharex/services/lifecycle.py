# ridesharex/services/lifecycle.py
"""
Approval lifecycle for Users and Listings.

``request_transition`` is the only way an entity's approval status changes.
The checks run in a fixed order: the entity exists, the caller's expected
version still matches, the edge exists, the actor may take it, and a reason
was given where one is required. Nothing is written until all of them pass.
The status update (conditional on ``version``) and the audit record then
commit in one transaction. The JSONL mirror follows the commit. Notifications
are handed to ``dispatch`` (FastAPI ``BackgroundTasks.add_task`` in the API)
so a slow channel never holds up the caller, and a failure in either never
fails the transition.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ridesharex.core.errors import (
    LifecycleError, InvalidTransition, Unauthorized, MissingReason, Conflict, StorageError, NotFound,
)
from ridesharex.core.time import utc_now
from ridesharex.crud.entities import EntityStore, Entity
from ridesharex.metrics import transitions_total, transition_errors_total, availability_changes_total, notifications_failed_total
from ridesharex.models.listing import Listing
from ridesharex.models.status import EntityKind, ActorRole, ApprovalStatus
from ridesharex.models.transition import TransitionRecord
from ridesharex.services.audit import AuditTrailRecorder
from ridesharex.services.notifications import Notifier, NotificationEvent, describe
from ridesharex.services.transitions import (
    parse_kind, rules_for, find_edge, requires_reason, initial_status, allowed_targets, Edge,
)

logger = logging.getLogger(__name__)

# Governance knob: an admin may not review their own account or listing
ALLOW_SELF_REVIEW = False

# Host-editable listing fields
EDITABLE_LISTING_FIELDS = ("title", "make", "model", "year", "daily_rate", "location", "description")
REQUIRED_LISTING_FIELDS = {"title", "make", "model", "daily_rate"}

Dispatch = Callable[..., Any]


@dataclass(frozen=True)
class Actor:
    id: str
    role: str


@dataclass
class BulkResult:
    applied: List[TransitionRecord] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)


class ApprovalLifecycleService:
    def __init__(
        self,
        db: Session,
        notifier: Optional[Notifier] = None,
        store: Optional[EntityStore] = None,
        recorder: Optional[AuditTrailRecorder] = None,
        allow_self_review: bool = ALLOW_SELF_REVIEW,
        dispatch: Optional[Dispatch] = None,
    ):
        self.db = db
        self.notifier = notifier
        self.store = store or EntityStore(db)
        self.recorder = recorder or AuditTrailRecorder(db)
        self.allow_self_review = allow_self_review
        # dispatch(fn, *args) schedules fn out of band; None sends inline
        self.dispatch = dispatch

    # ------------------------------------------------------------------ reads

    def get_entity(self, kind: str | EntityKind, entity_id: str) -> Entity:
        kind = parse_kind(kind)
        entity = self.store.get(kind, entity_id)
        if entity is None:
            raise NotFound(f"{kind.value.capitalize()} {entity_id} not found")
        return entity

    def get_history(self, kind: str | EntityKind, entity_id: str) -> List[TransitionRecord]:
        kind = parse_kind(kind)
        self.get_entity(kind, entity_id)
        return self.recorder.query(kind.value, entity_id)

    def current_status(self, kind: str | EntityKind, entity_id: str) -> str:
        """Derived from the audit trail, never from the cached status column."""
        kind = parse_kind(kind)
        self.get_entity(kind, entity_id)
        last = self.recorder.latest(kind.value, entity_id)
        return last.to_status if last else initial_status(kind)

    def verify_consistency(self, kind: str | EntityKind, entity_id: str) -> bool:
        entity = self.get_entity(kind, entity_id)
        return entity.status == self.current_status(kind, entity_id)

    # ----------------------------------------------------------------- writes

    def request_transition(
        self,
        kind: str | EntityKind,
        entity_id: str,
        target_status: str,
        actor: Any,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> TransitionRecord:
        return self._transition(parse_kind(kind), entity_id, target_status, actor, reason, expected_version)

    def bulk_transition(
        self,
        kind: str | EntityKind,
        entity_ids: List[str],
        target_status: str,
        actor: Any,
        reason: Optional[str] = None,
    ) -> BulkResult:
        """Each id is its own transaction; one failure never affects the others."""
        out = BulkResult()
        for entity_id in entity_ids:
            try:
                out.applied.append(self.request_transition(kind, entity_id, target_status, actor, reason))
            except LifecycleError as e:
                out.failed.append({"id": entity_id, **e.to_dict()})
        return out

    def set_availability(
        self,
        listing_id: str,
        is_available: bool,
        actor: Any,
        expected_version: Optional[int] = None,
    ) -> Listing:
        """Host pause/resume. Independent of approval status; not an audited transition."""
        try:
            listing = self.get_entity(EntityKind.LISTING, listing_id)
            role = (actor.role or "").lower()
            if role != ActorRole.ADMIN.value and not (
                role == ActorRole.HOST.value and str(actor.id) == str(listing.host_id)
            ):
                raise Unauthorized("Only the listing's host or an admin can change availability")

            version = listing.version
            if expected_version is not None and expected_version != version:
                raise Conflict(f"Listing {listing_id} is at version {version}, not {expected_version}")
            if bool(listing.is_available) == bool(is_available):
                return listing

            self._write(EntityKind.LISTING, listing_id, version, {"is_available": bool(is_available)})
        except LifecycleError as e:
            self._refused(EntityKind.LISTING, listing_id, "availability", e)
            raise

        availability_changes_total.labels(is_available=str(bool(is_available)).lower()).inc()
        logger.info("[lifecycle] listing %s is_available=%s by %s", listing_id, bool(is_available), actor.id)
        self.db.refresh(listing)
        return listing

    def edit_listing(
        self,
        listing_id: str,
        changes: Dict[str, Any],
        actor: Any,
        expected_version: Optional[int] = None,
    ) -> Listing:
        """
        Host edits their own listing.

        A pending listing is simply updated. An approved or rejected listing
        goes back to pending in the same transaction as the edit, with an
        audited resubmission record, so reviewed content never changes
        unreviewed.
        """
        kind = EntityKind.LISTING
        changes = {k: v for k, v in changes.items() if k in EDITABLE_LISTING_FIELDS}
        blank = sorted(k for k, v in changes.items() if v is None and k in REQUIRED_LISTING_FIELDS)
        if blank:
            raise ValueError(f"Fields cannot be cleared: {blank}")
        try:
            listing = self.get_entity(kind, listing_id)
            role = (actor.role or "").lower()
            if role != ActorRole.HOST.value or str(actor.id) != str(listing.host_id):
                raise Unauthorized("You can only update your own listings")

            version = listing.version
            if expected_version is not None and expected_version != version:
                raise Conflict(f"Listing {listing_id} is at version {version}, not {expected_version}")
            changes = {k: v for k, v in changes.items() if getattr(listing, k) != v}
            if not changes:
                return listing
            status = listing.status
        except LifecycleError as e:
            self._refused(kind, listing_id, "edit", e)
            raise

        if status == ApprovalStatus.PENDING.value:
            try:
                self._write(kind, listing_id, version, changes)
            except LifecycleError as e:
                self._refused(kind, listing_id, "edit", e)
                raise
            logger.info("[lifecycle] listing %s edited by %s: %s", listing_id, actor.id, sorted(changes))
        else:
            self._transition(kind, listing_id, ApprovalStatus.PENDING.value, actor, None, version, changes)
            logger.info("[lifecycle] listing %s edited and resubmitted by %s: %s", listing_id, actor.id, sorted(changes))

        self.db.refresh(listing)
        return listing

    # -------------------------------------------------------------- internals

    def _transition(self, kind: EntityKind, entity_id: str, target_status: str, actor: Any,
                    reason: Optional[str], expected_version: Optional[int],
                    extra_values: Optional[Dict[str, Any]] = None) -> TransitionRecord:
        try:
            record, event = self._apply(kind, entity_id, target_status, actor, reason, expected_version, extra_values)
        except LifecycleError as e:
            self._refused(kind, entity_id, f"-> {target_status}", e)
            raise

        transitions_total.labels(kind=kind.value, to_status=record.to_status).inc()
        logger.info(
            "[lifecycle] %s %s %s -> %s by %s (%s)",
            kind.value, entity_id, record.from_status, record.to_status, record.actor_id, record.actor_role,
        )
        self.recorder.mirror(record)
        self._notify(event)
        return record

    def _apply(self, kind: EntityKind, entity_id: str, target_status: str, actor: Any,
               reason: Optional[str], expected_version: Optional[int],
               extra_values: Optional[Dict[str, Any]] = None):
        entity = self.get_entity(kind, entity_id)
        current = entity.status
        version = entity.version

        if expected_version is not None and expected_version != version:
            raise Conflict(
                f"{kind.value.capitalize()} {entity_id} is at version {version}, not {expected_version}"
            )

        target = (target_status or "").strip().lower()
        edge = find_edge(kind, current, target)
        if edge is None:
            raise InvalidTransition(
                f"Cannot move {kind.value} from '{current}' to '{target}'. "
                f"Allowed: {allowed_targets(kind, current)}"
            )

        self._authorize(kind, entity, edge, actor)

        reason = (reason or "").strip() or None
        needs_reason = requires_reason(kind, target)
        if needs_reason and not reason:
            raise MissingReason(f"A reason is required to move a {kind.value} to '{target}'")

        now = utc_now()
        values: Dict[str, Any] = dict(extra_values or {})
        values.update(status=target, status_reason=reason if needs_reason else None)
        if edge.is_review:
            values.update(last_reviewed_by=str(actor.id), last_reviewed_at=now)
        else:
            values.update(last_reviewed_by=None, last_reviewed_at=None)

        record = TransitionRecord(
            entity_id=entity_id,
            entity_kind=kind.value,
            from_status=current,
            to_status=target,
            actor_id=str(actor.id),
            actor_role=(actor.role or "").lower(),
            reason=reason,
            occurred_at=now,
        )
        self._write(kind, entity_id, version, values, record)

        event = NotificationEvent(
            entity_kind=kind.value,
            entity_id=entity_id,
            from_status=current,
            to_status=target,
            actor_id=str(actor.id),
            recipient_id=str(entity.owner_id),
            reason=reason,
            subject=describe(entity),
            occurred_at=now,
        )
        return record, event

    def _write(self, kind: EntityKind, entity_id: str, version: int, values: Dict[str, Any],
               record: Optional[TransitionRecord] = None) -> None:
        """Conditional update (+ audit append) committed together, or not at all."""
        try:
            if not self.store.conditional_update(kind, entity_id, version, values):
                raise Conflict(f"{kind.value.capitalize()} {entity_id} was modified concurrently")
            if record is not None:
                self.recorder.append(record)
            self._commit()
        except Exception:
            self.db.rollback()
            raise

    def _authorize(self, kind: EntityKind, entity: Entity, edge: Edge, actor: Any) -> None:
        role = (actor.role or "").lower()
        is_owner = str(actor.id) == str(entity.owner_id)

        if edge.is_review:
            if role != ActorRole.ADMIN.value:
                raise Unauthorized(f"Only an admin can move a {kind.value} to '{edge.to_status}'")
            if is_owner and not self.allow_self_review:
                raise Unauthorized(f"Admins cannot review their own {kind.value}")
            return

        if role not in rules_for(kind).owner_roles or not is_owner:
            raise Unauthorized(f"Only the {kind.value}'s owner can resubmit it")

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Commit failed: {e}") from e

    def _refused(self, kind: EntityKind, entity_id: str, action: str, e: LifecycleError) -> None:
        transition_errors_total.labels(kind=kind.value, error=e.code).inc()
        if isinstance(e, StorageError):
            logger.error("[lifecycle] %s %s %s failed: %s", kind.value, entity_id, action, e.message)
        else:
            logger.info("[lifecycle] %s %s %s refused (%s): %s", kind.value, entity_id, action, e.code, e.message)

    def _notify(self, event: NotificationEvent) -> None:
        if self.notifier is None:
            return
        if self.dispatch is not None:
            self.dispatch(self._send, event)
        else:
            self._send(event)

    def _send(self, event: NotificationEvent) -> None:
        try:
            self.notifier.send(event)
        except Exception as e:
            notifications_failed_total.labels(channel=getattr(self.notifier, "channel", "unknown")).inc()
            logger.warning("[notify] dispatch failed for %s %s: %s", event.entity_kind, event.entity_id, e)
