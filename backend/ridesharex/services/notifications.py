from __future__ import annotations
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Callable, Iterable, List, Optional

import requests
from sqlalchemy.orm import Session

from ridesharex.metrics import notifications_failed_total
from ridesharex.models.listing import Listing
from ridesharex.models.notification import Notification
from ridesharex.models.status import EntityKind, ApprovalStatus
from ridesharex.utils.runtime_config import get_notify_webhook

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationEvent:
    entity_kind: str
    entity_id: str
    from_status: str
    to_status: str
    actor_id: str
    recipient_id: str
    reason: Optional[str] = None
    subject: Optional[str] = None       # e.g. "Toyota Corolla" for listings
    occurred_at: Optional[datetime] = None

    def to_payload(self) -> dict:
        data = asdict(self)
        data["occurred_at"] = self.occurred_at.isoformat() if self.occurred_at else None
        return data


def describe(entity) -> Optional[str]:
    if isinstance(entity, Listing):
        return f"{entity.make} {entity.model}"
    return None


def build_message(event: NotificationEvent) -> str:
    if event.entity_kind == EntityKind.LISTING.value:
        what = f"Your {event.subject} listing" if event.subject else "Your listing"
    else:
        what = "Your account"

    if event.to_status == ApprovalStatus.APPROVED.value:
        return f"{what} has been approved!"
    if event.to_status == ApprovalStatus.REJECTED.value:
        return f"{what} was rejected. {event.reason or 'Please review the requirements and try again.'}"
    return f"{what} was resubmitted and is pending review."


class Notifier:
    channel = "base"

    def send(self, event: NotificationEvent) -> None:
        raise NotImplementedError


class DatabaseNotifier(Notifier):
    """Stores an in-app notification for the recipient in its own session."""
    channel = "database"

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def send(self, event: NotificationEvent) -> None:
        db = self.session_factory()
        try:
            db.add(Notification(
                user_id=event.recipient_id,
                entity_kind=event.entity_kind,
                entity_id=event.entity_id,
                from_status=event.from_status,
                to_status=event.to_status,
                message=build_message(event),
                reason=event.reason,
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class WebhookNotifier(Notifier):
    """POSTs the event as JSON. Resolves the webhook URL on every call."""
    channel = "webhook"

    def __init__(self, url_getter: Callable[[], str] = get_notify_webhook, timeout: float = 10):
        self.url_getter = url_getter
        self.timeout = timeout

    def send(self, event: NotificationEvent) -> None:
        url = (self.url_getter() or "").strip()
        if not url:
            logger.debug("[notify] webhook not set; skipping send")
            return
        payload = {**event.to_payload(), "text": build_message(event)}
        r = requests.post(url, json=payload, timeout=self.timeout)
        logger.info("[notify] webhook POST status=%s", r.status_code)
        r.raise_for_status()


class CompositeNotifier(Notifier):
    """Fans out to every notifier; one failing channel never stops the rest."""
    channel = "composite"

    def __init__(self, notifiers: Iterable[Notifier]):
        self.notifiers: List[Notifier] = list(notifiers)

    def send(self, event: NotificationEvent) -> None:
        for n in self.notifiers:
            try:
                n.send(event)
            except Exception as e:
                notifications_failed_total.labels(channel=n.channel).inc()
                logger.warning(
                    "[notify] %s dispatch failed for %s %s: %s",
                    n.channel, event.entity_kind, event.entity_id, e,
                )
