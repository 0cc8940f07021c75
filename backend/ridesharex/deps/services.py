import os
from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from ridesharex.core.database import get_db, SessionLocal
from ridesharex.services.lifecycle import ApprovalLifecycleService
from ridesharex.services.notifications import CompositeNotifier, DatabaseNotifier, Notifier, WebhookNotifier

NOTIFY_DB_ENABLED = os.getenv("NOTIFY_DB_ENABLED", "1") == "1"

def get_notifier() -> Notifier:
    channels: list[Notifier] = []
    if NOTIFY_DB_ENABLED:
        channels.append(DatabaseNotifier(SessionLocal))
    channels.append(WebhookNotifier())
    return CompositeNotifier(channels)

def get_lifecycle(
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> ApprovalLifecycleService:
    # notifications go out after the response is sent
    return ApprovalLifecycleService(db, notifier=notifier, dispatch=background.add_task)
