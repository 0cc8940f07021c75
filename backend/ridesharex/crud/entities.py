# ridesharex/crud/entities.py
from __future__ import annotations
from typing import Any, Dict, List, Optional, Type, Union

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ridesharex.core.errors import StorageError
from ridesharex.core.time import utc_now
from ridesharex.models.listing import Listing
from ridesharex.models.status import EntityKind, ApprovalStatus
from ridesharex.models.user import User
from ridesharex.services.transitions import parse_kind

Entity = Union[User, Listing]

MODELS: Dict[EntityKind, Type[Entity]] = {
    EntityKind.USER: User,
    EntityKind.LISTING: Listing,
}


def model_for(kind: str | EntityKind) -> Type[Entity]:
    return MODELS[parse_kind(kind)]


class EntityStore:
    """Generic access to approvable entities keyed by (kind, id)."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, kind: str | EntityKind, entity_id: str) -> Optional[Entity]:
        try:
            return self.db.get(model_for(kind), entity_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load {parse_kind(kind).value} {entity_id}: {e}") from e

    def conditional_update(
        self,
        kind: str | EntityKind,
        entity_id: str,
        expected_version: int,
        values: Dict[str, Any],
    ) -> bool:
        """
        UPDATE ... WHERE id = :id AND version = :expected.
        Returns False when another writer got there first. Does not commit.
        """
        model = model_for(kind)
        stmt = (
            update(model)
            .where(model.id == entity_id, model.version == expected_version)
            .values(**values, version=expected_version + 1, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update {parse_kind(kind).value} {entity_id}: {e}") from e
        if result.rowcount != 1:
            return False
        entity = self.db.get(model, entity_id)
        if entity is not None:
            self.db.refresh(entity)
        return True

    def pending(self, kind: str | EntityKind, limit: int = 100) -> List[Entity]:
        model = model_for(kind)
        return (
            self.db.query(model)
            .filter(model.status == ApprovalStatus.PENDING.value)
            .order_by(model.created_at.asc())
            .limit(limit)
            .all()
        )

    def status_counts(self, kind: str | EntityKind) -> Dict[str, int]:
        model = model_for(kind)
        counts = {s.value: 0 for s in ApprovalStatus}
        rows = self.db.query(model.status, func.count(model.id)).group_by(model.status).all()
        for status, n in rows:
            counts[status] = n
        return counts
