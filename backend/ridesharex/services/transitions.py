"""
Transition tables for the approvable entity kinds.

Each kind maps ``(from_status, to_status)`` to an ``Edge``. An edge is either
reviewed by an admin or resubmitted by the entity's owner. A pair missing from
the table is not a legal transition.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

from ridesharex.models.status import EntityKind, ApprovalStatus, ActorRole

ADMIN = "admin"
OWNER = "owner"

P = ApprovalStatus.PENDING.value
A = ApprovalStatus.APPROVED.value
R = ApprovalStatus.REJECTED.value


@dataclass(frozen=True)
class Edge:
    from_status: str
    to_status: str
    actor: str                      # ADMIN | OWNER

    @property
    def is_review(self) -> bool:
        return self.actor == ADMIN


@dataclass(frozen=True)
class KindRules:
    kind: EntityKind
    initial_status: str
    statuses: FrozenSet[str]
    reason_required: FrozenSet[str]
    owner_roles: FrozenSet[str]
    edges: Dict[Tuple[str, str], Edge]


def _edges(*items: Tuple[str, str, str]) -> Dict[Tuple[str, str], Edge]:
    return {(f, t): Edge(f, t, who) for f, t, who in items}


RULES: Dict[EntityKind, KindRules] = {
    EntityKind.USER: KindRules(
        kind=EntityKind.USER,
        initial_status=P,
        statuses=frozenset({P, A, R}),
        reason_required=frozenset({R}),
        owner_roles=frozenset({ActorRole.RENTER.value, ActorRole.HOST.value}),
        edges=_edges(
            (P, A, ADMIN),
            (P, R, ADMIN),
            (R, P, OWNER),
        ),
    ),
    EntityKind.LISTING: KindRules(
        kind=EntityKind.LISTING,
        initial_status=P,
        statuses=frozenset({P, A, R}),
        reason_required=frozenset({R}),
        owner_roles=frozenset({ActorRole.HOST.value}),
        edges=_edges(
            (P, A, ADMIN),
            (P, R, ADMIN),
            (A, P, OWNER),
            (R, P, OWNER),
        ),
    ),
}


def parse_kind(value: str | EntityKind) -> EntityKind:
    if isinstance(value, EntityKind):
        return value
    try:
        return EntityKind((value or "").strip().lower())
    except ValueError:
        raise ValueError(f"Invalid entity kind '{value}'. Must be one of {sorted(k.value for k in EntityKind)}.")


def rules_for(kind: str | EntityKind) -> KindRules:
    return RULES[parse_kind(kind)]


def find_edge(kind: str | EntityKind, from_status: str, to_status: str) -> Optional[Edge]:
    return rules_for(kind).edges.get((from_status, to_status))


def requires_reason(kind: str | EntityKind, to_status: str) -> bool:
    return to_status in rules_for(kind).reason_required


def initial_status(kind: str | EntityKind) -> str:
    return rules_for(kind).initial_status


def allowed_targets(kind: str | EntityKind, from_status: str) -> list[str]:
    return sorted(t for (f, t) in rules_for(kind).edges if f == from_status)
