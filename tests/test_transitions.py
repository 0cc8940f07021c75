"""Transition table: the single source of truth for legal edges."""
import pytest

from ridesharex.models.status import EntityKind
from ridesharex.services.transitions import (
    ADMIN, OWNER, RULES, allowed_targets, find_edge, initial_status, parse_kind, requires_reason,
)


def test_initial_status_is_pending_for_both_kinds():
    assert initial_status(EntityKind.USER) == "pending"
    assert initial_status("listing") == "pending"


@pytest.mark.parametrize("kind", ["user", "listing"])
def test_review_edges_belong_to_admin(kind):
    assert find_edge(kind, "pending", "approved").actor == ADMIN
    assert find_edge(kind, "pending", "rejected").actor == ADMIN


@pytest.mark.parametrize("kind", ["user", "listing"])
def test_rejected_requires_reason(kind):
    assert requires_reason(kind, "rejected")
    assert not requires_reason(kind, "approved")
    assert not requires_reason(kind, "pending")


def test_user_cannot_leave_approved():
    assert find_edge("user", "approved", "rejected") is None
    assert find_edge("user", "approved", "pending") is None
    assert allowed_targets("user", "approved") == []


def test_listing_host_can_resubmit_from_approved_or_rejected():
    assert find_edge("listing", "approved", "pending").actor == OWNER
    assert find_edge("listing", "rejected", "pending").actor == OWNER
    assert find_edge("listing", "approved", "rejected") is None


def test_no_self_loops():
    for rules in RULES.values():
        assert all(f != t for (f, t) in rules.edges)


def test_edges_only_use_known_statuses():
    for rules in RULES.values():
        for f, t in rules.edges:
            assert f in rules.statuses and t in rules.statuses


def test_unknown_target_has_no_edge():
    assert find_edge("listing", "pending", "unavailable") is None


def test_parse_kind_normalises_and_rejects():
    assert parse_kind(" Listing ") is EntityKind.LISTING
    with pytest.raises(ValueError):
        parse_kind("vehicle")
