"""HTTP surface: transitions, history, admin views, notifications and auth."""
from conftest import auth_headers, TestingSessionLocal
from ridesharex.models.notification import Notification


def _transition(client, user, kind, entity_id, target, reason=None, expected_version=None):
    body = {"targetStatus": target}
    if reason is not None:
        body["reason"] = reason
    if expected_version is not None:
        body["expectedVersion"] = expected_version
    return client.post(f"/entities/{kind}/{entity_id}/transition", json=body, headers=auth_headers(user))


class TestTransitionEndpoint:
    def test_admin_rejects_listing(self, client, listing, admin_user):
        r = _transition(client, admin_user, "listing", listing.id, "rejected", reason="missing insurance")
        assert r.status_code == 200, r.text
        data = r.json()
        assert data["entity"]["status"] == "rejected"
        assert data["entity"]["status_reason"] == "missing insurance"
        assert data["entity"]["version"] == 1
        assert data["transition"]["from_status"] == "pending"
        assert data["transition"]["to_status"] == "rejected"
        assert data["transition"]["actor_role"] == "admin"

    def test_missing_reason_is_400(self, client, listing, admin_user):
        r = _transition(client, admin_user, "listing", listing.id, "rejected")
        assert r.status_code == 400
        assert r.json()["error"] == "MissingReason"

    def test_invalid_transition_is_400(self, client, listing, admin_user):
        r = _transition(client, admin_user, "listing", listing.id, "pending")
        assert r.status_code == 400
        body = r.json()
        assert body["error"] == "InvalidTransition"
        assert "pending" in body["detail"]

    def test_renter_is_403(self, client, listing, renter_user):
        r = _transition(client, renter_user, "listing", listing.id, "approved")
        assert r.status_code == 403
        assert r.json()["error"] == "Unauthorized"

    def test_stale_version_is_409(self, client, listing, admin_user):
        assert _transition(client, admin_user, "listing", listing.id, "approved", expected_version=0).status_code == 200
        r = _transition(client, admin_user, "listing", listing.id, "pending", expected_version=0)
        assert r.status_code == 409
        assert r.json()["error"] == "Conflict"

    def test_unknown_entity_is_404(self, client, admin_user):
        r = _transition(client, admin_user, "user", "does-not-exist", "approved")
        assert r.status_code == 404
        assert r.json()["error"] == "NotFound"

    def test_unknown_kind_is_400(self, client, admin_user):
        r = _transition(client, admin_user, "booking", "x", "approved")
        assert r.status_code == 400

    def test_requires_token(self, client, listing):
        r = client.post(f"/entities/listing/{listing.id}/transition", json={"targetStatus": "approved"})
        assert r.status_code == 401

    def test_user_resubmits_own_account(self, client, renter_user, admin_user):
        assert _transition(client, admin_user, "user", renter_user.id, "rejected", reason="blurry ID").status_code == 200
        r = _transition(client, renter_user, "user", renter_user.id, "pending")
        assert r.status_code == 200
        assert r.json()["entity"]["status"] == "pending"
        assert r.json()["entity"]["status_reason"] is None


class TestHistoryAndStatus:
    def test_history_is_chronological(self, client, listing, admin_user, host_user):
        _transition(client, admin_user, "listing", listing.id, "rejected", reason="missing insurance")
        _transition(client, host_user, "listing", listing.id, "pending")
        _transition(client, admin_user, "listing", listing.id, "approved")

        r = client.get(f"/entities/listing/{listing.id}/history", headers=auth_headers(host_user))
        assert r.status_code == 200
        assert [h["to_status"] for h in r.json()] == ["rejected", "pending", "approved"]

    def test_history_hidden_from_strangers(self, client, listing, renter_user):
        r = client.get(f"/entities/listing/{listing.id}/history", headers=auth_headers(renter_user))
        assert r.status_code == 403

    def test_status_is_derived_and_consistent(self, client, listing, admin_user, host_user):
        r = client.get(f"/entities/listing/{listing.id}/status", headers=auth_headers(host_user))
        assert r.json()["status"] == "pending"
        assert sorted(r.json()["allowed_next"]) == ["approved", "rejected"]

        _transition(client, admin_user, "listing", listing.id, "approved")
        data = client.get(f"/entities/listing/{listing.id}/status", headers=auth_headers(admin_user)).json()
        assert data["status"] == "approved"
        assert data["stored_status"] == "approved"
        assert data["consistent"] is True
        assert data["version"] == 1
        assert data["allowed_next"] == ["pending"]

    def test_export_history_pack(self, client, listing, admin_user):
        _transition(client, admin_user, "listing", listing.id, "approved")
        r = client.get(f"/entities/listing/{listing.id}/history/export", headers=auth_headers(admin_user))
        assert r.status_code == 200
        body = r.json()
        assert body["file"].startswith("history-pack")
        pack = body["pack"]
        assert pack["entity"]["id"] == listing.id
        assert pack["summary"]["transitions"] == 1
        assert pack["summary"]["derived_status"] == "approved"
        assert pack["summary"]["consistent"] is True

    def test_export_is_admin_only(self, client, listing, host_user):
        r = client.get(f"/entities/listing/{listing.id}/history/export", headers=auth_headers(host_user))
        assert r.status_code == 403


class TestBulkAndAdminViews:
    def test_bulk_transition(self, client, make_listing, host_user, admin_user):
        a, b = make_listing(host_user), make_listing(host_user, make="Honda", model="Fit")
        r = client.post(
            "/entities/listing/bulk-transition",
            json={"ids": [a.id, b.id, "ghost"], "targetStatus": "approved"},
            headers=auth_headers(admin_user),
        )
        assert r.status_code == 200
        data = r.json()
        assert data["applied_count"] == 2
        assert data["failed_count"] == 1
        assert data["failed"][0] == {"id": "ghost", "error": "NotFound", "detail": "Listing ghost not found"}

    def test_bulk_requires_admin(self, client, listing, host_user):
        r = client.post(
            "/entities/listing/bulk-transition",
            json={"ids": [listing.id], "targetStatus": "approved"},
            headers=auth_headers(host_user),
        )
        assert r.status_code == 403

    def test_review_queue_and_stats(self, client, listing, renter_user, host_user, admin_user):
        r = client.get("/api/admin/review-queue", headers=auth_headers(admin_user))
        assert r.status_code == 200
        queue = r.json()
        assert [l["id"] for l in queue["listing"]] == [listing.id]
        assert {u["id"] for u in queue["user"]} == {host_user.id, renter_user.id}

        _transition(client, admin_user, "listing", listing.id, "approved")
        stats = client.get("/api/admin/stats", headers=auth_headers(admin_user)).json()
        assert stats["status_counts"]["listing"]["approved"] == 1
        assert stats["status_counts"]["user"]["pending"] == 2
        assert stats["pending_total"] == 2

        only_listings = client.get("/api/admin/review-queue?kind=listing", headers=auth_headers(admin_user)).json()
        assert only_listings == {"listing": []}

    def test_audit_feed(self, client, listing, renter_user, admin_user):
        _transition(client, admin_user, "listing", listing.id, "approved")
        _transition(client, admin_user, "user", renter_user.id, "approved")
        feed = client.get("/api/audit", headers=auth_headers(admin_user)).json()
        assert [e["entity_kind"] for e in feed] == ["user", "listing"]
        feed = client.get("/api/audit?kind=listing", headers=auth_headers(admin_user)).json()
        assert [e["entity_id"] for e in feed] == [listing.id]

    def test_admin_views_reject_non_admins(self, client, renter_user):
        for path in ("/api/admin/review-queue", "/api/admin/stats", "/api/audit"):
            assert client.get(path, headers=auth_headers(renter_user)).status_code == 403


class TestNotifications:
    def test_rejection_notifies_host(self, client, listing, admin_user, host_user, recorder):
        _transition(client, admin_user, "listing", listing.id, "rejected", reason="No insurance document")
        assert len(recorder.events) == 1

        r = client.get("/api/notifications", headers=auth_headers(host_user))
        assert r.status_code == 200
        items = r.json()
        assert len(items) == 1
        assert items[0]["message"] == "Your Toyota Corolla listing was rejected. No insurance document"
        assert items[0]["is_read"] is False

        r = client.post(f"/api/notifications/{items[0]['id']}/read", headers=auth_headers(host_user))
        assert r.status_code == 200
        assert r.json()["is_read"] is True
        assert client.get("/api/notifications?unread_only=true", headers=auth_headers(host_user)).json() == []

    def test_cannot_read_someone_elses_notification(self, client, listing, admin_user, renter_user):
        _transition(client, admin_user, "listing", listing.id, "approved")
        db = TestingSessionLocal()
        try:
            n = db.query(Notification).first()
            assert n.message == "Your Toyota Corolla listing has been approved!"
            note_id = n.id
        finally:
            db.close()
        r = client.post(f"/api/notifications/{note_id}/read", headers=auth_headers(renter_user))
        assert r.status_code == 404

    def test_account_approval_message(self, client, renter_user, admin_user):
        _transition(client, admin_user, "user", renter_user.id, "approved")
        items = client.get("/api/notifications", headers=auth_headers(renter_user)).json()
        assert [i["message"] for i in items] == ["Your account has been approved!"]


class TestUsersAndAuth:
    def test_register_starts_pending(self, client, db_session):
        r = client.post("/api/users", json={"email": "New.Host@Example.com", "full_name": "New Host", "role": "host"})
        assert r.status_code == 201
        body = r.json()
        assert body["status"] == "pending"
        assert body["email"] == "new.host@example.com"
        assert body["version"] == 0

    def test_register_rejects_admin_role_and_duplicates(self, client, renter_user):
        r = client.post("/api/users", json={"email": "boss@example.com", "full_name": "Boss", "role": "admin"})
        assert r.status_code == 400
        r = client.post("/api/users", json={"email": renter_user.email, "full_name": "Again"})
        assert r.status_code == 400

    def test_login_refresh_and_me(self, client, renter_user):
        r = client.post("/auth/login", json={"email": renter_user.email})
        assert r.status_code == 200
        tokens = r.json()
        assert tokens["role"] == "renter"
        assert tokens["user_id"] == renter_user.id

        me = client.get("/api/users/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
        assert me.status_code == 200
        assert me.json()["id"] == renter_user.id

        r = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert r.status_code == 200
        assert r.json()["access_token"]

        # an access token is not a refresh token
        r = client.post("/auth/refresh", json={"refresh_token": tokens["access_token"]})
        assert r.status_code == 401

    def test_login_unknown_email(self, client):
        assert client.post("/auth/login", json={"email": "nobody@example.com"}).status_code == 401

    def test_user_lookup_permissions(self, client, renter_user, host_user, admin_user):
        assert client.get(f"/api/users/{renter_user.id}", headers=auth_headers(renter_user)).status_code == 200
        assert client.get(f"/api/users/{renter_user.id}", headers=auth_headers(host_user)).status_code == 403
        assert client.get(f"/api/users/{renter_user.id}", headers=auth_headers(admin_user)).status_code == 200
        assert client.get("/api/users/missing", headers=auth_headers(admin_user)).status_code == 404

        pending = client.get("/api/users?status=pending", headers=auth_headers(admin_user)).json()
        assert {u["id"] for u in pending} == {renter_user.id, host_user.id}
        assert client.get("/api/users", headers=auth_headers(renter_user)).status_code == 403

    def test_notify_webhook_config_is_admin_only(self, client, admin_user, host_user):
        assert client.post("/config/notify-webhook", json={"url": None}, headers=auth_headers(host_user)).status_code == 403
        r = client.get("/config/notify-webhook", headers=auth_headers(admin_user))
        assert r.status_code == 200
        assert r.json()["configured"] is False
