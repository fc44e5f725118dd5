from datetime import date


def _shipment(n, **fields):
    row = {
        "tracking_number": f"AMX00000000{n:02d}",
        "sender_name": "Ada Obi",
        "recipient_name": f"Recipient {n}",
        "status": "pending",
        "admin_approved": False,
        "total_cost": 10,
        "created_at": f"2026-02-{n:02d}T09:00:00+00:00",
    }
    row.update(fields)
    return row


def test_console_requires_an_active_admin(client, db, customer):
    assert client.get("/api/v1/admin/stats", headers=customer).status_code == 403
    db.seed("admin_users", {"user_id": "user-1", "role": "admin", "status": "inactive"})
    assert client.get("/api/v1/admin/stats", headers=customer).status_code == 403
    assert client.get("/api/v1/admin/stats").status_code == 401


def test_stats_are_cached_until_refreshed(client, db, admin):
    db.seed("shipments", _shipment(1), _shipment(2, status="in_transit", admin_approved=True))
    db.seed("payments", {"amount": 40.5, "status": "paid"}, {"amount": 9, "status": "pending"})
    db.seed("support_tickets", {"status": "open"})

    stats = client.get("/api/v1/admin/stats", headers=admin).json()
    assert stats["total_shipments"] == 2
    assert stats["pending_approvals"] == 1
    assert stats["in_transit"] == 1
    assert stats["open_tickets"] == 1
    assert stats["pending_payments"] == 1
    assert stats["total_revenue"] == 40.5

    db.seed("shipments", _shipment(3))
    assert client.get("/api/v1/admin/stats", headers=admin).json()["total_shipments"] == 2
    refreshed = client.get("/api/v1/admin/stats", params={"refresh": True}, headers=admin).json()
    assert refreshed["total_shipments"] == 3


def test_dashboard_page_bundles_stats_and_pending_actions(client, db, admin):
    db.seed("shipments", _shipment(1))
    db.seed("payments", {"amount": 9, "status": "pending", "payment_method": "crypto"})
    db.seed("support_tickets", {"status": "open", "subject": "Where is my parcel", "priority": "high"})

    res = client.get("/api/v1/admin/pages/dashboard", headers=admin)
    data = res.json()["data"]
    assert data["stats"]["total_shipments"] == 1
    kinds = sorted(a["kind"] for a in data["pending_actions"])
    assert kinds == ["payment", "shipment_approval", "ticket"]


def test_notifications_count_approvals_and_open_tickets(client, db, admin):
    db.seed("shipments", _shipment(1), _shipment(2, admin_approved=True))
    db.seed("support_tickets", {"status": "open", "subject": "Damaged box"})
    body = client.get("/api/v1/admin/notifications", headers=admin).json()
    assert body["count"] == 2


def test_shipment_filters_and_search(client, db, admin):
    db.seed(
        "shipments",
        _shipment(1),
        _shipment(2, status="in_transit", admin_approved=True),
        _shipment(3, status="in_transit", recipient_name="Grace Hopper"),
    )
    res = client.get("/api/v1/admin/shipments", params={"status": "in_transit"}, headers=admin)
    assert res.json()["page"]["total"] == 2

    res = client.get("/api/v1/admin/shipments", params={"approval": "pending"}, headers=admin)
    body = res.json()
    assert body["filters"] == {"status": "in_transit", "approval": "pending"}
    assert [s["tracking_number"] for s in body["page"]["items"]] == ["AMX0000000003"]

    client.post("/api/v1/admin/shipments/clear-filters", headers=admin)
    res = client.get("/api/v1/admin/shipments", params={"search": "grace"}, headers=admin)
    assert res.json()["page"]["total"] == 1


def test_shipment_date_range_filter(client, db, admin):
    db.seed("shipments", _shipment(1), _shipment(5), _shipment(9))
    res = client.get(
        "/api/v1/admin/shipments",
        params={"date_from": "2026-02-02", "date_to": "2026-02-05"},
        headers=admin,
    )
    assert [s["tracking_number"] for s in res.json()["page"]["items"]] == ["AMX0000000005"]


def test_opening_a_page_resets_to_first_page_and_keeps_filters(client, db, admin):
    db.seed("shipments", *[_shipment(n) for n in range(1, 13)])
    res = client.get("/api/v1/admin/shipments", params={"page": 2, "status": "pending"}, headers=admin)
    assert res.json()["page"]["page"] == 2
    assert len(res.json()["page"]["items"]) == 2

    data = client.get("/api/v1/admin/pages/shipments", headers=admin).json()["data"]
    assert data["page"]["page"] == 1
    assert data["filters"] == {"status": "pending"}


def test_changing_a_filter_returns_to_page_one(client, db, admin):
    db.seed("shipments", *[_shipment(n) for n in range(1, 13)])
    client.get("/api/v1/admin/shipments", params={"page": 2}, headers=admin)
    res = client.get("/api/v1/admin/shipments", params={"search": "AMX"}, headers=admin)
    assert res.json()["page"]["page"] == 1


def test_export_writes_the_filtered_view(client, db, admin):
    db.seed("shipments", _shipment(1), _shipment(2, status="delivered", admin_approved=True, total_cost=12.5))
    client.get("/api/v1/admin/shipments", params={"status": "delivered"}, headers=admin)
    res = client.get("/api/v1/admin/shipments/export", headers=admin)

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    assert f'shipments-{date.today().isoformat()}.csv' in res.headers["content-disposition"]
    lines = res.text.strip().split("\n")
    assert lines[0].startswith('"Tracking","Sender","Recipient"')
    assert len(lines) == 2
    assert '"12.50","Yes"' in lines[1]


def test_export_of_empty_view_is_rejected(client, db, admin):
    assert client.get("/api/v1/admin/tickets/export", headers=admin).status_code == 400


def test_edit_with_tracking_update(client, db, admin):
    shipment = db.seed("shipments", _shipment(1))[0]
    res = client.put(
        f"/api/v1/admin/shipments/{shipment['id']}",
        json={"status": "in_transit", "current_location": " Accra, Ghana ", "add_update": True},
        headers=admin,
    )
    assert res.status_code == 200
    stored = db.rows("shipments")[0]
    assert stored["status"] == "in_transit"
    assert stored["current_location"] == "Accra, Ghana"
    update = db.rows("shipment_updates")[0]
    assert update["location"] == "Accra, Ghana"
    assert update["message"] == "Status updated to In Transit"


def test_tracking_update_needs_a_location(client, db, admin):
    shipment = db.seed("shipments", _shipment(1))[0]
    res = client.put(
        f"/api/v1/admin/shipments/{shipment['id']}",
        json={"status": "delivered", "add_update": True},
        headers=admin,
    )
    assert res.status_code == 400
    assert db.rows("shipments")[0]["status"] == "pending"
    assert db.rows("shipment_updates") == []


def test_approve_shipment(client, db, admin):
    shipment = db.seed("shipments", _shipment(1))[0]
    assert client.post(f"/api/v1/admin/shipments/{shipment['id']}/approve", headers=admin).status_code == 200
    assert db.rows("shipments")[0]["admin_approved"] is True
    assert db.rows("shipments")[0]["status"] == "pending"
    assert client.post("/api/v1/admin/shipments/missing/approve", headers=admin).status_code == 404


def test_payment_approval_is_mirrored_on_the_shipment(client, db, admin):
    shipment = db.seed("shipments", _shipment(1, payment_status="pending"))[0]
    payment = db.seed("payments", {"shipment_id": shipment["id"], "amount": 68.63, "status": "pending"})[0]

    res = client.post(f"/api/v1/admin/payments/{payment['id']}/approve", headers=admin)
    assert res.status_code == 200
    assert db.rows("payments")[0]["status"] == "paid"
    assert db.rows("payments")[0]["paid_at"] is not None
    assert db.rows("shipments")[0]["payment_status"] == "paid"


def test_payment_rejection_marks_failed(client, db, admin):
    shipment = db.seed("shipments", _shipment(1, payment_status="pending"))[0]
    payment = db.seed("payments", {"shipment_id": shipment["id"], "amount": 20, "status": "pending"})[0]

    client.post(
        f"/api/v1/admin/payments/{payment['id']}/reject",
        json={"note": "Proof is unreadable"},
        headers=admin,
    )
    stored = db.rows("payments")[0]
    assert stored["status"] == "failed"
    assert stored["notes"] == "Proof is unreadable"
    assert db.rows("shipments")[0]["payment_status"] == "failed"


def test_payment_list_stats(client, db, admin):
    db.seed(
        "payments",
        {"amount": 50, "status": "paid", "paid_at": "2020-01-01T00:00:00+00:00"},
        {"amount": 25, "status": "pending"},
    )
    body = client.get("/api/v1/admin/payments", headers=admin).json()
    assert body["stats"]["total_revenue"] == 50.0
    assert body["stats"]["pending_amount"] == 25.0
    assert body["stats"]["paid_this_month"] == 0.0


def test_staff_reply_updates_ticket(client, db, admin):
    ticket = db.seed("support_tickets", {"subject": "Late", "status": "open", "priority": "low"})[0]
    res = client.post(
        f"/api/v1/admin/tickets/{ticket['id']}/reply",
        json={"message": "On its way", "status": "in_progress"},
        headers=admin,
    )
    assert res.status_code == 200
    assert db.rows("ticket_replies")[0]["is_staff"] is True
    assert db.rows("support_tickets")[0]["status"] == "in_progress"

    res = client.post(f"/api/v1/admin/tickets/{ticket['id']}/reply", json={"message": "  "}, headers=admin)
    assert res.status_code == 400


def test_users_are_enriched_with_shipment_totals(client, db, admin):
    db.seed(
        "user_profiles",
        {"user_id": "u-1", "full_name": "Ada Obi"},
        {"user_id": "u-2", "full_name": "Grace Hopper"},
    )
    db.seed(
        "shipments",
        _shipment(1, user_id="u-2", total_cost=10),
        _shipment(2, user_id="u-2", total_cost=5.5),
    )
    body = client.get("/api/v1/admin/users", params={"sort": "most_shipments"}, headers=admin).json()
    first = body["page"]["items"][0]
    assert first["user_id"] == "u-2"
    assert first["shipment_count"] == 2
    assert first["total_spent"] == 15.5
    assert body["page"]["items"][1]["shipment_count"] == 0


def test_create_admin_user_calls_edge_function(client, db, admin):
    res = client.post(
        "/api/v1/admin/admin_users",
        json={"email": " New.Ops@Amerex.test ", "role": "support"},
        headers=admin,
    )
    assert res.status_code == 200
    name, body = db.function_calls[0]
    assert name == "create-admin-user"
    assert body["email"] == "new.ops@amerex.test"
    assert body["role"] == "support"


def test_create_admin_user_reports_function_error(client, db, admin):
    db.function_results["create-admin-user"] = {"error": "User already exists"}
    res = client.post("/api/v1/admin/admin_users", json={"email": "ops@amerex.test"}, headers=admin)
    assert res.status_code == 400
    assert res.json()["detail"] == "User already exists"


def test_only_settings_managers_can_add_admins(client, db, admin):
    db.add_user("support-token", "support-1", "help@amerex.test")
    db.seed("admin_users", {"user_id": "support-1", "role": "support", "status": "active"})
    res = client.post(
        "/api/v1/admin/admin_users",
        json={"email": "x@amerex.test"},
        headers={"Authorization": "Bearer support-token"},
    )
    assert res.status_code == 403
    assert db.function_calls == []


def test_update_and_delete_admin_users(client, db, admin):
    owner = db.rows("admin_users")[0]
    helper = db.seed("admin_users", {"user_id": "support-1", "role": "support", "status": "active"})[0]

    res = client.put(f"/api/v1/admin/admin_users/{helper['id']}", json={"status": "suspended"}, headers=admin)
    assert res.status_code == 400
    res = client.put(f"/api/v1/admin/admin_users/{helper['id']}", json={"status": "inactive"}, headers=admin)
    assert res.status_code == 200

    assert client.delete(f"/api/v1/admin/admin_users/{owner['id']}", headers=admin).status_code == 400
    assert client.delete(f"/api/v1/admin/admin_users/{helper['id']}", headers=admin).status_code == 200
    assert len(db.rows("admin_users")) == 1
