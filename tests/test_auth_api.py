def _login(client, email, password):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})


def test_customer_lands_on_dashboard(client, db):
    user = db.add_account("ada@example.com", "Secret123", full_name="Ada Obi")
    res = _login(client, "ADA@example.com ", "Secret123")
    assert res.status_code == 200
    body = res.json()
    assert body["redirect"] == "dashboard.html"
    assert body["access_token"] == f"token-{user.id}"
    assert db.rows("user_profiles")[0]["user_id"] == user.id


def test_admin_lands_on_console(client, db):
    user = db.add_account("ops@amerex.test", "Secret123")
    db.seed("admin_users", {"user_id": user.id, "email": "ops@amerex.test", "role": "admin", "status": "active"})
    assert _login(client, "ops@amerex.test", "Secret123").json()["redirect"] == "admin.html"


def test_inactive_admin_lands_on_dashboard(client, db):
    user = db.add_account("old@amerex.test", "Secret123")
    db.seed("admin_users", {"user_id": user.id, "role": "admin", "status": "inactive"})
    assert _login(client, "old@amerex.test", "Secret123").json()["redirect"] == "dashboard.html"


def test_wrong_password_counts_down_then_locks(client, db):
    db.add_account("ada@example.com", "Secret123")
    res = _login(client, "ada@example.com", "wrong")
    assert res.status_code == 401
    assert "4 attempt(s) remaining" in res.json()["detail"]
    for _ in range(4):
        res = _login(client, "ada@example.com", "wrong")
    assert res.status_code == 429
    # locked even with the right password
    assert _login(client, "ada@example.com", "Secret123").status_code == 429


def test_unconfirmed_email_is_forbidden(client, db):
    db.add_account("new@example.com", "Secret123", confirmed=False)
    res = _login(client, "new@example.com", "Secret123")
    assert res.status_code == 403


def test_login_requires_valid_email(client, db):
    assert _login(client, "not-an-email", "x").status_code == 400


def test_signup_creates_account_and_profile(client, db):
    res = client.post(
        "/api/v1/auth/signup",
        json={
            "first_name": "Ada",
            "last_name": "Obi",
            "email": "ada@example.com",
            "password": "Secret123",
            "confirm_password": "Secret123",
        },
    )
    assert res.status_code == 200
    options = db.signups[0]["options"]
    assert options["data"]["full_name"] == "Ada Obi"
    assert options["email_redirect_to"].endswith("/login.html")
    assert db.rows("user_profiles")[0]["full_name"] == "Ada Obi"


def test_signup_password_rules(client, db):
    payload = {
        "first_name": "Ada",
        "last_name": "Obi",
        "email": "ada@example.com",
        "password": "secret123",
        "confirm_password": "secret123",
    }
    res = client.post("/api/v1/auth/signup", json=payload)
    assert res.status_code == 400
    assert res.json()["detail"] == "Password must contain an uppercase letter"

    payload.update(password="Secret123", confirm_password="Secret124")
    assert client.post("/api/v1/auth/signup", json=payload).json()["detail"] == "Passwords do not match"


def test_duplicate_signup_conflicts(client, db):
    db.add_account("ada@example.com", "Secret123")
    res = client.post(
        "/api/v1/auth/signup",
        json={
            "first_name": "Ada",
            "last_name": "Obi",
            "email": "ada@example.com",
            "password": "Secret123",
            "confirm_password": "Secret123",
        },
    )
    assert res.status_code == 409


def test_forgot_password_sends_reset(client, db):
    res = client.post("/api/v1/auth/forgot-password", json={"email": "ada@example.com"})
    assert res.status_code == 200
    email, options = db.password_resets[0]
    assert email == "ada@example.com"
    assert options["redirect_to"].endswith("/reset-password.html")


def test_protected_routes_need_a_session(client, db):
    assert client.get("/api/v1/dashboard/overview").status_code == 401
    res = client.get("/api/v1/dashboard/overview", headers={"Authorization": "Bearer expired"})
    assert res.status_code == 401


def test_customer_cannot_open_admin_console(client, customer):
    assert client.get("/api/v1/admin/stats", headers=customer).status_code == 403


def test_oauth_callback(client, customer):
    assert client.get("/api/v1/auth/callback", headers=customer).status_code == 400
    res = client.get("/api/v1/auth/callback", params={"oauth": "success"}, headers=customer)
    assert res.json()["redirect"] == "dashboard.html"


def test_logout_revokes_session(client, db, customer):
    assert client.post("/api/v1/auth/logout", headers=customer).status_code == 200
    assert db.signed_out == ["customer-token"]
