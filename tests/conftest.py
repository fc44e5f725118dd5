import itertools
import re
import uuid
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from src.admin_handlers import clear_stats_cache, view_store
from src.auth_handlers import login_lockout
from src.contact_handlers import contact_cooldown
from src.dashboard_handlers import dashboard_views
from src.quote_handlers import quote_cooldown
from src.tracking_handlers import report_cooldown, tracking_cooldown
from src.utils.supabase import set_supabase


# ===============================================================
# In-memory stand-in for the Supabase client
# ===============================================================
class FakeResponse:
    def __init__(self, data=None, count=None):
        self.data = data
        self.count = count


def _like(pattern: str, value) -> bool:
    regex = "^" + re.escape(pattern).replace("%", ".*").replace("_", ".") + "$"
    return re.match(regex, str(value or ""), re.IGNORECASE) is not None


def _compare(left, right) -> int:
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return (left > right) - (left < right)
    left, right = str(left), str(right)
    return (left > right) - (left < right)


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload = None
        self.on_conflict = None
        self.predicates = []
        self.order_by = None
        self.order_desc = False
        self.row_limit = None
        self.count_mode = None
        self.head = False

    # builders
    def select(self, columns="*", count=None, head=False):
        self.count_mode = count
        self.head = head
        return self

    def insert(self, data):
        self.action, self.payload = "insert", data
        return self

    def update(self, data):
        self.action, self.payload = "update", data
        return self

    def upsert(self, data, on_conflict=None):
        self.action, self.payload, self.on_conflict = "upsert", data, on_conflict
        return self

    def delete(self):
        self.action = "delete"
        return self

    # filters
    def eq(self, column, value):
        self.predicates.append(lambda r: r.get(column) == value)
        return self

    def neq(self, column, value):
        self.predicates.append(lambda r: r.get(column) != value)
        return self

    def in_(self, column, values):
        self.predicates.append(lambda r: r.get(column) in values)
        return self

    def gte(self, column, value):
        self.predicates.append(lambda r: r.get(column) is not None and _compare(r.get(column), value) >= 0)
        return self

    def lte(self, column, value):
        self.predicates.append(lambda r: r.get(column) is not None and _compare(r.get(column), value) <= 0)
        return self

    def ilike(self, column, pattern):
        self.predicates.append(lambda r: _like(pattern, r.get(column)))
        return self

    def order(self, column, desc=False):
        self.order_by, self.order_desc = column, desc
        return self

    def limit(self, n):
        self.row_limit = n
        return self

    def _matches(self):
        return [r for r in self.db.tables.setdefault(self.table, []) if all(p(r) for p in self.predicates)]

    def execute(self):
        if (self.action, self.table) in self.db.fail_on:
            raise Exception(f"simulated {self.action} failure on {self.table}")
        self.db.calls.append((self.action, self.table))

        if self.action == "insert":
            rows = self.payload if isinstance(self.payload, list) else [self.payload]
            return FakeResponse(data=[dict(self.db.store(self.table, row)) for row in rows])

        if self.action == "upsert":
            key = self.on_conflict
            existing = [r for r in self.db.tables.setdefault(self.table, []) if key and r.get(key) == self.payload.get(key)]
            if existing:
                existing[0].update(self.payload)
                return FakeResponse(data=[dict(existing[0])])
            return FakeResponse(data=[dict(self.db.store(self.table, self.payload))])

        matched = self._matches()
        if self.action == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResponse(data=[dict(r) for r in matched])
        if self.action == "delete":
            self.db.tables[self.table] = [r for r in self.db.tables[self.table] if r not in matched]
            return FakeResponse(data=[dict(r) for r in matched])

        count = len(matched) if self.count_mode else None
        if self.order_by:
            matched = sorted(
                matched,
                key=lambda r: (r.get(self.order_by) is None, str(r.get(self.order_by))),
                reverse=self.order_desc,
            )
        if self.row_limit:
            matched = matched[: self.row_limit]
        return FakeResponse(data=[] if self.head else [dict(r) for r in matched], count=count)


class FakeRpc:
    def __init__(self, db, name, params):
        self.db, self.name, self.params = db, name, params

    def execute(self):
        self.db.rpc_calls.append((self.name, self.params))
        result = self.db.rpc_results.get(self.name)
        return FakeResponse(data=result(self.params) if callable(result) else result)


class FakeFunctions:
    def __init__(self, db):
        self.db = db

    def invoke(self, name, invoke_options=None):
        body = (invoke_options or {}).get("body")
        self.db.function_calls.append((name, body))
        if name in self.db.function_errors:
            raise Exception(f"edge function {name} failed")
        return self.db.function_results.get(name, {"success": True})


class FakeBucket:
    def __init__(self, db, bucket):
        self.db, self.bucket = db, bucket

    def upload(self, path, content, file_options=None):
        self.db.uploads.append((self.bucket, path, len(content), file_options))
        return {"path": path}

    def get_public_url(self, path):
        return f"https://storage.test/{self.bucket}/{path}"


class FakeStorage:
    def __init__(self, db):
        self.db = db

    def from_(self, bucket):
        return FakeBucket(self.db, bucket)


class FakeAuthAdmin:
    def __init__(self, db):
        self.db = db

    def sign_out(self, token):
        self.db.signed_out.append(token)


class FakeAuth:
    def __init__(self, db):
        self.db = db
        self.admin = FakeAuthAdmin(db)

    def get_user(self, token):
        user = self.db.sessions.get(token)
        if user is None:
            raise Exception("invalid JWT")
        return SimpleNamespace(user=user)

    def sign_in_with_password(self, credentials):
        account = self.db.accounts.get(credentials["email"])
        if account is None or account["password"] != credentials["password"]:
            raise Exception("Invalid login credentials")
        if not account["confirmed"]:
            raise Exception("Email not confirmed")
        user = account["user"]
        token = f"token-{user.id}"
        self.db.sessions[token] = user
        return SimpleNamespace(
            user=user,
            session=SimpleNamespace(access_token=token, refresh_token="refresh", expires_in=3600),
        )

    def sign_up(self, credentials):
        email = credentials["email"]
        if email in self.db.accounts:
            raise Exception("User already registered")
        user = SimpleNamespace(
            id=str(uuid.uuid4()),
            email=email,
            user_metadata=credentials.get("options", {}).get("data", {}),
        )
        self.db.accounts[email] = {"password": credentials["password"], "user": user, "confirmed": False}
        self.db.signups.append(credentials)
        return SimpleNamespace(user=user, session=None)

    def reset_password_for_email(self, email, options=None):
        self.db.password_resets.append((email, options))


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.calls = []
        self.fail_on = set()
        self.rpc_results = {}
        self.rpc_calls = []
        self.function_results = {}
        self.function_errors = set()
        self.function_calls = []
        self.uploads = []
        self.sessions = {}
        self.accounts = {}
        self.signups = []
        self.password_resets = []
        self.signed_out = []
        self._tracking = itertools.count(1234567890)
        self.functions = FakeFunctions(self)
        self.storage = FakeStorage(self)
        self.auth = FakeAuth(self)

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        return FakeRpc(self, name, params)

    # test helpers
    def store(self, table, row):
        row = dict(row)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        if table == "shipments":
            row.setdefault("tracking_number", f"AMX{next(self._tracking)}")
        self.tables.setdefault(table, []).append(row)
        return row

    def seed(self, table, *rows):
        return [self.store(table, row) for row in rows]

    def rows(self, table):
        return self.tables.get(table, [])

    def add_user(self, token, user_id, email, **metadata):
        user = SimpleNamespace(id=user_id, email=email, user_metadata=metadata)
        self.sessions[token] = user
        return user

    def add_account(self, email, password, user_id=None, confirmed=True, **metadata):
        user = SimpleNamespace(id=user_id or str(uuid.uuid4()), email=email, user_metadata=metadata)
        self.accounts[email] = {"password": password, "user": user, "confirmed": confirmed}
        return user


# ===============================================================
# fixtures
# ===============================================================
@pytest.fixture(autouse=True)
def reset_process_state():
    for cooldown in (tracking_cooldown, report_cooldown, quote_cooldown, contact_cooldown):
        cooldown.reset()
    login_lockout.reset()
    view_store.clear()
    dashboard_views.clear()
    clear_stats_cache()
    yield


@pytest.fixture
def db():
    fake = FakeSupabase()
    set_supabase(fake, fake)
    yield fake
    set_supabase(None)


@pytest.fixture
def client(db):
    from main import app

    return TestClient(app)


@pytest.fixture
def customer(db):
    db.add_user("customer-token", "user-1", "ada@example.com", full_name="Ada Obi")
    return {"Authorization": "Bearer customer-token"}


@pytest.fixture
def admin(db):
    db.add_user("admin-token", "admin-1", "ops@amerex.test")
    db.seed(
        "admin_users",
        {"user_id": "admin-1", "email": "ops@amerex.test", "role": "super_admin", "status": "active"},
    )
    return {"Authorization": "Bearer admin-token"}


# ===============================================================
# wizard forms
# ===============================================================
SENDER_FORM = {
    "name": "Ada Obi",
    "email": "ada@example.com",
    "phone": "+234 801 234 5678",
    "address": "12 Marina Road",
    "city": "Lagos",
    "state": "Lagos",
    "zip": "101001",
    "country": "Nigeria",
}

RECIPIENT_FORM = {
    "name": "John Doe",
    "email": "john@example.com",
    "phone": "(212) 555-0100",
    "address": "350 5th Ave",
    "city": "New York",
    "state": "NY",
    "zip": "10118",
    "country": "United States",
    "is_international": True,
}

PACKAGE_FORM = {
    "package_type": "small_box",
    "length": 30,
    "width": 20,
    "height": 10,
    "weight": 2,
    "quantity": 1,
    "description": "Books and documents",
    "declared_value": 200,
}


def service_form(days_ahead: int = 3, tier: str = "standard") -> dict:
    return {
        "tier": tier,
        "pickup_date": (date.today() + timedelta(days=days_ahead)).isoformat(),
        "pickup_time": "09:00-12:00",
    }


@pytest.fixture
def payment_state():
    """A wizard state that has reached the payment step."""
    from src.shipment_wizard import advance, start_state

    state = start_state()
    for form in (SENDER_FORM, RECIPIENT_FORM, PACKAGE_FORM, {}, service_form()):
        outcome = advance(state, form)
        assert outcome.ok, outcome.error
        state = outcome.state
    return state


@pytest.fixture
def wizard_forms():
    return SimpleNamespace(
        sender=dict(SENDER_FORM),
        recipient=dict(RECIPIENT_FORM),
        package=dict(PACKAGE_FORM),
        service=service_form,
    )
