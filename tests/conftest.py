import copy
import os
import threading
from collections import defaultdict
from types import SimpleNamespace
from typing import Any, Dict, Generator, List, Optional

# Pas de Redis en tests: le lifespan laisse le rate limiting désactivé
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
import stripe
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from storefront.app_setup.factory import create_app
from storefront.app_setup.services import Services
from storefront.notifications.email_client import ResendClient
from storefront.notifications.service import ConfirmationNotifier
from storefront.orders.repository import OrderRepository
from storefront.orders.service import OrderVerifier
from storefront.payments.repository import ProductRepository
from storefront.payments.service import CheckoutSessionCreator
from storefront.payments.stripe_client import StripeGateway

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)


# --- Stripe ---------------------------------------------------------------

class _FakeLineItems:
    def __init__(self, sessions: "_FakeCheckoutSessions"):
        self._sessions = sessions
        self.list_calls: List[str] = []

    def list(self, session_id, params=None):
        self.list_calls.append(session_id)
        data = self._sessions.all_line_items.get(session_id, [])
        return SimpleNamespace(auto_paging_iter=lambda: iter(copy.deepcopy(data)))


class _FakeCheckoutSessions:
    """Double de client.checkout.sessions (StripeClient)."""

    def __init__(self):
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.all_line_items: Dict[str, List[Dict[str, Any]]] = {}
        self.created: List[Dict[str, Any]] = []
        self.retrieve_calls: List[tuple] = []
        self.error: Optional[Exception] = None
        self.line_items = _FakeLineItems(self)

    def retrieve(self, session_id, params=None):
        self.retrieve_calls.append((session_id, params))
        if self.error is not None:
            raise self.error
        if session_id not in self.sessions:
            raise stripe.InvalidRequestError(
                f"No such checkout.session: '{session_id}'", "id", code="resource_missing"
            )
        return copy.deepcopy(self.sessions[session_id])

    def create(self, params=None):
        if self.error is not None:
            raise self.error
        self.created.append(params)
        sid = f"cs_test_created_{len(self.created)}"
        return {"id": sid, "url": f"https://checkout.stripe.test/c/pay/{sid}"}


class FakeStripeClient:
    def __init__(self):
        self.checkout = SimpleNamespace(sessions=_FakeCheckoutSessions())

    @property
    def sessions(self) -> _FakeCheckoutSessions:
        return self.checkout.sessions

    def add_session(self, session: Dict[str, Any]) -> Dict[str, Any]:
        self.sessions.sessions[session["id"]] = session
        return session


def make_line_item(
    name: str,
    amount_total: int,
    quantity: Optional[int] = 1,
    image: Optional[str] = None,
    metadata: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    item: Dict[str, Any] = {
        "object": "item",
        "description": name,
        "amount_total": amount_total,
        "price": {
            "product": {
                "name": name,
                "images": [image] if image else [],
                "metadata": metadata or {},
            },
        },
    }
    if quantity is not None:
        item["quantity"] = quantity
    return item


def make_session(
    session_id: str = "cs_test_123",
    *,
    payment_status: str = "paid",
    email: Optional[str] = "buyer@example.com",
    line_items: Optional[List[Dict[str, Any]]] = None,
    amount_subtotal: int = 150000,
    amount_total: int = 177000,
    amount_tax: int = 12000,
    amount_shipping: int = 5000,
) -> Dict[str, Any]:
    if line_items is None:
        line_items = [
            make_line_item(
                "Air Runner",
                100000,
                quantity=1,
                image="https://cdn.example.com/air-runner.png",
                metadata={"size": "9", "color": "Black", "productId": "prod-1", "variantId": "var-1"},
            ),
            make_line_item("Court Classic", 50000, quantity=None),
        ]
    return {
        "id": session_id,
        "object": "checkout.session",
        "payment_status": payment_status,
        "customer_details": {"email": email},
        "payment_intent": "pi_test_123",
        "amount_subtotal": amount_subtotal,
        "amount_total": amount_total,
        "shipping_cost": {"amount_total": amount_shipping},
        "total_details": {"amount_tax": amount_tax},
        "shipping_details": {
            "name": "Asha Rao",
            "address": {"line1": "12 MG Road", "city": "Bengaluru", "postal_code": "560001", "country": "IN"},
        },
        "line_items": {"object": "list", "data": line_items, "has_more": False},
    }


# --- Supabase -------------------------------------------------------------

class _Result:
    def __init__(self, data):
        self.data = data


class _Query:
    def __init__(self, db: "FakeSupabase", table: str):
        self._db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.filters: List[tuple] = []
        self.max_rows: Optional[int] = None

    def select(self, *columns):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def eq(self, column, value):
        self.filters.append((column, lambda v, value=value: v == value))
        return self

    def in_(self, column, values):
        values = tuple(values)
        self.filters.append((column, lambda v, values=values: v in values))
        return self

    def limit(self, n):
        self.max_rows = n
        return self

    def execute(self):
        return self._db.execute(self)


class FakeSupabase:
    """
    Base en mémoire qui imite le query builder supabase-py.
    - UNIQUE(orders.stripe_session_id) appliquée de façon atomique (APIError 23505).
    - fail_on[(table, op)] = exception: force une erreur sur une opération.
    """

    UNIQUE = {"orders": ("stripe_session_id",)}

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.fail_on: Dict[tuple, Exception] = {}
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def table(self, name: str) -> _Query:
        return _Query(self, name)

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return list(self.tables.get(table, []))

    def execute(self, q: _Query) -> _Result:
        with self._lock:
            self.calls.append((q.table, q.op))
            error = self.fail_on.get((q.table, q.op))
            if error is not None:
                raise error
            if q.op == "insert":
                rows = q.payload if isinstance(q.payload, list) else [q.payload]
                existing = self.tables[q.table]
                for row in rows:
                    for column in self.UNIQUE.get(q.table, ()):
                        if any(r.get(column) == row.get(column) for r in existing):
                            raise APIError({
                                "message": f'duplicate key value violates unique constraint "{q.table}_{column}_key"',
                                "code": "23505",
                                "hint": None,
                                "details": f"Key ({column})=({row.get(column)}) already exists.",
                            })
                stored = [dict(r) for r in rows]
                existing.extend(stored)
                return _Result([dict(r) for r in stored])
            found = [r for r in self.tables[q.table] if all(pred(r.get(col)) for col, pred in q.filters)]
            if q.max_rows is not None:
                found = found[: q.max_rows]
            return _Result([dict(r) for r in found])


# --- Resend ---------------------------------------------------------------

class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload if payload is not None else {"id": "email_123"}
        self.text = text

    def json(self):
        return self._payload


class FakeHttpSession:
    """Remplace requests.Session dans ResendClient."""

    def __init__(self, response: Optional[FakeResponse] = None):
        self.headers: Dict[str, str] = {}
        self.response = response or FakeResponse()
        self.error: Optional[Exception] = None
        self.sent: List[Dict[str, Any]] = []

    def post(self, url, json=None, timeout=None):
        self.sent.append({"url": url, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


# --- Fixtures -------------------------------------------------------------

@pytest.fixture
def stripe_client() -> FakeStripeClient:
    return FakeStripeClient()

@pytest.fixture
def gateway(stripe_client) -> StripeGateway:
    return StripeGateway("sk_test_fake", client=stripe_client)

@pytest.fixture
def db() -> FakeSupabase:
    db = FakeSupabase()
    db.tables["products"] = [
        {"id": "prod-1", "name": "Air Runner", "price": 1000, "images": ["https://cdn.example.com/air-runner.png"]},
        {"id": "prod-2", "name": "Court Classic", "price": "500.00", "images": []},
    ]
    return db

@pytest.fixture
def resend_http() -> FakeHttpSession:
    return FakeHttpSession()

@pytest.fixture
def notifier(resend_http) -> ConfirmationNotifier:
    return ConfirmationNotifier(
        ResendClient("re_test_key", session=resend_http),
        sender="SoleDrip <orders@soledrip.test>",
        store_name="SoleDrip",
        store_tagline="Fresh kicks, delivered",
        support_email="support@soledrip.test",
        currency_symbol="₹",
    )

@pytest.fixture
def order_repository(db) -> OrderRepository:
    return OrderRepository(db)

@pytest.fixture
def verifier(gateway, order_repository, notifier) -> OrderVerifier:
    return OrderVerifier(gateway, order_repository, notifier)

@pytest.fixture
def services(gateway, verifier, notifier, db) -> Services:
    checkout = CheckoutSessionCreator(
        gateway,
        ProductRepository(db),
        currency="inr",
        shipping_fee=9900,
        free_shipping_threshold=200000,
        shipping_countries=["IN"],
    )
    return Services(gateway=gateway, verifier=verifier, checkout=checkout, notifier=notifier, supabase=db)

@pytest.fixture
def app(services):
    return create_app(services=services)

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture
def session_factory():
    return make_session

@pytest.fixture
def line_item_factory():
    return make_line_item

@pytest.fixture
def paid_session(stripe_client):
    """Session payée 'cs_test_123' enregistrée chez le faux Stripe."""
    return stripe_client.add_session(make_session())
