# tests/conftest.py
# shared fixtures: fake provider API, fake page, fake checkout widget

import asyncio
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from payrelay.main import app, get_provider_client
from payrelay.signature import compute_signature

KEY_ID = "rzp_test_key"
SECRET = "test_secret_key"


@pytest.fixture
def credentials(monkeypatch):
    """Provider credentials present in the environment"""
    monkeypatch.setenv("RAZORPAY_KEY_ID", KEY_ID)
    monkeypatch.setenv("RAZORPAY_KEY_SECRET", SECRET)


class FakeProvider:
    """Stands in for the provider REST API behind httpx.MockTransport"""

    def __init__(self):
        self.requests = []
        self.order_id = "order_abc"
        self.order_http_status = 200
        self.payment_status = "captured"
        self.payment_http_status = 200
        self.unreachable = False
        self.lookup_unreachable = False
        self.payment_body = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("provider unreachable", request=request)

        if request.method == "POST" and request.url.path == "/v1/orders":
            if self.order_http_status != 200:
                return httpx.Response(self.order_http_status, json={"error": {"description": "Authentication failed"}})
            body = json.loads(request.content)
            return httpx.Response(200, json={
                "id": self.order_id,
                "entity": "order",
                "amount": body["amount"],
                "amount_paid": 0,
                "amount_due": body["amount"],
                "currency": body["currency"],
                "receipt": body["receipt"],
                "status": "created",
                "attempts": 0,
                "notes": body["notes"],
                "created_at": 1700000000,
            })

        if request.method == "GET" and request.url.path.startswith("/v1/payments/"):
            if self.lookup_unreachable:
                raise httpx.ConnectError("lookup unreachable", request=request)
            if self.payment_body is not None:
                return httpx.Response(self.payment_http_status, json=self.payment_body)
            payment_id = request.url.path.rsplit("/", 1)[-1]
            return httpx.Response(self.payment_http_status, json={"id": payment_id, "status": self.payment_status})

        return httpx.Response(404)

    @property
    def order_requests(self):
        return [r for r in self.requests if r.url.path == "/v1/orders"]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def provider():
    fake = FakeProvider()

    async def override():
        async with httpx.AsyncClient(transport=fake.transport()) as client:
            yield client

    app.dependency_overrides[get_provider_client] = override
    yield fake
    app.dependency_overrides.pop(get_provider_client, None)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def backend_client(provider, credentials):
    """Async client wired straight into the verification service app"""
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


class FakeHost:
    """
    A page that can load the checkout script.
    behaviour: "load", "error" or "hang"
    """

    def __init__(self, behaviour="load", present=False):
        self.behaviour = behaviour
        self.present = present
        self.injected = []
        self.removed = []
        self.callbacks = None

    def provider_present(self):
        return self.present

    def inject_script(self, src, on_load, on_error):
        element = {"src": src}
        self.injected.append(element)
        self.callbacks = (on_load, on_error)
        loop = asyncio.get_running_loop()
        if self.behaviour == "load":
            loop.call_soon(self._loaded, on_load)
        elif self.behaviour == "error":
            loop.call_soon(on_error)
        return element

    def _loaded(self, on_load):
        self.present = True
        on_load()

    def remove_script(self, element):
        self.removed.append(element)


@pytest.fixture
def host():
    return FakeHost()


class FakeWidget:
    """Checkout widget that plays a scripted user once opened"""

    def __init__(self, options, script):
        self.options = options
        self.script = script
        self.handlers = {}
        self.opened = False

    def on(self, event, handler):
        self.handlers[event] = handler

    def open(self):
        self.opened = True
        asyncio.get_running_loop().call_soon(self.script, self)

    def pay(self, payment_id="pay_1", signature=None, secret=SECRET):
        order_id = self.options["order_id"]
        if signature is None:
            signature = compute_signature(order_id, payment_id, secret)
        self.options["handler"]({
            "razorpay_payment_id": payment_id,
            "razorpay_order_id": order_id,
            "razorpay_signature": signature,
        })

    def dismiss(self):
        self.options["modal"]["ondismiss"]()

    def fail(self, description="Card declined"):
        self.handlers["payment.failed"]({"error": {"code": "BAD_REQUEST_ERROR", "description": description}})


class WidgetFactory:
    def __init__(self, script=None):
        self.script = script or (lambda w: w.pay())
        self.widgets = []

    def __call__(self, options):
        widget = FakeWidget(options, self.script)
        self.widgets.append(widget)
        return widget


@pytest.fixture
def make_widget_factory():
    return WidgetFactory
