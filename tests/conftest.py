import copy
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

import main
from pages import PageService


class FakeTimer:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeClock:
    """Manual scheduler standing in for the event loop's call_later."""

    def __init__(self):
        self.now = 0.0
        self.timers = []

    def schedule(self, delay, callback):
        timer = FakeTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [t for t in self.timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.timers.remove(timer)
            self.now = timer.when
            timer.callback()
        self.now = target

    @property
    def active(self):
        return [t for t in self.timers if not t.cancelled]


class InMemoryConfigRepository:
    def __init__(self, doc=None):
        self.doc = copy.deepcopy(doc)
        self.saved = []
        self.fail_with = None

    def get(self):
        return copy.deepcopy(self.doc)

    def replace(self, config):
        if self.fail_with is not None:
            raise self.fail_with
        self.saved.append(copy.deepcopy(config))
        self.doc = {**copy.deepcopy(config), "updatedAt": datetime.now(timezone.utc)}
        return copy.deepcopy(self.doc)


def _matches(doc, filters):
    return all(doc.get(k) == v for k, v in filters.items())


class InMemoryPageRepository:
    def __init__(self):
        self.pages = []
        self.components = []
        self.stores = []
        self.plans = {}
        self.subscriptions = {}
        self.views = []
        self.clicks = []
        self._ids = {"page": 0, "pagecomponent": 0}

    def _next(self, name):
        self._ids[name] += 1
        return self._ids[name]

    def find_page(self, **filters):
        for page in self.pages:
            if _matches(page, filters):
                return copy.deepcopy(page)
        return None

    def list_pages(self, user_id):
        return [copy.deepcopy(p) for p in self.pages if p.get("user_id") == user_id]

    def count_pages(self, user_id):
        return len(self.list_pages(user_id))

    def insert_page(self, data):
        doc = {**data, "id": self._next("page"), "created_at": datetime.now(timezone.utc)}
        self.pages.append(doc)
        return copy.deepcopy(doc)

    def update_page(self, page_id, user_id, fields):
        for page in self.pages:
            if page["id"] == page_id and page.get("user_id") == user_id:
                page.update(fields)
                return copy.deepcopy(page)
        return None

    def delete_page(self, page_id, user_id):
        before = len(self.pages)
        self.pages = [p for p in self.pages if not (p["id"] == page_id and p.get("user_id") == user_id)]
        if len(self.pages) == before:
            return False
        self.components = [c for c in self.components if c["page_id"] != page_id]
        return True

    def list_components(self, page_id, visible_only=False):
        found = [c for c in self.components if c["page_id"] == page_id]
        if visible_only:
            found = [c for c in found if c.get("is_visible") is True]
        return [copy.deepcopy(c) for c in sorted(found, key=lambda c: c["order_index"])]

    def get_component(self, component_id):
        for component in self.components:
            if component["id"] == component_id:
                return copy.deepcopy(component)
        return None

    def insert_component(self, data):
        doc = {**data, "id": self._next("pagecomponent")}
        self.components.append(doc)
        return copy.deepcopy(doc)

    def update_component(self, component_id, fields):
        for component in self.components:
            if component["id"] == component_id:
                component.update(fields)
                return copy.deepcopy(component)
        return None

    def delete_component(self, component_id):
        before = len(self.components)
        self.components = [c for c in self.components if c["id"] != component_id]
        return len(self.components) < before

    def find_store(self, username):
        for store in self.stores:
            if store.get("username") == username:
                return copy.deepcopy(store)
        return None

    def user_plan(self, user_id):
        sub = self.subscriptions.get(user_id)
        if sub and sub.get("status") in ("active", "trialing"):
            return sub["plan"]
        return self.plans.get(user_id, "free")

    def upsert_subscription(self, user_id, fields):
        self.subscriptions[user_id] = {**self.subscriptions.get(user_id, {}), **fields, "user_id": user_id}

    def set_subscription_status(self, stripe_subscription_id, status):
        for sub in self.subscriptions.values():
            if sub.get("stripe_subscription_id") == stripe_subscription_id:
                sub["status"] = status

    def _bump(self, page_id, counter):
        for page in self.pages:
            if page["id"] == page_id:
                page[counter] = page.get(counter, 0) + 1

    def record_view(self, event, at=None):
        self.views.append({**event, "viewed_at": at or datetime.now(timezone.utc)})
        self._bump(event["page_id"], "views")

    def record_click(self, event, at=None):
        self.clicks.append({**event, "clicked_at": at or datetime.now(timezone.utc)})
        self._bump(event["page_id"], "clicks")

    def list_views(self, page_id, since):
        return [dict(v) for v in self.views if v["page_id"] == page_id and v["viewed_at"] >= since]

    def list_clicks(self, page_id, since):
        return [dict(c) for c in self.clicks if c["page_id"] == page_id and c["clicked_at"] >= since]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_config():
    """Stored configuration; the second product predates per-product discounts."""
    return {
        "profileName": "Tania Vi",
        "profileBio": "Wellness & Lifestyle Creator",
        "profileImage": "https://cdn.example.com/tania.jpg",
        "profileImageScale": 100,
        "whatsappNumber": "5511999999999",
        "whatsappMessage": "Olá, gostaria de saber mais sobre os produtos!",
        "couponCode": "BEMVINDO",
        "discountPercent": 10,
        "products": [
            {
                "id": "1",
                "title": "Secaps Black",
                "description": "Energia, Foco e Força.",
                "image": "/black.png",
                "imageScale": 110,
                "discountPercent": 20,
                "kits": [
                    {"id": "k1", "label": "1 Pote", "price": 100.0, "link": "/a",
                     "discountLinks": {"20": "/a20"}},
                    {"id": "k2", "label": "3 Potes", "price": 197.0, "link": "/b", "ignoreDiscount": True},
                ],
            },
            {
                "id": "2",
                "title": "Secaps Chá",
                "description": "Chá misto solúvel.",
                "image": "/cha.png",
                "imageScale": 100,
                "kits": [
                    {"id": "k3", "label": "1 Pote", "price": 87.0, "link": "/c"},
                    {"id": "k4", "label": "5 Potes", "price": 247.0, "link": "/d", "isVisible": False},
                ],
            },
        ],
    }


@pytest.fixture
def config_repo(sample_config):
    return InMemoryConfigRepository(sample_config)


@pytest.fixture
def page_repo():
    return InMemoryPageRepository()


@pytest.fixture
def client(config_repo, page_repo):
    main.app.dependency_overrides[main.get_config_repository] = lambda: config_repo
    main.app.dependency_overrides[main.get_page_service] = lambda: PageService(page_repo)
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


@pytest.fixture
def owner_headers():
    return {"X-User-Id": "user_123"}
