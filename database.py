"""
MongoDB access helpers and the repositories the services persist through.

``db`` is ``None`` when DATABASE_URL is not configured; routes that need the
database then fail with 503 instead of at import time.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.database import Database

import settings

logger = logging.getLogger(__name__)

# subscription states that grant the paid plan
ACTIVE_STATUSES = ("active", "trialing")

_client = MongoClient(settings.DATABASE_URL) if settings.DATABASE_URL else None
db: Optional[Database] = _client[settings.DATABASE_NAME] if _client is not None else None


def now() -> datetime:
    return datetime.now(timezone.utc)


def next_sequence(database: Database, name: str) -> int:
    """Allocate the next integer id for ``name`` from the counter collection."""
    counter = database["counter"].find_one_and_update(
        {"_id": name},
        {"$inc": {"value": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return int(counter["value"])


class ConfigRepository:
    """Persistence for the single storefront configuration document."""

    collection = "bioconfig"

    def __init__(self, database: Database):
        self.db = database

    def get(self) -> Optional[Dict[str, Any]]:
        return self.db[self.collection].find_one({}, {"_id": 0})

    def replace(self, config: Dict[str, Any]) -> Dict[str, Any]:
        doc = {**config, "updatedAt": now()}
        saved = self.db[self.collection].find_one_and_replace(
            {}, doc, projection={"_id": 0}, upsert=True, return_document=ReturnDocument.AFTER,
        )
        logger.debug("Replaced configuration document (%d products)", len(doc.get("products", [])))
        return saved


class PageRepository:
    """Persistence for pages, their components, legacy stores, user plans and
    page analytics."""

    def __init__(self, database: Database):
        self.db = database

    # ---- pages ----
    def find_page(self, **filters) -> Optional[Dict[str, Any]]:
        return self.db["page"].find_one(filters, {"_id": 0})

    def list_pages(self, user_id: str) -> List[Dict[str, Any]]:
        return list(self.db["page"].find({"user_id": user_id}, {"_id": 0}).sort("created_at", ASCENDING))

    def count_pages(self, user_id: str) -> int:
        return self.db["page"].count_documents({"user_id": user_id})

    def insert_page(self, data: Dict[str, Any]) -> Dict[str, Any]:
        doc = {**data, "id": next_sequence(self.db, "page"), "created_at": now(), "updated_at": now()}
        self.db["page"].insert_one(doc)
        doc.pop("_id", None)
        return doc

    def update_page(self, page_id: int, user_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.db["page"].find_one_and_update(
            {"id": page_id, "user_id": user_id},
            {"$set": {**fields, "updated_at": now()}},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )

    def delete_page(self, page_id: int, user_id: str) -> bool:
        res = self.db["page"].delete_one({"id": page_id, "user_id": user_id})
        if res.deleted_count:
            self.db["pagecomponent"].delete_many({"page_id": page_id})
        return res.deleted_count > 0

    # ---- components ----
    def list_components(self, page_id: int, visible_only: bool = False) -> List[Dict[str, Any]]:
        flt: Dict[str, Any] = {"page_id": page_id}
        if visible_only:
            flt["is_visible"] = True
        return list(self.db["pagecomponent"].find(flt, {"_id": 0}).sort("order_index", ASCENDING))

    def get_component(self, component_id: int) -> Optional[Dict[str, Any]]:
        return self.db["pagecomponent"].find_one({"id": component_id}, {"_id": 0})

    def insert_component(self, data: Dict[str, Any]) -> Dict[str, Any]:
        doc = {**data, "id": next_sequence(self.db, "pagecomponent"), "created_at": now(), "updated_at": now()}
        self.db["pagecomponent"].insert_one(doc)
        doc.pop("_id", None)
        return doc

    def update_component(self, component_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.db["pagecomponent"].find_one_and_update(
            {"id": component_id},
            {"$set": {**fields, "updated_at": now()}},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )

    def delete_component(self, component_id: int) -> bool:
        return self.db["pagecomponent"].delete_one({"id": component_id}).deleted_count > 0

    # ---- legacy stores and plans ----
    def find_store(self, username: str) -> Optional[Dict[str, Any]]:
        return self.db["store"].find_one({"username": username}, {"_id": 0})

    def user_plan(self, user_id: str) -> str:
        sub = self.db["subscription"].find_one({"user_id": user_id, "status": {"$in": list(ACTIVE_STATUSES)}})
        return sub.get("plan", "free") if sub else "free"

    def upsert_subscription(self, user_id: str, fields: Dict[str, Any]) -> None:
        self.db["subscription"].update_one(
            {"user_id": user_id},
            {"$set": {**fields, "user_id": user_id, "updated_at": now()}},
            upsert=True,
        )

    def set_subscription_status(self, stripe_subscription_id: str, status: str) -> None:
        self.db["subscription"].update_one(
            {"stripe_subscription_id": stripe_subscription_id},
            {"$set": {"status": status, "updated_at": now()}},
        )

    # ---- analytics ----
    def record_view(self, event: Dict[str, Any]) -> None:
        self.db["page_view"].insert_one({**event, "viewed_at": now()})
        self.db["page"].update_one({"id": event["page_id"]}, {"$inc": {"views": 1}})

    def record_click(self, event: Dict[str, Any]) -> None:
        self.db["component_click"].insert_one({**event, "clicked_at": now()})
        self.db["page"].update_one({"id": event["page_id"]}, {"$inc": {"clicks": 1}})

    def list_views(self, page_id: int, since: datetime) -> List[Dict[str, Any]]:
        return list(self.db["page_view"].find(
            {"page_id": page_id, "viewed_at": {"$gte": since}}, {"_id": 0},
        ).sort("viewed_at", ASCENDING))

    def list_clicks(self, page_id: int, since: datetime) -> List[Dict[str, Any]]:
        return list(self.db["component_click"].find(
            {"page_id": page_id, "clicked_at": {"$gte": since}}, {"_id": 0},
        ).sort("clicked_at", ASCENDING))
