"""
Page builder operations: pages owned by a user, their ordered components and
the view and click tracking behind page analytics.

Component ``order_index`` values stay dense (0..n-1) after every add, move,
reorder and delete.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from pydantic import ValidationError

from analytics import detect_device, period_start, summarize
from billing import plan_limits
from schemas import (
    ComponentClickEvent,
    ComponentCreate,
    ComponentUpdate,
    PageCreate,
    PageUpdate,
    PageViewEvent,
    validate_component_config,
)
from storefront import store_as_page
from themes import get_theme_id_from_background

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_NAME = "Minha Página"


def _validated_config(component_type: str, config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    try:
        return validate_component_config(component_type, config)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


class PageService:
    def __init__(self, repository):
        self.repo = repository

    # ============ Pages ============
    def list_pages(self, user_id: str) -> List[Dict[str, Any]]:
        return self.repo.list_pages(user_id)

    def get_page(self, page_id: int, user_id: Optional[str] = None) -> Dict[str, Any]:
        page = self.repo.find_page(id=page_id)
        if not page:
            raise HTTPException(status_code=404, detail="Page not found")
        if user_id and page.get("user_id") != user_id:
            raise HTTPException(status_code=403, detail="Access denied")
        return {**page, "components": self.repo.list_components(page_id)}

    def public_page(self, username: str) -> Dict[str, Any]:
        username = username.lower()
        page = self.repo.find_page(username=username, is_active=True)
        if page:
            show_branding = True
            if page.get("user_id"):
                show_branding = plan_limits(self.repo.user_plan(page["user_id"])).get("show_branding") is not False
            return {
                **page,
                "components": self.repo.list_components(page["id"], visible_only=True),
                "show_branding": show_branding,
            }

        store = self.repo.find_store(username)
        if not store or store.get("is_active") is False:
            raise HTTPException(status_code=404, detail="Page not found")
        return store_as_page(store)

    def og_source(self, username: str) -> Optional[Dict[str, Any]]:
        """Profile fields used for link previews, from an active page or legacy store."""
        username = username.lower()
        page = self.repo.find_page(username=username, is_active=True)
        if page:
            return page
        store = self.repo.find_store(username)
        if store and store.get("is_active") is not False:
            return store
        return None

    def username_available(self, username: str) -> bool:
        username = username.lower()
        return self.repo.find_page(username=username) is None and self.repo.find_store(username) is None

    def create_page(self, user_id: str, payload: PageCreate) -> Dict[str, Any]:
        limit = plan_limits(self.repo.user_plan(user_id))["pages"]
        count = self.repo.count_pages(user_id)
        if limit != -1 and count >= limit:
            raise HTTPException(status_code=400, detail={
                "error": f"Limite de páginas atingido ({limit})",
                "limit": limit,
                "current": count,
                "upgrade_url": "/#precos",
            })

        if not self.username_available(payload.username):
            raise HTTPException(status_code=400, detail="Username already taken")

        page = self.repo.insert_page({
            "user_id": user_id,
            "username": payload.username.lower(),
            "profile_name": payload.profile_name or DEFAULT_PROFILE_NAME,
            "theme": "light",
            "views": 0,
            "clicks": 0,
            "is_active": True,
        })
        logger.info("Created page %s (%s) for user %s", page["id"], page["username"], user_id)
        return page

    def update_page(self, page_id: int, user_id: str, payload: PageUpdate) -> Dict[str, Any]:
        fields = payload.model_dump(exclude_unset=True)
        if "background_value" in fields and "theme" not in fields:
            fields["theme"] = get_theme_id_from_background(fields["background_value"])
        page = self.repo.update_page(page_id, user_id, fields)
        if not page:
            raise HTTPException(status_code=404, detail="Page not found")
        return page

    def delete_page(self, page_id: int, user_id: str) -> None:
        if not self.repo.delete_page(page_id, user_id):
            raise HTTPException(status_code=404, detail="Page not found")
        logger.info("Deleted page %s", page_id)

    # ============ Components ============
    def _owned_page(self, page_id: Optional[int], user_id: str) -> Dict[str, Any]:
        page = self.repo.find_page(id=page_id, user_id=user_id)
        if not page:
            raise HTTPException(status_code=403, detail="Access denied")
        return page

    def _owned_component(self, component_id: int, user_id: str) -> Dict[str, Any]:
        component = self.repo.get_component(component_id)
        if not component:
            raise HTTPException(status_code=404, detail="Component not found")
        self._owned_page(component.get("page_id"), user_id)
        return component

    def _write_order(self, ordered: List[Dict[str, Any]]) -> None:
        for index, component in enumerate(ordered):
            if component.get("order_index") != index:
                self.repo.update_component(component["id"], {"order_index": index})

    def add_component(self, page_id: int, user_id: str, payload: ComponentCreate) -> Dict[str, Any]:
        self._owned_page(page_id, user_id)
        existing = self.repo.list_components(page_id)
        return self.repo.insert_component({
            "page_id": page_id,
            "type": payload.type,
            "order_index": len(existing),
            "config": _validated_config(payload.type, payload.config),
            "is_visible": True,
        })

    def update_component(self, component_id: int, user_id: str, payload: ComponentUpdate) -> Dict[str, Any]:
        component = self._owned_component(component_id, user_id)
        fields = payload.model_dump(exclude_unset=True, exclude={"order_index"})
        if "config" in fields:
            fields["config"] = _validated_config(component["type"], fields["config"])
        if payload.order_index is not None and payload.order_index != component["order_index"]:
            self._move(component, payload.order_index)
        if fields:
            return self.repo.update_component(component_id, fields)
        return self.repo.get_component(component_id)

    def _move(self, component: Dict[str, Any], target: int) -> None:
        ordered = [c for c in self.repo.list_components(component["page_id"]) if c["id"] != component["id"]]
        target = min(target, len(ordered))
        ordered.insert(target, component)
        self._write_order(ordered)

    def delete_component(self, component_id: int, user_id: str) -> None:
        component = self._owned_component(component_id, user_id)
        self.repo.delete_component(component_id)
        self._write_order(self.repo.list_components(component["page_id"]))

    def reorder(self, page_id: int, user_id: str, component_ids: List[int]) -> List[Dict[str, Any]]:
        """Apply the given order; components left out keep their relative order after the listed ones."""
        self._owned_page(page_id, user_id)
        current = self.repo.list_components(page_id)
        by_id = {c["id"]: c for c in current}
        unknown = [cid for cid in component_ids if cid not in by_id]
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unknown component ids: {unknown}")
        if len(set(component_ids)) != len(component_ids):
            raise HTTPException(status_code=400, detail="componentIds must not repeat")

        listed = set(component_ids)
        ordered = [by_id[cid] for cid in component_ids] + [c for c in current if c["id"] not in listed]
        self._write_order(ordered)
        return self.repo.list_components(page_id)

    # ============ Analytics ============
    def _visited_page(self, page_id: int, visitor_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """The tracked page, or None when the visitor is its owner."""
        page = self.repo.find_page(id=page_id)
        if not page:
            raise HTTPException(status_code=404, detail="Page not found")
        if visitor_id and page.get("user_id") == visitor_id:
            return None
        return page

    def track_view(self, event: PageViewEvent, visitor_id: Optional[str] = None) -> Dict[str, Any]:
        if self._visited_page(event.page_id, visitor_id) is None:
            return {"ok": True, "skipped": True, "reason": "owner"}
        self.repo.record_view({
            "page_id": event.page_id,
            "referrer": event.referrer,
            "user_agent": event.user_agent,
            "device_type": detect_device(event.user_agent),
        })
        return {"ok": True}

    def track_click(self, event: ComponentClickEvent, visitor_id: Optional[str] = None) -> Dict[str, Any]:
        if self._visited_page(event.page_id, visitor_id) is None:
            return {"ok": True, "skipped": True, "reason": "owner"}
        self.repo.record_click({
            "page_id": event.page_id,
            "component_id": event.component_id,
            "component_type": event.component_type,
            "component_label": event.component_label,
            "target_url": event.target_url,
        })
        return {"ok": True}

    def analytics(self, page_id: int, user_id: str, period: Optional[str] = None) -> Dict[str, Any]:
        self._owned_page(page_id, user_id)
        since = period_start(period)
        return summarize(self.repo.list_views(page_id, since), self.repo.list_clicks(page_id, since), period)
