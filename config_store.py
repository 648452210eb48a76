"""
In-memory storefront configuration and the edit flow around it.

``ConfigStore`` holds the session's copy of the configuration and is the only
thing that talks to the persistence boundary for it. One store is built per
session and handed to whoever edits it.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

import settings
from debounce import DebouncedConfig, Scheduler
from schemas import Configuration, Product, ProductKit

logger = logging.getLogger(__name__)

# one save at a time per process, across all stores
_save_lock = threading.Lock()


class SaveInProgressError(RuntimeError):
    """Raised when a save is requested while another one has not returned."""


def normalize_product(product: Dict[str, Any]) -> Dict[str, Any]:
    """Stored products may predate per-product discounts; give them an explicit 0."""
    product = dict(product)
    if product.get("discountPercent") is None and product.get("discount_percent") is None:
        product["discountPercent"] = 0
    return product


def normalize_config(doc: Dict[str, Any]) -> Configuration:
    doc = dict(doc)
    doc["products"] = [normalize_product(p) for p in doc.get("products") or []]
    return Configuration.model_validate(doc)


def _merge(model: BaseModel, partial: Dict[str, Any]) -> BaseModel:
    # partial may use wire (camelCase) or attribute names
    data = model.model_dump(by_alias=True)
    fields = type(model).model_fields
    for key, value in partial.items():
        field = fields.get(key)
        data[field.alias if field is not None and field.alias else key] = value
    return type(model).model_validate(data)


class ConfigStore:
    def __init__(self, repository, config: Optional[Configuration] = None,
                 lock: Optional[threading.Lock] = None):
        self.repository = repository
        self.config = config or Configuration()
        self.dirty = False
        self._lock = lock or _save_lock

    def load(self) -> Optional[Configuration]:
        """Replace local state with the stored configuration; None when nothing is stored."""
        doc = self.repository.get()
        if doc is None:
            return None
        self.config = normalize_config(doc)
        self.dirty = False
        return self.config

    def update_config(self, partial: Dict[str, Any]) -> None:
        self.config = _merge(self.config, partial)
        self.dirty = True

    def update_product(self, product_id: str, partial: Dict[str, Any]) -> None:
        index = self._product_index(product_id)
        if index is None:
            return
        products: List[Product] = list(self.config.products)
        products[index] = _merge(products[index], partial)
        self.config = self.config.model_copy(update={"products": products})
        self.dirty = True

    def update_product_kit(self, product_id: str, kit_id: str, partial: Dict[str, Any]) -> None:
        index = self._product_index(product_id)
        if index is None:
            return
        product = self.config.products[index]
        kits: List[ProductKit] = list(product.kits)
        for i, kit in enumerate(kits):
            if kit.id == kit_id:
                kits[i] = _merge(kit, partial)
                break
        else:
            return
        products = list(self.config.products)
        products[index] = product.model_copy(update={"kits": kits})
        self.config = self.config.model_copy(update={"products": products})
        self.dirty = True

    def save_config(self) -> Configuration:
        """
        Send the whole configuration and adopt the stored copy the repository
        returns. On failure the error is logged and re-raised and local state
        is left as it was.
        """
        with self.exclusive():
            return self._save()

    def apply(self, partial: Dict[str, Any]) -> Configuration:
        """Load, merge ``partial`` and save while holding the save lock."""
        with self.exclusive():
            self.load()
            self.update_config(partial)
            return self._save()

    @contextmanager
    def exclusive(self):
        if not self._lock.acquire(blocking=False):
            raise SaveInProgressError("A configuration save is already in flight")
        try:
            yield
        finally:
            self._lock.release()

    def _save(self) -> Configuration:
        payload = self.config.model_dump(mode="json", by_alias=True, exclude={"updated_at"})
        try:
            saved = self.repository.replace(payload)
        except Exception:
            logger.exception("Failed to save configuration")
            raise
        self.config = normalize_config(saved)
        self.dirty = False
        return self.config

    def _product_index(self, product_id: str) -> Optional[int]:
        for i, product in enumerate(self.config.products):
            if product.id == product_id:
                return i
        return None


class ConfigEditor:
    """
    Wires a debounced draft of the top-level fields to a ConfigStore: each
    flush merges the draft into the store, saves it and resyncs the draft from
    the stored copy. Save failures are handed to ``on_error``.
    """

    def __init__(self, store: ConfigStore, on_error: Callable[[Exception], Any],
                 delay: int = settings.EDIT_DEBOUNCE_MS, scheduler: Optional[Scheduler] = None):
        self.store = store
        self.on_error = on_error
        self.draft = DebouncedConfig(self._snapshot(), self._commit, delay, scheduler)

    def _snapshot(self) -> Dict[str, Any]:
        return self.store.config.model_dump(by_alias=True, exclude={"products", "updated_at"})

    def _commit(self, draft: Dict[str, Any]) -> None:
        self.store.update_config(draft)
        try:
            self.store.save_config()
        except Exception as exc:
            self.on_error(exc)
            return
        self.draft.sync(self._snapshot())

    def update_field(self, key: str, value: Any) -> None:
        self.draft.update_field(key, value)

    def update_fields(self, updates: Dict[str, Any]) -> None:
        self.draft.update_fields(updates)

    def flush(self) -> None:
        self.draft.flush()

    def close(self) -> None:
        self.draft.close()
