"""
Pricing and link rules applied when a storefront is rendered.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from schemas import Configuration, Product, ProductKit

WHATSAPP_BASE_URL = "https://wa.me/"


def effective_discount(product: Product, config: Optional[Configuration] = None) -> int:
    """The product's own discount, or the store-wide one when the product has none."""
    if product.discount_percent:
        return product.discount_percent
    return config.discount_percent if config is not None else 0


def kit_checkout_link(kit: ProductKit, discount_percent: int) -> str:
    if kit.ignore_discount or discount_percent <= 0:
        return kit.link
    return kit.discount_links.get(discount_percent) or kit.link


def kit_price(kit: ProductKit, discount_percent: int) -> float:
    if kit.ignore_discount or discount_percent <= 0:
        return kit.price
    return round(kit.price * (100 - discount_percent) / 100.0, 2)


def visible_kits(product: Product) -> List[ProductKit]:
    return [k for k in product.kits if k.is_visible is not False]


def whatsapp_link(number: Optional[str], message: Optional[str] = None) -> Optional[str]:
    digits = "".join(ch for ch in (number or "") if ch.isdigit())
    if not digits:
        return None
    url = WHATSAPP_BASE_URL + digits
    if message:
        url += "?text=" + quote(message)
    return url


def render_offers(config: Configuration) -> List[Dict[str, Any]]:
    """Resolved price and checkout link for every visible kit, in display order."""
    offers = []
    for product in config.products:
        discount = effective_discount(product, config)
        for kit in visible_kits(product):
            applied = 0 if kit.ignore_discount else discount
            offers.append({
                "product_id": product.id,
                "kit_id": kit.id,
                "label": kit.label,
                "price": kit.price,
                "final_price": kit_price(kit, discount),
                "discount_percent": applied,
                "link": kit_checkout_link(kit, discount),
            })
    return offers


def store_as_page(store: Dict[str, Any]) -> Dict[str, Any]:
    """Present a legacy store document in page form with generated components."""
    page = {
        "id": store.get("id"),
        "user_id": store.get("user_id"),
        "username": store.get("username"),
        "profile_name": store.get("profile_name") or "",
        "profile_bio": store.get("profile_bio"),
        "profile_image": store.get("profile_image"),
        "profile_image_scale": store.get("profile_image_scale") or 100,
        "whatsapp_number": store.get("whatsapp_number"),
        "whatsapp_message": store.get("whatsapp_message"),
        "background_type": store.get("theme") or "gradient",
        "background_value": "linear-gradient(135deg, #fce7f3 0%, #f3e8ff 100%)",
        "font_family": None,
        "views": 0,
        "is_active": True,
        "created_at": store.get("created_at"),
        "updated_at": store.get("updated_at"),
    }
    components: List[Dict[str, Any]] = []

    for index, product in enumerate(store.get("products") or []):
        components.append({
            "id": index + 1000,
            "page_id": store.get("id"),
            "type": "product",
            "order_index": index,
            "config": {
                "id": product.get("id"),
                "title": product.get("title", ""),
                "description": product.get("description", ""),
                "image": product.get("image", ""),
                "imageScale": product.get("imageScale") or 100,
                "discountPercent": product.get("discountPercent") or store.get("discount_percent") or 0,
                "kits": product.get("kits") or [],
            },
            "is_visible": True,
        })

    if store.get("video_url") and store.get("show_video"):
        components.append({
            "id": 999,
            "page_id": store.get("id"),
            "type": "video",
            "order_index": -1,
            "config": {"url": store["video_url"], "title": "", "showTitle": False},
            "is_visible": True,
        })

    links = store.get("links") or []
    if links:
        components.append({
            "id": 998,
            "page_id": store.get("id"),
            "type": "social",
            "order_index": -2,
            "config": {
                "links": [
                    {"id": link.get("id"), "platform": link.get("icon") or "custom",
                     "url": link.get("url", ""), "label": link.get("label")}
                    for link in links
                ],
            },
            "is_visible": True,
        })

    components.sort(key=lambda c: c["order_index"])
    # renumber so the converted page keeps dense ordering
    for i, component in enumerate(components):
        component["order_index"] = i
    page["components"] = components
    return page
