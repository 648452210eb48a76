import pytest

from schemas import Configuration, Product, ProductKit
from storefront import (
    effective_discount,
    kit_checkout_link,
    kit_price,
    render_offers,
    store_as_page,
    visible_kits,
    whatsapp_link,
)


@pytest.fixture
def product():
    return Product.model_validate({
        "id": "1",
        "discountPercent": 20,
        "kits": [{"id": "k1", "price": 100, "link": "/a", "discountLinks": {20: "/a20"}}],
    })


class TestDiscountLinks:
    def test_discount_link_for_active_percentage_is_used(self, product):
        kit = product.kits[0]
        assert kit_checkout_link(kit, effective_discount(product)) == "/a20"

    def test_falls_back_to_plain_link_without_entry(self, product):
        product = product.model_copy(update={"discount_percent": 30})
        kit = product.kits[0]
        assert kit_checkout_link(kit, effective_discount(product)) == "/a"

    def test_no_discount_uses_plain_link(self, product):
        assert kit_checkout_link(product.kits[0], 0) == "/a"

    def test_ignore_discount_skips_price_and_link(self):
        kit = ProductKit(id="k", price=80.0, link="/plain", discount_links={50: "/half"}, ignore_discount=True)
        assert kit_price(kit, 50) == 80.0
        assert kit_checkout_link(kit, 50) == "/plain"


class TestPricing:
    def test_discounted_price_rounded_to_cents(self):
        kit = ProductKit(price=97.0)
        assert kit_price(kit, 15) == 82.45

    def test_store_wide_discount_applies_when_product_has_none(self):
        config = Configuration(discount_percent=10)
        assert effective_discount(Product(), config) == 10

    def test_product_discount_overrides_store_discount(self, product):
        assert effective_discount(product, Configuration(discount_percent=10)) == 20


def test_hidden_kits_are_skipped():
    product = Product(kits=[ProductKit(id="a"), ProductKit(id="b", is_visible=False), ProductKit(id="c", is_visible=True)])
    assert [k.id for k in visible_kits(product)] == ["a", "c"]


def test_render_offers(sample_config):
    offers = render_offers(Configuration.model_validate(sample_config))

    assert [o["kit_id"] for o in offers] == ["k1", "k2", "k3"]
    k1, k2, k3 = offers
    assert (k1["final_price"], k1["link"], k1["discount_percent"]) == (80.0, "/a20", 20)
    assert (k2["final_price"], k2["link"], k2["discount_percent"]) == (197.0, "/b", 0)
    # second product has no discount of its own, the store-wide 10% applies
    assert (k3["final_price"], k3["link"], k3["discount_percent"]) == (78.3, "/c", 10)


@pytest.mark.parametrize("number,message,expected", [
    ("5511999999999", "Olá!", "https://wa.me/5511999999999?text=Ol%C3%A1%21"),
    ("+55 (11) 99999-9999", None, "https://wa.me/5511999999999"),
    ("", "hi", None),
    (None, None, None),
])
def test_whatsapp_link(number, message, expected):
    assert whatsapp_link(number, message) == expected


def test_store_as_page_orders_generated_components():
    store = {
        "id": 7,
        "username": "tania",
        "profile_name": "Tania",
        "discount_percent": 15,
        "video_url": "https://youtu.be/x",
        "show_video": True,
        "links": [{"id": "l1", "icon": "instagram", "url": "https://instagram.com/tania", "label": "IG"}],
        "products": [{"id": "p1", "title": "Black", "kits": []}, {"id": "p2", "title": "Chá", "kits": []}],
    }
    page = store_as_page(store)

    assert [c["type"] for c in page["components"]] == ["social", "video", "product", "product"]
    assert [c["order_index"] for c in page["components"]] == [0, 1, 2, 3]
    assert page["components"][2]["config"]["discountPercent"] == 15
    assert page["components"][0]["config"]["links"][0]["platform"] == "instagram"
