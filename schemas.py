"""
Database Schemas for Bio Storefront

Each Pydantic model represents a MongoDB document. Collections:

- Configuration -> "bioconfig" (single storefront configuration document)
- Page -> "page"
- PageComponent -> "pagecomponent"
- legacy stores -> "store" (read only, converted to page form)
- subscriptions -> "subscription" (user_id, plan, status)
- page views -> "page_view", component clicks -> "component_click"

Configuration documents and component configs keep the camelCase keys the
editor sends (profileName, discountPercent, ...). Page documents use
snake_case keys.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Type
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


def short_id() -> str:
    return uuid4().hex[:8]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============ Storefront configuration ============

class ProductKit(CamelModel):
    """A purchasable variant of a product, e.g. "3 Potes"."""
    id: str = Field(default_factory=short_id)
    label: str = ""
    price: float = Field(0, ge=0, description="Base price in the store currency")
    link: str = Field("", description="Checkout url used when no discount link applies")
    discount_links: Dict[int, str] = Field(default_factory=dict, description="discount percent -> checkout url")
    is_visible: Optional[bool] = None
    is_special: Optional[bool] = None
    is_highlighted: Optional[bool] = None
    ignore_discount: Optional[bool] = None


class Product(CamelModel):
    id: str = Field(default_factory=short_id)
    title: str = ""
    description: str = ""
    image: str = ""
    image_scale: int = Field(100, ge=100, le=200)
    image_position_x: int = Field(50, ge=0, le=100)
    image_position_y: int = Field(50, ge=0, le=100)
    discount_percent: int = Field(0, ge=0, le=100)
    discount_end_date: Optional[str] = Field(None, description="ISO 8601 date for the countdown timer")
    kits: List[ProductKit] = Field(default_factory=list)
    display_style: Optional[Literal["card", "compact", "ecommerce"]] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    rating_count: Optional[int] = Field(None, ge=0)
    cta_text: Optional[str] = None
    cta_link: Optional[str] = None

    @field_validator("discount_percent", mode="before")
    @classmethod
    def missing_discount_is_zero(cls, value):
        return 0 if value is None else value


class Configuration(CamelModel):
    """
    Storefront configuration
    Collection: "bioconfig"
    """
    profile_name: str = ""
    profile_bio: str = ""
    profile_image: str = ""
    profile_image_scale: int = Field(100, ge=100, le=200)
    profile_image_position_x: int = Field(50, ge=0, le=100)
    profile_image_position_y: int = Field(50, ge=0, le=100)
    video_url: str = ""
    whatsapp_number: str = ""
    whatsapp_message: str = ""
    coupon_code: str = ""
    discount_percent: int = Field(0, ge=0, le=100)
    products: List[Product] = Field(default_factory=list)
    updated_at: Optional[datetime] = None


# ============ Page component configs ============

class ButtonConfig(CamelModel):
    type: Literal["whatsapp", "link"] = "link"
    text: str = ""
    url: Optional[str] = None
    whatsapp_number: Optional[str] = None
    whatsapp_message: Optional[str] = None
    style: Literal["large", "medium"] = "large"
    icon: Optional[str] = None


class TextConfig(CamelModel):
    content: str = ""
    alignment: Literal["left", "center", "right"] = "center"
    size: Literal["small", "medium", "large"] = "medium"
    bold: Optional[bool] = None
    italic: Optional[bool] = None


class VideoConfig(CamelModel):
    url: str = ""
    thumbnail: Optional[str] = None
    thumbnail_scale: int = Field(100, ge=100, le=200)
    thumbnail_position_x: int = Field(50, ge=0, le=100)
    thumbnail_position_y: int = Field(50, ge=0, le=100)
    title: Optional[str] = None
    show_title: bool = False


class SocialLink(CamelModel):
    id: str = Field(default_factory=short_id)
    platform: Literal["instagram", "tiktok", "youtube", "facebook", "twitter", "custom"] = "custom"
    url: str = ""
    label: Optional[str] = None
    icon: Optional[str] = None


class SocialConfig(CamelModel):
    links: List[SocialLink] = Field(default_factory=list)
    style: Literal["icons", "buttons"] = "icons"


class LinkConfig(CamelModel):
    text: str = ""
    url: str = ""
    icon: Optional[str] = None
    style: Literal["large", "small"] = "large"
    background_color: Optional[str] = None
    shape: Optional[Literal["rounded", "pill", "square"]] = None
    variant: Optional[Literal["filled", "outline", "soft"]] = None
    animation: Optional[Literal["none", "pulse", "shine"]] = None
    badge: Optional[str] = None
    thumbnail: Optional[str] = None
    thumbnail_scale: Optional[int] = Field(None, ge=100, le=200)
    thumbnail_position_x: Optional[int] = Field(None, ge=0, le=100)
    thumbnail_position_y: Optional[int] = Field(None, ge=0, le=100)


class CarouselImage(CamelModel):
    id: str = Field(default_factory=short_id)
    url: str
    scale: Optional[int] = Field(None, ge=100, le=200)
    position_x: Optional[int] = Field(None, ge=0, le=100)
    position_y: Optional[int] = Field(None, ge=0, le=100)
    badge: Optional[str] = None
    link: Optional[str] = None


class CarouselConfig(CamelModel):
    images: List[CarouselImage] = Field(default_factory=list, max_length=10)
    auto_play: Optional[bool] = None
    show_dots: Optional[bool] = None
    aspect_ratio: Optional[Literal["square", "landscape", "portrait"]] = None


class CalendlyConfig(CamelModel):
    url: str = ""
    embed_type: Literal["button", "inline"] = "button"
    button_text: Optional[str] = None
    height: Optional[int] = Field(None, gt=0)


class MapsConfig(CamelModel):
    embed_url: Optional[str] = None
    address: Optional[str] = None
    height: Optional[int] = Field(None, gt=0)
    show_open_button: Optional[bool] = None


class PixConfig(CamelModel):
    mode: Literal["qrcode", "copypaste"] = "copypaste"
    qrcode_image: Optional[str] = None
    qrcode_scale: Optional[int] = Field(None, ge=100, le=200)
    qrcode_position_x: Optional[int] = Field(None, ge=0, le=100)
    qrcode_position_y: Optional[int] = Field(None, ge=0, le=100)
    pix_code: Optional[str] = None
    recipient_name: Optional[str] = None
    amount: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None


ComponentType = Literal[
    "link", "text", "product", "video", "social", "button", "carousel", "calendly", "maps", "pix"
]

# Discriminator table: a component's config must validate against the model of its type
COMPONENT_CONFIGS: Dict[str, Type[CamelModel]] = {
    "link": LinkConfig,
    "text": TextConfig,
    "product": Product,
    "video": VideoConfig,
    "social": SocialConfig,
    "button": ButtonConfig,
    "carousel": CarouselConfig,
    "calendly": CalendlyConfig,
    "maps": MapsConfig,
    "pix": PixConfig,
}


def validate_component_config(component_type: str, config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Validate ``config`` against the model for ``component_type`` and return its stored form."""
    model = COMPONENT_CONFIGS[component_type]
    if isinstance(config, BaseModel):
        config = config.model_dump(by_alias=True)
    return model.model_validate(config or {}).model_dump(mode="json", by_alias=True, exclude_none=True)


# ============ Pages ============

class Page(BaseModel):
    """
    Public page owned by one user
    Collection: "page"
    """
    id: int
    user_id: Optional[str] = None
    username: str
    profile_name: str = "Minha Página"
    profile_bio: Optional[str] = None
    profile_image: Optional[str] = None
    profile_image_scale: Optional[int] = Field(100, ge=100, le=200)
    profile_image_position_x: Optional[int] = Field(50, ge=0, le=100)
    profile_image_position_y: Optional[int] = Field(50, ge=0, le=100)
    whatsapp_number: Optional[str] = None
    whatsapp_message: Optional[str] = None
    background_type: Optional[str] = None
    background_value: Optional[str] = None
    theme: Optional[str] = None
    font_family: Optional[str] = None
    views: int = 0
    clicks: int = 0
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PageComponent(BaseModel):
    """
    Ordered block on a page
    Collection: "pagecomponent"
    """
    id: int
    page_id: int
    type: ComponentType
    order_index: int = Field(..., ge=0)
    config: Dict[str, Any] = Field(default_factory=dict)
    is_visible: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("config", mode="before")
    @classmethod
    def config_matches_type(cls, value, info: ValidationInfo):
        component_type = info.data.get("type")
        if component_type is None:
            # type failed validation, its own error is reported
            return value
        return validate_component_config(component_type, value)


class PageWithComponents(Page):
    components: List[PageComponent] = Field(default_factory=list)
    show_branding: bool = True


# ============ Request bodies ============

USERNAME_PATTERN = r"^[a-zA-Z0-9_-]+$"


class PageCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=40, pattern=USERNAME_PATTERN)
    profile_name: Optional[str] = None


class PageUpdate(BaseModel):
    profile_name: Optional[str] = None
    profile_bio: Optional[str] = None
    profile_image: Optional[str] = None
    profile_image_scale: Optional[int] = Field(None, ge=100, le=200)
    profile_image_position_x: Optional[int] = Field(None, ge=0, le=100)
    profile_image_position_y: Optional[int] = Field(None, ge=0, le=100)
    whatsapp_number: Optional[str] = None
    whatsapp_message: Optional[str] = None
    background_type: Optional[str] = None
    background_value: Optional[str] = None
    theme: Optional[str] = None
    font_family: Optional[str] = None
    is_active: Optional[bool] = None


class ComponentCreate(BaseModel):
    type: ComponentType
    config: Optional[Dict[str, Any]] = None


class ComponentUpdate(BaseModel):
    order_index: Optional[int] = Field(None, ge=0)
    config: Optional[Dict[str, Any]] = None
    is_visible: Optional[bool] = None


class ReorderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    component_ids: List[int] = Field(..., alias="componentIds")


class CheckoutItem(BaseModel):
    name: str
    price: float = Field(..., ge=0, description="Unit price in the store currency")
    quantity: int = Field(1, ge=1)
    image: Optional[str] = None


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[CheckoutItem] = Field(..., min_length=1)
    customer_email: Optional[str] = Field(None, alias="customerEmail")


class PageViewEvent(CamelModel):
    page_id: int
    referrer: Optional[str] = None
    user_agent: Optional[str] = None


class ComponentClickEvent(CamelModel):
    page_id: int
    component_type: str
    component_id: Optional[int] = None
    component_label: Optional[str] = None
    target_url: Optional[str] = None
