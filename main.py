import logging
import os
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from starlette.concurrency import run_in_threadpool
from pydantic import BaseModel, ValidationError

import billing
import settings
from config_store import ConfigStore, SaveInProgressError
from crawler import CrawlerRewriteMiddleware, render_og_html
from database import ConfigRepository, PageRepository, db
from pages import PageService
from schemas import (
    CheckoutRequest,
    ComponentClickEvent,
    ComponentCreate,
    ComponentUpdate,
    Page,
    PageComponent,
    PageCreate,
    PageUpdate,
    PageViewEvent,
    PageWithComponents,
    ReorderRequest,
)
from storefront import render_offers
from themes import THEMES, get_theme, theme_css_vars

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Bio Storefront API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CrawlerRewriteMiddleware)


# Dependencies
def get_database():
    if db is None:
        raise HTTPException(status_code=503, detail="Database not available")
    return db


def get_config_repository(database=Depends(get_database)) -> ConfigRepository:
    return ConfigRepository(database)


def get_page_service(database=Depends(get_database)) -> PageService:
    return PageService(PageRepository(database))


def current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    # identity is resolved by the auth provider in front of us; the id is trusted as sent
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id


def request_origin(request: Request) -> str:
    return request.headers.get("origin") or f"http://localhost:{settings.PORT}"


def request_base_url(request: Request) -> str:
    host = request.headers.get("host")
    if not host:
        return settings.PUBLIC_BASE_URL
    proto = request.headers.get("x-forwarded-proto", "https")
    return f"{proto}://{host}"


@app.get("/")
def root():
    return {"name": "Bio Storefront", "status": "ok"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        if db is not None:
            response["database"] = "✅ Connected & Working"
            response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
            response["database_name"] = db.name
            response["connection_status"] = "Connected"
            try:
                response["collections"] = db.list_collection_names()[:10]
            except Exception as e:
                response["database"] = f"⚠️ Connected but Error: {str(e)[:80]}"
        else:
            response["database"] = "⚠️ Available but not initialized"
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


# ============ Storefront configuration ============
@app.get("/api/config", response_model=dict)
def get_config(repo: ConfigRepository = Depends(get_config_repository)):
    store = ConfigStore(repo)
    try:
        config = store.load()
    except Exception:
        logger.exception("Error fetching config")
        raise HTTPException(status_code=500, detail="Failed to fetch configuration")
    if config is None:
        raise HTTPException(status_code=404, detail="Configuration not found")
    return config.model_dump(mode="json", by_alias=True)


@app.patch("/api/config", response_model=dict)
def update_config(payload: Dict[str, Any], repo: ConfigRepository = Depends(get_config_repository)):
    try:
        saved = ConfigStore(repo).apply(payload)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid configuration data")
    except SaveInProgressError:
        raise HTTPException(status_code=409, detail="Configuration save already in progress")
    except Exception:
        raise HTTPException(status_code=500, detail="Failed to update configuration")
    return saved.model_dump(mode="json", by_alias=True)


@app.get("/api/config/offers", response_model=List[dict])
def get_offers(repo: ConfigRepository = Depends(get_config_repository)):
    config = ConfigStore(repo).load()
    if config is None:
        raise HTTPException(status_code=404, detail="Configuration not found")
    return render_offers(config)


# ============ Themes ============
@app.get("/api/themes", response_model=List[dict])
def list_themes():
    return [t.model_dump() for t in THEMES.values()]


@app.get("/api/themes/{theme_id}", response_model=dict)
def theme_detail(theme_id: str):
    theme = get_theme(theme_id)
    return {**theme.model_dump(), "css_vars": theme_css_vars(theme)}


# ============ Pages ============
@app.get("/api/check-username/{username}")
def check_username(username: str, pages: PageService = Depends(get_page_service)):
    return {"available": pages.username_available(username)}


@app.get("/api/pages", response_model=List[Page])
def list_pages(user_id: str = Depends(current_user_id), pages: PageService = Depends(get_page_service)):
    return pages.list_pages(user_id)


@app.post("/api/pages", response_model=Page)
def create_page(payload: PageCreate, user_id: str = Depends(current_user_id),
                pages: PageService = Depends(get_page_service)):
    return pages.create_page(user_id, payload)


@app.get("/api/pages/username/{username}", response_model=dict)
def get_public_page(username: str, pages: PageService = Depends(get_page_service)):
    return pages.public_page(username)


@app.get("/api/pages/{page_id}", response_model=PageWithComponents)
def get_page(page_id: int, x_user_id: Optional[str] = Header(None),
             pages: PageService = Depends(get_page_service)):
    return pages.get_page(page_id, x_user_id)


@app.patch("/api/pages/{page_id}", response_model=Page)
def update_page(page_id: int, payload: PageUpdate, user_id: str = Depends(current_user_id),
                pages: PageService = Depends(get_page_service)):
    return pages.update_page(page_id, user_id, payload)


@app.delete("/api/pages/{page_id}")
def delete_page(page_id: int, user_id: str = Depends(current_user_id),
                pages: PageService = Depends(get_page_service)):
    pages.delete_page(page_id, user_id)
    return {"success": True}


# ============ Page components ============
@app.post("/api/pages/{page_id}/components", response_model=PageComponent)
def add_component(page_id: int, payload: ComponentCreate, user_id: str = Depends(current_user_id),
                  pages: PageService = Depends(get_page_service)):
    return pages.add_component(page_id, user_id, payload)


@app.patch("/api/components/{component_id}", response_model=PageComponent)
def update_component(component_id: int, payload: ComponentUpdate, user_id: str = Depends(current_user_id),
                     pages: PageService = Depends(get_page_service)):
    return pages.update_component(component_id, user_id, payload)


@app.delete("/api/components/{component_id}")
def delete_component(component_id: int, user_id: str = Depends(current_user_id),
                     pages: PageService = Depends(get_page_service)):
    pages.delete_component(component_id, user_id)
    return {"success": True}


@app.post("/api/pages/{page_id}/reorder")
def reorder_components(page_id: int, payload: ReorderRequest, user_id: str = Depends(current_user_id),
                       pages: PageService = Depends(get_page_service)):
    pages.reorder(page_id, user_id, payload.component_ids)
    return {"success": True}


# ============ Link previews ============
@app.get("/api/og/{username}", response_class=HTMLResponse)
def og_page(username: str, request: Request, pages: PageService = Depends(get_page_service)):
    source = pages.og_source(username)
    if source is None:
        raise HTTPException(status_code=404, detail="Page not found")
    return HTMLResponse(render_og_html(source, username.lower(), request_base_url(request)))


# ============ Analytics ============
@app.post("/api/analytics/view")
def track_view(event: PageViewEvent, request: Request, x_user_id: Optional[str] = Header(None),
               pages: PageService = Depends(get_page_service)):
    if not event.user_agent:
        event.user_agent = request.headers.get("user-agent")
    return pages.track_view(event, x_user_id)


@app.post("/api/analytics/click")
def track_click(event: ComponentClickEvent, x_user_id: Optional[str] = Header(None),
                pages: PageService = Depends(get_page_service)):
    return pages.track_click(event, x_user_id)


@app.get("/api/analytics/{page_id}")
def page_analytics(page_id: int, period: str = "7d", user_id: str = Depends(current_user_id),
                   pages: PageService = Depends(get_page_service)):
    return pages.analytics(page_id, user_id, period)


# ============ Checkout and plans ============
@app.get("/api/subscriptions/plans")
def list_plans():
    return list(billing.PLANS.values())


@app.get("/api/subscriptions/current")
def current_plan(user_id: str = Depends(current_user_id), pages: PageService = Depends(get_page_service)):
    plan_id = pages.repo.user_plan(user_id)
    return {"plan": plan_id, "limits": billing.plan_limits(plan_id)}


class PlanCheckout(BaseModel):
    plan: str
    email: Optional[str] = None


@app.post("/api/subscriptions/checkout")
def subscription_checkout(payload: PlanCheckout, request: Request, user_id: str = Depends(current_user_id)):
    origin = request_origin(request)
    try:
        session = billing.create_plan_checkout(
            payload.plan,
            success_url=f"{origin}/dashboard?subscription=success",
            cancel_url=f"{origin}/#precos",
            customer_email=payload.email,
            user_id=user_id,
        )
    except billing.PaymentError as e:
        raise HTTPException(status_code=502, detail=str(e))
    logger.info("Plan checkout %s started by user %s", payload.plan, user_id)
    return {"sessionId": session["id"], "url": session["url"]}


@app.post("/api/checkout/create-session")
def create_checkout_session(payload: CheckoutRequest, request: Request):
    origin = request_origin(request)
    try:
        session = billing.create_checkout_session(
            [item.model_dump() for item in payload.items],
            success_url=f"{origin}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{origin}/checkout/cancel",
            customer_email=payload.customer_email,
        )
    except billing.PaymentError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"sessionId": session["id"], "url": session["url"]}


@app.get("/api/checkout/session/{session_id}")
def checkout_session_status(session_id: str):
    try:
        return billing.get_checkout_session(session_id)
    except billing.PaymentError as e:
        raise HTTPException(status_code=502, detail=str(e))


@app.post("/api/webhooks/stripe")
async def stripe_webhook(request: Request, stripe_signature: Optional[str] = Header(None),
                         pages: PageService = Depends(get_page_service)):
    payload = await request.body()
    try:
        event = billing.construct_event(payload, stripe_signature)
    except billing.WebhookSignatureError as e:
        raise HTTPException(status_code=400, detail=f"Webhook Error: {e}")
    except billing.PaymentError as e:
        raise HTTPException(status_code=500, detail=str(e))
    try:
        await run_in_threadpool(billing.handle_subscription_event, event, pages.repo)
    except Exception:
        logger.exception("Error handling webhook event %s", event.get("type"))
        raise HTTPException(status_code=500, detail="Webhook handler failed")
    return {"received": True}


# ============ Schemas Discovery (for migrations/tools) ============
@app.get("/schema")
def get_schema():
    return {
        "bioconfig": {
            "fields": [
                "profileName", "profileBio", "profileImage", "profileImageScale",
                "profileImagePositionX", "profileImagePositionY", "videoUrl",
                "whatsappNumber", "whatsappMessage", "couponCode", "discountPercent", "products",
            ],
            "indexes": [],
        },
        "page": {
            "fields": [
                "id", "user_id", "username", "profile_name", "profile_bio", "profile_image",
                "profile_image_scale", "profile_image_position_x", "profile_image_position_y",
                "whatsapp_number", "whatsapp_message", "background_type", "background_value",
                "theme", "font_family", "views", "clicks", "is_active",
            ],
            "indexes": ["id", "username", "user_id"],
        },
        "pagecomponent": {
            "fields": ["id", "page_id", "type", "order_index", "config", "is_visible"],
            "indexes": ["id", "page_id"],
        },
        "subscription": {
            "fields": ["user_id", "plan", "status", "stripe_subscription_id", "stripe_customer_id",
                       "current_period_start", "current_period_end", "cancel_at_period_end"],
            "indexes": ["user_id"],
        },
        "page_view": {
            "fields": ["page_id", "referrer", "user_agent", "device_type", "viewed_at"],
            "indexes": ["page_id", "viewed_at"],
        },
        "component_click": {
            "fields": ["page_id", "component_id", "component_type", "component_label", "target_url", "clicked_at"],
            "indexes": ["page_id", "clicked_at"],
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
