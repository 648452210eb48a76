"""
Runtime settings, read once from the environment.
"""

import os

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "biostorefront")

PORT = int(os.getenv("PORT", 8000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Used for Open Graph urls when the request carries no Host header
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "https://biolanding.com")

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
STRIPE_STARTER_PRICE_ID = os.getenv("STRIPE_STARTER_PRICE_ID")
STRIPE_PRO_PRICE_ID = os.getenv("STRIPE_PRO_PRICE_ID")
CHECKOUT_CURRENCY = os.getenv("CHECKOUT_CURRENCY", "brl")

EDIT_DEBOUNCE_MS = int(os.getenv("EDIT_DEBOUNCE_MS", 500))
