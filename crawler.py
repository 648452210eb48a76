"""
Social crawler routing.

Link previews (WhatsApp, Facebook, ...) don't run javascript, so a bot asking
for ``/<username>`` is routed to ``/api/og/<username>``, which answers with a
static HTML document carrying the page's Open Graph tags.
"""

import html
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)

CRAWLER_SIGNATURES = (
    "facebookexternalhit",
    "Facebot",
    "Twitterbot",
    "WhatsApp",
    "LinkedInBot",
    "Slackbot",
    "TelegramBot",
    "Discordbot",
    "Embedly",
    "pinterest",
    "vkShare",
)

RESERVED_PREFIXES = (
    "/api",
    "/sign-",
    "/admin",
    "/dashboard",
    "/checkout",
    "/page-editor",
    "/pages",
    "/assets",
)

OG_PATH = "/api/og/{username}"
DEFAULT_DESCRIPTION = "Confira meus produtos e conteúdos exclusivos."


def is_crawler(user_agent: Optional[str]) -> bool:
    ua = (user_agent or "").lower()
    return any(bot.lower() in ua for bot in CRAWLER_SIGNATURES)


def crawler_rewrite_path(path: str, user_agent: Optional[str]) -> Optional[str]:
    """Path to serve instead of ``path`` for this user agent, or None to pass through."""
    if not is_crawler(user_agent):
        return None
    if path == "/" or "." in path or path.startswith(RESERVED_PREFIXES):
        return None
    username = path[1:].lower()
    if not username or "/" in username:
        return None
    return OG_PATH.format(username=username)


class CrawlerRewriteMiddleware:
    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            target = crawler_rewrite_path(scope["path"], Headers(scope=scope).get("user-agent"))
            if target is not None:
                logger.debug("Rewriting crawler request %s -> %s", scope["path"], target)
                scope = {**scope, "path": target, "raw_path": quote(target).encode("ascii")}
        await self.app(scope, receive, send)


def render_og_html(page: Dict[str, Any], username: str, base_url: str) -> str:
    title = html.escape(f"{page.get('profile_name') or username} - Bio")
    description = html.escape(page.get("profile_bio") or DEFAULT_DESCRIPTION)
    image = html.escape(page.get("profile_image") or f"{base_url}/opengraph.jpg")
    url = html.escape(f"{base_url}/{username}")

    return f"""<!DOCTYPE html>
<html lang="pt-BR">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>{title}</title>
  <meta property="og:type" content="website" />
  <meta property="og:url" content="{url}" />
  <meta property="og:title" content="{title}" />
  <meta property="og:description" content="{description}" />
  <meta property="og:image" content="{image}" />
  <meta name="twitter:card" content="summary_large_image" />
  <meta name="twitter:url" content="{url}" />
  <meta name="twitter:title" content="{title}" />
  <meta name="twitter:description" content="{description}" />
  <meta name="twitter:image" content="{image}" />
  <meta http-equiv="refresh" content="0;url={url}" />
</head>
<body>
  <h1>{title}</h1>
  <p>{description}</p>
</body>
</html>"""
