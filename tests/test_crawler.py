import asyncio

import pytest

from crawler import CrawlerRewriteMiddleware, crawler_rewrite_path, is_crawler, render_og_html

FACEBOOK = "facebookexternalhit/1.1 (+http://www.facebook.com/externalhit_uatext.php)"
BROWSER = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/120.0 Safari/537.36"


class TestRewritePredicate:
    def test_bot_on_username_is_rewritten(self):
        assert crawler_rewrite_path("/mariasilva", FACEBOOK) == "/api/og/mariasilva"

    def test_username_is_lowercased(self):
        assert crawler_rewrite_path("/MariaSilva", "WhatsApp/2.23") == "/api/og/mariasilva"

    def test_reserved_route_passes_through(self):
        assert crawler_rewrite_path("/dashboard", FACEBOOK) is None

    def test_browser_passes_through(self):
        assert crawler_rewrite_path("/joao", BROWSER) is None

    @pytest.mark.parametrize("path", [
        "/", "/api/pages", "/sign-in", "/admin", "/checkout/success", "/page-editor/3",
        "/pages", "/assets/logo", "/favicon.ico", "/joao/produtos",
    ])
    def test_non_username_paths_pass_through(self, path):
        assert crawler_rewrite_path(path, FACEBOOK) is None

    @pytest.mark.parametrize("ua", [None, ""])
    def test_missing_user_agent_passes_through(self, ua):
        assert crawler_rewrite_path("/joao", ua) is None


def test_middleware_rewrites_scope_with_encoded_raw_path():
    seen = {}

    async def app(scope, receive, send):
        seen.update(scope)

    scope = {
        "type": "http",
        "path": "/JoãoSilva",
        "raw_path": b"/Jo%C3%A3oSilva",
        "headers": [(b"user-agent", b"WhatsApp/2.23")],
    }
    asyncio.run(CrawlerRewriteMiddleware(app)(scope, None, None))

    assert seen["path"] == "/api/og/joãosilva"
    assert seen["raw_path"] == b"/api/og/jo%C3%A3osilva"


@pytest.mark.parametrize("ua,expected", [
    ("Twitterbot/1.0", True),
    ("Mozilla/5.0 (compatible; Discordbot/2.0)", True),
    ("TELEGRAMBOT (like TwitterBot)", True),
    (BROWSER, False),
])
def test_is_crawler(ua, expected):
    assert is_crawler(ua) is expected


def test_og_html_escapes_profile_fields():
    page = {"profile_name": 'Ana "<b>"', "profile_bio": "Bolos & doces", "profile_image": None}
    html = render_og_html(page, "ana", "https://biolanding.com")

    assert '<meta property="og:title" content="Ana &quot;&lt;b&gt;&quot; - Bio" />' in html
    assert "Bolos &amp; doces" in html
    assert 'content="https://biolanding.com/opengraph.jpg"' in html
    assert 'content="0;url=https://biolanding.com/ana"' in html
