"""
Theme registry for public pages.

Each theme layers a page background with card styles. The registry is static
data shared by the whole process; lookups never raise and fall back to
``light``.
"""

from typing import Dict, Literal, Optional

from pydantic import BaseModel


class Background(BaseModel):
    type: Literal["color", "gradient", "image"]
    value: str
    overlay: Optional[str] = None


class Surface(BaseModel):
    bg: str
    blur: int
    border: str
    shadow: str


class TextColors(BaseModel):
    primary: str
    secondary: str
    accent: str


class ButtonColors(BaseModel):
    primary: str
    primary_text: str
    secondary: str
    secondary_text: str
    highlight: str
    highlight_text: str


class Theme(BaseModel):
    model_config = {"frozen": True}

    id: str
    name: str
    background: Background
    card: Surface
    inner_card: Surface
    text: TextColors
    button: ButtonColors
    avatar_border: str


THEMES: Dict[str, Theme] = {
    "light": Theme(
        id="light",
        name="Light",
        background=Background(type="color", value="#ffffff"),
        card=Surface(bg="rgba(255, 255, 255, 1)", blur=0, border="1px solid #e5e7eb",
                     shadow="0 1px 3px rgba(0, 0, 0, 0.1)"),
        inner_card=Surface(bg="#f9fafb", blur=0, border="1px solid #e5e7eb", shadow="none"),
        text=TextColors(primary="#111827", secondary="#6b7280", accent="#ec4899"),
        button=ButtonColors(
            primary="#111827", primary_text="#ffffff",
            secondary="#ffffff", secondary_text="#111827",
            highlight="linear-gradient(135deg, #059669, #047857)", highlight_text="#ffffff",
        ),
        avatar_border="#d1d5db",
    ),
    "dark": Theme(
        id="dark",
        name="Dark",
        background=Background(type="color", value="#0a0a0f"),
        card=Surface(bg="rgba(30, 30, 40, 0.6)", blur=20, border="1px solid rgba(255, 255, 255, 0.08)",
                     shadow="0 8px 32px rgba(0, 0, 0, 0.4)"),
        inner_card=Surface(bg="rgba(255, 255, 255, 0.05)", blur=10,
                           border="1px solid rgba(255, 255, 255, 0.08)", shadow="none"),
        text=TextColors(primary="#f8fafc", secondary="#94a3b8", accent="#f472b6"),
        button=ButtonColors(
            primary="linear-gradient(135deg, #3b82f6, #8b5cf6)", primary_text="#ffffff",
            secondary="rgba(255, 255, 255, 0.08)", secondary_text="#e2e8f0",
            highlight="linear-gradient(135deg, #3b82f6, #8b5cf6)", highlight_text="#ffffff",
        ),
        avatar_border="#4b5563",
    ),
    "cyber": Theme(
        id="cyber",
        name="Cyber",
        background=Background(type="color", value="#050510"),
        card=Surface(bg="rgba(10, 10, 20, 0.7)", blur=24, border="1px solid rgba(34, 211, 238, 0.2)",
                     shadow="0 0 40px rgba(34, 211, 238, 0.1), inset 0 1px 0 rgba(255, 255, 255, 0.05)"),
        inner_card=Surface(bg="rgba(34, 211, 238, 0.03)", blur=12,
                           border="1px solid rgba(34, 211, 238, 0.15)",
                           shadow="0 0 20px rgba(34, 211, 238, 0.05)"),
        text=TextColors(primary="#22d3ee", secondary="#a5f3fc", accent="#a855f7"),
        button=ButtonColors(
            primary="linear-gradient(135deg, #06b6d4 0%, #8b5cf6 100%)", primary_text="#ffffff",
            secondary="rgba(34, 211, 238, 0.1)", secondary_text="#22d3ee",
            highlight="linear-gradient(135deg, #06b6d4, #8b5cf6)", highlight_text="#ffffff",
        ),
        avatar_border="#374151",
    ),
    "rosa": Theme(
        id="rosa",
        name="Rosa",
        background=Background(type="gradient",
                              value="linear-gradient(135deg, #fdf2f8 0%, #fce7f3 50%, #fbcfe8 100%)"),
        card=Surface(bg="rgba(255, 255, 255, 0.7)", blur=12, border="1px solid rgba(236, 72, 153, 0.15)",
                     shadow="0 4px 20px rgba(236, 72, 153, 0.1)"),
        inner_card=Surface(bg="rgba(255, 255, 255, 0.6)", blur=8,
                           border="1px solid rgba(236, 72, 153, 0.12)", shadow="none"),
        text=TextColors(primary="#831843", secondary="#9d174d", accent="#ec4899"),
        button=ButtonColors(
            primary="linear-gradient(135deg, #ec4899, #f472b6)", primary_text="#ffffff",
            secondary="rgba(255, 255, 255, 0.8)", secondary_text="#831843",
            highlight="linear-gradient(135deg, #ec4899, #f472b6)", highlight_text="#ffffff",
        ),
        avatar_border="#ec4899",
    ),
    "saude": Theme(
        id="saude",
        name="Saude",
        background=Background(type="gradient",
                              value="linear-gradient(135deg, #f0fdf4 0%, #dcfce7 50%, #bbf7d0 100%)"),
        card=Surface(bg="rgba(255, 255, 255, 0.75)", blur=10, border="1px solid rgba(34, 197, 94, 0.15)",
                     shadow="0 4px 16px rgba(34, 197, 94, 0.1)"),
        inner_card=Surface(bg="rgba(255, 255, 255, 0.6)", blur=6,
                           border="1px solid rgba(34, 197, 94, 0.12)", shadow="none"),
        text=TextColors(primary="#14532d", secondary="#166534", accent="#22c55e"),
        button=ButtonColors(
            primary="linear-gradient(135deg, #22c55e, #16a34a)", primary_text="#ffffff",
            secondary="rgba(255, 255, 255, 0.8)", secondary_text="#14532d",
            highlight="linear-gradient(135deg, #22c55e, #16a34a)", highlight_text="#ffffff",
        ),
        avatar_border="#22c55e",
    ),
    "glassmorphism": Theme(
        id="glassmorphism",
        name="Glass",
        background=Background(type="image",
                              value="https://images.unsplash.com/photo-1557683316-973673baf926?w=1920&q=80",
                              overlay="rgba(0, 0, 0, 0.3)"),
        card=Surface(bg="rgba(255, 255, 255, 0.15)", blur=20, border="1px solid rgba(255, 255, 255, 0.2)",
                     shadow="0 8px 32px rgba(0, 0, 0, 0.1), inset 0 1px 0 rgba(255, 255, 255, 0.2)"),
        inner_card=Surface(bg="rgba(255, 255, 255, 0.12)", blur=15,
                           border="1px solid rgba(255, 255, 255, 0.15)",
                           shadow="0 4px 16px rgba(0, 0, 0, 0.1)"),
        text=TextColors(primary="#ffffff", secondary="rgba(255, 255, 255, 0.9)", accent="#ffffff"),
        button=ButtonColors(
            primary="rgba(255, 255, 255, 0.2)", primary_text="#ffffff",
            secondary="rgba(255, 255, 255, 0.1)", secondary_text="#ffffff",
            highlight="rgba(255, 255, 255, 0.25)", highlight_text="#ffffff",
        ),
        avatar_border="rgba(255, 255, 255, 0.3)",
    ),
}

DEFAULT_THEME_ID = "light"

# Length of the gradient prefix compared when matching legacy background values
GRADIENT_PREFIX_LENGTH = 30


def get_theme(theme_id: Optional[str]) -> Theme:
    if not theme_id or theme_id not in THEMES:
        return THEMES[DEFAULT_THEME_ID]
    return THEMES[theme_id]


def get_theme_id_from_background(background_value: Optional[str]) -> str:
    """Map a raw background css value stored by older pages to a theme id."""
    if not background_value:
        return DEFAULT_THEME_ID

    for theme_id, theme in THEMES.items():
        if theme.background.value == background_value:
            return theme_id
        if theme.background.type == "gradient" and \
                theme.background.value[:GRADIENT_PREFIX_LENGTH] in background_value:
            return theme_id
        if theme.background.type == "image" and background_value == "glassmorphism":
            return theme_id

    return DEFAULT_THEME_ID


def theme_css_vars(theme: Theme) -> Dict[str, str]:
    return {
        "--theme-bg": theme.background.value,
        "--theme-card-bg": theme.card.bg,
        "--theme-card-blur": f"{theme.card.blur}px",
        "--theme-card-border": theme.card.border,
        "--theme-card-shadow": theme.card.shadow,
        "--theme-text-primary": theme.text.primary,
        "--theme-text-secondary": theme.text.secondary,
        "--theme-text-accent": theme.text.accent,
        "--theme-button-primary": theme.button.primary,
        "--theme-button-primary-text": theme.button.primary_text,
        "--theme-button-secondary": theme.button.secondary,
        "--theme-button-secondary-text": theme.button.secondary_text,
    }
