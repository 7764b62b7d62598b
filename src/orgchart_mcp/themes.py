"""
Theme definitions for OrgChart-MCP.

Provides light and dark color palettes for rendering org charts.
Each theme defines colors for:
- Chart background
- Text (title, names, secondary text)
- Cards (organization, member, and team group cards)
- Connector links
- The unassigned members strip
"""

from __future__ import annotations
from dataclasses import dataclass


@dataclass
class ThemePalette:
    """Color palette for a theme."""

    # Chart
    background: str

    # Text
    title_color: str
    name_color: str
    body_text_color: str
    muted_text_color: str

    # Cards
    card_fill: str
    member_border: str
    member_accent: str
    organization_border: str
    organization_accent: str
    group_border: str
    role_badge_fill: str
    role_badge_text: str

    # Links
    link_color: str

    # Unassigned strip
    unassigned_fill: str
    unassigned_border: str
    unassigned_accent: str


# Light theme - gray-50 background, blue member cards, emerald organization card
LIGHT_THEME = ThemePalette(
    background="#f9fafb",
    title_color="#111827",
    name_color="#111827",
    body_text_color="#4b5563",
    muted_text_color="#6b7280",
    card_fill="#ffffff",
    member_border="#bfdbfe",
    member_accent="#3b82f6",
    organization_border="#a7f3d0",
    organization_accent="#10b981",
    group_border="#c4b5fd",
    role_badge_fill="#dbeafe",
    role_badge_text="#1d4ed8",
    link_color="#3b82f6",
    unassigned_fill="#fffbeb",
    unassigned_border="#fde68a",
    unassigned_accent="#d97706",
)


# Dark theme - gray-900 background with lighter accents
DARK_THEME = ThemePalette(
    background="#111827",
    title_color="#f9fafb",
    name_color="#ffffff",
    body_text_color="#9ca3af",
    muted_text_color="#6b7280",
    card_fill="#1f2937",
    member_border="#1d4ed8",
    member_accent="#60a5fa",
    organization_border="#047857",
    organization_accent="#34d399",
    group_border="#6d28d9",
    role_badge_fill="#1e3a8a",
    role_badge_text="#93c5fd",
    link_color="#60a5fa",
    unassigned_fill="#451a03",
    unassigned_border="#92400e",
    unassigned_accent="#f59e0b",
)


# Theme registry
THEMES: dict[str, ThemePalette] = {
    "light": LIGHT_THEME,
    "dark": DARK_THEME,
}


def get_theme(name: str) -> ThemePalette:
    """Get a theme palette by name.

    Args:
        name: Theme name ("light" or "dark")

    Returns:
        ThemePalette for the requested theme

    Raises:
        ValueError: If theme name is not recognized
    """
    if name not in THEMES:
        valid = ", ".join(THEMES.keys())
        raise ValueError(f"Unknown theme '{name}'. Valid themes: {valid}")
    return THEMES[name]
