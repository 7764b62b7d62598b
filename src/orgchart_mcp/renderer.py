"""Org chart renderer using Pillow — draws render trees as PNG diagrams."""

from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Callable, Optional, Sequence

from PIL import Image, ImageDraw, ImageFont

from .geometry import GeometryState
from .models import Member, RenderTreeNode
from .organize import (
    ContainerBounds,
    LaidOutNode,
    compute_layout_bounds,
    find_node_at,
    layout_tree,
)
from .themes import ThemePalette, get_theme


# --- Font handling ---

def _load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a font, falling back to default if none available."""
    font_paths = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
        "/usr/share/fonts/TTF/DejaVuSans.ttf",
    ]
    for fp in font_paths:
        if Path(fp).exists():
            return ImageFont.truetype(fp, size)
    return ImageFont.load_default()


def _load_bold_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a bold font, falling back to regular."""
    font_paths = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/usr/share/fonts/truetype/freefont/FreeSansBold.ttf",
        "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
    ]
    for fp in font_paths:
        if Path(fp).exists():
            return ImageFont.truetype(fp, size)
    return _load_font(size)


# --- Color helpers ---

def _hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Convert hex color to RGB tuple. Supports both 3-char and 6-char hex."""
    hex_color = hex_color.lstrip("#")
    if len(hex_color) == 3:
        hex_color = hex_color[0]*2 + hex_color[1]*2 + hex_color[2]*2
    return tuple(int(hex_color[i:i+2], 16) for i in (0, 2, 4))


def _hex_to_rgba(hex_color: str, alpha: int = 255) -> tuple[int, int, int, int]:
    """Convert hex color to RGBA tuple."""
    r, g, b = _hex_to_rgb(hex_color)
    return (r, g, b, alpha)


# --- Text helpers ---

def _text_width(font: ImageFont.ImageFont, text: str) -> int:
    bbox = font.getbbox(text)
    return bbox[2] - bbox[0]


def _truncate(text: str, font: ImageFont.ImageFont, max_width: float) -> str:
    """Shorten text with an ellipsis so it fits within max_width pixels."""
    if _text_width(font, text) <= max_width:
        return text
    while text and _text_width(font, text + "...") > max_width:
        text = text[:-1]
    return text + "..." if text else ""


def get_initials(fullname: str) -> str:
    """Up to two initials from a display name, e.g. "Ada Lovelace" -> "AL"."""
    return "".join(part[0] for part in fullname.split() if part).upper()[:2]


# --- Drawing primitives ---

def _draw_rounded_rect(
    draw: ImageDraw.ImageDraw,
    xy: tuple[float, float, float, float],
    radius: int,
    fill: Optional[str] = None,
    outline: Optional[str] = None,
    width: int = 1,
):
    """Draw a rounded rectangle."""
    x1, y1, x2, y2 = xy
    draw.rounded_rectangle(
        [x1, y1, x2, y2],
        radius=radius,
        fill=fill,
        outline=outline,
        width=width,
    )


def _draw_step_link(
    draw: ImageDraw.ImageDraw,
    start: tuple[float, float],
    end: tuple[float, float],
    color: str,
    width: int = 2,
):
    """Draw a right-angled link: down from the parent, across, down to the child."""
    sx, sy = start
    ex, ey = end
    mid_y = (sy + ey) / 2
    draw.line([(sx, sy), (sx, mid_y), (ex, mid_y), (ex, ey)], fill=color, width=width, joint="curve")


# ---------------------------------------------------------------------------
# Node renderer
# ---------------------------------------------------------------------------

SELECT_KEYS = frozenset({"Enter", " ", "Space"})


class NodeRenderer:
    """Draws a single chart node and reports selection when it is activated.

    Presentation only: the node's member id is passed to
    ``on_node_selected`` on click, Enter or Space.  The organization root
    and synthetic team nodes are not selectable.
    """

    NODE_PADDING = 16
    ICON_SIZE = 40
    LINE_GAP = 8

    def __init__(
        self,
        theme: ThemePalette,
        zoom: float = 1.0,
        on_node_selected: Optional[Callable[[str], None]] = None,
    ):
        self.theme = theme
        self.zoom = zoom
        self.on_node_selected = on_node_selected
        self.font_name = _load_bold_font(max(1, int(15 * zoom)))
        self.font_org_name = _load_bold_font(max(1, int(17 * zoom)))
        self.font_body = _load_font(max(1, int(12 * zoom)))
        self.font_badge = _load_font(max(1, int(11 * zoom)))

    # --- Interaction ---

    def is_selectable(self, node: RenderTreeNode) -> bool:
        return bool(node.member_id) and not node.is_organization and not node.is_group

    def activate(self, node: RenderTreeNode, key: Optional[str] = None) -> Optional[str]:
        """Handle a click (``key=None``) or key press on a node.

        Returns the reported member id, or None if nothing was selected.
        """
        if key is not None and key not in SELECT_KEYS:
            return None
        if not self.is_selectable(node):
            return None
        member_id = node.member_id
        if self.on_node_selected:
            self.on_node_selected(member_id)
        return member_id

    # --- Drawing ---

    def draw(
        self,
        draw: ImageDraw.ImageDraw,
        node: RenderTreeNode,
        box: tuple[float, float, float, float],
    ):
        """Draw ``node`` as a card filling ``box`` (pixel coordinates)."""
        if node.is_organization:
            border = self.theme.organization_border
        elif node.is_group:
            border = self.theme.group_border
        else:
            border = self.theme.member_border

        z = self.zoom
        _draw_rounded_rect(
            draw, box,
            radius=int(16 * z),
            fill=self.theme.card_fill,
            outline=border,
            width=max(1, int(2 * z)),
        )

        if node.is_organization:
            self._draw_organization(draw, node, box)
        elif node.is_group:
            self._draw_group(draw, node, box)
        else:
            self._draw_member(draw, node, box)

        # Collapsed subtree marker
        hidden = node.attributes.hiddenCount if node.attributes else None
        if hidden:
            text = f"+{hidden} more"
            draw.text(
                (box[2] - _text_width(self.font_badge, text) - self.NODE_PADDING * z,
                 box[3] - (self.NODE_PADDING + 14) * z),
                text,
                fill=self.theme.muted_text_color,
                font=self.font_badge,
            )

    def _header(
        self,
        draw: ImageDraw.ImageDraw,
        box: tuple[float, float, float, float],
        accent: str,
        round_icon: bool,
        icon_text: str,
    ) -> tuple[float, float, float]:
        """Draw the icon block; returns (text_x, text_y, max_text_width)."""
        z = self.zoom
        pad = self.NODE_PADDING * z
        size = self.ICON_SIZE * z
        x1, y1, x2, _ = box
        icon = (x1 + pad, y1 + pad, x1 + pad + size, y1 + pad + size)

        if round_icon:
            draw.ellipse(icon, fill=accent)
        else:
            _draw_rounded_rect(draw, icon, radius=int(10 * z), fill=accent)

        if icon_text:
            tw = _text_width(self.font_body, icon_text)
            draw.text(
                (icon[0] + (size - tw) / 2, icon[1] + size / 2 - 7 * z),
                icon_text,
                fill="#ffffff",
                font=self.font_body,
            )

        text_x = icon[2] + self.LINE_GAP * z
        return (text_x, y1 + pad, x2 - pad - text_x)

    def _draw_organization(self, draw, node: RenderTreeNode, box):
        z = self.zoom
        text_x, text_y, max_w = self._header(
            draw, box, self.theme.organization_accent, round_icon=False, icon_text="",
        )
        draw.text(
            (text_x, text_y),
            _truncate(node.name, self.font_org_name, max_w),
            fill=self.theme.name_color,
            font=self.font_org_name,
        )

        attrs = node.attributes
        counts = []
        if attrs and attrs.memberCount:
            counts.append(f"{attrs.memberCount} members")
        if attrs and attrs.hierarchyCount:
            counts.append(f"{attrs.hierarchyCount} hierarchies")
        if counts:
            draw.text(
                (text_x, text_y + 24 * z),
                _truncate("   ".join(counts), self.font_body, max_w),
                fill=self.theme.body_text_color,
                font=self.font_body,
            )

    def _draw_group(self, draw, node: RenderTreeNode, box):
        text_x, text_y, max_w = self._header(
            draw, box, self.theme.group_border, round_icon=False, icon_text="",
        )
        draw.text(
            (text_x, text_y),
            _truncate(node.name, self.font_name, max_w),
            fill=self.theme.name_color,
            font=self.font_name,
        )

    def _draw_member(self, draw, node: RenderTreeNode, box):
        z = self.zoom
        pad = self.NODE_PADDING * z
        text_x, text_y, max_w = self._header(
            draw, box, self.theme.member_accent, round_icon=True,
            icon_text=get_initials(node.name),
        )
        draw.text(
            (text_x, text_y),
            _truncate(node.name, self.font_name, max_w),
            fill=self.theme.name_color,
            font=self.font_name,
        )

        attrs = node.attributes
        if attrs and attrs.role:
            role = _truncate(attrs.role, self.font_badge, max_w - 12 * z)
            badge_w = _text_width(self.font_badge, role) + 12 * z
            badge_y = text_y + 22 * z
            _draw_rounded_rect(
                draw, (text_x, badge_y, text_x + badge_w, badge_y + 18 * z),
                radius=int(9 * z),
                fill=self.theme.role_badge_fill,
            )
            draw.text(
                (text_x + 6 * z, badge_y + 2 * z),
                role,
                fill=self.theme.role_badge_text,
                font=self.font_badge,
            )

        x1 = box[0] + pad
        line_y = box[1] + pad + (self.ICON_SIZE + self.LINE_GAP * 2) * z
        line_w = box[2] - box[0] - 2 * pad

        if attrs and attrs.designation:
            draw.text(
                (x1, line_y),
                _truncate(attrs.designation, self.font_body, line_w),
                fill=self.theme.body_text_color,
                font=self.font_body,
            )
            line_y += 20 * z

        if attrs and attrs.joining_date:
            draw.text(
                (x1, line_y),
                f"Joined {attrs.joining_date}",
                fill=self.theme.muted_text_color,
                font=self.font_body,
            )


# ---------------------------------------------------------------------------
# Chart renderer
# ---------------------------------------------------------------------------

class OrgChartRenderer:
    """Renders a render tree (and optionally the unassigned list) to PNG."""

    # Layout constants
    PADDING = 60
    TITLE_HEIGHT = 50
    STRIP_PADDING = 16
    STRIP_HEADER_HEIGHT = 32
    CHIP_HEIGHT = 48
    CHIP_GAP = 8
    EMPTY_WIDTH = 600
    EMPTY_HEIGHT = 300

    def __init__(
        self,
        scale: float = 1.0,
        theme: str = "light",
        on_node_selected: Optional[Callable[[str], None]] = None,
    ):
        self.scale = scale
        self.theme: ThemePalette = get_theme(theme)
        self.on_node_selected = on_node_selected
        self.font_title = _load_bold_font(int(24 * scale))
        self.font_strip = _load_bold_font(int(14 * scale))
        self.font_chip = _load_font(int(12 * scale))

    # --- Measurement and hit-testing ---

    def measure(self, tree: Optional[RenderTreeNode]) -> Optional[ContainerBounds]:
        """Bounding box of the laid-out tree in logical pixels (None if empty)."""
        return compute_layout_bounds(layout_tree(tree))

    def node_at(
        self,
        tree: Optional[RenderTreeNode],
        point: tuple[float, float],
        geometry: GeometryState,
    ) -> Optional[RenderTreeNode]:
        """Return the node under a viewport point, given the current geometry."""
        x, y = geometry.to_logical(*point)
        entry = find_node_at(layout_tree(tree), x, y)
        return entry.node if entry else None

    def click(
        self,
        tree: Optional[RenderTreeNode],
        point: tuple[float, float],
        geometry: GeometryState,
        key: Optional[str] = None,
    ) -> Optional[str]:
        """Activate the node under a viewport point; returns the selected member id."""
        node = self.node_at(tree, point, geometry)
        if node is None:
            return None
        return NodeRenderer(self.theme, on_node_selected=self.on_node_selected).activate(node, key)

    # --- Rendering ---

    def render(
        self,
        tree: Optional[RenderTreeNode],
        output_path: Optional[str] = None,
        viewport: Optional[tuple[int, int]] = None,
        geometry: Optional[GeometryState] = None,
        unassigned: Optional[Sequence[Member]] = None,
        title: Optional[str] = None,
    ) -> bytes:
        """Render the chart to PNG bytes. Optionally save to file.

        Args:
            tree: The render tree to draw; None draws the empty state.
            output_path: Optional path to save the PNG.
            viewport: Optional (width, height) of the visible area.  When set,
                      nodes are placed with ``geometry`` (zoom and translate)
                      and anything outside the viewport is clipped.  When
                      omitted, the image is sized to fit the whole tree.
            geometry: Viewport geometry; only used together with ``viewport``.
            unassigned: Members to list in a strip below the chart.
            title: Optional title drawn at the top of a full-tree render.
        """
        laid_out = layout_tree(tree)
        bounds = compute_layout_bounds(laid_out)
        s = self.scale

        if viewport is not None:
            geo = geometry or GeometryState()
            chart_w, chart_h = int(viewport[0] * s), int(viewport[1] * s)
            zoom = geo.zoom * s
            tx, ty = geo.translate.x * s, geo.translate.y * s
        elif bounds is not None:
            header = self.TITLE_HEIGHT if title else 0
            chart_w = int((bounds.width + self.PADDING * 2) * s)
            chart_h = int((bounds.height + self.PADDING * 2 + header) * s)
            zoom = s
            tx = (self.PADDING - bounds.x) * s
            ty = (self.PADDING + header - bounds.y) * s
        else:
            chart_w, chart_h = int(self.EMPTY_WIDTH * s), int(self.EMPTY_HEIGHT * s)
            zoom, tx, ty = s, 0.0, 0.0

        members = list(unassigned or [])
        chips = self._layout_chips(members, chart_w) if members else []
        strip_h = self._strip_height(chips) if members else 0

        img = Image.new("RGBA", (max(1, chart_w), max(1, chart_h + strip_h)), _hex_to_rgba(self.theme.background))
        draw = ImageDraw.Draw(img)

        if not laid_out:
            self._draw_empty_state(draw, chart_w, chart_h)
        else:
            if title and viewport is None:
                self._draw_title(draw, title, chart_w)

            def to_pixels(entry: LaidOutNode) -> tuple[float, float, float, float]:
                x1 = tx + entry.left * zoom
                y1 = ty + entry.top * zoom
                return (x1, y1, x1 + entry.width * zoom, y1 + entry.height * zoom)

            # Draw links first (behind nodes)
            for entry in laid_out:
                if entry.parent is None:
                    continue
                parent = laid_out[entry.parent]
                _draw_step_link(
                    draw,
                    (tx + parent.x * zoom, ty + parent.y * zoom),
                    (tx + entry.x * zoom, ty + entry.y * zoom),
                    color=self.theme.link_color,
                    width=max(1, int(2 * zoom)),
                )

            node_renderer = NodeRenderer(self.theme, zoom=zoom, on_node_selected=self.on_node_selected)
            for entry in laid_out:
                node_renderer.draw(draw, entry.node, to_pixels(entry))

        if members:
            self._draw_unassigned_strip(draw, chips, len(members), chart_h, chart_w, strip_h)

        # Convert to bytes
        buf = BytesIO()
        img.save(buf, format="PNG", optimize=True)
        png_bytes = buf.getvalue()

        if output_path:
            Path(output_path).write_bytes(png_bytes)

        return png_bytes

    def _draw_title(self, draw: ImageDraw.ImageDraw, title: str, img_width: int):
        """Draw the chart title centered at the top."""
        tw = _text_width(self.font_title, title)
        x = (img_width - tw) / 2
        draw.text((x, 15 * self.scale), title, fill=self.theme.title_color, font=self.font_title)

    def _draw_empty_state(self, draw: ImageDraw.ImageDraw, width: int, height: int):
        text = "No members in this organization yet"
        tw = _text_width(self.font_strip, text)
        draw.text(
            ((width - tw) / 2, height / 2 - 10 * self.scale),
            text,
            fill=self.theme.muted_text_color,
            font=self.font_strip,
        )

    # --- Unassigned strip ---

    def _layout_chips(
        self,
        members: list[Member],
        width: int,
    ) -> list[tuple[Member, float, int]]:
        """Assign each unassigned member a chip width and a row, wrapping rows."""
        s = self.scale
        usable = width - 2 * self.STRIP_PADDING * s
        chips = []
        row = 0
        cursor = 0.0
        for member in members:
            text_w = max(
                _text_width(self.font_chip, member.get_label()),
                _text_width(self.font_chip, member.designation or ""),
            )
            chip_w = min(usable, (self.CHIP_HEIGHT + 12) * s + text_w)
            if cursor and cursor + chip_w > usable:
                row += 1
                cursor = 0.0
            chips.append((member, chip_w, row))
            cursor += chip_w + self.CHIP_GAP * s
        return chips

    def _strip_height(self, chips: list[tuple[Member, float, int]]) -> int:
        rows = chips[-1][2] + 1
        s = self.scale
        return int((
            self.STRIP_HEADER_HEIGHT
            + rows * (self.CHIP_HEIGHT + self.CHIP_GAP)
            + self.STRIP_PADDING * 2
        ) * s)

    def _draw_unassigned_strip(
        self,
        draw: ImageDraw.ImageDraw,
        chips: list[tuple[Member, float, int]],
        count: int,
        top: int,
        width: int,
        height: int,
    ):
        s = self.scale
        pad = self.STRIP_PADDING * s
        draw.rectangle([0, top, width, top + height], fill=self.theme.card_fill)
        draw.line([(0, top), (width, top)], fill=self.theme.unassigned_border, width=max(1, int(s)))
        draw.text(
            (pad, top + pad),
            f"Unassigned Members ({count}) - No mentor assigned or mentor not found",
            fill=self.theme.title_color,
            font=self.font_strip,
        )

        chips_top = top + pad + self.STRIP_HEADER_HEIGHT * s
        cursor = pad
        current_row = 0
        for member, chip_w, row in chips:
            if row != current_row:
                current_row = row
                cursor = pad
            y1 = chips_top + row * (self.CHIP_HEIGHT + self.CHIP_GAP) * s
            x1 = cursor
            _draw_rounded_rect(
                draw, (x1, y1, x1 + chip_w, y1 + self.CHIP_HEIGHT * s),
                radius=int(8 * s),
                fill=self.theme.unassigned_fill,
                outline=self.theme.unassigned_border,
            )
            icon = 32 * s
            icon_y = y1 + (self.CHIP_HEIGHT * s - icon) / 2
            _draw_rounded_rect(
                draw, (x1 + 8 * s, icon_y, x1 + 8 * s + icon, icon_y + icon),
                radius=int(8 * s),
                fill=self.theme.unassigned_accent,
            )
            initials = get_initials(member.get_label())
            draw.text(
                (x1 + 8 * s + (icon - _text_width(self.font_chip, initials)) / 2, icon_y + icon / 2 - 7 * s),
                initials,
                fill="#ffffff",
                font=self.font_chip,
            )
            text_x = x1 + 8 * s + icon + 8 * s
            text_w = x1 + chip_w - text_x - 4 * s
            draw.text(
                (text_x, y1 + 8 * s),
                _truncate(member.get_label(), self.font_chip, text_w),
                fill=self.theme.name_color,
                font=self.font_chip,
            )
            if member.designation:
                draw.text(
                    (text_x, y1 + 26 * s),
                    _truncate(member.designation, self.font_chip, text_w),
                    fill=self.theme.body_text_color,
                    font=self.font_chip,
                )
            cursor += chip_w + self.CHIP_GAP * s
