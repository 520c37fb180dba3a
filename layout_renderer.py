"""
Pillow-based renderer for a laid-out calendar week.

- Draws the hour gutter (5 AM through 4 AM) and seven day columns.
- Places every LayoutRecord at its top/height and its left/width, which are
  either percentages of the day column (dynamic fill) or pixels (fixed).
- Colors events by column index; recurring events get a dashed outline.
- Designed to be standalone, relying only on PIL and OS libraries.
"""
from PIL import Image, ImageDraw, ImageFont, ImageColor
import os
from typing import List, Tuple, Union, Dict, Any

from models import LayoutRecord

ASSETS_DIR = os.path.join(os.path.dirname(__file__), "assets")
FONTS_DIR = os.path.join(ASSETS_DIR, "fonts")

DEFAULT_FONT = os.path.join(FONTS_DIR, "NotoSans-Regular.ttf")
DEFAULT_BOLD_FONT = os.path.join(FONTS_DIR, "NotoSans-Bold.ttf")

COLUMN_COLORS = ["#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#06b6d4", "#ec4899"]

# ---------------- Utility Functions ------------------------------------------

def _measure_text(draw, text, font):
    """Return (width, height) for text using textbbox, with sensible fallbacks."""
    try:
        bbox = draw.textbbox((0, 0), text, font=font)
        return (bbox[2] - bbox[0], bbox[3] - bbox[1])
    except AttributeError:
        size = getattr(font, 'size', 10)
        return (len(text) * (size // 2), size)


def _ensure_font(path: str, size: int):
    """Load a truetype font, or fall back to a reasonable default."""
    if path and os.path.isfile(path):
        try:
            return ImageFont.truetype(path, int(size))
        except OSError:
            pass
    try:
        return ImageFont.load_default(size=int(size))
    except TypeError:
        # Pillow < 10.1 has no sized default font
        return ImageFont.load_default()


def _text_width(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont) -> int:
    return _measure_text(draw, text or "", font)[0]


def _ellipsize(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont, max_width: int):
    """Truncate text with ellipsis if it exceeds max_width."""
    if text is None:
        text = ""
    if _text_width(draw, text, font) <= max_width:
        return text
    ell = "…"
    t = text
    while t:
        t = t[:-1]
        if _text_width(draw, t + ell, font) <= max_width:
            return t + ell
    return ""


def _normalize_color_input(col: Union[int, Tuple, list, str]) -> Tuple[int, int, int]:
    """Normalize color input (int, tuple, list, hex/name string) to (r,g,b)."""
    if col is None:
        return (0, 0, 0)
    if isinstance(col, int):
        c = max(0, min(255, col))
        return (c, c, c)
    if isinstance(col, (tuple, list)):
        return (int(col[0]), int(col[1]), int(col[2]))
    try:
        return ImageColor.getrgb(str(col))[:3]
    except ValueError:
        return (0, 0, 0) # Fallback to black


def _fg_for_bg(rgb):
    """
    Choose white or black for text on top of rgb background based on luminance for contrast.
    """
    bg = _normalize_color_input(rgb)
    def rl(c):
        v = c / 255.0
        return v/12.92 if v <= 0.03928 else ((v+0.055)/1.055) ** 2.4
    l_bg = 0.2126*rl(bg[0]) + 0.7152*rl(bg[1]) + 0.0722*rl(bg[2])
    return (255, 255, 255) if l_bg < 0.45 else (0, 0, 0)


def color_for_column(column: int) -> Tuple[int, int, int]:
    return _normalize_color_input(COLUMN_COLORS[column % len(COLUMN_COLORS)])


def _dashed_rect(draw, box, color, dash=4):
    x0, y0, x1, y1 = box
    for x in range(int(x0), int(x1), dash * 2):
        draw.line([(x, y0), (min(x + dash, x1), y0)], fill=color)
        draw.line([(x, y1), (min(x + dash, x1), y1)], fill=color)
    for y in range(int(y0), int(y1), dash * 2):
        draw.line([(x0, y), (x0, min(y + dash, y1))], fill=color)
        draw.line([(x1, y), (x1, min(y + dash, y1))], fill=color)


# ---------------- Geometry helpers ------------------------------------------

def record_box(rec: LayoutRecord, col_x: int, col_w: int, grid_top: int, scale: float = 1.0):
    """Pixel box (x0, y0, x1, y1) of one record inside a day column."""
    if rec.unit == "%":
        x0 = col_x + col_w * rec.left / 100.0
        w = col_w * rec.width / 100.0
    else:
        x0 = col_x + rec.left
        w = rec.width
    y0 = grid_top + rec.top * scale
    h = rec.height * scale
    return (x0, y0, x0 + w, y0 + h)


# ---------------- Main renderer ---------------------------------------------

def render_week(week_days: List[Dict[str, Any]], renderer_opts: dict = None, title: str = "") -> Image.Image:
    opts = renderer_opts or {}

    gutter_w = int(opts.get("gutter_width", 56))
    day_w = int(opts.get("day_width", 160))
    header_h = int(opts.get("header_height", 44))
    slot_h = int(opts.get("slot_height", 50))
    event_pad = int(opts.get("event_padding", 3))
    font_size = int(opts.get("font_size", 12))
    bold_size = int(opts.get("font_bold_size", 13))
    slots = week_days[0]["hour_slots"] if week_days else []
    px_per_minute = float(opts.get("px_per_minute", slot_h / 60.0))
    # records are laid out at px_per_minute; stretch them to the slot grid
    scale = (slot_h / 60.0) / px_per_minute if px_per_minute else 1.0

    background = _normalize_color_input(opts.get("background", "white"))
    grid_color = _normalize_color_input(opts.get("grid_color", (220, 220, 220)))
    text_color = _normalize_color_input(opts.get("text_color", "black"))
    today_fill = _normalize_color_input(opts.get("today_fill", (255, 243, 205)))

    width = gutter_w + day_w * max(1, len(week_days))
    height = header_h + slot_h * max(1, len(slots))
    base = Image.new("RGB", (width, height), color=background)
    draw = ImageDraw.Draw(base)

    font = _ensure_font(opts.get("font_path", DEFAULT_FONT), font_size)
    bold_font = _ensure_font(opts.get("bold_font_path", DEFAULT_BOLD_FONT), bold_size)

    if title:
        draw.text((4, 2), _ellipsize(draw, title, bold_font, gutter_w - 6), fill=text_color, font=bold_font)

    # hour gutter + horizontal grid lines
    for i, slot in enumerate(slots):
        y = header_h + i * slot_h
        draw.line([(gutter_w, y), (width, y)], fill=grid_color)
        draw.text((4, y + 2), slot["label"], fill=text_color, font=font)

    # day headers + vertical grid lines
    for day in week_days:
        x = gutter_w + day["col_index"] * day_w
        if day.get("is_today"):
            draw.rectangle([x, 0, x + day_w, height], fill=today_fill)
            for i in range(len(slots)):
                y = header_h + i * slot_h
                draw.line([(x, y), (x + day_w, y)], fill=grid_color)
        draw.line([(x, 0), (x, height)], fill=grid_color)
        label = f"{day['day_name_short']} {day['date'].day}"
        draw.text((x + 6, 6), label, fill=text_color, font=bold_font)
        count = f"{day['total_events']} events" if day["total_events"] else ""
        draw.text((x + 6, 6 + bold_size + 4), count, fill=text_color, font=font)

    # events
    for day in week_days:
        col_x = gutter_w + day["col_index"] * day_w
        for rec in day["records"]:
            x0, y0, x1, y1 = record_box(rec, col_x + 1, day_w - 2, header_h, scale)
            fill = color_for_column(rec.column)
            draw.rectangle([x0 + 1, y0 + 1, x1 - 1, y1 - 1], fill=fill)
            if rec.instance.is_recurring:
                _dashed_rect(draw, (x0 + 1, y0 + 1, x1 - 1, y1 - 1), _fg_for_bg(fill))
            inner_w = int(x1 - x0) - 2 * event_pad
            if inner_w <= 4:
                continue
            label = rec.instance.title
            if rec.instance.start is not None:
                label = f"{rec.instance.start:%H:%M} {label}"
            draw.text((x0 + event_pad, y0 + event_pad), _ellipsize(draw, label, font, inner_w),
                      fill=_fg_for_bg(fill), font=font)

    return base
