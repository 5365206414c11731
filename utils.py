#!/usr/bin/env python3
"""
utils.py

Core utilities for the ticker renderer:
- Logging decorator
- Font loading with per-size caching
- Text measuring and anchored drawing
- Translucent overlay compositing
"""
import functools
import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from config import FONT_BOLD_NAME, FONT_REGULAR_NAME, iter_font_paths

RGBA = Tuple[int, int, int, int]


# ─── Logging decorator ──────────────────────────────────────────────────────
def log_call(func):
    """
    Decorator that logs entry & exit at DEBUG level only.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logging.debug(f"→ {func.__name__}()")
        result = func(*args, **kwargs)
        logging.debug(f"← {func.__name__}()")
        return result
    return wrapper


# ─── Fonts ──────────────────────────────────────────────────────────────────
@functools.lru_cache(maxsize=None)
def _font_path(name: str) -> Optional[str]:
    for path in iter_font_paths(name):
        return path
    return None


@functools.lru_cache(maxsize=64)
def load_font(size: int, *, bold: bool = False) -> ImageFont.FreeTypeFont:
    """Return a DejaVu font at ``size`` pixels, or Pillow's built-in font."""

    name = FONT_BOLD_NAME if bold else FONT_REGULAR_NAME
    path = _font_path(name)
    if path:
        try:
            return ImageFont.truetype(path, size)
        except OSError as exc:
            logging.warning("Unable to load font %s: %s", path, exc)
    else:
        logging.warning("Font %s not found; falling back to PIL default font", name)
    return ImageFont.load_default(size=size)


# ─── Text ───────────────────────────────────────────────────────────────────
def measure_text(text: str, font: ImageFont.FreeTypeFont) -> Tuple[int, int]:
    if not text:
        return 0, 0
    left, top, right, bottom = font.getbbox(text)
    return right - left, bottom - top


def draw_text(
    draw: ImageDraw.ImageDraw,
    text: str,
    font: ImageFont.FreeTypeFont,
    x: float,
    cy: float,
    *,
    align: str = "left",
    fill=(255, 255, 255),
) -> None:
    """
    Draw `text` vertically centred on `cy`.

    `align` picks which edge `x` refers to: "left", "center" or "right".
    """
    if not text:
        return
    l, t, r, b = draw.textbbox((0, 0), text, font=font)
    tw = r - l
    if align == "center":
        tx = x - tw / 2 - l
    elif align == "right":
        tx = x - tw - l
    else:
        tx = x - l
    ty = cy - (t + b) / 2
    draw.text((round(tx), round(ty)), text, font=font, fill=fill)


# ─── Compositing ────────────────────────────────────────────────────────────
def composite_overlay(
    canvas: Image.Image,
    paint: Callable[[ImageDraw.ImageDraw], None],
) -> None:
    """
    Run `paint` on a transparent layer and alpha-blend it onto `canvas`.

    ImageDraw writes RGBA fills straight into RGBA images without blending,
    so anything semi-transparent goes through here.
    """
    overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    paint(ImageDraw.Draw(overlay))
    canvas.alpha_composite(overlay)


def with_alpha(color, alpha: float) -> RGBA:
    r, g, b = color[:3]
    return r, g, b, max(0, min(255, int(round(alpha * 255))))


# ─── Files ──────────────────────────────────────────────────────────────────
def write_file_atomic(path: Path, data: bytes) -> None:
    """
    Write `data` to `path` through a temp file in the same directory.

    Raises OSError on failure; the temp file is removed first.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".part")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_path, path)
    except OSError:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
