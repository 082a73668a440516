from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import logging
from pathlib import Path
import re
from typing import Iterable

import numpy as np
from PIL import Image, ImageDraw, ImageFont, ImageOps

from cardpress_core.core.primitives import (
    ColorPrimitive,
    ImagePrimitive,
    LinePrimitive,
    Primitive,
    SvgPrimitive,
    TextPrimitive,
)

from .surface import DrawingSurface, parse_color

LOGGER = logging.getLogger(__name__)

DEFAULT_FONT_FAMILY = "DejaVu Sans"
DEFAULT_FONT_SIZE_PX = 10.0
LINE_HEIGHT_MULTIPLIER = 1.12
FONT_FALLBACK_PATTERNS = (
    "dejavusans",
    "arial",
    "helvetica",
    "liberationsans",
    "freesans",
)

_FONT_SIZE_RE = re.compile(r"^(\d+(?:\.\d+)?)px$")


@dataclass(frozen=True)
class FontSpec:
    family: str
    size_px: float


def parse_font(font: str | None, *, font_family: str | None = None, font_size: float | None = None) -> FontSpec:
    """Resolve a CSS-like font shorthand (`"bold 12px Arial"`), with explicit overrides winning."""

    size_px = DEFAULT_FONT_SIZE_PX
    family = DEFAULT_FONT_FAMILY
    if font:
        tokens = font.split()
        for i, token in enumerate(tokens):
            match = _FONT_SIZE_RE.match(token.lower())
            if match is not None:
                size_px = float(match.group(1))
                rest = " ".join(tokens[i + 1 :]).strip().strip("'\"")
                if rest:
                    family = rest.split(",")[0].strip().strip("'\"")
                break
    if font_size is not None:
        size_px = float(font_size)
    if font_family:
        family = font_family
    return FontSpec(family=family, size_px=size_px)


class TensorPrimitivePainter:
    """Paints primitive drawing instructions onto a `DrawingSurface` in list order."""

    def paint(self, surface: DrawingSurface, primitives: Iterable[Primitive]) -> None:
        for primitive in primitives:
            if isinstance(primitive, ColorPrimitive):
                self._paint_color(surface, primitive)
            elif isinstance(primitive, LinePrimitive):
                self._paint_line(surface, primitive)
            elif isinstance(primitive, TextPrimitive):
                self._paint_text(surface, primitive)
            elif isinstance(primitive, ImagePrimitive):
                self._paint_image(surface, primitive)
            elif isinstance(primitive, SvgPrimitive):
                self._paint_svg(surface, primitive)
            else:
                raise TypeError(f"unsupported primitive: {type(primitive).__name__}")

    def _paint_color(self, surface: DrawingSurface, primitive: ColorPrimitive) -> None:
        surface.blend_rect(
            int(round(primitive.x)),
            int(round(primitive.y)),
            int(round(primitive.width)),
            int(round(primitive.height)),
            parse_color(primitive.color),
        )

    def _paint_line(self, surface: DrawingSurface, primitive: LinePrimitive) -> None:
        width = max(1, int(round(primitive.width)))
        pad = width + 1
        x0 = int(min(primitive.start_x, primitive.end_x)) - pad
        y0 = int(min(primitive.start_y, primitive.end_y)) - pad
        x1 = int(max(primitive.start_x, primitive.end_x)) + pad
        y1 = int(max(primitive.start_y, primitive.end_y)) + pad
        mask = Image.new("L", (x1 - x0 + 1, y1 - y0 + 1), 0)
        ImageDraw.Draw(mask).line(
            [(primitive.start_x - x0, primitive.start_y - y0), (primitive.end_x - x0, primitive.end_y - y0)],
            fill=255,
            width=width,
        )
        surface.blend_alpha_mask(np.asarray(mask, dtype=np.uint8), x=x0, y=y0, color=parse_color(primitive.color))

    def _paint_text(self, surface: DrawingSurface, primitive: TextPrimitive) -> None:
        value = primitive.rendered_text
        if not value:
            return
        spec = parse_font(primitive.font, font_family=primitive.font_family, font_size=primitive.font_size)
        font = _load_font(spec.family, spec.size_px)
        color = parse_color(primitive.color)
        x = float(primitive.x)
        y = float(primitive.y)

        if primitive.wrap_at is None:
            if primitive.text_align == "center":
                x -= _text_width(font, value) / 2.0
            elif primitive.text_align == "right":
                x -= _text_width(font, value)
            _draw_text(surface, x, y, value, font, color)
            return

        words = value.split(" ")
        line_x = x
        cur_y = y
        first = words[0]
        _draw_text(surface, x, cur_y, first, font, color)
        line_x += _text_width(font, first)
        for word in words[1:]:
            piece = " " + word
            new_x = line_x + _text_width(font, piece)
            if new_x <= primitive.wrap_at:
                _draw_text(surface, line_x, cur_y, piece, font, color)
                line_x = new_x
            else:
                cur_y += spec.size_px * LINE_HEIGHT_MULTIPLIER
                _draw_text(surface, x, cur_y, word, font, color)
                line_x = x + _text_width(font, word)

    def _paint_image(self, surface: DrawingSurface, primitive: ImagePrimitive) -> None:
        resource = primitive.resource
        if not isinstance(resource, Image.Image):
            LOGGER.warning("image `%s` has no decoded resource; skipped", primitive.id)
            return
        target_w = int(round(primitive.width))
        target_h = int(round(primitive.height))
        if target_w <= 0 or target_h <= 0:
            return
        image = resource.convert("RGBA")
        if primitive.rotate:
            image = image.rotate(-float(primitive.rotate), expand=True)
        if primitive.flip_vert:
            image = ImageOps.flip(image)
        if primitive.flip_horiz:
            image = ImageOps.mirror(image)
        box = cover_crop_box(
            image.width,
            image.height,
            float(primitive.width),
            float(primitive.height),
            zoom_level=primitive.zoom_level,
            pan_x=primitive.pan_x,
            pan_y=primitive.pan_y,
        )
        patch = image.resize((target_w, target_h), Image.Resampling.BILINEAR, box=box)
        surface.blit(np.asarray(patch, dtype=np.uint8), x=int(round(primitive.x)), y=int(round(primitive.y)))

    def _paint_svg(self, surface: DrawingSurface, primitive: SvgPrimitive) -> None:
        resource = primitive.resource
        target_w = int(round(primitive.width))
        target_h = int(round(primitive.height))
        if target_w <= 0 or target_h <= 0:
            return
        rasterize = getattr(resource, "rasterize", None)
        if callable(rasterize):
            patch = rasterize(target_w, target_h)
        elif isinstance(resource, Image.Image):
            patch = resource.convert("RGBA").resize((target_w, target_h), Image.Resampling.BILINEAR)
        else:
            LOGGER.warning("svg at (%s, %s) has no drawable resource; skipped", primitive.x, primitive.y)
            return
        surface.blit(np.asarray(patch.convert("RGBA"), dtype=np.uint8), x=int(round(primitive.x)), y=int(round(primitive.y)))


def cover_crop_box(
    image_w: float,
    image_h: float,
    target_w: float,
    target_h: float,
    *,
    zoom_level: float | None = None,
    pan_x: float | None = None,
    pan_y: float | None = None,
) -> tuple[float, float, float, float]:
    """Source box (left, top, right, bottom) that fills the target ratio, centered, then zoomed and panned.

    `zoom_level` shrinks the crop by `zoom_level` percent of its width; `pan_x`/`pan_y`
    shift it by thirds of the crop size per unit.
    """

    target_ratio = target_w / target_h
    image_ratio = image_w / image_h
    sx = 0.0
    sy = 0.0
    if image_ratio <= target_ratio:
        s_width = image_w
        s_height = s_width / target_ratio
        sy = (image_h - s_height) / 2.0
    else:
        s_height = image_h
        s_width = target_ratio * s_height
        sx = (image_w - s_width) / 2.0

    if zoom_level:
        s_height -= zoom_level * s_width / 100.0
        s_width = target_ratio * s_height
    if pan_x:
        sx += pan_x * s_width / 300.0
    if pan_y:
        sy += pan_y * s_height / 300.0
    return (sx, sy, sx + s_width, sy + s_height)


def _draw_text(
    surface: DrawingSurface,
    x: float,
    y: float,
    text: str,
    font: ImageFont.FreeTypeFont | ImageFont.ImageFont,
    color: tuple[int, int, int, int],
) -> None:
    if not text.strip():
        return
    left, top, right, bottom = font.getbbox(text)
    width = max(1, int(right - left))
    height = max(1, int(bottom - top))
    image = Image.new("L", (width, height), 0)
    ImageDraw.Draw(image).text((-left, -top), text, fill=255, font=font)
    surface.blend_alpha_mask(
        np.asarray(image, dtype=np.uint8),
        x=int(round(x + left)),
        y=int(round(y + top)),
        color=color,
    )


def _text_width(font: ImageFont.FreeTypeFont | ImageFont.ImageFont, text: str) -> float:
    try:
        return float(font.getlength(text))
    except Exception:  # noqa: BLE001
        left, _, right, _ = font.getbbox(text)
        return float(right - left)


@lru_cache(maxsize=64)
def _load_font(font_family: str, font_size_px: float) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    size = max(1, int(round(font_size_px)))
    font_path = _resolve_font_path(font_family)
    if font_path is None:
        return ImageFont.load_default(size=size)
    try:
        return ImageFont.truetype(str(font_path), size=size)
    except OSError:
        LOGGER.debug("could not load font %s; using default", font_path)
        return ImageFont.load_default(size=size)


@lru_cache(maxsize=32)
def _resolve_font_path(font_family: str) -> Path | None:
    wanted = font_family.strip().lower() if font_family.strip() else DEFAULT_FONT_FAMILY.lower()
    patterns = (wanted,) + FONT_FALLBACK_PATTERNS

    font_dirs = [
        Path.home() / "Library" / "Fonts",
        Path("/Library/Fonts"),
        Path("/System/Library/Fonts"),
        Path("/System/Library/Fonts/Supplemental"),
        Path("/usr/share/fonts"),
        Path("/usr/local/share/fonts"),
    ]

    candidates: list[Path] = []
    for base in font_dirs:
        if not base.exists():
            continue
        for ext in ("*.ttf", "*.otf", "*.ttc"):
            candidates.extend(base.rglob(ext))

    for pattern in patterns:
        p = pattern.replace(" ", "")
        for path in candidates:
            stem = path.stem.lower().replace(" ", "")
            if p in stem:
                return path
    return None
