from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import xml.etree.ElementTree as ET

from PIL import Image, ImageColor, ImageDraw

from .surface import RGBA


@dataclass(frozen=True)
class SvgStyle:
    fill: Optional[RGBA]
    stroke: Optional[RGBA]
    stroke_width: float


@dataclass(frozen=True)
class SvgRect:
    x: float
    y: float
    width: float
    height: float
    style: SvgStyle


@dataclass(frozen=True)
class SvgEllipse:
    cx: float
    cy: float
    rx: float
    ry: float
    style: SvgStyle


@dataclass(frozen=True)
class SvgLine:
    x1: float
    y1: float
    x2: float
    y2: float
    style: SvgStyle


@dataclass(frozen=True)
class SvgPolygon:
    points: tuple[tuple[float, float], ...]
    closed: bool
    style: SvgStyle


SvgShape = SvgRect | SvgEllipse | SvgLine | SvgPolygon


@dataclass
class SvgDocument:
    """Grouped vector shapes parsed from SVG markup, kept in document order.

    Supports rect, circle, ellipse, line, polygon and polyline with flat fill/stroke colors.
    """

    width: float
    height: float
    viewbox: tuple[float, float, float, float]
    shapes: list[SvgShape] = field(default_factory=list)

    @classmethod
    def from_file(cls, path: Path) -> "SvgDocument":
        return cls._from_root(ET.parse(path).getroot())

    @classmethod
    def from_markup(cls, svg_markup: str | bytes) -> "SvgDocument":
        return cls._from_root(ET.fromstring(svg_markup))

    @classmethod
    def _from_root(cls, root: ET.Element) -> "SvgDocument":
        if _strip_namespace(root.tag) != "svg":
            raise ValueError(f"expected <svg> root element, got <{_strip_namespace(root.tag)}>")
        width = _parse_length(root.attrib.get("width"))
        height = _parse_length(root.attrib.get("height"))
        viewbox = _parse_viewbox(root.attrib.get("viewBox"))
        if viewbox is None:
            viewbox = (0.0, 0.0, width or 100.0, height or 100.0)
        shapes: list[SvgShape] = []
        for elem in root.iter():
            shape = _parse_shape(elem)
            if shape is not None:
                shapes.append(shape)
        return cls(
            width=width if width is not None else viewbox[2],
            height=height if height is not None else viewbox[3],
            viewbox=viewbox,
            shapes=shapes,
        )

    def rasterize(self, width: int, height: int) -> Image.Image:
        """Draw the document directly at the target size into a transparent RGBA image."""

        image = Image.new("RGBA", (max(1, width), max(1, height)), (0, 0, 0, 0))
        vb_x, vb_y, vb_w, vb_h = self.viewbox
        sx = width / vb_w if vb_w else 1.0
        sy = height / vb_h if vb_h else 1.0
        stroke_scale = (abs(sx) + abs(sy)) / 2.0
        draw = ImageDraw.Draw(image, "RGBA")

        def pt(x: float, y: float) -> tuple[float, float]:
            return ((x - vb_x) * sx, (y - vb_y) * sy)

        for shape in self.shapes:
            style = shape.style
            stroke_w = max(1, int(round(style.stroke_width * stroke_scale))) if style.stroke else 0
            if isinstance(shape, SvgRect):
                x0, y0 = pt(shape.x, shape.y)
                x1, y1 = pt(shape.x + shape.width, shape.y + shape.height)
                draw.rectangle([x0, y0, x1 - 1, y1 - 1], fill=style.fill, outline=style.stroke, width=stroke_w)
            elif isinstance(shape, SvgEllipse):
                x0, y0 = pt(shape.cx - shape.rx, shape.cy - shape.ry)
                x1, y1 = pt(shape.cx + shape.rx, shape.cy + shape.ry)
                draw.ellipse([x0, y0, x1, y1], fill=style.fill, outline=style.stroke, width=stroke_w)
            elif isinstance(shape, SvgLine):
                if style.stroke is not None:
                    draw.line([pt(shape.x1, shape.y1), pt(shape.x2, shape.y2)], fill=style.stroke, width=stroke_w)
            elif isinstance(shape, SvgPolygon):
                points = [pt(x, y) for x, y in shape.points]
                if shape.closed:
                    draw.polygon(points, fill=style.fill, outline=style.stroke, width=stroke_w)
                elif style.stroke is not None:
                    draw.line(points, fill=style.stroke, width=stroke_w)
        return image


def _parse_shape(elem: ET.Element) -> Optional[SvgShape]:
    tag = _strip_namespace(elem.tag)
    attrib = elem.attrib
    if tag == "rect":
        return SvgRect(
            x=_length(attrib, "x"),
            y=_length(attrib, "y"),
            width=_length(attrib, "width"),
            height=_length(attrib, "height"),
            style=_parse_style(elem, default_stroke_width=0.0),
        )
    if tag == "circle":
        r = _length(attrib, "r")
        return SvgEllipse(cx=_length(attrib, "cx"), cy=_length(attrib, "cy"), rx=r, ry=r, style=_parse_style(elem))
    if tag == "ellipse":
        return SvgEllipse(
            cx=_length(attrib, "cx"),
            cy=_length(attrib, "cy"),
            rx=_length(attrib, "rx"),
            ry=_length(attrib, "ry"),
            style=_parse_style(elem),
        )
    if tag == "line":
        coords = [_parse_length(attrib.get(name)) for name in ("x1", "y1", "x2", "y2")]
        if any(c is None for c in coords):
            return None
        x1, y1, x2, y2 = coords
        return SvgLine(x1=x1, y1=y1, x2=x2, y2=y2, style=_parse_style(elem, default_stroke_width=1.0))  # type: ignore[arg-type]
    if tag in ("polygon", "polyline"):
        points = _parse_points(attrib.get("points"))
        if len(points) < 2:
            return None
        return SvgPolygon(points=tuple(points), closed=tag == "polygon", style=_parse_style(elem))
    return None


def _parse_style(elem: ET.Element, *, default_stroke_width: float = 1.0) -> SvgStyle:
    props = dict(elem.attrib)
    inline = elem.attrib.get("style")
    if inline:
        for decl in inline.split(";"):
            if ":" in decl:
                key, value = decl.split(":", 1)
                props[key.strip()] = value.strip()
    fill_raw = props.get("fill")
    # SVG paints shapes black unless fill is given.
    fill = _parse_color(fill_raw) if fill_raw is not None else (0, 0, 0, 255)
    stroke = _parse_color(props.get("stroke"))
    stroke_width = _parse_length(props.get("stroke-width"))
    opacity = _parse_length(props.get("opacity"))
    if opacity is not None:
        fill = _with_opacity(fill, opacity)
        stroke = _with_opacity(stroke, opacity)
    return SvgStyle(
        fill=fill,
        stroke=stroke,
        stroke_width=default_stroke_width if stroke_width is None else stroke_width,
    )


def _strip_namespace(tag: str) -> str:
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def _length(attrib: dict[str, str], name: str) -> float:
    return _parse_length(attrib.get(name)) or 0.0


def _parse_length(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    value = value.strip()
    if value.endswith("px"):
        value = value[:-2]
    try:
        return float(value)
    except ValueError:
        return None


def _parse_viewbox(value: Optional[str]) -> Optional[tuple[float, float, float, float]]:
    if not value:
        return None
    parts = value.replace(",", " ").split()
    if len(parts) != 4:
        return None
    try:
        x, y, w, h = (float(p) for p in parts)
    except ValueError:
        return None
    return (x, y, w, h)


def _parse_points(value: Optional[str]) -> list[tuple[float, float]]:
    if not value:
        return []
    parts = value.replace(",", " ").split()
    points: list[tuple[float, float]] = []
    it = iter(parts)
    for x_str, y_str in zip(it, it):
        try:
            points.append((float(x_str), float(y_str)))
        except ValueError:
            continue
    return points


def _parse_color(value: Optional[str]) -> Optional[RGBA]:
    if not value:
        return None
    value = value.strip()
    if value == "none":
        return None
    try:
        rgb = ImageColor.getrgb(value)
    except ValueError:
        return None
    if len(rgb) == 4:
        return (rgb[0], rgb[1], rgb[2], rgb[3])
    return (rgb[0], rgb[1], rgb[2], 255)


def _with_opacity(color: Optional[RGBA], opacity: float) -> Optional[RGBA]:
    if color is None or opacity >= 1.0:
        return color
    r, g, b, a = color
    return (r, g, b, max(0, min(255, int(a * opacity))))
