from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Literal, Union


PrimitiveKind = Literal["color", "line", "text", "image", "svg"]


@dataclass(frozen=True)
class ColorPrimitive:
    x: float
    y: float
    width: float
    height: float
    color: str | None

    kind: ClassVar[PrimitiveKind] = "color"

    def to_dict(self) -> dict[str, object]:
        return {
            "type": self.kind,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "color": self.color,
        }


@dataclass(frozen=True)
class LinePrimitive:
    start_x: float
    start_y: float
    end_x: float
    end_y: float
    width: float
    color: str | None

    kind: ClassVar[PrimitiveKind] = "line"

    def to_dict(self) -> dict[str, object]:
        return {
            "type": self.kind,
            "startX": self.start_x,
            "startY": self.start_y,
            "endX": self.end_x,
            "endY": self.end_y,
            "width": self.width,
            "color": self.color,
        }


@dataclass(frozen=True)
class TextPrimitive:
    x: float
    y: float
    text: str
    font: str | None = None
    color: str | None = None
    font_family: str | None = None
    font_size: float | None = None
    prefix: str | None = None
    wrap_at: float | None = None
    text_align: str | None = None

    kind: ClassVar[PrimitiveKind] = "text"

    @property
    def rendered_text(self) -> str:
        """Text as it is painted: prefix first, then the field text."""
        return (self.prefix or "") + self.text

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {
            "type": self.kind,
            "x": self.x,
            "y": self.y,
            "font": self.font,
            "color": self.color,
            "text": self.text,
        }
        _put_optional(out, "fontFamily", self.font_family)
        _put_optional(out, "fontSize", self.font_size)
        _put_optional(out, "prefix", self.prefix)
        _put_optional(out, "wrapAt", self.wrap_at)
        _put_optional(out, "textAlign", self.text_align)
        return out


@dataclass(frozen=True)
class ResourceRequest:
    """Pending image/svg resource for a primitive: an inline resource or a url to fetch."""

    kind: Literal["image", "svg"]
    url: str | None = None
    inline: object | None = None


@dataclass(frozen=True)
class ImagePrimitive:
    x: float
    y: float
    width: float
    height: float
    id: str
    pan_x: float | None = None
    pan_y: float | None = None
    zoom_level: float | None = None
    rotate: float | None = None
    flip_vert: bool | None = None
    flip_horiz: bool | None = None
    url: str | None = None
    resource: object | None = None
    request: ResourceRequest | None = None

    kind: ClassVar[PrimitiveKind] = "image"

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {
            "type": self.kind,
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }
        _put_optional(out, "panX", self.pan_x)
        _put_optional(out, "panY", self.pan_y)
        _put_optional(out, "zoomLevel", self.zoom_level)
        _put_optional(out, "rotate", self.rotate)
        _put_optional(out, "flipVert", self.flip_vert)
        _put_optional(out, "flipHoriz", self.flip_horiz)
        _put_optional(out, "url", self.url)
        out["resource"] = describe_resource(self.resource)
        return out


@dataclass(frozen=True)
class SvgPrimitive:
    x: float
    y: float
    width: float
    height: float
    url: str | None = None
    resource: object | None = None
    request: ResourceRequest | None = None

    kind: ClassVar[PrimitiveKind] = "svg"

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {
            "type": self.kind,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }
        _put_optional(out, "url", self.url)
        out["resource"] = describe_resource(self.resource)
        return out


Primitive = Union[ColorPrimitive, LinePrimitive, TextPrimitive, ImagePrimitive, SvgPrimitive]
ResourcePrimitive = Union[ImagePrimitive, SvgPrimitive]


def describe_resource(resource: object | None) -> dict[str, object] | None:
    """JSON-friendly summary of a resolved resource (the resource itself is not serialisable)."""

    if resource is None:
        return None
    out: dict[str, object] = {"kind": type(resource).__name__}
    size = getattr(resource, "size", None)
    if isinstance(size, tuple) and len(size) == 2:
        out["width"], out["height"] = size
    else:
        width = getattr(resource, "width", None)
        height = getattr(resource, "height", None)
        if isinstance(width, (int, float)) and isinstance(height, (int, float)):
            out["width"], out["height"] = width, height
    return out


def _put_optional(out: dict[str, object], key: str, value: object) -> None:
    if value is not None:
        out[key] = value
