from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Protocol

from .errors import FieldDataError, UnsupportedFieldTypeError
from .primitives import (
    ColorPrimitive,
    ImagePrimitive,
    LinePrimitive,
    Primitive,
    ResourceRequest,
    SvgPrimitive,
    TextPrimitive,
)
from .schema import (
    ColorField,
    FieldSpec,
    ImageField,
    KeyValListField,
    KeyValTextField,
    LineField,
    MultiImageField,
    SvgField,
    TextField,
    TextStyle,
)
from .session import RenderSession


class FieldExpander(Protocol):
    """Turns one resolved field value into zero or more primitives, in paint order."""

    def expand(self, field: FieldSpec, value: object | None, session: RenderSession) -> list[Primitive]:
        ...


def field_requires_data(field: FieldSpec) -> bool:
    return field.field_type != "line"


def build_text(x: float, y: float, style: TextStyle, text: str, session: RenderSession) -> TextPrimitive:
    return TextPrimitive(
        x=x,
        y=y,
        text=text,
        font=style.font,
        color=session.resolve_color(style.color),
        font_family=style.font_family,
        font_size=style.font_size,
        prefix=style.prefix,
        wrap_at=style.wrap_at,
        text_align=style.text_align,
    )


def build_line(field: LineField, session: RenderSession) -> LinePrimitive:
    return LinePrimitive(
        start_x=field.start_x,
        start_y=field.start_y,
        end_x=field.end_x,
        end_y=field.end_y,
        width=field.width,
        color=session.resolve_color(field.color),
    )


def build_image(spec: ImageField, data: Mapping[str, object], image_id: str) -> ImagePrimitive:
    url = data.get("url")
    if url is not None and not isinstance(url, str):
        raise FieldDataError(f"image `{image_id}` url must be a string")
    return ImagePrimitive(
        x=spec.x,
        y=spec.y,
        width=spec.width,
        height=spec.height,
        id=image_id,
        pan_x=_opt_float(data.get("panX")),
        pan_y=_opt_float(data.get("panY")),
        zoom_level=_opt_float(data.get("zoomLevel")),
        rotate=_opt_float(data.get("rotate")),
        flip_vert=_opt_bool(data.get("flipVert")),
        flip_horiz=_opt_bool(data.get("flipHoriz")),
        url=url,
        request=ResourceRequest(kind="image", url=url, inline=data.get("image")),
    )


class ColorExpander:
    def expand(self, field: ColorField, value: object | None, session: RenderSession) -> list[Primitive]:
        data = _require_mapping(field, value)
        return [
            ColorPrimitive(
                x=field.x,
                y=field.y,
                width=field.width,
                height=field.height,
                color=session.resolve_color(_opt_str(data.get("color"))),
            )
        ]


class LineExpander:
    def expand(self, field: LineField, value: object | None, session: RenderSession) -> list[Primitive]:
        return [build_line(field, session)]


class TextExpander:
    def expand(self, field: TextField, value: object | None, session: RenderSession) -> list[Primitive]:
        return [build_text(field.x, field.y, field.style, _text_of(value), session)]


class KeyValTextExpander:
    def expand(self, field: KeyValTextField, value: object | None, session: RenderSession) -> list[Primitive]:
        data = _require_mapping(field, value)
        return [
            build_text(field.key_x, field.y, field.style, _text_of(data.get("key")), session),
            build_text(field.val_x, field.y, field.style, _text_of(data.get("val")), session),
        ]


class KeyValListExpander:
    """Stacks one key-val row per entry, `yIncr` apart, each followed by its additional elements."""

    def __init__(self, row_expander: KeyValTextExpander) -> None:
        self._row_expander = row_expander

    def expand(self, field: KeyValListField, value: object | None, session: RenderSession) -> list[Primitive]:
        if value is None:
            return []
        entries = _require_sequence(field, value)
        assert field.key_val_spec is not None
        results: list[Primitive] = []
        for i, entry in enumerate(entries):
            y_offset = i * field.y_incr + field.y
            row_spec = field.key_val_spec.offset_y(y_offset)
            results.extend(self._row_expander.expand(row_spec, entry, session))
            for element in field.additional_elements:
                if not isinstance(element, LineField):
                    raise UnsupportedFieldTypeError(f"Unsupported field type: {element.field_type}")
                results.append(build_line(element.offset_y(y_offset), session))
        return results


class ImageExpander:
    def expand(self, field: ImageField, value: object | None, session: RenderSession) -> list[Primitive]:
        data = _optional_mapping(field, value)
        results: list[Primitive] = []
        if field.credit is not None:
            credit = field.credit
            results.append(build_text(credit.x, credit.y, credit.style, _text_of(data.get("credit")), session))
        results.append(build_image(field, data, field.field_id))
        return results


class MultiImageExpander:
    def expand(self, field: MultiImageField, value: object | None, session: RenderSession) -> list[Primitive]:
        if value is None:
            return []
        items = _require_sequence(field, value)
        if not items:
            return []
        if len(items) > len(field.specs):
            raise FieldDataError(
                f"multi-image `{field.field_id}` has {len(items)} items but only {len(field.specs)} spec rows"
            )
        specs = field.specs[len(items) - 1]
        if len(specs) != len(items):
            raise FieldDataError(
                f"multi-image `{field.field_id}` spec row {len(items) - 1} has {len(specs)} specs for {len(items)} items"
            )
        return [build_image(spec, _optional_mapping(field, item), spec.field_id) for spec, item in zip(specs, items)]


class SvgExpander:
    def expand(self, field: SvgField, value: object | None, session: RenderSession) -> list[Primitive]:
        data = _optional_mapping(field, value)
        url = _opt_str(data.get("url"))
        return [
            SvgPrimitive(
                x=field.x,
                y=field.y,
                width=field.width,
                height=field.height,
                url=url,
                request=ResourceRequest(kind="svg", url=url),
            )
        ]


_KEY_VAL_TEXT = KeyValTextExpander()

EXPANDERS: dict[str, FieldExpander] = {
    "color": ColorExpander(),
    "line": LineExpander(),
    "text": TextExpander(),
    "key-val-text": _KEY_VAL_TEXT,
    "key-val-list": KeyValListExpander(_KEY_VAL_TEXT),
    "image": ImageExpander(),
    "multi-image": MultiImageExpander(),
    "svg": SvgExpander(),
}


def expand_field(field: FieldSpec, value: object | None, session: RenderSession) -> list[Primitive]:
    expander = EXPANDERS.get(field.field_type)
    if expander is None:
        raise UnsupportedFieldTypeError(f"Invalid field type: {field.field_type or type(field).__name__}")
    return expander.expand(field, value, session)


def _text_of(entry: object | None) -> str:
    if entry is None:
        return ""
    if isinstance(entry, Mapping):
        text = entry.get("text")
        return "" if text is None else str(text)
    if isinstance(entry, str):
        return entry
    raise FieldDataError(f"text data must be an object with `text`, got {type(entry).__name__}")


def _require_mapping(field: FieldSpec, value: object | None) -> Mapping[str, object]:
    if value is None:
        raise FieldDataError(f"{field.field_type} field `{field.field_id}` has no data")
    if not isinstance(value, Mapping):
        raise FieldDataError(f"{field.field_type} field `{field.field_id}` data must be an object")
    return value


def _optional_mapping(field: FieldSpec, value: object | None) -> Mapping[str, object]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise FieldDataError(f"{field.field_type} field `{field.field_id}` data must be an object")
    return value


def _require_sequence(field: FieldSpec, value: object) -> Sequence[object]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise FieldDataError(f"{field.field_type} field `{field.field_id}` data must be a list")
    return value


def _opt_float(raw: object) -> float | None:
    if raw is None:
        return None
    return float(raw)  # type: ignore[arg-type]


def _opt_bool(raw: object) -> bool | None:
    if raw is None:
        return None
    return bool(raw)


def _opt_str(raw: object) -> str | None:
    return None if raw is None else str(raw)
