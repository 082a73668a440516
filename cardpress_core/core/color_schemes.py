from __future__ import annotations

from collections.abc import Iterable, Mapping

from .errors import FieldDataError, MissingReferenceError
from .schema import Card, FieldSpec
from .values import resolve_value


ColorSchemeTable = dict[str, Mapping[str, str]]

SCHEME_REF_PREFIX = "$"


def build_color_schemes(fields: Iterable[FieldSpec], card: Card) -> ColorSchemeTable:
    """Resolve every color-scheme field into an id -> palette table.

    Palettes are plain field data, so they follow the usual precedence and choice rules.
    Palette entries must be literal colors; one scheme cannot reference another.
    """

    schemes: ColorSchemeTable = {}
    for field in fields:
        palette = resolve_value(field, card)
        if palette is None:
            schemes[field.field_id] = {}
            continue
        if not isinstance(palette, Mapping):
            raise FieldDataError(f"color scheme `{field.field_id}` must resolve to an object of colors")
        schemes[field.field_id] = {str(k): v for k, v in palette.items()}
    return schemes


def is_scheme_reference(raw: object) -> bool:
    return isinstance(raw, str) and raw.startswith(SCHEME_REF_PREFIX)


def parse_scheme_reference(raw: str) -> tuple[str, str]:
    body = raw[len(SCHEME_REF_PREFIX) :]
    if "." not in body:
        raise MissingReferenceError(f"color reference `{raw}` must use $<scheme>.<key>")
    scheme_name, color_key = body.split(".", 1)
    if not scheme_name or not color_key:
        raise MissingReferenceError(f"color reference `{raw}` must use $<scheme>.<key>")
    return scheme_name, color_key


def resolve_color(color_schemes: Mapping[str, Mapping[str, str]], raw: str | None) -> str | None:
    if raw is None or not is_scheme_reference(raw):
        return raw
    scheme_name, color_key = parse_scheme_reference(raw)
    scheme = color_schemes.get(scheme_name)
    if scheme is None:
        raise MissingReferenceError(f"color scheme `{scheme_name}` not found (referenced by `{raw}`)")
    if color_key not in scheme:
        raise MissingReferenceError(f"color `{color_key}` not found in scheme `{scheme_name}`")
    value = scheme[color_key]
    if is_scheme_reference(value):
        raise MissingReferenceError(
            f"color `{scheme_name}.{color_key}` references another scheme (`{value}`); nested references are not supported"
        )
    return value
