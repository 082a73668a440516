from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import ClassVar, Literal, Mapping, Union

from .errors import FieldDataError, FieldLookupError, UnsupportedFieldTypeError


FieldType = Literal[
    "color",
    "line",
    "text",
    "key-val-text",
    "key-val-list",
    "image",
    "multi-image",
    "svg",
    "color-scheme",
]
ChoiceIndex = Union[int, tuple[int, ...]]

# Older templates use these names for the same field types.
TYPE_ALIASES = {
    "labeled-choice-image": "image",
    "labeled-choice-svg": "svg",
}


@dataclass(frozen=True)
class DataEntry:
    """One data source for a field: a free-form value and/or a choice selection."""

    value: object | None = None
    choice_index: ChoiceIndex | None = None

    @staticmethod
    def from_dict(raw: object, *, field_name: str = "data") -> "DataEntry":
        """Parse a data entry. Keys other than `value`/`choiceIndex` (`url`, `text`, `credit`...)
        are shorthand for a mapping value and are folded into it; explicit `value` keys win."""

        data = _expect_mapping(raw, field_name=field_name)
        value = data.get("value")
        inline = {str(k): v for k, v in data.items() if k not in ("value", "choiceIndex")}
        if inline:
            if value is None:
                value = inline
            elif isinstance(value, Mapping):
                value = {**inline, **value}
            else:
                raise FieldDataError(
                    f"{field_name} mixes a non-mapping value with inline keys: {', '.join(sorted(inline))}"
                )
        return DataEntry(
            value=value,
            choice_index=_parse_choice_index(data.get("choiceIndex"), field_name=f"{field_name}.choiceIndex"),
        )

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {}
        if self.value is not None:
            out["value"] = self.value
        if self.choice_index is not None:
            out["choiceIndex"] = (
                list(self.choice_index) if isinstance(self.choice_index, tuple) else self.choice_index
            )
        return out


@dataclass(frozen=True)
class TextStyle:
    font: str | None = None
    font_family: str | None = None
    font_size: float | None = None
    color: str | None = None
    prefix: str | None = None
    wrap_at: float | None = None
    text_align: str | None = None


@dataclass(frozen=True)
class FieldBase:
    field_id: str
    label: str | None = None
    value: object | None = None
    choice_index: ChoiceIndex | None = None

    field_type: ClassVar[str] = ""

    def __post_init__(self) -> None:
        if not self.field_id.strip():
            raise FieldDataError("field id must be non-empty")

    @property
    def editable(self) -> bool:
        return self.label is not None


@dataclass(frozen=True)
class ColorField(FieldBase):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    field_type: ClassVar[str] = "color"


@dataclass(frozen=True)
class LineField(FieldBase):
    start_x: float = 0.0
    start_y: float = 0.0
    end_x: float = 0.0
    end_y: float = 0.0
    width: float = 1.0
    color: str | None = None

    field_type: ClassVar[str] = "line"

    def offset_y(self, dy: float) -> "LineField":
        return replace(self, start_y=self.start_y + dy, end_y=self.end_y + dy)


@dataclass(frozen=True)
class TextField(FieldBase):
    x: float = 0.0
    y: float = 0.0
    style: TextStyle = field(default_factory=TextStyle)

    field_type: ClassVar[str] = "text"


@dataclass(frozen=True)
class KeyValTextField(FieldBase):
    key_x: float = 0.0
    val_x: float = 0.0
    y: float = 0.0
    style: TextStyle = field(default_factory=TextStyle)

    field_type: ClassVar[str] = "key-val-text"

    def offset_y(self, dy: float) -> "KeyValTextField":
        return replace(self, y=self.y + dy)


@dataclass(frozen=True)
class KeyValListField(FieldBase):
    y: float = 0.0
    y_incr: float = 0.0
    key_val_spec: KeyValTextField | None = None
    additional_elements: tuple["FieldSpec", ...] = ()

    field_type: ClassVar[str] = "key-val-list"

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.key_val_spec is None:
            raise FieldDataError(f"key-val-list field `{self.field_id}` requires keyValSpec")


@dataclass(frozen=True)
class ImageField(FieldBase):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    credit: TextField | None = None

    field_type: ClassVar[str] = "image"


@dataclass(frozen=True)
class MultiImageField(FieldBase):
    """Image group; `specs[n - 1]` holds the geometry used when the value has n items."""

    specs: tuple[tuple[ImageField, ...], ...] = ()

    field_type: ClassVar[str] = "multi-image"


@dataclass(frozen=True)
class SvgField(FieldBase):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    field_type: ClassVar[str] = "svg"


@dataclass(frozen=True)
class ColorSchemeField(FieldBase):
    field_type: ClassVar[str] = "color-scheme"


FieldSpec = Union[
    ColorField,
    LineField,
    TextField,
    KeyValTextField,
    KeyValListField,
    ImageField,
    MultiImageField,
    SvgField,
    ColorSchemeField,
]


@dataclass(frozen=True)
class Template:
    name: str
    width: int
    height: int
    fields: dict[str, FieldSpec] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise FieldDataError("template width/height must be > 0")
        for field_id, spec in self.fields.items():
            if spec.field_id != field_id:
                raise FieldDataError(f"field key `{field_id}` does not match field id `{spec.field_id}`")

    def ordered_fields(self) -> list[FieldSpec]:
        return list(self.fields.values())

    def editable_fields(self) -> list[FieldSpec]:
        return [spec for spec in self.fields.values() if spec.editable]

    def image_fields(self) -> list[ImageField]:
        return [spec for spec in self.editable_fields() if isinstance(spec, ImageField)]

    def get_field(self, field_id: str) -> FieldSpec:
        try:
            return self.fields[field_id]
        except KeyError:
            raise FieldLookupError(f"template `{self.name}` has no field `{field_id}`") from None

    @staticmethod
    def from_dict(payload: Mapping[str, object], *, name: str | None = None) -> "Template":
        raw_fields = _expect_mapping(payload.get("fields", {}), field_name="fields")
        template_name = name if name is not None else str(payload.get("name", ""))
        try:
            width = int(payload["width"])  # type: ignore[arg-type]
            height = int(payload["height"])  # type: ignore[arg-type]
        except KeyError as exc:
            raise FieldDataError(f"template missing required field: {exc.args[0]}") from exc
        fields: dict[str, FieldSpec] = {}
        for field_id, raw in raw_fields.items():
            fields[str(field_id)] = parse_field(str(field_id), raw)
        return Template(name=template_name, width=width, height=height, fields=fields)


@dataclass
class Card:
    """Sparse card data. Mutable so editors (see CardWrapper) can update entries in place."""

    template_name: str
    data: dict[str, DataEntry] = field(default_factory=dict)
    choices: dict[str, list[object]] = field(default_factory=dict)
    default_data: dict[str, DataEntry] | None = None

    @staticmethod
    def from_dict(payload: Mapping[str, object]) -> "Card":
        data_raw = _expect_mapping(payload.get("data") or {}, field_name="data")
        choices_raw = _expect_mapping(payload.get("choices") or {}, field_name="choices")
        default_raw = payload.get("defaultData")
        choices: dict[str, list[object]] = {}
        for field_id, items in choices_raw.items():
            if not isinstance(items, list):
                raise FieldDataError(f"choices.{field_id} must be a list")
            choices[str(field_id)] = list(items)
        default_data: dict[str, DataEntry] | None = None
        if default_raw is not None:
            default_map = _expect_mapping(default_raw, field_name="defaultData")
            default_data = {
                str(k): DataEntry.from_dict(v, field_name=f"defaultData.{k}")
                for k, v in default_map.items()
                if v is not None
            }
        return Card(
            template_name=str(payload.get("templateName", "")),
            data={str(k): DataEntry.from_dict(v, field_name=f"data.{k}") for k, v in data_raw.items() if v is not None},
            choices=choices,
            default_data=default_data,
        )

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {
            "templateName": self.template_name,
            "data": {k: v.to_dict() for k, v in self.data.items()},
            "choices": {k: list(v) for k, v in self.choices.items()},
        }
        if self.default_data is not None:
            out["defaultData"] = {k: v.to_dict() for k, v in self.default_data.items()}
        return out


def canonical_field_type(raw_type: str) -> str:
    return TYPE_ALIASES.get(raw_type, raw_type)


def parse_field(field_id: str, raw: object) -> FieldSpec:
    data = _expect_mapping(raw, field_name=f"fields.{field_id}")
    raw_type = data.get("type")
    if not isinstance(raw_type, str) or not raw_type.strip():
        raise FieldDataError(f"fields.{field_id}.type must be a non-empty string")
    field_type = canonical_field_type(raw_type)
    parser = _FIELD_PARSERS.get(field_type)
    if parser is None:
        raise UnsupportedFieldTypeError(f"Unsupported field type: {raw_type}")
    common = dict(
        field_id=field_id,
        label=None if data.get("label") is None else str(data.get("label")),
        value=data.get("value"),
        choice_index=_parse_choice_index(data.get("choiceIndex"), field_name=f"fields.{field_id}.choiceIndex"),
    )
    return parser(field_id, data, common)


def _parse_color_field(field_id: str, data: Mapping[str, object], common: dict) -> ColorField:
    return ColorField(
        **common,
        x=_float(data.get("x")),
        y=_float(data.get("y")),
        width=_float(data.get("width")),
        height=_float(data.get("height")),
    )


def _parse_line_field(field_id: str, data: Mapping[str, object], common: dict) -> LineField:
    return LineField(
        **common,
        start_x=_float(data.get("startX")),
        start_y=_float(data.get("startY")),
        end_x=_float(data.get("endX")),
        end_y=_float(data.get("endY")),
        width=_float(data.get("width"), default=1.0),
        color=_opt_str(data.get("color")),
    )


def _parse_text_field(field_id: str, data: Mapping[str, object], common: dict) -> TextField:
    return TextField(
        **common,
        x=_float(data.get("x")),
        y=_float(data.get("y")),
        style=_parse_text_style(data),
    )


def _parse_key_val_text_field(field_id: str, data: Mapping[str, object], common: dict) -> KeyValTextField:
    return KeyValTextField(
        **common,
        key_x=_float(data.get("keyX")),
        val_x=_float(data.get("valX")),
        y=_float(data.get("y")),
        style=_parse_text_style(data),
    )


def _parse_key_val_list_field(field_id: str, data: Mapping[str, object], common: dict) -> KeyValListField:
    spec_raw = data.get("keyValSpec")
    if spec_raw is None:
        raise FieldDataError(f"fields.{field_id}.keyValSpec is required")
    spec_map = _expect_mapping(spec_raw, field_name=f"fields.{field_id}.keyValSpec")
    key_val_spec = _parse_key_val_text_field(
        f"{field_id}.keyValSpec",
        spec_map,
        {"field_id": f"{field_id}.keyValSpec"},
    )
    extras_raw = data.get("additionalElements", [])
    if not isinstance(extras_raw, list):
        raise FieldDataError(f"fields.{field_id}.additionalElements must be a list")
    extras = tuple(
        parse_field(f"{field_id}.additionalElements[{i}]", item) for i, item in enumerate(extras_raw)
    )
    return KeyValListField(
        **common,
        y=_float(data.get("y")),
        y_incr=_float(data.get("yIncr")),
        key_val_spec=key_val_spec,
        additional_elements=extras,
    )


def _parse_image_field(field_id: str, data: Mapping[str, object], common: dict) -> ImageField:
    credit_raw = data.get("credit")
    credit: TextField | None = None
    if credit_raw:
        credit_map = _expect_mapping(credit_raw, field_name=f"fields.{field_id}.credit")
        credit = _parse_text_field(f"{field_id}.credit", credit_map, {"field_id": f"{field_id}.credit"})
    return ImageField(
        **common,
        x=_float(data.get("x")),
        y=_float(data.get("y")),
        width=_float(data.get("width")),
        height=_float(data.get("height")),
        credit=credit,
    )


def _parse_multi_image_field(field_id: str, data: Mapping[str, object], common: dict) -> MultiImageField:
    specs_raw = data.get("specs", [])
    if not isinstance(specs_raw, list):
        raise FieldDataError(f"fields.{field_id}.specs must be a list")
    rows: list[tuple[ImageField, ...]] = []
    for row_idx, row in enumerate(specs_raw):
        if not isinstance(row, list):
            raise FieldDataError(f"fields.{field_id}.specs[{row_idx}] must be a list")
        specs: list[ImageField] = []
        for i, item in enumerate(row):
            spec_map = _expect_mapping(item, field_name=f"fields.{field_id}.specs[{row_idx}][{i}]")
            spec_id = str(spec_map.get("id") or f"{field_id}.{i}")
            specs.append(_parse_image_field(spec_id, spec_map, {"field_id": spec_id}))
        rows.append(tuple(specs))
    return MultiImageField(**common, specs=tuple(rows))


def _parse_svg_field(field_id: str, data: Mapping[str, object], common: dict) -> SvgField:
    return SvgField(
        **common,
        x=_float(data.get("x")),
        y=_float(data.get("y")),
        width=_float(data.get("width")),
        height=_float(data.get("height")),
    )


def _parse_color_scheme_field(field_id: str, data: Mapping[str, object], common: dict) -> ColorSchemeField:
    return ColorSchemeField(**common)


_FIELD_PARSERS = {
    "color": _parse_color_field,
    "line": _parse_line_field,
    "text": _parse_text_field,
    "key-val-text": _parse_key_val_text_field,
    "key-val-list": _parse_key_val_list_field,
    "image": _parse_image_field,
    "multi-image": _parse_multi_image_field,
    "svg": _parse_svg_field,
    "color-scheme": _parse_color_scheme_field,
}


def _parse_text_style(data: Mapping[str, object]) -> TextStyle:
    return TextStyle(
        font=_opt_str(data.get("font")),
        font_family=_opt_str(data.get("fontFamily")),
        font_size=None if data.get("fontSize") is None else float(data["fontSize"]),  # type: ignore[arg-type]
        color=_opt_str(data.get("color")),
        prefix=_opt_str(data.get("prefix")),
        wrap_at=None if data.get("wrapAt") is None else float(data["wrapAt"]),  # type: ignore[arg-type]
        text_align=_opt_str(data.get("textAlign")),
    )


def _parse_choice_index(raw: object, *, field_name: str) -> ChoiceIndex | None:
    if raw is None:
        return None
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if isinstance(raw, (list, tuple)) and all(isinstance(i, int) and not isinstance(i, bool) for i in raw):
        return tuple(raw)
    raise FieldDataError(f"{field_name} must be an integer or a list of integers")


def _expect_mapping(raw: object, *, field_name: str) -> Mapping[str, object]:
    if not isinstance(raw, Mapping):
        raise FieldDataError(f"{field_name} must be an object")
    return raw


def _float(raw: object, *, default: float = 0.0) -> float:
    if raw is None:
        return default
    return float(raw)  # type: ignore[arg-type]


def _opt_str(raw: object) -> str | None:
    return None if raw is None else str(raw)
