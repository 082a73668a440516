from __future__ import annotations

from collections.abc import Mapping
from typing import Callable

from .collaborators import ImageFetcher, SvgLoader, TemplateSupplier
from .errors import ConfigurationError, FieldDataError, FieldLookupError
from .pipeline import DrawingPipeline
from .primitives import Primitive
from .renderer import _close_awaitable
from .schema import Card, DataEntry, FieldSpec, ImageField, Template, canonical_field_type
from .values import resolve_value


ChangeCallback = Callable[[], None]


class CardWrapper:
    """Read/write access to one card's field data, checked against its template.

    Edits go through `set_data_attr`, which notifies callbacks registered with `on_change`.
    """

    def __init__(
        self,
        card: Card,
        template: Template,
        *,
        image_fetcher: ImageFetcher | None = None,
        svg_loader: SvgLoader | None = None,
    ) -> None:
        self._card = card
        self._template = template
        self._change_callbacks: list[ChangeCallback] = []
        self._pipeline = DrawingPipeline(image_fetcher, svg_loader)

    @classmethod
    def new_instance(
        cls,
        card: Card,
        template_supplier: TemplateSupplier | None,
        **kwargs: object,
    ) -> "CardWrapper":
        if template_supplier is None:
            raise ConfigurationError("Template supplier not set")
        template = template_supplier.supply(card.template_name)
        if not isinstance(template, Template):
            _close_awaitable(template)
            raise ConfigurationError("CardWrapper requires a synchronous template supplier")
        return cls(card, template, **kwargs)  # type: ignore[arg-type]

    @property
    def card(self) -> Card:
        return self._card

    @property
    def template(self) -> Template:
        return self._template

    @property
    def width(self) -> int:
        return self._template.width

    @property
    def height(self) -> int:
        return self._template.height

    def on_change(self, callback: ChangeCallback) -> None:
        self._change_callbacks.append(callback)

    def check_field_name_valid(self, name: str, field_type: str) -> bool:
        spec = self._template.fields.get(name)
        if spec is None or spec.field_type != canonical_field_type(field_type):
            raise FieldLookupError(f"invalid field name: `{name}` is not a `{field_type}` field")
        return True

    def set_data_attr(self, field_name: str, attr: str, value: object) -> None:
        """Set one attribute of a field's data value, e.g. `zoomLevel` of an image field."""

        self._template.get_field(field_name)
        entry = self._card.data.get(field_name) or DataEntry()
        current = entry.value
        if current is None:
            current = {}
        if not isinstance(current, Mapping):
            raise FieldDataError(f"data for field `{field_name}` is not an object; cannot set `{attr}`")
        self._card.data[field_name] = DataEntry(value={**current, attr: value}, choice_index=entry.choice_index)
        self._change_event()

    def get_data_attr(self, field_name: str, attr: str, default: object = None) -> object:
        """Attribute of a field's card data, or `default` when it is absent or None."""

        entry = self._card.data.get(field_name)
        value = entry.value if entry is not None else None
        attr_value = value.get(attr) if isinstance(value, Mapping) else None
        return default if attr_value is None else attr_value

    def get_field_choices(self, field_id: str) -> list[object] | None:
        return self._card.choices.get(field_id)

    def get_image_location(self, field_name: str) -> dict[str, float]:
        self.check_field_name_valid(field_name, "image")
        spec = self._template.fields[field_name]
        assert isinstance(spec, ImageField)
        return {"x": spec.x, "y": spec.y, "width": spec.width, "height": spec.height}

    def field_for_id(self, field_id: str) -> FieldSpec:
        return self._template.get_field(field_id)

    def fields(self) -> list[FieldSpec]:
        return self._template.ordered_fields()

    def editable_fields(self) -> list[FieldSpec]:
        return self._template.editable_fields()

    def image_fields(self) -> list[ImageField]:
        return self._template.image_fields()

    def get_field_value(self, field: FieldSpec | str) -> object | None:
        spec = self.field_for_id(field) if isinstance(field, str) else field
        return resolve_value(spec, self._card)

    def build_drawing_data(self) -> list[Primitive]:
        return self._pipeline.build(self._template, self._card)

    def _change_event(self) -> None:
        for callback in list(self._change_callbacks):
            callback()
