from __future__ import annotations

from dataclasses import dataclass, field

from .color_schemes import ColorSchemeTable, resolve_color
from .schema import Card, FieldSpec, Template
from .values import resolve_value


@dataclass
class RenderSession:
    """State for exactly one build: the template, the card and the color schemes built for it."""

    template: Template
    card: Card
    color_schemes: ColorSchemeTable = field(default_factory=dict)

    def resolve_value(self, spec: FieldSpec) -> object | None:
        return resolve_value(spec, self.card)

    def resolve_color(self, raw: str | None) -> str | None:
        return resolve_color(self.color_schemes, raw)
