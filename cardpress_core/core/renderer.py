from __future__ import annotations

import inspect
import logging

from .collaborators import CanvasSupplier, DrawingSurface, ImageFetcher, PrimitivePainter, SvgLoader, TemplateSupplier
from .errors import ConfigurationError
from .pipeline import DEFAULT_MAX_CONCURRENT_FETCHES, DrawingPipeline
from .primitives import Primitive
from .schema import Card, FieldSpec, ImageField, Template

LOGGER = logging.getLogger(__name__)


class CardRenderer:
    """Template lookup, compilation and painting for one card at a time.

    The surface is supplied and painted only after the full primitive list is built, so a
    failed build never leaves a partially drawn surface behind. Callers must not share one
    surface between concurrent draws.
    """

    def __init__(
        self,
        template_supplier: TemplateSupplier | None = None,
        canvas_supplier: CanvasSupplier | None = None,
        image_fetcher: ImageFetcher | None = None,
        svg_loader: SvgLoader | None = None,
        painter: PrimitivePainter | None = None,
        *,
        max_concurrent_fetches: int = DEFAULT_MAX_CONCURRENT_FETCHES,
    ) -> None:
        self._template_supplier = template_supplier
        self._canvas_supplier = canvas_supplier
        self._painter = painter
        self._pipeline = DrawingPipeline(
            image_fetcher,
            svg_loader,
            max_concurrent_fetches=max_concurrent_fetches,
        )

    @property
    def pipeline(self) -> DrawingPipeline:
        return self._pipeline

    def load_template(self, card: Card) -> Template:
        supplier = self._require_template_supplier()
        result = supplier.supply(card.template_name)
        if inspect.isawaitable(result):
            _close_awaitable(result)
            raise ConfigurationError("template supplier is asynchronous; use the async render methods")
        return result

    async def load_template_async(self, card: Card) -> Template:
        supplier = self._require_template_supplier()
        result = supplier.supply(card.template_name)
        if inspect.isawaitable(result):
            result = await result
        return result

    def fields(self, card: Card) -> list[FieldSpec]:
        return self.load_template(card).ordered_fields()

    def editable_fields(self, card: Card) -> list[FieldSpec]:
        return self.load_template(card).editable_fields()

    def image_fields(self, card: Card) -> list[ImageField]:
        return self.load_template(card).image_fields()

    def build(self, card: Card) -> list[Primitive]:
        return self._pipeline.build(self.load_template(card), card)

    async def build_async(self, card: Card) -> list[Primitive]:
        template = await self.load_template_async(card)
        return await self._pipeline.build_async(template, card)

    def draw(self, card: Card) -> DrawingSurface:
        template = self.load_template(card)
        primitives = self._pipeline.build(template, card)
        return self._paint(template, primitives)

    async def draw_async(self, card: Card) -> DrawingSurface:
        template = await self.load_template_async(card)
        primitives = await self._pipeline.build_async(template, card)
        return self._paint(template, primitives)

    def _paint(self, template: Template, primitives: list[Primitive]) -> DrawingSurface:
        if self._canvas_supplier is None:
            raise ConfigurationError("canvas supplier not set")
        if self._painter is None:
            raise ConfigurationError("painter not set")
        surface = self._canvas_supplier.supply(template.width, template.height)
        self._painter.paint(surface, primitives)
        LOGGER.debug("painted %d primitives for template `%s`", len(primitives), template.name)
        return surface

    def _require_template_supplier(self) -> TemplateSupplier:
        if self._template_supplier is None:
            raise ConfigurationError("template supplier not set")
        return self._template_supplier


def _close_awaitable(result: object) -> None:
    close = getattr(result, "close", None)
    if callable(close):
        close()
