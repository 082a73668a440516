from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import replace
import logging

from .collaborators import AsyncImageFetcher, AsyncSvgLoader, ImageFetcher, SvgLoader
from .color_schemes import build_color_schemes
from .errors import ConfigurationError, ResourceResolutionError
from .expanders import expand_field, field_requires_data
from .primitives import ImagePrimitive, Primitive, ResourcePrimitive, SvgPrimitive
from .schema import Card, ColorSchemeField, FieldSpec, Template
from .session import RenderSession

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT_FETCHES = 4


def partition_fields(fields: Iterable[FieldSpec]) -> tuple[list[FieldSpec], list[FieldSpec]]:
    """Split fields into (color-scheme fields, everything else), both in declaration order."""

    scheme_fields: list[FieldSpec] = []
    other_fields: list[FieldSpec] = []
    for field in fields:
        if isinstance(field, ColorSchemeField):
            scheme_fields.append(field)
        else:
            other_fields.append(field)
    return scheme_fields, other_fields


class DrawingPipeline:
    """Compiles a template and a card into an ordered list of primitive drawing instructions.

    `build` resolves image/svg resources inline, field by field. `build_async` expands every
    field first, then fetches resources concurrently across fields (bounded by
    `max_concurrent_fetches`) but one at a time within a field, and assembles the output in
    template declaration order.
    Both fail fast: the first error is raised unchanged and no partial list is returned.
    """

    def __init__(
        self,
        image_fetcher: ImageFetcher | None = None,
        svg_loader: SvgLoader | None = None,
        *,
        max_concurrent_fetches: int = DEFAULT_MAX_CONCURRENT_FETCHES,
    ) -> None:
        if max_concurrent_fetches <= 0:
            raise ValueError("max_concurrent_fetches must be > 0")
        self._image_fetcher = image_fetcher
        self._svg_loader = svg_loader
        self._max_concurrent_fetches = max_concurrent_fetches

    def open_session(self, template: Template, card: Card) -> tuple[RenderSession, list[FieldSpec]]:
        scheme_fields, other_fields = partition_fields(template.ordered_fields())
        session = RenderSession(template=template, card=card)
        session.color_schemes = build_color_schemes(scheme_fields, card)
        return session, other_fields

    def build(self, template: Template, card: Card) -> list[Primitive]:
        session, fields = self.open_session(template, card)
        out: list[Primitive] = []
        for field in fields:
            primitives = self._expand(field, session)
            for primitive in primitives:
                if isinstance(primitive, (ImagePrimitive, SvgPrimitive)) and primitive.request is not None:
                    primitive = _attach(primitive, self._resolve_resource(primitive))
                out.append(primitive)
        LOGGER.info("built %d primitives for template `%s`", len(out), template.name)
        return out

    async def build_async(self, template: Template, card: Card) -> list[Primitive]:
        session, fields = self.open_session(template, card)
        expanded: list[Primitive] = []
        pending_by_field: list[dict[int, ResourcePrimitive]] = []
        resources: dict[int, object] = {}
        for field in fields:
            start = len(expanded)
            expanded.extend(self._expand(field, session))
            pending: dict[int, ResourcePrimitive] = {}
            for index in range(start, len(expanded)):
                primitive = expanded[index]
                if not isinstance(primitive, (ImagePrimitive, SvgPrimitive)) or primitive.request is None:
                    continue
                if primitive.request.inline is not None:
                    resources[index] = primitive.request.inline
                else:
                    pending[index] = primitive
            if pending:
                pending_by_field.append(pending)

        # Raises before any fetch is launched when a request can never succeed.
        for pending in pending_by_field:
            for primitive in pending.values():
                self._check_fetchable(primitive)

        resources.update(await self._fetch_all(pending_by_field))
        out = [
            _attach(primitive, resources[index]) if index in resources else primitive  # type: ignore[arg-type]
            for index, primitive in enumerate(expanded)
        ]
        LOGGER.info(
            "built %d primitives for template `%s` (%d fetched)",
            len(out),
            template.name,
            sum(len(pending) for pending in pending_by_field),
        )
        return out

    def _expand(self, field: FieldSpec, session: RenderSession) -> list[Primitive]:
        value = session.resolve_value(field) if field_requires_data(field) else None
        primitives = expand_field(field, value, session)
        LOGGER.debug("expanded field `%s` (%s) into %d primitives", field.field_id, field.field_type, len(primitives))
        return primitives

    def _check_fetchable(self, primitive: ResourcePrimitive) -> str:
        request = primitive.request
        assert request is not None
        if request.url is None:
            raise ResourceResolutionError(f"No url provided for {request.kind} {_describe(primitive)}")
        if request.kind == "image" and self._image_fetcher is None:
            raise ConfigurationError("image fetcher not set")
        if request.kind == "svg" and self._svg_loader is None:
            raise ConfigurationError("svg loader not set")
        return request.url

    def _resolve_resource(self, primitive: ResourcePrimitive) -> object:
        request = primitive.request
        assert request is not None
        if request.inline is not None:
            return request.inline
        url = self._check_fetchable(primitive)
        LOGGER.debug("fetching %s `%s`", request.kind, url)
        if request.kind == "image":
            return self._image_fetcher.fetch(url)  # type: ignore[union-attr]
        return self._svg_loader.load_from_url(url)  # type: ignore[union-attr]

    async def _resolve_resource_async(self, primitive: ResourcePrimitive) -> object:
        request = primitive.request
        assert request is not None
        url = self._check_fetchable(primitive)
        LOGGER.debug("fetching %s `%s`", request.kind, url)
        if request.kind == "image":
            fetcher = self._image_fetcher
            if isinstance(fetcher, AsyncImageFetcher):
                return await fetcher.fetch_async(url)
            return await asyncio.to_thread(fetcher.fetch, url)  # type: ignore[union-attr]
        loader = self._svg_loader
        if isinstance(loader, AsyncSvgLoader):
            return await loader.load_from_url_async(url)
        return await asyncio.to_thread(loader.load_from_url, url)  # type: ignore[union-attr]

    async def _fetch_all(self, pending_by_field: list[dict[int, ResourcePrimitive]]) -> dict[int, object]:
        """Fetch every field's resources, one field per task and one request at a time within a field."""

        if not pending_by_field:
            return {}
        semaphore = asyncio.Semaphore(self._max_concurrent_fetches)
        failures: list[BaseException] = []
        results: dict[int, object] = {}

        async def _fetch_field(pending: dict[int, ResourcePrimitive]) -> None:
            async with semaphore:
                for index, primitive in pending.items():
                    if failures:
                        return
                    try:
                        results[index] = await self._resolve_resource_async(primitive)
                    except Exception as exc:  # noqa: BLE001
                        failures.append(exc)
                        raise

        tasks = [asyncio.create_task(_fetch_field(pending)) for pending in pending_by_field]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        if failures:
            LOGGER.debug("resource fetch failed; discarding %d fetched results", len(results))
            raise failures[0]
        return results


def _attach(primitive: ResourcePrimitive, resource: object) -> ResourcePrimitive:
    return replace(primitive, resource=resource, request=None)


def _describe(primitive: ResourcePrimitive) -> str:
    if isinstance(primitive, ImagePrimitive):
        return f"`{primitive.id}`"
    return f"at ({primitive.x}, {primitive.y})"
