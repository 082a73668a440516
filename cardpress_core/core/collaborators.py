from __future__ import annotations

from collections.abc import Awaitable, Sequence
from typing import Protocol, Union, runtime_checkable

from .primitives import Primitive
from .schema import Template


class TemplateSupplier(Protocol):
    """Looks up a template by name; raises LookupError for unknown names.

    `supply` may be a plain method or a coroutine function.
    """

    def supply(self, template_name: str) -> Union[Template, Awaitable[Template]]:
        ...


class DrawingSurface(Protocol):
    width: int
    height: int


class CanvasSupplier(Protocol):
    def supply(self, width: int, height: int) -> DrawingSurface:
        ...


class ImageFetcher(Protocol):
    def fetch(self, url: str) -> object:
        ...


@runtime_checkable
class AsyncImageFetcher(Protocol):
    async def fetch_async(self, url: str) -> object:
        ...


class SvgLoader(Protocol):
    def load_from_url(self, url: str) -> object:
        ...


@runtime_checkable
class AsyncSvgLoader(Protocol):
    async def load_from_url_async(self, url: str) -> object:
        ...


class PrimitivePainter(Protocol):
    """Renderer-side contract: paints a complete, ordered primitive list onto a surface."""

    def paint(self, surface: DrawingSurface, primitives: Sequence[Primitive]) -> None:
        ...
