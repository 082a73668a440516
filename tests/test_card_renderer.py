from __future__ import annotations

import unittest

from cardpress_core.core.errors import ConfigurationError, ResourceResolutionError, TemplateLookupError
from cardpress_core.core.renderer import CardRenderer
from cardpress_core.core.schema import Card, DataEntry, Template
from cardpress_core.suppliers.templates import InMemoryTemplateSupplier


def _template() -> Template:
    return Template.from_dict(
        {
            "width": 120,
            "height": 80,
            "fields": {
                "bg": {"type": "color", "x": 0, "y": 0, "width": 120, "height": 80},
                "title": {"type": "text", "label": "Title", "x": 4, "y": 4, "font": "10px"},
                "art": {"type": "image", "label": "Art", "x": 0, "y": 20, "width": 60, "height": 60},
            },
        },
        name="basic",
    )


class _FakeSurface:
    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height


class _FakeCanvasSupplier:
    def __init__(self) -> None:
        self.supplied: list[tuple[int, int]] = []

    def supply(self, width: int, height: int) -> _FakeSurface:
        self.supplied.append((width, height))
        return _FakeSurface(width, height)


class _FakePainter:
    def __init__(self) -> None:
        self.painted: list[tuple[_FakeSurface, list]] = []

    def paint(self, surface, primitives) -> None:
        self.painted.append((surface, list(primitives)))


class _FakeImageFetcher:
    def fetch(self, url: str) -> str:
        return f"image:{url}"


class _AsyncTemplateSupplier:
    def __init__(self, template: Template) -> None:
        self._template = template

    async def supply(self, template_name: str) -> Template:
        if template_name != self._template.name:
            raise TemplateLookupError(f"Template not found: {template_name}")
        return self._template


def _card(**data: object) -> Card:
    return Card(template_name="basic", data={k: DataEntry(value=v) for k, v in data.items()})


class CardRendererTests(unittest.TestCase):
    def setUp(self) -> None:
        self.canvas = _FakeCanvasSupplier()
        self.painter = _FakePainter()
        self.renderer = CardRenderer(
            template_supplier=InMemoryTemplateSupplier({"basic": _template()}),
            canvas_supplier=self.canvas,
            image_fetcher=_FakeImageFetcher(),
            painter=self.painter,
        )

    def test_draw_paints_full_primitive_list_on_template_sized_surface(self) -> None:
        card = _card(bg={"color": "#000"}, title={"text": "Hi"}, art={"url": "art.png"})

        surface = self.renderer.draw(card)

        self.assertEqual(self.canvas.supplied, [(120, 80)])
        self.assertEqual(len(self.painter.painted), 1)
        painted_surface, primitives = self.painter.painted[0]
        self.assertIs(painted_surface, surface)
        self.assertEqual([p.kind for p in primitives], ["color", "text", "image"])
        self.assertEqual(primitives[2].resource, "image:art.png")

    def test_failed_build_never_requests_a_surface(self) -> None:
        card = _card(bg={"color": "#000"}, title={"text": "Hi"})

        with self.assertRaises(ResourceResolutionError):
            self.renderer.draw(card)

        self.assertEqual(self.canvas.supplied, [])
        self.assertEqual(self.painter.painted, [])

    def test_unknown_template_propagates_lookup_error(self) -> None:
        with self.assertRaises(LookupError):
            self.renderer.build(Card(template_name="missing"))

    def test_missing_collaborators_are_configuration_errors(self) -> None:
        with self.assertRaises(ConfigurationError):
            CardRenderer().build(_card())

        no_canvas = CardRenderer(template_supplier=InMemoryTemplateSupplier({"basic": _template()}), painter=self.painter)
        with self.assertRaises(ConfigurationError):
            no_canvas.draw(_card(bg={"color": "#000"}, art={"image": object()}))

    def test_field_listings_come_from_the_card_template(self) -> None:
        card = _card()

        self.assertEqual([f.field_id for f in self.renderer.fields(card)], ["bg", "title", "art"])
        self.assertEqual([f.field_id for f in self.renderer.editable_fields(card)], ["title", "art"])
        self.assertEqual([f.field_id for f in self.renderer.image_fields(card)], ["art"])

    def test_async_template_supplier_requires_async_methods(self) -> None:
        renderer = CardRenderer(template_supplier=_AsyncTemplateSupplier(_template()))

        with self.assertRaises(ConfigurationError):
            renderer.build(_card(bg={"color": "#000"}, art={"image": object()}))


class CardRendererAsyncTests(unittest.IsolatedAsyncioTestCase):
    async def test_draw_async_with_async_template_supplier(self) -> None:
        canvas = _FakeCanvasSupplier()
        painter = _FakePainter()
        renderer = CardRenderer(
            template_supplier=_AsyncTemplateSupplier(_template()),
            canvas_supplier=canvas,
            image_fetcher=_FakeImageFetcher(),
            painter=painter,
        )
        card = _card(bg={"color": "#fff"}, art={"url": "art.png"})

        await renderer.draw_async(card)

        self.assertEqual(canvas.supplied, [(120, 80)])
        self.assertEqual([p.kind for p in painter.painted[0][1]], ["color", "text", "image"])

    async def test_unknown_template_from_async_supplier(self) -> None:
        renderer = CardRenderer(template_supplier=_AsyncTemplateSupplier(_template()))

        with self.assertRaises(TemplateLookupError):
            await renderer.build_async(Card(template_name="missing"))


if __name__ == "__main__":
    unittest.main()
