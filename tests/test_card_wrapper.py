from __future__ import annotations

import inspect
import unittest

from cardpress_core.core.card_wrapper import CardWrapper
from cardpress_core.core.errors import ConfigurationError, FieldDataError, FieldLookupError
from cardpress_core.core.schema import Card, DataEntry, Template
from cardpress_core.suppliers.templates import InMemoryTemplateSupplier


def _template() -> Template:
    return Template.from_dict(
        {
            "width": 200,
            "height": 300,
            "fields": {
                "title": {"type": "text", "label": "Title", "x": 10, "y": 10},
                "hero": {"type": "image", "label": "Art", "x": 10, "y": 40, "width": 180, "height": 120},
                "rule": {"type": "line", "startX": 0, "startY": 30, "endX": 200, "endY": 30},
            },
        },
        name="hero",
    )


class _CoroutineTemplateSupplier:
    def __init__(self) -> None:
        self.last = None

    def supply(self, name: str):
        async def _load() -> Template:
            return _template()

        self.last = _load()
        return self.last


class CardWrapperTests(unittest.TestCase):
    def setUp(self) -> None:
        self.card = Card(
            template_name="hero",
            data={"hero": DataEntry(value={"url": "a.png"}, choice_index=None)},
            choices={"hero": [{"url": "x.png"}, {"url": "y.png"}]},
            default_data={"title": DataEntry(value={"text": "Default title"})},
        )
        self.wrapper = CardWrapper.new_instance(self.card, InMemoryTemplateSupplier({"hero": _template()}))

    def test_new_instance_requires_a_template_supplier(self) -> None:
        with self.assertRaises(ConfigurationError):
            CardWrapper.new_instance(self.card, None)

    def test_new_instance_closes_coroutines_from_async_suppliers(self) -> None:
        supplier = _CoroutineTemplateSupplier()

        with self.assertRaises(ConfigurationError):
            CardWrapper.new_instance(self.card, supplier)

        self.assertEqual(inspect.getcoroutinestate(supplier.last), inspect.CORO_CLOSED)

    def test_dimensions_come_from_the_template(self) -> None:
        self.assertEqual((self.wrapper.width, self.wrapper.height), (200, 300))

    def test_check_field_name_valid(self) -> None:
        self.assertTrue(self.wrapper.check_field_name_valid("hero", "image"))
        self.assertTrue(self.wrapper.check_field_name_valid("hero", "labeled-choice-image"))
        with self.assertRaises(FieldLookupError):
            self.wrapper.check_field_name_valid("hero", "text")
        with self.assertRaises(LookupError):
            self.wrapper.check_field_name_valid("missing", "image")

    def test_set_data_attr_merges_and_notifies(self) -> None:
        calls: list[int] = []
        self.wrapper.on_change(lambda: calls.append(1))

        self.wrapper.set_data_attr("hero", "zoomLevel", 0)

        self.assertEqual(self.card.data["hero"].value, {"url": "a.png", "zoomLevel": 0})
        self.assertEqual(calls, [1])
        self.assertEqual(self.wrapper.get_data_attr("hero", "zoomLevel", 50), 0)

    def test_set_data_attr_creates_entry_and_keeps_choice_index(self) -> None:
        self.card.data["hero"] = DataEntry(choice_index=1)

        self.wrapper.set_data_attr("hero", "panX", 12)

        self.assertEqual(self.card.data["hero"], DataEntry(value={"panX": 12}, choice_index=1))
        self.assertEqual(self.wrapper.get_field_value("hero"), {"url": "y.png", "panX": 12})

    def test_set_data_attr_validates_field_and_value_shape(self) -> None:
        with self.assertRaises(FieldLookupError):
            self.wrapper.set_data_attr("missing", "x", 1)
        self.card.data["title"] = DataEntry(value="plain text")
        with self.assertRaises(FieldDataError):
            self.wrapper.set_data_attr("title", "text", "x")

    def test_get_data_attr_returns_default_only_when_absent(self) -> None:
        self.assertEqual(self.wrapper.get_data_attr("hero", "rotate", 90), 90)
        self.assertEqual(self.wrapper.get_data_attr("title", "text", "none"), "none")

    def test_lookups(self) -> None:
        self.assertEqual(self.wrapper.get_field_choices("hero"), [{"url": "x.png"}, {"url": "y.png"}])
        self.assertIsNone(self.wrapper.get_field_choices("title"))
        self.assertEqual(self.wrapper.get_image_location("hero"), {"x": 10.0, "y": 40.0, "width": 180.0, "height": 120.0})
        self.assertEqual(self.wrapper.field_for_id("rule").field_type, "line")
        self.assertEqual([f.field_id for f in self.wrapper.fields()], ["title", "hero", "rule"])
        self.assertEqual([f.field_id for f in self.wrapper.editable_fields()], ["title", "hero"])
        self.assertEqual([f.field_id for f in self.wrapper.image_fields()], ["hero"])

    def test_field_value_uses_default_data(self) -> None:
        self.assertEqual(self.wrapper.get_field_value("title"), {"text": "Default title"})
        self.assertEqual(self.wrapper.get_field_value(self.wrapper.field_for_id("title")), {"text": "Default title"})

    def test_build_drawing_data_with_inline_image(self) -> None:
        inline = object()
        self.card.data["hero"] = DataEntry(value={"image": inline})

        out = self.wrapper.build_drawing_data()

        self.assertEqual([p.kind for p in out], ["text", "image", "line"])
        self.assertEqual(out[0].text, "Default title")
        self.assertIs(out[1].resource, inline)


if __name__ == "__main__":
    unittest.main()
