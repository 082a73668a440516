from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

import torch
from PIL import Image

from cardpress_core.core.primitives import ColorPrimitive, ImagePrimitive, LinePrimitive, SvgPrimitive, TextPrimitive
from cardpress_core.render.painter import TensorPrimitivePainter, cover_crop_box, parse_font
from cardpress_core.render.surface import DrawingSurface, TensorCanvasSupplier, parse_color
from cardpress_core.render.svg import SvgDocument, SvgEllipse, SvgRect


def _rgb(surface: DrawingSurface, x: int, y: int) -> list[int]:
    return surface.pixels[y, x, :3].tolist()


def _lowest_dark_row(surface: DrawingSurface) -> int:
    dark_rows = torch.nonzero((surface.pixels[:, :, :3] < 128).any(dim=2).any(dim=1))
    return int(dark_rows.max()) if dark_rows.numel() else -1


class DrawingSurfaceTests(unittest.TestCase):
    def test_supplier_creates_background_filled_surface(self) -> None:
        surface = TensorCanvasSupplier(background="#000000").supply(3, 2)

        self.assertEqual(tuple(surface.pixels.shape), (2, 3, 4))
        self.assertEqual(surface.pixels[1, 2].tolist(), [0, 0, 0, 255])

    def test_parse_color_accepts_css_forms(self) -> None:
        self.assertEqual(parse_color("#f00"), (255, 0, 0, 255))
        self.assertEqual(parse_color("#00ff0080"), (0, 255, 0, 128))
        self.assertEqual(parse_color("none"), (0, 0, 0, 0))
        self.assertEqual(parse_color(None), (0, 0, 0, 255))
        with self.assertRaises(ValueError):
            parse_color("not-a-color")

    def test_save_writes_png(self) -> None:
        surface = DrawingSurface(width=5, height=4)
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "card.png"
            surface.save(path)
            with Image.open(path) as image:
                self.assertEqual(image.size, (5, 4))


class TensorPrimitivePainterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.painter = TensorPrimitivePainter()

    def test_color_block(self) -> None:
        surface = DrawingSurface(width=20, height=20)

        self.painter.paint(surface, [ColorPrimitive(x=2, y=3, width=4, height=5, color="#ff0000")])

        self.assertEqual(_rgb(surface, 4, 5), [255, 0, 0])
        self.assertEqual(_rgb(surface, 10, 10), [255, 255, 255])

    def test_later_primitives_paint_over_earlier_ones(self) -> None:
        surface = DrawingSurface(width=10, height=10)

        self.painter.paint(
            surface,
            [
                ColorPrimitive(x=0, y=0, width=10, height=10, color="#ff0000"),
                ColorPrimitive(x=0, y=0, width=5, height=10, color="#0000ff"),
            ],
        )

        self.assertEqual(_rgb(surface, 2, 2), [0, 0, 255])
        self.assertEqual(_rgb(surface, 7, 2), [255, 0, 0])

    def test_line(self) -> None:
        surface = DrawingSurface(width=20, height=20)

        self.painter.paint(surface, [LinePrimitive(start_x=0, start_y=5, end_x=19, end_y=5, width=1, color="#000000")])

        self.assertEqual(_rgb(surface, 10, 5), [0, 0, 0])
        self.assertEqual(_rgb(surface, 10, 15), [255, 255, 255])

    def test_text_draws_and_wraps(self) -> None:
        single = DrawingSurface(width=200, height=120)
        wrapped = DrawingSurface(width=200, height=120)
        words = "alpha beta gamma delta"

        self.painter.paint(single, [TextPrimitive(x=2, y=2, text=words, font="16px", color="#000000")])
        self.painter.paint(wrapped, [TextPrimitive(x=2, y=2, text=words, font="16px", color="#000000", wrap_at=30)])

        self.assertGreaterEqual(_lowest_dark_row(single), 0)
        self.assertGreater(_lowest_dark_row(wrapped), _lowest_dark_row(single))

    def test_empty_text_paints_nothing(self) -> None:
        surface = DrawingSurface(width=10, height=10)

        self.painter.paint(surface, [TextPrimitive(x=0, y=0, text="", font="10px")])

        self.assertEqual(_lowest_dark_row(surface), -1)

    def test_image_is_cover_scaled_into_its_box(self) -> None:
        surface = DrawingSurface(width=10, height=10)
        art = Image.new("RGBA", (20, 20), (255, 0, 0, 255))

        self.painter.paint(surface, [ImagePrimitive(x=0, y=0, width=4, height=4, id="art", resource=art)])

        self.assertEqual(_rgb(surface, 2, 2), [255, 0, 0])
        self.assertEqual(_rgb(surface, 6, 6), [255, 255, 255])

    def test_image_flip_horizontal(self) -> None:
        surface = DrawingSurface(width=4, height=4)
        art = Image.new("RGBA", (4, 4), (255, 0, 0, 255))
        art.paste((0, 0, 255, 255), (2, 0, 4, 4))

        self.painter.paint(surface, [ImagePrimitive(x=0, y=0, width=4, height=4, id="art", resource=art, flip_horiz=True)])

        left = _rgb(surface, 0, 1)
        self.assertGreater(left[2], 200)
        self.assertLess(left[0], 50)

    def test_svg_document_is_rasterized_at_target_size(self) -> None:
        surface = DrawingSurface(width=10, height=10)
        document = SvgDocument.from_markup(
            '<svg width="10" height="10" viewBox="0 0 10 10"><rect x="0" y="0" width="10" height="10" fill="#00ff00"/></svg>'
        )

        self.painter.paint(surface, [SvgPrimitive(x=0, y=0, width=8, height=8, resource=document)])

        self.assertEqual(_rgb(surface, 4, 4), [0, 255, 0])
        self.assertEqual(_rgb(surface, 9, 9), [255, 255, 255])

    def test_unresolved_resources_are_skipped(self) -> None:
        surface = DrawingSurface(width=4, height=4)

        self.painter.paint(surface, [ImagePrimitive(x=0, y=0, width=4, height=4, id="art")])

        self.assertEqual(_rgb(surface, 1, 1), [255, 255, 255])


class PainterHelperTests(unittest.TestCase):
    def test_parse_font_shorthand_and_overrides(self) -> None:
        self.assertEqual(parse_font("bold 12px Arial").size_px, 12.0)
        self.assertEqual(parse_font("bold 12px Arial").family, "Arial")
        self.assertEqual(parse_font("10px", font_size=18).size_px, 18.0)
        self.assertEqual(parse_font("10px Arial", font_family="Georgia").family, "Georgia")

    def test_cover_crop_box_centers_zooms_and_pans(self) -> None:
        self.assertEqual(cover_crop_box(200, 100, 50, 50), (50.0, 0.0, 150.0, 100.0))
        self.assertEqual(cover_crop_box(100, 200, 50, 50), (0.0, 50.0, 100.0, 150.0))
        self.assertEqual(cover_crop_box(200, 100, 50, 50, zoom_level=10), (50.0, 0.0, 140.0, 90.0))
        self.assertEqual(cover_crop_box(200, 100, 50, 50, pan_x=30), (60.0, 0.0, 160.0, 100.0))


class SvgDocumentTests(unittest.TestCase):
    def test_parses_shapes_styles_and_viewbox(self) -> None:
        document = SvgDocument.from_markup(
            '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 20 10">'
            '<rect x="1" y="2" width="3" height="4" style="fill: #112233; opacity: 0.5"/>'
            '<circle cx="10" cy="5" r="2" fill="none" stroke="red" stroke-width="2"/>'
            "</svg>"
        )

        self.assertEqual((document.width, document.height), (20.0, 10.0))
        rect, circle = document.shapes
        self.assertIsInstance(rect, SvgRect)
        self.assertEqual(rect.style.fill, (17, 34, 51, 127))
        self.assertIsInstance(circle, SvgEllipse)
        self.assertIsNone(circle.style.fill)
        self.assertEqual(circle.style.stroke, (255, 0, 0, 255))
        self.assertEqual(circle.style.stroke_width, 2.0)

    def test_rejects_non_svg_root(self) -> None:
        with self.assertRaises(ValueError):
            SvgDocument.from_markup("<html/>")


if __name__ == "__main__":
    unittest.main()
