from __future__ import annotations

from io import BytesIO
import json
from pathlib import Path
import tempfile
import unittest

import httpx
from PIL import Image

from cardpress_core.core.errors import ResourceResolutionError, TemplateLookupError
from cardpress_core.core.schema import Template
from cardpress_core.render.svg import SvgDocument
from cardpress_core.suppliers.images import HttpImageFetcher, LocalImageFetcher, RoutingImageFetcher
from cardpress_core.suppliers.svg import SvgDocumentLoader
from cardpress_core.suppliers.templates import DirectoryTemplateSupplier, InMemoryTemplateSupplier


_SVG = '<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"><rect width="10" height="10" fill="#00ff00"/></svg>'


def _png_bytes(color: tuple[int, int, int] = (255, 0, 0), size: tuple[int, int] = (6, 4)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


class TemplateSupplierTests(unittest.TestCase):
    def test_directory_supplier_loads_and_caches_by_name(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "basic.json").write_text(
                json.dumps({"width": 10, "height": 20, "fields": {"t": {"type": "text"}}}),
                encoding="utf-8",
            )
            supplier = DirectoryTemplateSupplier(root)

            first = supplier.supply("basic")
            second = supplier.supply("basic")

        self.assertIsInstance(first, Template)
        self.assertIs(first, second)
        self.assertEqual(first.name, "basic")
        self.assertEqual((first.width, first.height), (10, 20))

    def test_directory_supplier_rejects_unknown_and_path_like_names(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            supplier = DirectoryTemplateSupplier(td)

            with self.assertRaises(TemplateLookupError):
                supplier.supply("missing")
            with self.assertRaises(LookupError):
                supplier.supply("../etc/passwd")

    def test_in_memory_supplier(self) -> None:
        template = Template(name="mem", width=1, height=1)
        supplier = InMemoryTemplateSupplier()
        supplier.register(template)

        self.assertIs(supplier.supply("mem"), template)
        with self.assertRaises(TemplateLookupError):
            supplier.supply("other")


class LocalImageFetcherTests(unittest.TestCase):
    def test_reads_paths_and_file_urls(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "art.png"
            path.write_bytes(_png_bytes())
            fetcher = LocalImageFetcher()

            by_path = fetcher.fetch(str(path))
            by_url = fetcher.fetch(path.resolve().as_uri())

        self.assertEqual(by_path.size, (6, 4))
        self.assertEqual(by_path.mode, "RGBA")
        self.assertEqual(by_url.getpixel((0, 0)), (255, 0, 0, 255))

    def test_missing_or_undecodable_files_raise(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            junk = Path(td) / "junk.png"
            junk.write_text("not an image", encoding="utf-8")
            fetcher = LocalImageFetcher()

            with self.assertRaises(ResourceResolutionError):
                fetcher.fetch(str(Path(td) / "missing.png"))
            with self.assertRaises(ResourceResolutionError):
                fetcher.fetch(str(junk))


def _image_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/art.png":
        return httpx.Response(200, content=_png_bytes((0, 0, 255)), headers={"Content-Type": "image/png"})
    return httpx.Response(404)


class HttpImageFetcherTests(unittest.TestCase):
    def test_fetch_decodes_response_body(self) -> None:
        with httpx.Client(transport=httpx.MockTransport(_image_handler)) as client:
            image = HttpImageFetcher(client=client).fetch("https://cdn.example.test/art.png")

        self.assertEqual(image.size, (6, 4))
        self.assertEqual(image.getpixel((1, 1)), (0, 0, 255, 255))

    def test_http_errors_become_resource_errors(self) -> None:
        with httpx.Client(transport=httpx.MockTransport(_image_handler)) as client:
            with self.assertRaises(ResourceResolutionError) as ctx:
                HttpImageFetcher(client=client).fetch("https://cdn.example.test/missing.png")

        self.assertIsInstance(ctx.exception.__cause__, httpx.HTTPStatusError)


class HttpImageFetcherAsyncTests(unittest.IsolatedAsyncioTestCase):
    async def test_fetch_async_uses_async_client(self) -> None:
        async with httpx.AsyncClient(transport=httpx.MockTransport(_image_handler)) as client:
            image = await HttpImageFetcher(async_client=client).fetch_async("https://cdn.example.test/art.png")

        self.assertEqual(image.size, (6, 4))

    async def test_routing_fetcher_sends_local_paths_to_local_fetcher(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "art.png"
            path.write_bytes(_png_bytes((0, 255, 0)))
            async with httpx.AsyncClient(transport=httpx.MockTransport(_image_handler)) as client:
                fetcher = RoutingImageFetcher(http=HttpImageFetcher(async_client=client))

                local = await fetcher.fetch_async(str(path))
                remote = await fetcher.fetch_async("https://cdn.example.test/art.png")

        self.assertEqual(local.getpixel((0, 0)), (0, 255, 0, 255))
        self.assertEqual(remote.getpixel((0, 0)), (0, 0, 255, 255))


class SvgDocumentLoaderTests(unittest.TestCase):
    def test_loads_local_markup_into_document(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "badge.svg"
            path.write_text(_SVG, encoding="utf-8")

            document = SvgDocumentLoader().load_from_url(str(path))

        self.assertIsInstance(document, SvgDocument)
        self.assertEqual(len(document.shapes), 1)
        self.assertEqual(document.viewbox, (0.0, 0.0, 10.0, 10.0))

    def test_bad_markup_or_missing_file_raise(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            bad = Path(td) / "bad.svg"
            bad.write_text("<svg><rect", encoding="utf-8")
            loader = SvgDocumentLoader()

            with self.assertRaises(ResourceResolutionError):
                loader.load_from_url(str(bad))
            with self.assertRaises(ResourceResolutionError):
                loader.load_from_url(str(Path(td) / "missing.svg"))


class SvgDocumentLoaderAsyncTests(unittest.IsolatedAsyncioTestCase):
    async def test_load_from_url_async_reads_local_files(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "badge.svg"
            path.write_text(_SVG, encoding="utf-8")

            document = await SvgDocumentLoader().load_from_url_async(path.resolve().as_uri())

        self.assertEqual((document.width, document.height), (10.0, 10.0))


if __name__ == "__main__":
    unittest.main()
