from .images import HttpImageFetcher, LocalImageFetcher, RoutingImageFetcher
from .svg import SvgDocumentLoader
from .templates import DirectoryTemplateSupplier, InMemoryTemplateSupplier

__all__ = [
    "DirectoryTemplateSupplier",
    "HttpImageFetcher",
    "InMemoryTemplateSupplier",
    "LocalImageFetcher",
    "RoutingImageFetcher",
    "SvgDocumentLoader",
]
