from .painter import TensorPrimitivePainter, cover_crop_box, parse_font
from .surface import DrawingSurface, TensorCanvasSupplier, parse_color
from .svg import SvgDocument

__all__ = [
    "DrawingSurface",
    "SvgDocument",
    "TensorCanvasSupplier",
    "TensorPrimitivePainter",
    "cover_crop_box",
    "parse_color",
    "parse_font",
]
