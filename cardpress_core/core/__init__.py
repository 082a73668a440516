from .card_wrapper import CardWrapper
from .collaborators import (
    AsyncImageFetcher,
    AsyncSvgLoader,
    CanvasSupplier,
    DrawingSurface,
    ImageFetcher,
    PrimitivePainter,
    SvgLoader,
    TemplateSupplier,
)
from .color_schemes import build_color_schemes, resolve_color
from .config import RenderConfig, build_card_renderer, load_render_config
from .errors import (
    CardpressError,
    ChoiceLookupError,
    ConfigurationError,
    FieldDataError,
    FieldLookupError,
    MissingReferenceError,
    ResourceResolutionError,
    TemplateLookupError,
    UnsupportedFieldTypeError,
)
from .expanders import expand_field, field_requires_data
from .pipeline import DEFAULT_MAX_CONCURRENT_FETCHES, DrawingPipeline
from .primitives import (
    ColorPrimitive,
    ImagePrimitive,
    LinePrimitive,
    Primitive,
    ResourceRequest,
    SvgPrimitive,
    TextPrimitive,
)
from .renderer import CardRenderer
from .schema import (
    Card,
    ColorField,
    ColorSchemeField,
    DataEntry,
    FieldSpec,
    ImageField,
    KeyValListField,
    KeyValTextField,
    LineField,
    MultiImageField,
    SvgField,
    Template,
    TextField,
    TextStyle,
    parse_field,
)
from .session import RenderSession
from .values import ValueResolver, merge_override, resolve_choice, resolve_value

__all__ = [
    "AsyncImageFetcher",
    "AsyncSvgLoader",
    "CanvasSupplier",
    "Card",
    "CardRenderer",
    "CardWrapper",
    "CardpressError",
    "ChoiceLookupError",
    "ColorField",
    "ColorPrimitive",
    "ColorSchemeField",
    "ConfigurationError",
    "DEFAULT_MAX_CONCURRENT_FETCHES",
    "DataEntry",
    "DrawingPipeline",
    "DrawingSurface",
    "FieldDataError",
    "FieldLookupError",
    "FieldSpec",
    "ImageFetcher",
    "ImageField",
    "ImagePrimitive",
    "KeyValListField",
    "KeyValTextField",
    "LineField",
    "LinePrimitive",
    "MissingReferenceError",
    "MultiImageField",
    "Primitive",
    "PrimitivePainter",
    "RenderConfig",
    "RenderSession",
    "ResourceRequest",
    "ResourceResolutionError",
    "SvgField",
    "SvgLoader",
    "SvgPrimitive",
    "Template",
    "TemplateLookupError",
    "TemplateSupplier",
    "TextField",
    "TextPrimitive",
    "TextStyle",
    "UnsupportedFieldTypeError",
    "ValueResolver",
    "build_card_renderer",
    "build_color_schemes",
    "expand_field",
    "field_requires_data",
    "load_render_config",
    "merge_override",
    "parse_field",
    "resolve_choice",
    "resolve_color",
    "resolve_value",
]
