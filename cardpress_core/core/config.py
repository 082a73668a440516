from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import tomllib

from .pipeline import DEFAULT_MAX_CONCURRENT_FETCHES
from .renderer import CardRenderer

LOGGER = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "cardpress/0.1 (+python-httpx)"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class RenderConfig:
    template_dir: Path | None = None
    max_concurrent_fetches: int = DEFAULT_MAX_CONCURRENT_FETCHES
    fetch_timeout_s: float = 15.0
    user_agent: str = DEFAULT_USER_AGENT
    background: str = "#ffffff"
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.max_concurrent_fetches <= 0:
            raise ValueError("max_concurrent_fetches must be > 0")
        if self.fetch_timeout_s <= 0:
            raise ValueError("fetch_timeout_s must be > 0")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(_LOG_LEVELS)}")


def load_render_config(path: str | Path) -> RenderConfig:
    """Load a `cardpress.toml` file. Relative `template_dir` paths resolve against the file."""

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"render config not found: {config_path}")
    with config_path.open("rb") as f:
        raw = tomllib.load(f)
    section = raw.get("render", raw)
    if not isinstance(section, dict):
        raise ValueError("[render] must be a table")
    template_dir = _coerce_optional_str(section.get("template_dir"), "template_dir")
    resolved_dir: Path | None = None
    if template_dir is not None:
        resolved_dir = Path(template_dir)
        if not resolved_dir.is_absolute():
            resolved_dir = (config_path.parent / resolved_dir).resolve()
    try:
        config = RenderConfig(
            template_dir=resolved_dir,
            max_concurrent_fetches=int(section.get("max_concurrent_fetches", DEFAULT_MAX_CONCURRENT_FETCHES)),
            fetch_timeout_s=float(section.get("fetch_timeout_s", 15.0)),
            user_agent=_coerce_optional_str(section.get("user_agent"), "user_agent") or DEFAULT_USER_AGENT,
            background=_coerce_optional_str(section.get("background"), "background") or "#ffffff",
            log_level=(_coerce_optional_str(section.get("log_level"), "log_level") or "WARNING").upper(),
        )
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid render config {config_path}: {exc}") from exc
    LOGGER.debug("loaded render config from %s", config_path)
    return config


def build_card_renderer(config: RenderConfig) -> CardRenderer:
    """Wire the reference collaborators (directory templates, torch surface, Pillow/httpx fetching)."""

    from cardpress_core.render.painter import TensorPrimitivePainter
    from cardpress_core.render.surface import TensorCanvasSupplier
    from cardpress_core.suppliers.images import HttpImageFetcher, LocalImageFetcher, RoutingImageFetcher
    from cardpress_core.suppliers.svg import SvgDocumentLoader
    from cardpress_core.suppliers.templates import DirectoryTemplateSupplier

    template_supplier = DirectoryTemplateSupplier(config.template_dir) if config.template_dir is not None else None
    http = HttpImageFetcher(timeout_s=config.fetch_timeout_s, user_agent=config.user_agent)
    return CardRenderer(
        template_supplier=template_supplier,
        canvas_supplier=TensorCanvasSupplier(background=config.background),
        image_fetcher=RoutingImageFetcher(local=LocalImageFetcher(), http=http),
        svg_loader=SvgDocumentLoader(timeout_s=config.fetch_timeout_s, user_agent=config.user_agent),
        painter=TensorPrimitivePainter(),
        max_concurrent_fetches=config.max_concurrent_fetches,
    )


def _coerce_optional_str(value: object, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string if provided")
    return value
