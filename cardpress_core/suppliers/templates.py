from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path

from cardpress_core.core.errors import FieldDataError, TemplateLookupError
from cardpress_core.core.schema import Template

LOGGER = logging.getLogger(__name__)


class InMemoryTemplateSupplier:
    """Serves templates registered up front, keyed by name."""

    def __init__(self, templates: Mapping[str, Template] | None = None) -> None:
        self._templates: dict[str, Template] = dict(templates or {})

    def register(self, template: Template, *, name: str | None = None) -> None:
        self._templates[name or template.name] = template

    def supply(self, template_name: str) -> Template:
        try:
            return self._templates[template_name]
        except KeyError:
            raise TemplateLookupError(f"Template not found: {template_name}") from None


class DirectoryTemplateSupplier:
    """Loads `<root>/<name>.json` template documents on first use and caches them by name."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._cache: dict[str, Template] = {}

    @property
    def root(self) -> Path:
        return self._root

    def supply(self, template_name: str) -> Template:
        cached = self._cache.get(template_name)
        if cached is not None:
            return cached
        path = self._path_for(template_name)
        if not path.is_file():
            raise TemplateLookupError(f"Template not found: {template_name}")
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise FieldDataError(f"template `{template_name}` is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise FieldDataError(f"template `{template_name}` must be a JSON object")
        template = Template.from_dict(payload, name=template_name)
        self._cache[template_name] = template
        LOGGER.debug("loaded template `%s` from %s", template_name, path)
        return template

    def _path_for(self, template_name: str) -> Path:
        if not template_name or "/" in template_name or "\\" in template_name or template_name in (".", ".."):
            raise TemplateLookupError(f"Template not found: {template_name}")
        return self._root / f"{template_name}.json"
