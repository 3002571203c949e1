"""Building template catalog.

Templates are static game data shipped as ``data/building_templates.json``.
The catalog is parsed once per process on first use and handed to routes
through the ``get_template_catalog`` dependency.
"""

import json
import logging
from pathlib import Path

from earthlord_api.errors import TemplateNotFound
from earthlord_api.schemas import BuildingCategory, BuildingTemplate, BuildingTemplateCollection

logger = logging.getLogger(__name__)


class TemplateCatalog:
    """Read-only lookup over a set of building templates."""

    def __init__(self, templates: list[BuildingTemplate], version: str = "unversioned"):
        self.version = version
        self._templates = {t.template_id: t for t in templates}
        if len(self._templates) != len(templates):
            raise ValueError("Duplicate template_id in building templates")

    @classmethod
    def from_file(cls, path: Path) -> "TemplateCatalog":
        with open(path, encoding="utf-8") as f:
            collection = BuildingTemplateCollection.model_validate(json.load(f))
        logger.info(
            "Loaded %d building templates (version %s) from %s",
            len(collection.templates),
            collection.version,
            path,
        )
        return cls(collection.templates, version=collection.version)

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, template_id: str) -> bool:
        return template_id in self._templates

    def all(self) -> list[BuildingTemplate]:
        """Every template, lowest tier first."""
        return sorted(self._templates.values(), key=lambda t: (t.tier, t.template_id))

    def by_category(self, category: BuildingCategory) -> list[BuildingTemplate]:
        return [t for t in self.all() if t.category == category]

    def get(self, template_id: str) -> BuildingTemplate:
        """Look up a template, raising ``TemplateNotFound`` for unknown IDs."""
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFound(template_id)
        return template


_catalog: TemplateCatalog | None = None


def get_template_catalog() -> TemplateCatalog:
    """Get or load the process-wide template catalog."""
    global _catalog
    if _catalog is None:
        from earthlord_api.config import settings

        _catalog = TemplateCatalog.from_file(settings.building_templates_path)
    return _catalog
