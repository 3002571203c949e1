"""Building template catalog endpoints."""

from fastapi import APIRouter, Depends, Query

from earthlord_api.schemas import BuildingCategory, BuildingTemplate
from earthlord_api.services.templates import TemplateCatalog, get_template_catalog

router = APIRouter(prefix="/building-templates", tags=["building-templates"])


@router.get("", response_model=list[BuildingTemplate])
async def list_templates(
    category: BuildingCategory | None = Query(default=None),
    catalog: TemplateCatalog = Depends(get_template_catalog),
) -> list[BuildingTemplate]:
    """List building templates, lowest tier first, optionally by category."""
    if category is not None:
        return catalog.by_category(category)
    return catalog.all()


@router.get("/{template_id}", response_model=BuildingTemplate)
async def get_template(
    template_id: str,
    catalog: TemplateCatalog = Depends(get_template_catalog),
) -> BuildingTemplate:
    """Get a single template. Returns 404 for unknown IDs."""
    return catalog.get(template_id)
