"""
FastAPI routes for the policy catalog.

Read-only: the catalog is built into the service and cannot be changed at runtime.
"""

import logging

from fastapi import APIRouter, Path, Query

from apim_policy.api.schemas.catalog import PolicyCatalogEntryResponse
from apim_policy.compiler import catalog
from apim_policy.core.errors import NotFoundError
from apim_policy.domain.enums import PolicyCategory, PolicySectionName

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalog", tags=["Catalog"])


@router.get(
    "",
    response_model=list[PolicyCatalogEntryResponse],
    response_model_exclude_none=True,
    summary="List catalog policies",
    description="""
    List known policy kinds, optionally filtered.

    Filters combine: `category` and `section` narrow the list, `q` matches id,
    name or description (case-insensitive substring).
    """,
)
def list_policies(
    category: PolicyCategory | None = Query(default=None),
    section: PolicySectionName | None = Query(default=None),
    q: str | None = Query(default=None, max_length=100),
) -> list[PolicyCatalogEntryResponse]:
    entries = catalog.search_policies(q) if q else catalog.get_all_policies()

    if category is not None:
        entries = [entry for entry in entries if entry.category == category]
    if section is not None:
        entries = [entry for entry in entries if entry.supports_section(section)]

    logger.debug(
        "Listed %d catalog policies",
        len(entries),
        extra={"category": category, "section": section, "q": q},
    )
    return [PolicyCatalogEntryResponse.from_entry(entry) for entry in entries]


@router.get(
    "/categories",
    response_model=list[PolicyCategory],
    summary="List catalog categories",
)
def list_categories() -> list[PolicyCategory]:
    return catalog.get_categories()


@router.get(
    "/{policy_id}",
    response_model=PolicyCatalogEntryResponse,
    response_model_exclude_none=True,
    summary="Get a catalog policy",
)
def get_policy(
    policy_id: str = Path(..., min_length=1, max_length=100),
) -> PolicyCatalogEntryResponse:
    entry = catalog.get_policy_by_id(policy_id)
    if entry is None:
        raise NotFoundError("Policy not found in catalog", details={"policy_id": policy_id})
    return PolicyCatalogEntryResponse.from_entry(entry)
