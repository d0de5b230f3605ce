"""Deal endpoints. Line items drive the deal total."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Response

from crm_pro_service.auth.deps import CurrentUserDep, ensure_org, parse_id
from crm_pro_service.db.deps import DealsRepoDep, ProductsRepoDep
from crm_pro_service.rest.schemas import (
    CreateDealRequest,
    DealItemSchema,
    DealSchema,
    UpdateDealRequest,
    contact_full_name,
    opt_id,
)

log = structlog.get_logger(__name__)

router = APIRouter()


def _deal_to_schema(deal) -> DealSchema:
    """Convert an ORM DealModel (with items) to the REST DealSchema."""
    return DealSchema(
        id=str(deal.id),
        org_id=str(deal.org_id),
        deal_name=deal.deal_name,
        status=deal.status,
        total_value=deal.total_value or 0,
        lead_id=opt_id(deal.lead_id),
        lead_name=deal.lead.name if deal.lead is not None else None,
        company_id=opt_id(deal.company_id),
        company_name=deal.company.name if deal.company is not None else None,
        contact_id=opt_id(deal.contact_id),
        contact_name=contact_full_name(deal.contact),
        created_by_user_id=opt_id(deal.created_by_user_id),
        created_by_user_name=deal.created_by.full_name if deal.created_by is not None else None,
        items=[
            DealItemSchema(
                id=opt_id(item.id),
                product_id=opt_id(item.product_id),
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
            )
            for item in deal.items or []
        ],
        created_at=deal.created_at,
        updated_at=deal.updated_at,
    )


async def resolve_items(products, org_id, items):
    """Fill name and unit price of items that reference a product of the organization."""
    if items is None:
        return None
    resolved = []
    for item in items:
        item = dict(item)
        if item.get("product_id") is not None:
            product = await products.get(item["product_id"], org_id)
            if product is None:
                raise HTTPException(status_code=422, detail="Product not found")
            if item.get("product_name") is None:
                item["product_name"] = product.name
            if item.get("unit_price") is None:
                item["unit_price"] = product.price or 0
        if item.get("unit_price") is None:
            item["unit_price"] = 0
        resolved.append(item)
    return resolved


async def _get_or_404(repo, deal_id: str, current_user):
    deal = await repo.get(parse_id(deal_id, "Deal"), current_user.org_id)
    if deal is None:
        raise HTTPException(status_code=404, detail="Deal not found")
    return deal


@router.get("/deals", response_model=list[DealSchema])
async def list_deals(
    repo: DealsRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
    lead_id: str | None = None,
    status: str | None = None,
) -> list[DealSchema]:
    org = ensure_org(current_user, org_id)
    lead = parse_id(lead_id, "Lead") if lead_id else None
    deals = await repo.list(org, lead_id=lead, status=status)
    return [_deal_to_schema(d) for d in deals]


@router.get("/deals/{deal_id}", response_model=DealSchema)
async def get_deal(
    deal_id: str,
    repo: DealsRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
) -> DealSchema:
    ensure_org(current_user, org_id)
    return _deal_to_schema(await _get_or_404(repo, deal_id, current_user))


@router.post("/deals", response_model=DealSchema, status_code=201)
async def create_deal(
    request: CreateDealRequest,
    repo: DealsRepoDep,
    products: ProductsRepoDep,
    current_user: CurrentUserDep,
) -> DealSchema:
    """Create a deal. ``created_by_user_id`` defaults to the caller."""
    org = ensure_org(current_user, request.org_id)
    values = request.create_values()
    items = await resolve_items(products, org, values.pop("items", None))
    values.setdefault("created_by_user_id", current_user.profile_id)
    deal = await repo.create(org, items=items, **values)
    log.info("deal_created", deal_id=str(deal.id), total_value=deal.total_value)
    return _deal_to_schema(deal)


@router.patch("/deals/{deal_id}", response_model=DealSchema)
async def update_deal(
    deal_id: str,
    request: UpdateDealRequest,
    repo: DealsRepoDep,
    products: ProductsRepoDep,
    current_user: CurrentUserDep,
) -> DealSchema:
    """Update a deal. Sending ``items`` replaces all line items and recomputes the total."""
    deal = await _get_or_404(repo, deal_id, current_user)
    values = request.update_values()
    items = await resolve_items(products, current_user.org_id, values.pop("items", None))
    return _deal_to_schema(await repo.update(deal, items=items, **values))


@router.delete("/deals/{deal_id}", status_code=204)
async def delete_deal(
    deal_id: str,
    repo: DealsRepoDep,
    current_user: CurrentUserDep,
) -> Response:
    deal = await _get_or_404(repo, deal_id, current_user)
    await repo.delete(deal)
    return Response(status_code=204)
