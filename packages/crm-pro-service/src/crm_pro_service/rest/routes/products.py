"""Product catalogue endpoints. Anyone in the organization can read; only admins write."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Response

from crm_pro_service.auth.deps import AdminDep, CurrentUserDep, ensure_org, parse_id
from crm_pro_service.db.deps import ProductsRepoDep
from crm_pro_service.rest.schemas import (
    BulkCreateProductsRequest,
    CreateProductRequest,
    ProductSchema,
    UpdateProductRequest,
)

log = structlog.get_logger(__name__)

router = APIRouter()


def _product_to_schema(product) -> ProductSchema:
    return ProductSchema(
        id=str(product.id),
        org_id=str(product.org_id),
        name=product.name,
        description=product.description,
        price=product.price or 0,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


async def _get_or_404(repo, product_id: str, current_user):
    product = await repo.get(parse_id(product_id, "Product"), current_user.org_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("/products", response_model=list[ProductSchema])
async def list_products(
    repo: ProductsRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
) -> list[ProductSchema]:
    products = await repo.list(ensure_org(current_user, org_id))
    return [_product_to_schema(p) for p in products]


@router.post("/products/bulk", response_model=list[ProductSchema], status_code=201)
async def bulk_create_products(
    request: BulkCreateProductsRequest,
    repo: ProductsRepoDep,
    current_user: AdminDep,
) -> list[ProductSchema]:
    org = ensure_org(current_user, request.org_id)
    if not request.products:
        return []
    products = await repo.bulk_create(org, [p.create_values() for p in request.products])
    log.info("products_bulk_created", org_id=str(org), count=len(products))
    return [_product_to_schema(p) for p in products]


@router.get("/products/{product_id}", response_model=ProductSchema)
async def get_product(
    product_id: str,
    repo: ProductsRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
) -> ProductSchema:
    ensure_org(current_user, org_id)
    return _product_to_schema(await _get_or_404(repo, product_id, current_user))


@router.post("/products", response_model=ProductSchema, status_code=201)
async def create_product(
    request: CreateProductRequest,
    repo: ProductsRepoDep,
    current_user: AdminDep,
) -> ProductSchema:
    org = ensure_org(current_user, request.org_id)
    return _product_to_schema(await repo.create(org, **request.create_values()))


@router.patch("/products/{product_id}", response_model=ProductSchema)
async def update_product(
    product_id: str,
    request: UpdateProductRequest,
    repo: ProductsRepoDep,
    current_user: AdminDep,
) -> ProductSchema:
    product = await _get_or_404(repo, product_id, current_user)
    return _product_to_schema(await repo.update(product, **request.update_values()))


@router.delete("/products/{product_id}", status_code=204)
async def delete_product(
    product_id: str,
    repo: ProductsRepoDep,
    current_user: AdminDep,
) -> Response:
    """Delete a product. Deal items that used it keep their name and price."""
    product = await _get_or_404(repo, product_id, current_user)
    await repo.delete(product)
    return Response(status_code=204)
