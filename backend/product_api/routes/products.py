"""
Product API: Product Route Handlers
======================================

What:  CRUD endpoints for the products collection.
How:   Resolve the readiness gate and the product id via dependencies, let
       FastAPI validate the body against the Pydantic schema, then delegate
       to ProductService. Errors are raised, never returned; the global
       handlers in main.py format them.
Who:   Any HTTP client of the API.

Routes:
    GET    /api/products          list (category, minPrice, sort, fields)
    GET    /api/products/{id}     fetch one
    POST   /api/products          create (201)
    PUT    /api/products/{id}     partial update
    DELETE /api/products/{id}     remove

Dependency order matters: `service` is declared before `product_id`, so an
unready service answers 503 before the id is checked, and both are resolved
before the request body is validated.
"""

from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Query

from product_api.dependencies import get_product_service, parse_product_id
from product_api.schemas.product import (
    DeleteResponse,
    ErrorResponse,
    ProductCreate,
    ProductList,
    ProductResponse,
    ProductUpdate,
)
from product_api.services.product_service import ProductService

router = APIRouter(prefix="/api", tags=["Products"])

# Shared OpenAPI error documentation
NOT_READY = {503: {"description": "Database not ready yet", "model": ErrorResponse}}
SERVER_ERROR = {500: {"description": "Server error", "model": ErrorResponse}}
BAD_REQUEST = {400: {"description": "Invalid input", "model": ErrorResponse}}
NOT_FOUND = {404: {"description": "Product not found", "model": ErrorResponse}}


@router.get(
    "/products",
    response_model=ProductList,
    responses={**BAD_REQUEST, **NOT_READY, **SERVER_ERROR},
    summary="List products",
    description=(
        "Returns every product matching the optional filters. "
        "`fields` restricts the returned attributes; `_id` is only included "
        "when listed explicitly."
    ),
)
async def list_products(
    service: ProductService = Depends(get_product_service),
    category: Optional[str] = Query(default=None, description="Exact category match"),
    min_price: Optional[str] = Query(
        default=None, alias="minPrice", description="Inclusive lower bound on price"
    ),
    sort: Optional[str] = Query(
        default=None, description="'price' sorts ascending by price; other values are ignored"
    ),
    fields: Optional[str] = Query(
        default=None, description="Comma-separated list of attributes to return"
    ),
) -> ProductList:
    return await service.list_products(
        category=category,
        min_price=min_price,
        sort=sort,
        fields=fields,
    )


@router.get(
    "/products/{product_id}",
    response_model=ProductResponse,
    response_model_exclude_unset=True,
    responses={**BAD_REQUEST, **NOT_FOUND, **NOT_READY, **SERVER_ERROR},
    summary="Get a single product by ID",
)
async def get_product(
    service: ProductService = Depends(get_product_service),
    product_id: ObjectId = Depends(parse_product_id),
) -> dict:
    return await service.get_product(product_id)


@router.post(
    "/products",
    status_code=201,
    response_model=ProductResponse,
    response_model_exclude_unset=True,
    responses={**BAD_REQUEST, **NOT_READY, **SERVER_ERROR},
    summary="Create a product",
    description=(
        "`name` and `category` are required non-empty strings and `price` must be "
        "a number. `stock` defaults to 0. Returns the stored document with its new `_id`."
    ),
)
async def create_product(
    body: ProductCreate,
    service: ProductService = Depends(get_product_service),
) -> dict:
    return await service.create_product(body)


@router.put(
    "/products/{product_id}",
    response_model=ProductResponse,
    response_model_exclude_unset=True,
    responses={**BAD_REQUEST, **NOT_FOUND, **NOT_READY, **SERVER_ERROR},
    summary="Partially update a product",
    description=(
        "Only name, category, price and stock can be changed; other body fields "
        "are ignored. `updatedAt` is set by the server."
    ),
)
async def update_product(
    body: ProductUpdate,
    service: ProductService = Depends(get_product_service),
    product_id: ObjectId = Depends(parse_product_id),
) -> dict:
    return await service.update_product(product_id, body)


@router.delete(
    "/products/{product_id}",
    response_model=DeleteResponse,
    responses={**BAD_REQUEST, **NOT_FOUND, **NOT_READY, **SERVER_ERROR},
    summary="Delete a product",
)
async def delete_product(
    service: ProductService = Depends(get_product_service),
    product_id: ObjectId = Depends(parse_product_id),
) -> dict:
    return await service.delete_product(product_id)
