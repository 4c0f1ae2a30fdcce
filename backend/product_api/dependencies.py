"""
Product API: FastAPI Dependencies
====================================

What:  The readiness gate and product-id parsing shared by the product routes.
How:   Injected into route handlers via FastAPI's Depends() system. Both raise
       application exceptions, which the global handlers turn into 503 / 400.
When:  Resolved per request, before the request body is validated, so a
       request to an unready service or with a malformed id never reaches
       the collection.
"""

from bson import ObjectId
from fastapi import Request

from product_api.exceptions import NotReadyError, ValidationError
from product_api.services.product_service import ProductService


def get_product_service(request: Request) -> ProductService:
    """
    Return the ProductService installed by the lifespan handler.

    Raises:
        NotReadyError: The database connection has not been established (→ 503)
    """
    service = getattr(request.app.state, "product_service", None)
    if service is None:
        raise NotReadyError()
    return service


def parse_product_id(product_id: str) -> ObjectId:
    """
    Convert the `{product_id}` path segment into an ObjectId.

    Raises:
        ValidationError: Not a 24-character hex ObjectId (→ 400)
    """
    if not ObjectId.is_valid(product_id):
        raise ValidationError(
            message="Invalid id",
            field="id",
            context={"value": product_id},
        )
    return ObjectId(product_id)
