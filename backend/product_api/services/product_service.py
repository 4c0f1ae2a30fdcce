"""
Product API: Product Service (Query Building + Store Calls)
==============================================================

What:  Business logic for the products collection: list, get, create,
       update, delete.
How:   Each method builds the query document, performs exactly one
       collection call, and maps the result onto a JSON-ready dict or a
       domain exception.
Who:   Called by the route handlers in routes/products.py.
When:  One method call per HTTP request.

List query construction (GET /api/products):
    category=Books             → {"category": "Books"}
    minPrice=10                → {"price": {"$gte": 10.0}}
    fields=name,price          → projection {"name": 1, "price": 1, "_id": 0}
    sort=price                 → sort [("price", 1)]

Error Handling Strategy:
    Driver failures (PyMongoError) are logged with their traceback and
    re-raised as DatabaseError, whose handler answers with a generic 500.
    NotFoundError and ValidationError propagate unchanged.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import Decimal128, ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from product_api.exceptions import DatabaseError, NotFoundError, ValidationError
from product_api.schemas.product import UPDATABLE_FIELDS, ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Query Builders
# ══════════════════════════════════════════════════════════════════════════


def parse_min_price(raw: str) -> float:
    """
    Parse the `minPrice` query parameter.

    A blank value counts as 0. Anything that is not a finite number raises
    ValidationError.
    """
    text = raw.strip()
    if not text:
        return 0.0
    try:
        value = float(text)
    except ValueError:
        value = math.nan
    if not math.isfinite(value):
        raise ValidationError(
            message="minPrice must be a number",
            field="minPrice",
            context={"value": raw},
        )
    return value


def build_filter(
    category: Optional[str] = None,
    min_price: Optional[str] = None,
) -> Dict[str, Any]:
    """Filter document for the list query. Empty `category` is ignored."""
    query: Dict[str, Any] = {}
    if category:
        query["category"] = category
    if min_price is not None:
        query["price"] = {"$gte": parse_min_price(min_price)}
    return query


def build_projection(fields: Optional[str] = None) -> Optional[Dict[str, int]]:
    """
    Projection for a comma-separated `fields` allow-list.

    Returns None when no list was given (full documents). `_id` is only kept
    when it is named explicitly.
    """
    if not fields:
        return None
    selected = [name.strip() for name in fields.split(",") if name.strip()]
    projection = {name: 1 for name in selected}
    if "_id" not in selected:
        projection["_id"] = 0
    return projection


def build_sort(sort: Optional[str] = None) -> Optional[List[tuple]]:
    """Only `sort=price` is recognised; every other value means unsorted."""
    if sort == "price":
        return [("price", ASCENDING)]
    return None


def utcnow() -> datetime:
    """Current UTC time truncated to the millisecond precision BSON stores."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def to_json_safe(value: Any) -> Any:
    """
    Recursively convert BSON-only values into JSON-ready ones: ObjectIds
    become hex strings and Decimal128 values their decimal string.
    """
    if isinstance(value, (ObjectId, Decimal128)):
        return str(value)
    if isinstance(value, dict):
        return {key: to_json_safe(item) for key, item in value.items()}
    if isinstance(value, list):
        return [to_json_safe(item) for item in value]
    return value


# ══════════════════════════════════════════════════════════════════════════
# Service
# ══════════════════════════════════════════════════════════════════════════


class ProductService:
    """
    Owns the products collection handle for the lifetime of the process.

    Constructed once by the lifespan handler after the database connection
    succeeds and stored on `app.state`; routes receive it through the
    `get_product_service` dependency. The collection handle is never
    replaced, so instances are safe to share between concurrent requests.
    """

    def __init__(self, collection: AsyncCollection):
        self.collection = collection

    async def list_products(
        self,
        category: Optional[str] = None,
        min_price: Optional[str] = None,
        sort: Optional[str] = None,
        fields: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Return every product matching the filters (no pagination).

        Raises:
            ValidationError: minPrice is not a number (→ 400)
            DatabaseError: Query execution failed (→ 500)
        """
        query = build_filter(category=category, min_price=min_price)
        projection = build_projection(fields)
        sort_spec = build_sort(sort)

        try:
            cursor = self.collection.find(query, projection)
            if sort_spec:
                cursor = cursor.sort(sort_spec)
            documents = await cursor.to_list()
        except PyMongoError as e:
            logger.error("Database error listing products: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not list products. Please try again.",
                context={"filter": query, "original_error": type(e).__name__},
            )

        return [to_json_safe(doc) for doc in documents]

    async def get_product(self, product_id: ObjectId) -> Dict[str, Any]:
        """
        Retrieve a single product by id.

        Raises:
            NotFoundError: No product with this id (→ 404)
            DatabaseError: Query execution failed (→ 500)
        """
        try:
            document = await self.collection.find_one({"_id": product_id})
        except PyMongoError as e:
            logger.error("Database error fetching product %s: %s", product_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve the product. Please try again.",
                context={"product_id": str(product_id)},
            )

        if document is None:
            raise NotFoundError(resource="product", resource_id=str(product_id))
        return to_json_safe(document)

    async def create_product(self, data: ProductCreate) -> Dict[str, Any]:
        """
        Insert a new product and return it with its store-assigned `_id`.

        Raises:
            DatabaseError: Insert failed (→ 500)
        """
        document = data.to_document(created_at=utcnow())

        try:
            result = await self.collection.insert_one(document)
        except PyMongoError as e:
            logger.error("Database error creating product: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the product. Please try again.",
                context={"original_error": type(e).__name__},
            )

        logger.info("Product created: %s (%s)", result.inserted_id, data.name)
        return to_json_safe({"_id": result.inserted_id, **document})

    async def update_product(
        self, product_id: ObjectId, data: ProductUpdate
    ) -> Dict[str, Any]:
        """
        Apply a partial update and return the document as it is afterwards.

        `$set` carries the supplied fields; `$currentDate` stamps `updatedAt`
        with the server clock in the same atomic operation.

        Raises:
            ValidationError: None of the updatable fields were supplied (→ 400)
            NotFoundError: No product with this id (→ 404)
            DatabaseError: Update failed (→ 500)
        """
        changes = data.changes()
        if not changes:
            raise ValidationError(
                message="No valid fields to update",
                context={"allowed_fields": list(UPDATABLE_FIELDS)},
            )

        try:
            document = await self.collection.find_one_and_update(
                {"_id": product_id},
                {"$set": changes, "$currentDate": {"updatedAt": True}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error("Database error updating product %s: %s", product_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not update the product. Please try again.",
                context={"product_id": str(product_id)},
            )

        if document is None:
            raise NotFoundError(resource="product", resource_id=str(product_id))

        logger.info("Product updated: %s (fields=%s)", product_id, ",".join(changes))
        return to_json_safe(document)

    async def delete_product(self, product_id: ObjectId) -> Dict[str, Any]:
        """
        Delete a product.

        Raises:
            NotFoundError: Nothing was deleted (→ 404)
            DatabaseError: Delete failed (→ 500)
        """
        try:
            result = await self.collection.delete_one({"_id": product_id})
        except PyMongoError as e:
            logger.error("Database error deleting product %s: %s", product_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not delete the product. Please try again.",
                context={"product_id": str(product_id)},
            )

        if result.deleted_count == 0:
            raise NotFoundError(resource="product", resource_id=str(product_id))

        logger.info("Product deleted: %s", product_id)
        return {"deleted": True, "id": str(product_id)}
