"""
Product API: Pydantic Request/Response Schemas
=================================================

What:  Pydantic models defining the API contract for the products endpoints.
How:   FastAPI uses these models to validate request bodies, serialize
       responses, and generate the OpenAPI documentation.
Who:   Used by route handlers (bodies, response models) and ProductService.

Numbers:
    `price` and `stock` must be JSON numbers. Strict mode rejects booleans
    and numeric strings ("9.99"), NaN/Infinity are refused, and the union
    keeps integers as integers so `stock: 100` is stored as 100, not 100.0.
    Integers too large for a 64-bit BSON int are stored as doubles.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import (
    AllowInfNan,
    BaseModel,
    ConfigDict,
    Field,
    Strict,
    StrictInt,
    StrictStr,
    field_validator,
)

# Integers outside the BSON int64 range fall through to the float branch
Int64 = Annotated[StrictInt, Field(ge=-(2**63), le=2**63 - 1)]
Number = Union[Int64, Annotated[float, Strict(), AllowInfNan(False)]]

# Attributes a client may change through PUT /api/products/{id}
UPDATABLE_FIELDS = ("name", "category", "price", "stock")


def is_number(value: Any) -> bool:
    """True for JSON numbers; bool is excluded even though it subclasses int."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ══════════════════════════════════════════════════════════════════════════
# Request Models: What the client sends in the body
# ══════════════════════════════════════════════════════════════════════════


class ProductCreate(BaseModel):
    """
    What:  Body of POST /api/products.

    Rules:
        name, category: required, non-empty strings
        price:          required number
        stock:          optional; anything that is not a number becomes 0

    Unknown fields are ignored (pydantic's default `extra="ignore"`).
    """
    name: StrictStr = Field(min_length=1, description="Product name")
    category: StrictStr = Field(min_length=1, description="Product category")
    price: Number = Field(description="Unit price")
    stock: Number = Field(default=0, description="Units in stock (defaults to 0)")

    @field_validator("stock", mode="before")
    @classmethod
    def default_non_numeric_stock(cls, v: Any) -> Any:
        return v if is_number(v) else 0

    def to_document(self, created_at: datetime) -> Dict[str, Any]:
        """Build the document inserted into the products collection."""
        return {
            "name": self.name,
            "category": self.category,
            "price": self.price,
            "stock": self.stock,
            "createdAt": created_at,
        }


class ProductUpdate(BaseModel):
    """
    What:  Body of PUT /api/products/{id}, a partial update.

    Only the fields the client actually sent are applied; `changes()` uses
    pydantic's fields-set tracking to tell "absent" apart from the None
    default. Fields outside UPDATABLE_FIELDS are dropped silently.

    A field that is sent must be valid: explicit nulls are rejected along
    with empty strings and non-numeric prices/stock.
    """
    name: Optional[StrictStr] = Field(default=None, min_length=1)
    category: Optional[StrictStr] = Field(default=None, min_length=1)
    price: Optional[Number] = None
    stock: Optional[Number] = None

    @field_validator("name", "category", mode="before")
    @classmethod
    def reject_null_text(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("price", "stock", mode="before")
    @classmethod
    def reject_null_number(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("must be a number")
        return v

    def changes(self) -> Dict[str, Any]:
        """The `$set` document: supplied fields only, in allow-list order."""
        return {
            key: getattr(self, key)
            for key in UPDATABLE_FIELDS
            if key in self.model_fields_set
        }


# ══════════════════════════════════════════════════════════════════════════
# Response Models: What the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class ProductResponse(BaseModel):
    """
    What:  Full representation of a stored product.
    Who:   Returned by GET/PUT /api/products/{id} and POST /api/products.

    The identifier is exposed under its store name `_id`. Stored documents
    are not re-validated on the way out: whatever another writer put in
    `name` or `price` is returned as stored, and extra attributes pass
    through.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(alias="_id", description="24-character hex ObjectId")
    name: Any = None
    category: Any = None
    price: Any = None
    stock: Any = None
    createdAt: Any = Field(default=None, description="Creation time (UTC)")
    updatedAt: Any = Field(default=None, description="Last update time (UTC)")


class DeleteResponse(BaseModel):
    """Confirmation returned by DELETE /api/products/{id}."""
    deleted: bool = True
    id: str


class HealthResponse(BaseModel):
    """Returned by GET /. Does not touch the database."""
    status: str = Field(description="Always 'ok' while the process is serving")
    service: str = Field(description="Configured service name")
    time: datetime = Field(description="Current server time (UTC ISO 8601)")


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "product with ID '65f1c0c2a8b4e5d6f7a8b9c0' was not found",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


ProductList = List[Dict[str, Any]]
