"""
Record and request/response models for the Catalog Service.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from shared.errors import ValidationError


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500


class RecordKind(str, Enum):
    """Record kinds held by the catalog store."""
    PRODUCT = "product"
    USER = "user"


@dataclass
class Product:
    """Stock-keeping item."""
    name: str
    price: Decimal
    stock: int = 0
    description: Optional[str] = None
    id: Optional[int] = None


@dataclass
class User:
    """Principal with a unique email and a secret credential."""
    name: str
    email: str
    password: Optional[str] = None
    address: Optional[str] = None
    id: Optional[int] = None


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def validate_product(product: Product) -> None:
    """Reject a product whose required fields are missing or malformed."""
    errors: Dict[str, str] = {}

    if _is_blank(product.name):
        errors["name"] = "Name is required"
    elif len(product.name) > MAX_NAME_LENGTH:
        errors["name"] = f"Name must be at most {MAX_NAME_LENGTH} characters"

    if product.description is not None and len(product.description) > MAX_DESCRIPTION_LENGTH:
        errors["description"] = f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters"

    if product.price is None:
        errors["price"] = "Price is required"
    elif not isinstance(product.price, Decimal) or not product.price.is_finite():
        errors["price"] = "Price must be a decimal number"
    elif product.price < 0:
        errors["price"] = "Price must not be negative"

    if product.stock is None:
        errors["stock"] = "Stock is required"
    elif isinstance(product.stock, bool) or not isinstance(product.stock, int):
        errors["stock"] = "Stock must be an integer"
    elif product.stock < 0:
        errors["stock"] = "Stock must not be negative"

    if errors:
        raise ValidationError("Invalid product", details={"fields": errors})


def validate_user(user: User, *, require_password: bool = True) -> None:
    """Reject a user whose required fields are missing or malformed."""
    errors: Dict[str, str] = {}

    if _is_blank(user.name):
        errors["name"] = "Name is required"
    elif len(user.name) > MAX_NAME_LENGTH:
        errors["name"] = f"Name must be at most {MAX_NAME_LENGTH} characters"

    if _is_blank(user.email):
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.match(user.email):
        errors["email"] = "Email must be a valid address"

    if require_password and _is_blank(user.password):
        errors["password"] = "Password is required"

    if errors:
        raise ValidationError("Invalid user", details={"fields": errors})


class ProductRequest(BaseModel):
    """Request model for creating or replacing a product."""
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH, description="Product name")
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH, description="Free-text description")
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2, description="Unit price")
    stock: int = Field(..., ge=0, description="Quantity on hand")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name is required")
        return value

    def to_record(self) -> Product:
        return Product(
            name=self.name,
            description=self.description,
            price=self.price,
            stock=self.stock
        )


class ProductResponse(BaseModel):
    """Response model for product operations."""
    id: int
    name: str
    description: Optional[str]
    price: Decimal
    stock: int

    @classmethod
    def from_record(cls, product: Product) -> "ProductResponse":
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            stock=product.stock
        )


class UserRequest(BaseModel):
    """Request model for creating or replacing a user.

    ``password`` is optional here so that an update can keep the stored
    credential; creation still requires one.
    """
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH, description="Display name")
    email: str = Field(..., description="Unique email address")
    address: Optional[str] = Field(None, description="Postal address")
    password: Optional[str] = Field(None, description="Secret credential")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name is required")
        return value

    @field_validator("email")
    @classmethod
    def email_well_formed(cls, value: str) -> str:
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Email must be a valid address")
        return value

    def to_record(self) -> User:
        return User(
            name=self.name,
            email=self.email,
            address=self.address,
            password=self.password
        )


class UserResponse(BaseModel):
    """Response model for user operations. The credential is never returned."""
    id: int
    name: str
    email: str
    address: Optional[str]

    @classmethod
    def from_record(cls, user: User) -> "UserResponse":
        return cls(id=user.id, name=user.name, email=user.email, address=user.address)


def to_response(record: Any) -> BaseModel:
    """Convert a stored record to its response model."""
    if isinstance(record, Product):
        return ProductResponse.from_record(record)
    if isinstance(record, User):
        return UserResponse.from_record(record)
    raise TypeError(f"Unsupported record type: {type(record).__name__}")
