"""
Database Schemas for QALab Shop

Each Pydantic model correlates to a MongoDB collection. The collection name is the lowercase of the class name.
- User -> "user"
- Product -> "product"
- Order -> "order" (order items are embedded in the order document)
- Cart -> "cart"

Documents are stored with snake_case keys. Request models accept the camelCase
names the storefront sends (inStock, reviewCount, totalAmount, ...).
"""

from pydantic import BaseModel, ConfigDict, Field, EmailStr
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Literal, Optional

ORDER_STATUSES = ["PENDING", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED"]
CANCELLABLE_STATUSES = ["PENDING", "PROCESSING"]

Role = Literal["USER", "ADMIN"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password_hash: str = Field(..., description="BCrypt password hash")
    role: Role = Field("USER", description="USER or ADMIN")


class Product(BaseModel):
    name: str = Field(..., description="Product name")
    description: str = Field(..., description="Product description")
    price: float = Field(..., gt=0, description="Price in EUR")
    category: str = Field(..., description="Product category")
    stock: int = Field(0, ge=0, description="Units in stock")
    in_stock: bool = Field(False, description="Shown as available in the storefront")
    rating: float = Field(0, ge=0, le=5, description="Average rating")
    review_count: int = Field(0, ge=0, description="Number of reviews")
    image: Optional[str] = Field(None, description="Image URL")


class CustomerInfo(CamelModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    zip_code: str = ""
    country: str = ""


class OrderItem(BaseModel):
    id: str
    order_id: str
    product_id: str
    quantity: int = Field(1, ge=1)
    price: float = Field(..., description="Unit price captured at order time")


class Order(BaseModel):
    user_id: str = Field(..., description="User placing the order")
    status: Literal["PENDING", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED"] = "PENDING"
    total_amount: float = 0
    customer_info: Dict[str, Any] = Field(default_factory=dict)
    shipping: Dict[str, Any] = Field(default_factory=dict)
    items: List[OrderItem] = Field(default_factory=list)


# Lightweight request models
class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr


class ProductCreateRequest(CamelModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    price: float = Field(..., gt=0)
    category: str = Field(..., min_length=1)
    stock: int = Field(..., ge=0)
    in_stock: Optional[bool] = None
    image: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    review_count: Optional[int] = Field(None, ge=0)


class ProductUpdateRequest(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, gt=0)
    category: Optional[str] = Field(None, min_length=1)
    stock: Optional[int] = Field(None, ge=0)
    in_stock: Optional[bool] = None
    image: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    review_count: Optional[int] = Field(None, ge=0)


class CheckoutProduct(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)


class CheckoutItem(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)

    id: Optional[str] = None
    product_id: Optional[str] = None
    product: Optional[CheckoutProduct] = None
    quantity: int = Field(..., ge=1)
    price: Optional[float] = Field(None, ge=0)


class CheckoutTotals(BaseModel):
    subtotal: Optional[float] = None
    tax: Optional[float] = None
    shipping: Optional[float] = None
    total: Optional[float] = None


class OrderCreateRequest(CamelModel):
    items: List[CheckoutItem] = Field(default_factory=list)
    totals: Optional[CheckoutTotals] = None
    total_amount: Optional[float] = None
    customer_info: Optional[Dict[str, Any]] = None
    shipping: Optional[Dict[str, Any]] = None
    payment: Optional[Dict[str, Any]] = None
    status: Optional[str] = None


class ContactRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None
    newsletter: bool = False
    contact_method: Literal["email", "phone", "post"] = "email"
    priority: Literal["low", "medium", "high"] = "medium"


class CartProduct(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    name: Optional[str] = None
    price: float = Field(0, ge=0)


class CartLineIn(BaseModel):
    id: Optional[str] = None
    product: CartProduct
    quantity: int = Field(..., ge=1)


class CartUpdateRequest(BaseModel):
    items: List[CartLineIn] = Field(default_factory=list)
