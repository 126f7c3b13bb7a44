from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class OrderStatus(str, Enum):
    ACTIVE = "active"
    COMPLETE = "complete"


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"
    CARD = "card"


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys (firstName, customerEmail, ...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T


class Identity(BaseModel):
    id: int
    email: str


# Users

class UserCreate(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserOut(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str


class AuthResponse(Envelope[UserOut]):
    token: str


class PurchaseProductOut(CamelModel):
    id: Optional[int] = None
    name: Optional[str] = None
    quantity: int
    unit_price: Decimal


class PurchaseOut(CamelModel):
    id: int
    status: OrderStatus
    customer_first_name: str
    customer_last_name: str
    total: Decimal
    created_at: datetime
    products: List[PurchaseProductOut] = []


class UserWithPurchasesOut(CamelModel):
    user: UserOut
    purchases: List[PurchaseOut] = []


# Products

class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(..., ge=0)
    category: str = Field(..., min_length=1, max_length=50)


class ProductOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    stock: int
    category: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PopularProductOut(ProductOut):
    total_orders: int


# Orders

class CartItemIn(CamelModel):
    """A (productId, quantity) pair; any price sent by the client is ignored."""

    product_id: int
    quantity: int


class CustomerInfo(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class OrderCreate(CamelModel):
    # Presence and positivity are checked by checkout.place_order so the
    # error messages are the same for HTTP and direct callers.
    items: Optional[List[CartItemIn]] = None
    customer_first_name: Optional[str] = None
    customer_last_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_address: Optional[str] = None
    payment_method: Optional[str] = None

    def customer(self) -> CustomerInfo:
        return CustomerInfo(
            first_name=self.customer_first_name,
            last_name=self.customer_last_name,
            email=self.customer_email,
            address=self.customer_address,
        )


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemOut(BaseModel):
    id: int
    order_id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    # Joined from the current product row
    name: Optional[str] = None
    description: Optional[str] = None


class OrderOut(BaseModel):
    id: int
    user_id: int
    status: OrderStatus
    customer_first_name: str
    customer_last_name: str
    customer_email: str
    customer_address: str
    payment_method: PaymentMethod
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderDetailOut(OrderOut):
    items: List[OrderItemOut] = []


class HealthOut(BaseModel):
    status: str = "ok"
