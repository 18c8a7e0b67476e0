"""
Database Schemas for the Storefront

Each Pydantic model corresponds to one MongoDB collection.
Collection name is the snake_case of the class name (ProductDetail -> "product_detail").
References to other documents are stored as ObjectIds.
Soft-deletable collections get `status`, `deleted_at` and `deleted_by`
from database.Repository on insert, so they are not declared here.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from bson.objectid import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field

import config

Role = Literal["admin", "customer", "seller"]

OrderStatus = Literal[
    "PLACED",
    "CONFIRMED",
    "PACKED",
    "SHIPPED",
    "DELIVERED",
    "CANCELLED",
    "RETURN_REQUESTED",
    "RETURNED",
]
PaymentMethod = Literal["COD", "CARD", "UPI", "NET_BANKING", "WALLET"]
PaymentStatus = Literal["PENDING", "SUCCESS", "FAILED", "REFUNDED"]

MOBILE_PATTERN = r"^[6-9]\d{9}$"


class Document(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)


class User(Document):
    name: str = Field(..., description="Full name")
    email: EmailStr
    mobile: str = Field(..., pattern=MOBILE_PATTERN)
    password_hash: str = Field(..., description="Salted password hash")
    role: Role = "customer"
    wishlist: List[ObjectId] = []
    reset_otp: Optional[str] = None
    reset_otp_expire: Optional[datetime] = None


class Address(BaseModel):
    label: str = "Home"
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    is_default: bool = False


class Profile(Document):
    user: ObjectId
    name: str
    email: EmailStr
    role: Role
    avatar: str = ""
    phone: Optional[str] = None
    gender: Optional[Literal["male", "female", "other"]] = None
    date_of_birth: Optional[datetime] = None
    addresses: List[Address] = []
    orders: List[ObjectId] = []
    bio: str = ""
    kyc_verified: bool = False


class Seo(BaseModel):
    meta_title: Optional[str] = Field(None, max_length=70)
    meta_description: Optional[str] = Field(None, max_length=160)


class Brand(Document):
    name: str = Field(..., max_length=100)
    slug: str
    description: Optional[str] = None
    logo: Optional[str] = Field(None, description="Logo URL")
    website: Optional[str] = None
    seo: Optional[Seo] = None
    created_by: Optional[ObjectId] = None


class Category(Document):
    name: str
    slug: str
    description: Optional[str] = None
    image: Optional[str] = Field(None, description="Image URL")
    parent_category: Optional[ObjectId] = None
    is_featured: bool = False
    sort_order: int = 0


class Product(Document):
    title: str
    slug: str
    brand: Optional[ObjectId] = None
    category: Optional[ObjectId] = None
    thumbnail: str = ""
    images: List[str] = []
    price: float = Field(..., ge=0)
    discount_price: Optional[float] = Field(None, ge=0)
    detail: Optional[ObjectId] = None
    created_by: ObjectId


class ProductDetail(Document):
    product_id: ObjectId
    description: str = ""
    specifications: Dict[str, Any] = {}
    stock: int = Field(0, ge=0)
    warranty: Optional[str] = None
    shipping_info: Optional[str] = None
    return_policy: Optional[str] = None


class CartItem(Document):
    product: ObjectId
    quantity: int = Field(1, ge=1)


class Cart(Document):
    user: ObjectId
    items: List[CartItem] = []


class OrderItem(Document):
    product: ObjectId
    product_detail: Optional[ObjectId] = None
    title: str
    thumbnail: str = ""
    price: float
    quantity: int = Field(..., ge=1)
    subtotal: float


class ShippingAddress(BaseModel):
    full_name: str
    phone: str
    street: str
    city: str
    state: str
    postal_code: str
    country: str = "India"


class Payment(BaseModel):
    method: PaymentMethod
    provider: Optional[str] = None
    transaction_id: Optional[str] = None
    status: PaymentStatus = "PENDING"
    paid_at: Optional[datetime] = None


class Pricing(BaseModel):
    items_total: float
    shipping_fee: float = 0
    tax: float = 0
    discount: float = 0
    grand_total: float


class Order(Document):
    user: ObjectId
    items: List[OrderItem] = Field(..., min_length=1)
    shipping_address: ShippingAddress
    payment: Payment
    pricing: Pricing
    order_status: OrderStatus = "PLACED"
    is_paid: bool = False
    is_delivered: bool = False
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    notes: Optional[str] = None


class Rating(Document):
    product_id: ObjectId
    user_id: ObjectId
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = None
    review: Optional[str] = None
    images: List[str] = []
    helpful_votes: int = 0
    verified_purchase: bool = False


# ----------------------- Shared request bodies -----------------------
class PageBody(BaseModel):
    page: int = Field(1, ge=1)
    size: int = Field(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE)
    search: str = ""


class IdBody(BaseModel):
    id: str
