# ------ shopdesk/model/__init__.py ------

from .types import CouponType, OrderStatus, PaymentStatus, ProductStatus
from .customer import Customer
from .address import Address
from .category import Category
from .product import Product, ProductVariant
from .cart import Cart, CartItem
from .coupon import Coupon
from .order import Order, OrderItem

__all__ = [
    "CouponType",
    "OrderStatus",
    "PaymentStatus",
    "ProductStatus",
    "Customer",
    "Address",
    "Category",
    "Product",
    "ProductVariant",
    "Cart",
    "CartItem",
    "Coupon",
    "Order",
    "OrderItem",
]
