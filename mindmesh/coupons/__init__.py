"""Coupon blueprint."""

from flask import Blueprint

bp = Blueprint("coupons", __name__, url_prefix="/api/coupons")

from . import routes  # noqa: E402, F401
from .models import Coupon, CouponUsage, CouponValidation, Redemption  # noqa: E402
from .services import CouponService  # noqa: E402

__all__ = [
    "Coupon",
    "CouponService",
    "CouponUsage",
    "CouponValidation",
    "Redemption",
    "routes",
]
