"""Data models for the coupon blueprint."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from mindmesh.core.types import FirestoreDocument


class Coupon(FirestoreDocument, total=False):
    """A coupon document in Firestore; the document id is the upper-case code."""

    code: str
    description: Optional[str]
    type: str  # percentage/fixed
    value: float
    minPurchase: float
    maxDiscount: Optional[float]
    scope: str  # global/event
    eventId: Optional[str]
    eventName: Optional[str]
    usageLimit: int  # 0 = unlimited
    usedCount: int
    perUserLimit: int  # 0 = unlimited
    validFrom: Any
    validUntil: Any
    isActive: bool
    createdBy: str


class CouponUsage(FirestoreDocument, total=False):
    """One redemption of a coupon. Written once, never mutated."""

    couponId: str
    couponCode: str
    userId: str
    userName: str
    userEmail: str
    eventId: str
    originalPrice: float
    discountAmount: float
    finalPrice: float
    usedAt: Any


@dataclass
class CouponValidation:
    """Outcome of validating a coupon code."""

    valid: bool
    reason: Optional[str] = None
    coupon: dict[str, Any] = field(default_factory=dict)

    def to_response(self) -> dict[str, Any]:
        """Shape the outcome as the API returns it."""
        if not self.valid:
            return {"valid": False, "error": self.reason}
        return {"valid": True, "coupon": self.coupon}


@dataclass
class Redemption:
    """A request to redeem a coupon against an event registration."""

    coupon_id: str
    user_id: str
    event_id: str
    original_price: float
    coupon_code: str = ""
    user_name: str = ""
    user_email: str = ""
    discount_amount: Optional[float] = None
    final_price: Optional[float] = None
