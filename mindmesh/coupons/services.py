"""Service layer for coupon validation, redemption and administration."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any, Optional

from mindmesh.core.codes import normalize_code
from mindmesh.core.constants import (
    COUPON_EDITABLE_FIELDS,
    COUPON_SCOPES,
    COUPON_TYPES,
    COUPON_USAGE_COLLECTION,
    COUPONS_COLLECTION,
)
from mindmesh.core.store import (
    delete_document,
    get_document,
    list_documents,
    query_in_transaction,
    run_transaction,
    snapshot_to_dict,
    update_document,
)
from mindmesh.errors import (
    DuplicateResourceError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from mindmesh.utils import parse_datetime, sort_timestamp, utcnow

from .models import CouponValidation, Redemption

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.transaction import Transaction

logger = logging.getLogger(__name__)

INVALID_CODE = "Invalid coupon code"
INACTIVE = "This coupon is no longer active"
NOT_YET_VALID = "This coupon is not yet valid"
EXPIRED = "This coupon has expired"
USAGE_LIMIT_REACHED = "This coupon has reached its usage limit"
WRONG_EVENT = "This coupon is not valid for this event"
EVENT_REQUIRED = "This coupon requires an event"
ALREADY_USED = "You've already used this coupon"


class CouponService:
    """Handles business logic and data access for coupons."""

    @staticmethod
    def public_view(coupon: dict[str, Any]) -> dict[str, Any]:
        """The subset of a coupon exposed to end users."""
        return {
            "id": coupon.get("id"),
            "code": coupon.get("code"),
            "type": coupon.get("type"),
            "value": coupon.get("value"),
            "maxDiscount": coupon.get("maxDiscount"),
            "minPurchase": coupon.get("minPurchase", 0),
            "description": coupon.get("description"),
            "scope": coupon.get("scope", "global"),
            "eventId": coupon.get("eventId"),
        }

    @staticmethod
    def evaluate(
        coupon: dict[str, Any],
        *,
        now: datetime.datetime,
        event_id: Optional[str] = None,
        user_usage_count: int = 0,
        original_price: Optional[float] = None,
        require_event_context: bool = False,
    ) -> Optional[str]:
        """Return the first rule the coupon fails, or None if it is usable.

        Checks run in a fixed order: active flag, time window (inclusive at
        both ends), global usage cap, event scope, per-user cap and finally
        the minimum purchase when a price is known.
        """
        if not coupon.get("isActive"):
            return INACTIVE

        valid_from = coupon.get("validFrom")
        if valid_from is not None and now < parse_datetime(valid_from):
            return NOT_YET_VALID
        valid_until = coupon.get("validUntil")
        if valid_until is not None and now > parse_datetime(valid_until):
            return EXPIRED

        usage_limit = int(coupon.get("usageLimit") or 0)
        if usage_limit > 0 and int(coupon.get("usedCount") or 0) >= usage_limit:
            return USAGE_LIMIT_REACHED

        if coupon.get("scope") == "event":
            if not event_id:
                if require_event_context:
                    return EVENT_REQUIRED
            elif coupon.get("eventId") and coupon["eventId"] != event_id:
                return WRONG_EVENT

        per_user_limit = int(coupon.get("perUserLimit") or 0)
        if per_user_limit > 0 and user_usage_count >= per_user_limit:
            return ALREADY_USED

        min_purchase = float(coupon.get("minPurchase") or 0)
        if original_price is not None and original_price < min_purchase:
            return f"This coupon requires a minimum purchase of {min_purchase:g}"

        return None

    @staticmethod
    def calculate_discount(
        coupon: dict[str, Any], original_price: float
    ) -> tuple[float, float]:
        """Return ``(discount, final_price)`` for a price.

        Percentage coupons take ``value`` percent of the price, capped at
        ``maxDiscount`` when one is set. Fixed coupons take ``value`` off. The
        discount never exceeds the price, so the final price is never negative.
        """
        price = float(original_price)
        if price < 0:
            raise ValidationError("originalPrice cannot be negative.")

        value = float(coupon.get("value") or 0)
        if coupon.get("type") == "percentage":
            discount = price * value / 100
            max_discount = coupon.get("maxDiscount")
            if max_discount is not None and float(max_discount) > 0:
                discount = min(discount, float(max_discount))
        else:
            discount = value

        discount = round(min(max(discount, 0.0), price), 2)
        return discount, round(max(price - discount, 0.0), 2)

    @staticmethod
    def count_user_usage(db: Client, coupon_id: str, user_id: str) -> int:
        """Count the redemptions a user has made with a coupon."""
        return len(
            list_documents(
                db,
                COUPON_USAGE_COLLECTION,
                [("couponId", "==", coupon_id), ("userId", "==", user_id)],
            )
        )

    @staticmethod
    def validate(
        db: Client,
        code: str,
        event_id: Optional[str] = None,
        user_id: Optional[str] = None,
        original_price: Optional[float] = None,
        require_event_context: bool = False,
        now: Optional[datetime.datetime] = None,
    ) -> CouponValidation:
        """Check whether a code can be redeemed right now."""
        normalized = normalize_code(code)
        coupon = get_document(db, COUPONS_COLLECTION, normalized) if normalized else None
        if coupon is None:
            return CouponValidation(valid=False, reason=INVALID_CODE)

        usage_count = 0
        if user_id and int(coupon.get("perUserLimit") or 0) > 0:
            usage_count = CouponService.count_user_usage(db, coupon["id"], user_id)

        reason = CouponService.evaluate(
            coupon,
            now=now or utcnow(),
            event_id=event_id,
            user_usage_count=usage_count,
            original_price=original_price,
            require_event_context=require_event_context,
        )
        if reason:
            return CouponValidation(valid=False, reason=reason)
        return CouponValidation(valid=True, coupon=CouponService.public_view(coupon))

    @staticmethod
    def _apply_transaction(
        transaction: Transaction,
        db: Client,
        redemption: Redemption,
        require_event_context: bool,
        now: datetime.datetime,
    ) -> dict[str, Any]:
        """Re-check every rule and record the redemption atomically."""
        coupon_ref = db.collection(COUPONS_COLLECTION).document(redemption.coupon_id)
        coupon = snapshot_to_dict(coupon_ref.get(transaction=transaction))
        if coupon is None:
            raise NotFoundError("Coupon not found")

        prior_uses = query_in_transaction(
            db,
            transaction,
            COUPON_USAGE_COLLECTION,
            [("couponId", "==", coupon["id"]), ("userId", "==", redemption.user_id)],
        )

        reason = CouponService.evaluate(
            coupon,
            now=now,
            event_id=redemption.event_id,
            user_usage_count=len(prior_uses),
            original_price=redemption.original_price,
            require_event_context=require_event_context,
        )
        if reason:
            raise InvalidStateError(reason)

        discount, final_price = CouponService.calculate_discount(
            coupon, redemption.original_price
        )
        usage = {
            "couponId": coupon["id"],
            "couponCode": coupon.get("code") or redemption.coupon_code,
            "userId": redemption.user_id,
            "userName": redemption.user_name,
            "userEmail": redemption.user_email,
            "eventId": redemption.event_id,
            "originalPrice": float(redemption.original_price),
            "discountAmount": discount,
            "finalPrice": final_price,
            "usedAt": now,
        }
        usage_ref = db.collection(COUPON_USAGE_COLLECTION).document()
        transaction.set(usage_ref, usage)
        transaction.update(
            coupon_ref,
            {"usedCount": int(coupon.get("usedCount") or 0) + 1, "updatedAt": now},
        )
        return {**usage, "id": usage_ref.id}

    @staticmethod
    def apply(
        db: Client,
        redemption: Redemption,
        require_event_context: bool = False,
        now: Optional[datetime.datetime] = None,
    ) -> dict[str, Any]:
        """Redeem a coupon and return the usage record.

        The usage row and the ``usedCount`` increment are written in the same
        transaction as the re-validation, so concurrent redemptions can
        neither overrun the caps nor lose an increment.
        """
        usage = run_transaction(
            db,
            CouponService._apply_transaction,
            db,
            redemption,
            require_event_context,
            now or utcnow(),
        )

        for label, claimed, actual in (
            ("discountAmount", redemption.discount_amount, usage["discountAmount"]),
            ("finalPrice", redemption.final_price, usage["finalPrice"]),
        ):
            if claimed is not None and round(float(claimed), 2) != actual:
                logger.warning(
                    f"Client {label} {claimed} for coupon {usage['couponId']} "
                    f"differs from server value {actual}; using server value."
                )

        logger.info(
            f"Coupon {usage['couponId']} redeemed by {usage['userId']} "
            f"for event {usage['eventId']}."
        )
        return usage

    @staticmethod
    def _check_window(valid_from: Any, valid_until: Any) -> None:
        if valid_from is None or valid_until is None:
            raise ValidationError("validFrom and validUntil are required.")
        if parse_datetime(valid_from) > parse_datetime(valid_until):
            raise ValidationError("validFrom must not be after validUntil.")

    @staticmethod
    def _create_transaction(
        transaction: Transaction, db: Client, code: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        ref = db.collection(COUPONS_COLLECTION).document(code)
        if ref.get(transaction=transaction).exists:
            raise DuplicateResourceError("Coupon code already exists")
        transaction.set(ref, data)
        return {**data, "id": code}

    @staticmethod
    def create_coupon(
        db: Client, data: dict[str, Any], created_by: str = ""
    ) -> dict[str, Any]:
        """Create a coupon; the code becomes the document id."""
        code = normalize_code(data.get("code"))
        if not code:
            raise ValidationError("code is required.")

        coupon_type = data.get("type")
        if coupon_type not in COUPON_TYPES:
            raise ValidationError(f"type must be one of {', '.join(COUPON_TYPES)}.")
        value = data.get("value")
        if value is None or float(value) <= 0:
            raise ValidationError("value must be greater than 0.")
        if coupon_type == "percentage" and float(value) > 100:
            raise ValidationError("A percentage coupon cannot exceed 100.")

        scope = data.get("scope") or "global"
        if scope not in COUPON_SCOPES:
            raise ValidationError(f"scope must be one of {', '.join(COUPON_SCOPES)}.")
        if scope == "event" and not data.get("eventId"):
            raise ValidationError("eventId is required for an event coupon.")

        CouponService._check_window(data.get("validFrom"), data.get("validUntil"))

        now = utcnow()
        coupon = {
            "code": code,
            "description": data.get("description") or None,
            "type": coupon_type,
            "value": float(value),
            "minPurchase": float(data.get("minPurchase") or 0),
            "maxDiscount": float(data["maxDiscount"]) if data.get("maxDiscount") else None,
            "scope": scope,
            "eventId": data.get("eventId") if scope == "event" else None,
            "eventName": data.get("eventName") if scope == "event" else None,
            "usageLimit": int(data.get("usageLimit") or 0),
            "usedCount": 0,
            "perUserLimit": int(data.get("perUserLimit") or 0),
            "validFrom": parse_datetime(data["validFrom"]),
            "validUntil": parse_datetime(data["validUntil"]),
            "isActive": data.get("isActive", True),
            "createdBy": created_by,
            "createdAt": now,
        }
        created = run_transaction(
            db, CouponService._create_transaction, db, code, coupon
        )
        logger.info(f"Coupon {code} created by {created_by or 'unknown'}.")
        return created

    @staticmethod
    def get_coupon(db: Client, coupon_id: str) -> dict[str, Any]:
        """Fetch a coupon or raise NotFoundError."""
        coupon = get_document(db, COUPONS_COLLECTION, coupon_id)
        if coupon is None:
            raise NotFoundError("Coupon not found")
        return coupon

    @staticmethod
    def list_coupons(db: Client) -> list[dict[str, Any]]:
        """All coupons, ordered by code."""
        coupons = list_documents(db, COUPONS_COLLECTION)
        return sorted(coupons, key=lambda c: c.get("code") or "")

    @staticmethod
    def update_coupon(
        db: Client, coupon_id: str, updates: dict[str, Any]
    ) -> dict[str, Any]:
        """Apply whitelisted edits. ``usedCount`` can never be set directly."""
        coupon = CouponService.get_coupon(db, coupon_id)
        safe = {k: v for k, v in updates.items() if k in COUPON_EDITABLE_FIELDS}
        if not safe:
            raise ValidationError("No editable fields supplied.")

        for key in ("usageLimit", "perUserLimit"):
            if key in safe:
                safe[key] = int(safe[key] or 0)
                if safe[key] < 0:
                    raise ValidationError(f"{key} cannot be negative.")
        for key in ("validFrom", "validUntil"):
            if key in safe:
                safe[key] = parse_datetime(safe[key])
        if "validFrom" in safe or "validUntil" in safe:
            CouponService._check_window(
                safe.get("validFrom", coupon.get("validFrom")),
                safe.get("validUntil", coupon.get("validUntil")),
            )

        safe["updatedAt"] = utcnow()
        return update_document(db, COUPONS_COLLECTION, coupon_id, safe) or {}

    @staticmethod
    def delete_coupon(db: Client, coupon_id: str) -> None:
        """Delete a coupon. Its usage rows stay as an audit trail."""
        CouponService.get_coupon(db, coupon_id)
        delete_document(db, COUPONS_COLLECTION, coupon_id)
        logger.info(f"Coupon {coupon_id} deleted.")

    @staticmethod
    def list_usage(db: Client, coupon_id: str) -> list[dict[str, Any]]:
        """Redemptions of a coupon, oldest first."""
        usage = list_documents(
            db, COUPON_USAGE_COLLECTION, [("couponId", "==", coupon_id)]
        )
        return sorted(usage, key=lambda u: sort_timestamp(u.get("usedAt")))

    @staticmethod
    def _reconcile_transaction(
        transaction: Transaction, db: Client, coupon_id: str
    ) -> int:
        coupon_ref = db.collection(COUPONS_COLLECTION).document(coupon_id)
        if not coupon_ref.get(transaction=transaction).exists:
            raise NotFoundError("Coupon not found")
        rows = query_in_transaction(
            db, transaction, COUPON_USAGE_COLLECTION, [("couponId", "==", coupon_id)]
        )
        transaction.update(coupon_ref, {"usedCount": len(rows)})
        return len(rows)

    @staticmethod
    def reconcile_usage_count(db: Client, coupon_id: str) -> int:
        """Rewrite ``usedCount`` from the usage rows, the source of truth."""
        count = run_transaction(
            db, CouponService._reconcile_transaction, db, coupon_id
        )
        logger.info(f"Coupon {coupon_id} usedCount reconciled to {count}.")
        return count
