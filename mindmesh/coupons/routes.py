"""Routes for the coupon blueprint."""

from __future__ import annotations

from typing import Any

from flask import current_app, g, jsonify, request

from mindmesh.auth.decorators import admin_required, login_required
from mindmesh.core.codes import normalize_code
from mindmesh.core.forms import validate_json
from mindmesh.core.store import get_db

from . import bp
from .forms import ApplyCouponForm, CouponForm, CouponUpdateForm, ValidateCouponForm
from .models import Redemption
from .services import CouponService


@bp.route("/validate", methods=["GET"])
def validate_coupon() -> Any:
    """Tell the caller whether a code can be redeemed right now."""
    form = validate_json(ValidateCouponForm, request.args.to_dict())
    user_id = form.userId.data
    if not user_id and g.get("user"):
        user_id = g.user["uid"]

    result = CouponService.validate(
        get_db(),
        form.code.data,
        event_id=form.eventId.data or None,
        user_id=user_id or None,
        original_price=form.price.data,
        require_event_context=current_app.config["COUPON_REQUIRE_EVENT_CONTEXT"],
    )
    return jsonify(result.to_response())


@bp.route("", methods=["GET"])
@admin_required
def list_coupons() -> Any:
    """List every coupon."""
    return jsonify({"coupons": CouponService.list_coupons(get_db())})


@bp.route("", methods=["POST"])
@admin_required
def create_coupon() -> Any:
    """Create a coupon."""
    form = validate_json(CouponForm)
    coupon = CouponService.create_coupon(
        get_db(), form.submitted_data(), created_by=g.user["uid"]
    )
    return jsonify({"coupon": coupon}), 201


@bp.route("/apply", methods=["POST"])
@login_required
def apply_coupon() -> Any:
    """Redeem a coupon for the signed-in user."""
    form = validate_json(ApplyCouponForm)
    redemption = Redemption(
        coupon_id=form.couponId.data or normalize_code(form.couponCode.data),
        coupon_code=normalize_code(form.couponCode.data),
        user_id=g.user["uid"],
        user_name=g.user.get("name") or "",
        user_email=g.user.get("email") or "",
        event_id=form.eventId.data,
        original_price=form.originalPrice.data,
        discount_amount=form.discountAmount.data,
        final_price=form.finalPrice.data,
    )
    usage = CouponService.apply(
        get_db(),
        redemption,
        require_event_context=current_app.config["COUPON_REQUIRE_EVENT_CONTEXT"],
    )
    return jsonify({"success": True, "usage": usage}), 201


@bp.route("/<string:coupon_id>", methods=["PATCH"])
@admin_required
def update_coupon(coupon_id: str) -> Any:
    """Edit the mutable fields of a coupon."""
    form = validate_json(CouponUpdateForm)
    coupon = CouponService.update_coupon(get_db(), coupon_id, form.submitted_data())
    return jsonify({"coupon": coupon})


@bp.route("/<string:coupon_id>", methods=["DELETE"])
@admin_required
def delete_coupon(coupon_id: str) -> Any:
    """Delete a coupon."""
    CouponService.delete_coupon(get_db(), coupon_id)
    return jsonify({"success": True})


@bp.route("/<string:coupon_id>/usage", methods=["GET"])
@admin_required
def coupon_usage(coupon_id: str) -> Any:
    """List the redemptions of a coupon."""
    CouponService.get_coupon(get_db(), coupon_id)
    return jsonify({"usage": CouponService.list_usage(get_db(), coupon_id)})


@bp.route("/<string:coupon_id>/reconcile", methods=["POST"])
@admin_required
def reconcile_coupon(coupon_id: str) -> Any:
    """Rebuild ``usedCount`` from the usage rows."""
    count = CouponService.reconcile_usage_count(get_db(), coupon_id)
    return jsonify({"couponId": coupon_id, "usedCount": count})
