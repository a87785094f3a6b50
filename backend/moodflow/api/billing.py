"""
Billing routes: one-time M-Pesa payment for the premium tier.
"""
import logging
from flask import Blueprint, request, jsonify, g, current_app
from marshmallow import Schema, fields, ValidationError

from ..errors import MoodflowError
from ..services.tier_gate import usage
from ..utils.auth_adapter import auth_required, profile_required
from . import error_response, unexpected_error, entry_store

billing_bp = Blueprint("billing", __name__)
logger = logging.getLogger(__name__)


class UpgradeSchema(Schema):
    phone_number = fields.String(required=True)


@billing_bp.route("/billing/status", methods=["GET"])
@auth_required
def billing_status():
    session = g.session
    user = session.user
    count = entry_store().count()
    return jsonify({
        "subscription_status": user["subscription_status"],
        "price": current_app.config.get('PREMIUM_PRICE_KES', 500),
        "currency": "KES",
        "usage": usage(user, count, current_app.config.get('FREE_TIER_ENTRY_LIMIT', 5)),
    })


@billing_bp.route("/billing/upgrade", methods=["POST"])
@auth_required
@profile_required
def upgrade():
    """Charge the premium price and upgrade on a confirmed payment.

    Expects JSON body with: {"phone_number": "07XXXXXXXX"}
    """
    try:
        data = UpgradeSchema().load(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": "Validation failed", "details": e.messages}), 400

    session = g.session
    if session.user["subscription_status"] == "premium":
        return jsonify({"message": "You are already a premium member", "user": session.user})

    amount = current_app.config.get('PREMIUM_PRICE_KES', 500)
    logger.info(f"Processing M-Pesa payment of KES {amount} for user {session.user_id}")
    try:
        confirmation = current_app.payment_gateway.pay(data['phone_number'], amount)
        user = session.upgrade_to_premium(confirmation)
    except MoodflowError as e:
        logger.warning(f"Upgrade failed for {session.user_id}: {e.message}")
        return error_response(e)
    except Exception as e:
        return unexpected_error("processing the payment", e)

    return jsonify({
        "message": "Payment successful! Welcome to MoodFlow Premium.",
        "transaction_id": confirmation["transaction_id"],
        "user": user,
    })
