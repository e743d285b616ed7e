# Overview: Flask API routes for payment references; returns the UPI deep link.

from flask import Blueprint, request, jsonify, current_app

from ..services import payment_service


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.get("/upi-link")
def upi_link_route():
    """
    Query params: amount (rupees), order_id, note (optional).

    Returns:
        200: {"upi_link": "upi://pay?..."}
        400: missing or invalid amount / order_id
    """
    try:
        amount = request.args.get("amount", type=int)
        order_id = request.args.get("order_id", "")
        note = request.args.get("note")

        link = payment_service.build_upi_link(amount, order_id, note)
        return jsonify({
            "upi_link": link,
            "upi_id": current_app.config["UPI_ID"],
            "amount": amount,
        }), 200

    except (ValueError, TypeError) as e:
        return jsonify({"error": str(e) or "Invalid amount"}), 400
    except Exception:
        current_app.logger.exception("Failed to build UPI link")
        return jsonify({"error": "Internal server error"}), 500
