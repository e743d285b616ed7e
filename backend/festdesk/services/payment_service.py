# Overview: UPI payment reference helpers (deep link for the QR / pay button).

from __future__ import annotations

from urllib.parse import urlencode

from flask import current_app

from ..errors import ValidationError


def build_upi_link(amount: int, order_id: str, note: str | None = None) -> str:
    """
    upi://pay deep link for the configured merchant.

    The QR code shown to registrants encodes exactly this string.
    """
    if amount is None or int(amount) <= 0:
        raise ValidationError("amount must be a positive number of rupees")
    if not (order_id or "").strip():
        raise ValidationError("order_id is required")

    cfg = current_app.config
    params = {
        "pa": cfg["UPI_ID"],
        "pn": cfg["UPI_MERCHANT_NAME"],
        "am": str(int(amount)),
        "cu": cfg.get("UPI_CURRENCY", "INR"),
        "tn": note or f"{cfg['UPI_MERCHANT_CODE']}-{order_id.strip()}",
    }
    return f"upi://pay?{urlencode(params)}"
