# Overview: Price tables and per-member amount calculation for tier/pass registrations.

from __future__ import annotations

from ..errors import ValidationError


SELECTION_TIER = "tier"
SELECTION_PASS = "pass"
VALID_SELECTION_TYPES = {SELECTION_TIER, SELECTION_PASS}

TIER_PRICES = {
    "Issue #1": 375,
    "Deluxe Edition": 650,
    "Collectors Print": 850,
}

# Nexus Forum is the only pass sold in sub-tiers.
TIERED_PASS = "Nexus Forum"
PASS_TIERS = ("Standard", "Premium")

PASS_PRICES = {
    "Nexus Arena": 250,
    "Nexus Spotlight": 250,
    "Nexus Forum Standard": 250,
    "Nexus Forum Premium": 750,
}

PASS_TYPES = ("Nexus Arena", "Nexus Spotlight", TIERED_PASS)


def validate_selection(
    selection_type: str | None,
    *,
    tier: str | None = None,
    pass_type: str | None = None,
    pass_tier: str | None = None,
) -> None:
    """
    Enforce exactly one selection per member.

    Raises:
        ValidationError: mixed tier/pass, unknown names, or a pass tier on
        anything other than Nexus Forum (and a missing one on Nexus Forum).
    """
    if selection_type not in VALID_SELECTION_TYPES:
        raise ValidationError("selection_type must be 'tier' or 'pass'")

    if selection_type == SELECTION_TIER:
        if not tier:
            raise ValidationError("Tier must be selected when selection type is tier")
        if pass_type or pass_tier:
            raise ValidationError("Cannot select both tier and pass")
        if tier not in TIER_PRICES:
            raise ValidationError(f"Unknown tier '{tier}'")
        return

    if not pass_type:
        raise ValidationError("Pass type must be selected when selection type is pass")
    if tier:
        raise ValidationError("Cannot select both tier and pass")
    if pass_type not in PASS_TYPES:
        raise ValidationError(f"Unknown pass type '{pass_type}'")
    if pass_type == TIERED_PASS:
        if not pass_tier:
            raise ValidationError("Pass tier must be selected for Nexus Forum")
        if pass_tier not in PASS_TIERS:
            raise ValidationError(f"Unknown pass tier '{pass_tier}'")
    elif pass_tier:
        raise ValidationError("Pass tier can only be selected for Nexus Forum")


def member_amount(
    selection_type: str | None,
    *,
    tier: str | None = None,
    pass_type: str | None = None,
    pass_tier: str | None = None,
) -> int:
    """
    Price of one member's selection. An incomplete or unknown selection is
    worth 0; callers that need strictness call validate_selection first.
    """
    if selection_type == SELECTION_TIER and tier:
        return TIER_PRICES.get(tier, 0)

    if selection_type == SELECTION_PASS and pass_type:
        if pass_type == TIERED_PASS:
            if not pass_tier:
                return 0
            return PASS_PRICES.get(f"{TIERED_PASS} {pass_tier}", 0)
        return PASS_PRICES.get(pass_type, 0)

    return 0


def selection_label(
    selection_type: str | None,
    *,
    tier: str | None = None,
    pass_type: str | None = None,
    pass_tier: str | None = None,
) -> str:
    if selection_type == SELECTION_TIER and tier:
        return tier
    if selection_type == SELECTION_PASS and pass_type:
        if pass_type == TIERED_PASS and pass_tier:
            return f"{pass_type} ({pass_tier})"
        return pass_type
    return "Not Selected"


def event_total(event_price: int, member_count: int) -> int:
    return int(event_price) * int(member_count)
