from flask import current_app


def discount_for_tier(tier, discounts=None) -> float:
    if discounts is None:
        discounts = current_app.config.get("LOYALTY_DISCOUNTS", {})
    return float(discounts.get(tier or "", 0) or 0)


def final_price(procedure_price, tier, discounts=None) -> float:
    """Price charged for a procedure given the client's tier at booking time."""
    discount = discount_for_tier(tier, discounts)
    return round(float(procedure_price) * (1 - discount), 2)
