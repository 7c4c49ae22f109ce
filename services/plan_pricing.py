"""Display helpers for plan prices."""

from __future__ import annotations

from typing import Dict, Optional, Union

from services.plan_catalog import PlanCatalog, TierLike, get_plan_catalog

FREE_LABEL = "Free"
CURRENCY_SYMBOL = "₹"

Amount = Union[int, float]


def _group_indian(digits: str) -> str:
    # Last three digits, then groups of two (12,34,567).
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_price(amount: Amount) -> str:
    """Format an INR amount for display; zero is shown as ``"Free"``.

    >>> format_price(1599)
    '₹1,599'
    >>> format_price(100000)
    '₹1,00,000'
    """
    if amount < 0:
        raise ValueError("price cannot be negative")
    if amount == 0:
        return FREE_LABEL
    total_paise = int(round(amount * 100))
    if total_paise == 0:
        raise ValueError(f"price {amount!r} is below one paisa")
    whole, paise = divmod(total_paise, 100)
    text = f"{CURRENCY_SYMBOL}{_group_indian(str(whole))}"
    if paise:
        text += f".{paise:02d}"
    return text


def price_summary(tier: TierLike, *, catalog: Optional[PlanCatalog] = None) -> Dict[str, object]:
    """Raw and formatted prices for one tier."""
    resolved = catalog if catalog is not None else get_plan_catalog()
    price = resolved.price_of(tier)
    return {
        "monthly": price.monthly,
        "annual": price.annual,
        "monthlyLabel": format_price(price.monthly),
        "annualLabel": format_price(price.annual),
    }


__all__ = ["CURRENCY_SYMBOL", "FREE_LABEL", "format_price", "price_summary"]
