"""Pricing resolver - total for a (service, option, add-ons, quantity) selection"""

from decimal import Decimal
from typing import Iterable, Optional


def _money(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def resolve_price(
    service,
    option=None,
    quantity: int = 1,
    selected_sub_option_ids: Optional[Iterable[int]] = None,
) -> float:
    """
    Compute the monetary total for a selection.

    base unit price = option price, else service price, else 0
    total = base unit price * quantity + sum(selected add-ons of the chosen option)

    Add-ons that do not belong to ``option`` are ignored here; rejecting them is
    the booking guard's job. Add-ons are summed in the option's own order, so the
    result does not depend on the order of ``selected_sub_option_ids``.
    """
    if option is not None and option.price is not None:
        base = _money(option.price)
    else:
        base = _money(service.price)

    total = base * quantity

    selected = set(selected_sub_option_ids or ())
    if option is not None and selected:
        for sub_option in option.sub_options:
            if sub_option.id in selected:
                total += _money(sub_option.price)

    return float(total.quantize(Decimal("0.01")))
