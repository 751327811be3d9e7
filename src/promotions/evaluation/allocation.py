"""Proportional allocation of one aggregate discount across order lines."""

from decimal import Decimal

from protean.exceptions import InvalidOperationError

from promotions.evaluation.results import LineDiscount
from promotions.shared.money import Money


def allocate_discount(items, total_discount: Money) -> list[LineDiscount]:
    """Split ``total_discount`` across ``items`` in proportion to their totals.

    Each share is rounded to the currency precision and clamped to what is
    left to allocate and to the line's own total; the last item receives
    whatever is left so the shares always add up to ``total_discount``
    exactly. If rounding leaves the last line with more than its total, the
    excess moves back onto earlier lines that still have room. No share is
    negative and no line ends below zero.
    """
    items = list(items)
    if not items or total_discount.is_zero:
        return []

    currency = total_discount.currency
    line_totals = [item.total_price for item in items]
    eligible_total = sum((total.decimal_amount for total in line_totals), Decimal(0))

    if total_discount.decimal_amount > eligible_total:
        raise InvalidOperationError(
            f"Cannot allocate {total_discount.format()} over lines totalling "
            f"{Money.create(eligible_total, currency).format()}"
        )

    remaining = total_discount
    shares = []
    for index, line_total in enumerate(line_totals):
        if index == len(items) - 1:
            share = remaining
        else:
            share = total_discount * (line_total.decimal_amount / eligible_total)
            share = Money.min(Money.min(share, remaining), line_total)
            remaining = remaining - share
        shares.append(share)

    # Push any overflow on the last line back onto earlier lines with room
    overflow = shares[-1] - line_totals[-1]
    if overflow.is_positive:
        shares[-1] = line_totals[-1]
        for index in range(len(shares) - 2, -1, -1):
            if not overflow.is_positive:
                break
            moved = Money.min(overflow, line_totals[index] - shares[index])
            shares[index] = shares[index] + moved
            overflow = overflow - moved

    return [
        LineDiscount(
            item=item,
            discount_amount=share,
            original_price=line_total,
            final_price=line_total - share,
        )
        for item, line_total, share in zip(items, line_totals, shares, strict=True)
    ]
