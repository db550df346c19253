"""Money helpers shared across the dropship context.

All amounts are integer minor units (cents). Formatting is only ever used
for human-facing messages; arithmetic never leaves integers.
"""


def format_cents(amount_cents: int | None) -> str:
    """Render an amount in cents as a dollar string, e.g. ``4500 -> "$45.00"``."""
    amount_cents = amount_cents or 0
    sign = "-" if amount_cents < 0 else ""
    dollars, cents = divmod(abs(amount_cents), 100)
    return f"{sign}${dollars}.{cents:02d}"
