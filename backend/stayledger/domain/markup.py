# backend/stayledger/domain/markup.py
from __future__ import annotations

# Billed amounts are compared to the cent.
TOLERANCE = 0.01


def billed_amount(total_cost: float, markup_percent: float) -> float:
    """total_cost * (1 + markup_percent / 100), rounded to cents."""
    return round(float(total_cost) * (1.0 + float(markup_percent) / 100.0), 2)


def matches_markup(total_cost: float, markup_percent: float, billed: float) -> bool:
    return abs(billed_amount(total_cost, markup_percent) - float(billed)) <= TOLERANCE + 1e-9


def profit(total_cost: float, billed: float) -> float:
    return round(float(billed) - float(total_cost), 2)
