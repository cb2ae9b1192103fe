"""Generated demo expenses shown when no sheet is connected."""

from __future__ import annotations

import random
from datetime import datetime, timedelta
from decimal import Decimal

from .models import CATEGORIES, PAYMENT_METHODS, Category, ExpenseRecord, sort_newest_first

SAMPLE_DESCRIPTIONS: dict[Category, tuple[str, ...]] = {
    "Mobile": ("Phone recharge", "Data pack", "Jio recharge", "Airtel plan", "Vi pack"),
    "Groceries": ("Weekly groceries", "Vegetables", "Fruits & veggies", "Monthly stock", "Milk & dairy"),
    "Home": ("Rent payment", "Maintenance", "Electricity bill", "Water bill", "House repairs"),
    "Loans": ("Fibe Loan", "Personal loan EMI", "Car loan", "Education loan", "Home loan"),
    "EMI": ("Credit card EMI", "Phone EMI", "Laptop EMI", "AC EMI", "TV EMI"),
    "Transport": ("Petrol", "Uber/Ola", "Metro card", "Bus fare", "Auto fare"),
    "Health": ("Medicine", "Doctor consultation", "Lab tests", "Pharmacy", "Health checkup"),
    "Entertainment": ("Netflix", "Movies", "Spotify", "Gaming", "Concert tickets"),
    "Shopping": ("Clothes", "Electronics", "Amazon order", "Flipkart", "Online shopping"),
    "Food": ("Restaurant", "Swiggy", "Zomato", "Dining out", "Office lunch"),
    "Utilities": ("Gas cylinder", "Internet bill", "DTH recharge", "Cable TV", "Society maintenance"),
    "Other": ("Miscellaneous", "Gift", "Donation", "Personal expense", "Unknown"),
}

# Inclusive whole-rupee ranges per category.
SAMPLE_AMOUNT_RANGES: dict[Category, tuple[int, int]] = {
    "Mobile": (199, 999),
    "Groceries": (500, 5000),
    "Home": (5000, 25000),
    "Loans": (5000, 15000),
    "EMI": (2000, 10000),
    "Transport": (100, 3000),
    "Health": (200, 5000),
    "Entertainment": (100, 2000),
    "Shopping": (500, 15000),
    "Food": (150, 2500),
    "Utilities": (200, 3000),
    "Other": (100, 5000),
}

SAMPLE_WINDOW_DAYS = 90


def generate_sample_expenses(
    count: int = 150,
    *,
    seed: int | None = None,
    now: datetime | None = None,
) -> list[ExpenseRecord]:
    """Return ``count`` plausible expenses from the last ~3 months, newest first.

    Pass ``seed`` for a reproducible set.
    """

    if count < 0:
        raise ValueError("count must be non-negative")
    rng = random.Random(seed)
    end = now if now is not None else datetime.now()
    start = end - timedelta(days=SAMPLE_WINDOW_DAYS)
    span = (end - start).total_seconds()

    records: list[ExpenseRecord] = []
    for i in range(count):
        category = rng.choice(CATEGORIES)
        expense_date = start + timedelta(seconds=rng.random() * span)
        recorded_at = expense_date.replace(
            hour=rng.randint(8, 21), minute=rng.randint(0, 59), second=rng.randint(0, 59)
        )
        low, high = SAMPLE_AMOUNT_RANGES[category]
        records.append(
            ExpenseRecord(
                id=f"exp-{i + 1}",
                recorded_at=recorded_at,
                expense_date=expense_date,
                category=category,
                amount=Decimal(rng.randint(low, high)),
                description=rng.choice(SAMPLE_DESCRIPTIONS[category]),
                payment_method=rng.choice(PAYMENT_METHODS),
                receipt_required=rng.random() > 0.7,
                importance=rng.randint(1, 5),
            )
        )
    return sort_newest_first(records)


__all__ = ["SAMPLE_AMOUNT_RANGES", "SAMPLE_DESCRIPTIONS", "generate_sample_expenses"]
