"""
Statement Reconciliation - checks an imported batch against the statement's
own opening and closing balances.

    expected_closing = opening + sum(credits) - sum(debits)
    delta            = closing - expected_closing

All arithmetic is in minor units, so "balanced" means an exact match.
"""
import logging
from typing import Iterable, Dict, List, Optional

from .models import Statement, Transaction
from .schema import Reconciliation


def batch_totals(transactions: Iterable[Transaction]) -> Dict[str, int]:
    """Income, expense (as a positive magnitude) and net movement of a batch."""
    income = 0
    expense = 0
    for tx in transactions:
        if tx.amount_minor > 0:
            income += tx.amount_minor
        else:
            expense += -tx.amount_minor
    return {
        "income_minor": income,
        "expense_minor": expense,
        "net_minor": income - expense,
    }


def reconcile(transactions: Iterable[Transaction], opening_minor: int,
              closing_minor: int) -> Reconciliation:
    net = batch_totals(transactions)["net_minor"]
    expected = opening_minor + net
    delta = closing_minor - expected
    result: Reconciliation = {
        "opening_minor": opening_minor,
        "closing_minor": closing_minor,
        "expected_closing_minor": expected,
        "delta_minor": delta,
        "is_balanced": delta == 0,
    }
    if not result["is_balanced"]:
        logging.warning(f"Statement does not reconcile: delta {delta} minor units")
    return result


def build_statement(account_id: str, transactions: List[Transaction], opening_minor: int,
                    closing_minor: int, start_date: Optional[str] = None,
                    end_date: Optional[str] = None, currency: str = "EUR") -> Statement:
    """
    Record for a reconciled import. The period defaults to the batch's own
    date range when the caller does not know it.
    """
    dates = sorted(tx.date for tx in transactions)
    start = start_date or (dates[0].isoformat() if dates else "")
    end = end_date or (dates[-1].isoformat() if dates else "")
    return Statement(
        id=f"stmt_{account_id}_{start}_{end}",
        account_id=account_id,
        start_date=start,
        end_date=end,
        opening_balance_minor=opening_minor,
        closing_balance_minor=closing_minor,
        transaction_ids=[tx.id for tx in transactions],
        currency=currency,
    )
