"""
Recurrence Detector - finds periodic charges in the transaction ledger.

Flow: expenses → recurrence-normalized labels → greedy grouping →
frequency classification → amount consistency → activity window.

Grouping is first-match, not a global clustering: input order can move a
borderline transaction between groups.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Dict

import pandas as pd

from .config import Config
from .models import RecurringGroup, Transaction
from .normalize import normalize_recurring_label

FREQUENCY_MONTHS = {"monthly": 1, "quarterly": 3, "annual": 12}

MIN_GROUP_KEY_LENGTH = 3


def _today(now=None) -> date:
    if now is None:
        return date.today()
    if isinstance(now, datetime):
        return now.date()
    return now


def similarity(a: str, b: str) -> float:
    """
    Score two recurrence-normalized labels in [0, 1].

    Exact match is 1; containment is len(shorter) / len(longer); otherwise the
    share of the shorter label's words that overlap (substring either way) a
    word of the longer one, over the larger word count.
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    longer, shorter = (a, b) if len(a) > len(b) else (b, a)
    if shorter in longer:
        return len(shorter) / len(longer)

    shorter_words = shorter.split(" ")
    longer_words = longer.split(" ")
    matches = sum(
        1 for word in shorter_words
        if any(word in other or other in word for other in longer_words)
    )
    return matches / max(len(shorter_words), len(longer_words))


def group_similar(transactions: Iterable[Transaction],
                  threshold: float = Config.SIMILARITY_THRESHOLD) -> Dict[str, List[Transaction]]:
    """Greedy single pass; the first group scoring above ``threshold`` absorbs."""
    groups: Dict[str, List[Transaction]] = {}
    for tx in transactions:
        key = normalize_recurring_label(tx.label)
        if len(key) < MIN_GROUP_KEY_LENGTH:
            continue
        for group_key, members in groups.items():
            if similarity(key, group_key) > threshold:
                members.append(tx)
                break
        else:
            groups[key] = [tx]
    return groups


def detect_frequency(dates: List[date]) -> Optional[str]:
    if len(dates) < 2:
        return None
    ordered = sorted(dates)
    gaps = [(later - earlier).days for earlier, later in zip(ordered, ordered[1:])]
    mean_gap = sum(gaps) / len(gaps)
    for frequency, (low, high) in Config.FREQUENCY_GAPS.items():
        if low <= mean_gap <= high:
            return frequency
    return None


def next_expected_date(last_date: date, frequency: str) -> date:
    """One period after ``last_date``, clamped to month end (Jan 31 → Feb 28)."""
    shifted = pd.Timestamp(last_date) + pd.DateOffset(months=FREQUENCY_MONTHS[frequency])
    return shifted.date()


def group_id(normalized_label: str) -> str:
    return "recurring_" + normalized_label.replace(" ", "_")


def _amounts_consistent(amounts: List[int], mean: float, tolerance: float) -> bool:
    if mean <= 0:
        return False
    return all(abs(a - mean) / mean < tolerance for a in amounts)


def detect_recurring(transactions: Iterable[Transaction],
                     ignored_ids: Iterable[str] = (),
                     now=None,
                     similarity_threshold: float = Config.SIMILARITY_THRESHOLD,
                     amount_variance: float = Config.AMOUNT_VARIANCE) -> List[RecurringGroup]:
    """
    Detect recurring expense groups.

    Args:
        transactions: the ledger (income is ignored)
        ignored_ids: persisted ids the user dismissed; marks ``is_ignored``
        now: reference day for ``is_active`` (defaults to today)
        similarity_threshold: label score a transaction must exceed to join a group
        amount_variance: max relative deviation from the mean for monthly groups

    Returns:
        Groups sorted by average amount, largest first
    """
    ignored = set(ignored_ids)
    today = _today(now)
    expenses = [tx for tx in transactions if not tx.is_income and tx.amount_minor != 0]

    results: List[RecurringGroup] = []
    for key, members in group_similar(expenses, similarity_threshold).items():
        if len(members) < 2:
            continue

        frequency = detect_frequency([tx.date for tx in members])
        if frequency is None:
            continue

        amounts = [abs(tx.amount_minor) for tx in members]
        mean = sum(amounts) / len(amounts)
        # amount check applies to monthly groups only
        if frequency == "monthly" and not _amounts_consistent(amounts, mean, amount_variance):
            continue

        ordered = sorted(members, key=lambda tx: tx.date, reverse=True)
        latest = ordered[0]
        days_since = (today - latest.date).days
        gid = group_id(key)

        results.append(RecurringGroup(
            id=gid,
            label=latest.label,
            normalized_label=key,
            transactions=ordered,
            frequency=frequency,
            average_amount_minor=int(round(mean)),
            category=latest.category,
            last_date=latest.date,
            next_expected_date=next_expected_date(latest.date, frequency),
            is_active=days_since < Config.STALENESS_DAYS[frequency],
            is_ignored=gid in ignored,
        ))

    results.sort(key=lambda g: g.average_amount_minor, reverse=True)
    logging.debug(f"Recurring detection: {len(results)} group(s) from {len(expenses)} expense(s)")
    return results


# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────

def calculate_monthly_recurring(groups: Iterable[RecurringGroup]) -> int:
    """Monthly-equivalent cost of active, non-ignored groups, in minor units."""
    total = 0.0
    for group in groups:
        if not group.is_active or group.is_ignored:
            continue
        total += group.average_amount_minor / FREQUENCY_MONTHS[group.frequency]
    return int(round(total))


def get_upcoming_recurring(groups: Iterable[RecurringGroup], days: int = 30, now=None) -> List[RecurringGroup]:
    """Active, non-ignored groups expected within the next ``days`` days, soonest first."""
    today = _today(now)
    horizon = today + timedelta(days=days)
    upcoming = [
        g for g in groups
        if g.is_active and not g.is_ignored and today <= g.next_expected_date <= horizon
    ]
    return sorted(upcoming, key=lambda g: g.next_expected_date)


def toggle_recurring_ignored(store, group_id: str) -> bool:
    """
    Flip the persisted ignored flag for a group.

    Returns:
        True if the group is now ignored
    """
    ignored = list(store.get_ignored_group_ids())
    if group_id in ignored:
        ignored.remove(group_id)
        now_ignored = False
    else:
        ignored.append(group_id)
        now_ignored = True
    store.put_ignored_group_ids(ignored)
    logging.info(f"Recurring group {group_id} ignored={now_ignored}")
    return now_ignored
