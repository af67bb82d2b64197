"""Tiered reconciliation of statement lines against supporting documents.

Tiers are tried in order for every transaction; the first tier with any
candidate wins and the first candidate in evidence order is taken:

    1. reference  - digits of both reference codes are equal and non-empty
    2. amount + issuer - amounts within 0.05 and the issuer name appears in
       the transaction description (case-insensitive)
    3. amount - amounts within 0.01

Transactions already carrying a "Verified" note are left alone, so running
the matcher again is a no-op for them.
"""

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import IntEnum

from .models import Evidence, StatementResult, Transaction

logger = logging.getLogger(__name__)

ISSUER_TOLERANCE = Decimal("0.05")
AMOUNT_TOLERANCE = Decimal("0.01")
VERIFIED_PREFIX = "Verified"
# Issuer values that carry no name to look for in a description
PLACEHOLDER_ISSUERS = ("", "unknown")

_NON_DIGITS = re.compile(r"\D")


class MatchTier(IntEnum):
    REFERENCE = 1
    AMOUNT_AND_ISSUER = 2
    AMOUNT = 3


@dataclass(frozen=True)
class Match:
    transaction: Transaction
    evidence: Evidence
    tier: MatchTier


def normalize_reference(reference: str | None) -> str:
    """Keep only the digits of a reference code."""
    if not reference:
        return ""
    return _NON_DIGITS.sub("", reference)


def _within(a: Decimal, b: Decimal, tolerance: Decimal) -> bool:
    if not (a.is_finite() and b.is_finite()):
        return False
    return abs(a - b) < tolerance


def _reference_match(txn: Transaction, ev: Evidence) -> bool:
    ref = normalize_reference(ev.document.reference_code)
    return bool(ref) and ref == normalize_reference(txn.reference_code)


def _amount_and_issuer_match(txn: Transaction, ev: Evidence) -> bool:
    issuer = ev.document.issuer.strip().lower()
    if issuer in PLACEHOLDER_ISSUERS:
        return False
    return (
        _within(ev.document.total_amount, txn.amount, ISSUER_TOLERANCE)
        and issuer in txn.description.lower()
    )


def _amount_match(txn: Transaction, ev: Evidence) -> bool:
    return _within(ev.document.total_amount, txn.amount, AMOUNT_TOLERANCE)


TIERS: list[tuple[MatchTier, Callable[[Transaction, Evidence], bool]]] = [
    (MatchTier.REFERENCE, _reference_match),
    (MatchTier.AMOUNT_AND_ISSUER, _amount_and_issuer_match),
    (MatchTier.AMOUNT, _amount_match),
]


def find_match(txn: Transaction, evidence: Sequence[Evidence]) -> Match | None:
    """Return the first match by tier order, then evidence order."""
    for tier, predicate in TIERS:
        for ev in evidence:
            if predicate(txn, ev):
                return Match(transaction=txn, evidence=ev, tier=tier)
    return None


def match_note(ev: Evidence) -> str:
    if not ev.document.issuer:
        return f"{VERIFIED_PREFIX}: matched with {ev.source_name}"
    return f"{VERIFIED_PREFIX}: matched with {ev.source_name} ({ev.document.issuer})"


def reconcile_statement(
    statement: StatementResult, evidence: Sequence[Evidence]
) -> list[Match]:
    """Annotate the statement's transactions in place.

    Only ``match_note`` and an empty ``category`` are written; evidence is
    never modified. Returns the matches made in this call.
    """
    matches: list[Match] = []
    if not evidence:
        return matches

    for txn in statement.transactions:
        if txn.is_verified:
            continue
        match = find_match(txn, evidence)
        if match is None:
            continue
        txn.match_note = match_note(match.evidence)
        if not txn.category:
            txn.category = match.evidence.document.category
        matches.append(match)
        logger.debug(f"Tier {int(match.tier)} match: {txn.description} -> {match.evidence.source_name}")

    if matches:
        logger.info(f"Reconciled {len(matches)} of {len(statement.transactions)} transactions")
    return matches
