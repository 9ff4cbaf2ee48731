from __future__ import annotations

from typing import Iterable, Protocol

import structlog

from ..errors import ExternalServiceError
from ..utils import ZERO, to_money
from .classification import DEFAULT_RULES, LIABILITY_SLOTS, SLOTS, classify
from .credentials import Credential
from .models import AccountBalance, AggregationResult, BalanceSnapshot, FetchOutcome

log = structlog.get_logger()

CREDIT_CONVENTIONS = ("owed_positive", "owed_negative")


class BalanceFetcher(Protocol):
    def get_balances(self, access_token: str) -> list[AccountBalance]: ...


class BalanceAggregator:
    """Folds per-institution balances into one snapshot, best effort per credential."""

    def __init__(self, fetcher: BalanceFetcher, rules=DEFAULT_RULES, credit_convention: str = "owed_positive"):
        if credit_convention not in CREDIT_CONVENTIONS:
            raise ValueError(f"credit_convention must be one of {CREDIT_CONVENTIONS}")
        self.fetcher = fetcher
        self.rules = tuple(rules)
        self.credit_convention = credit_convention

    def fetch(self, credential: Credential) -> FetchOutcome:
        try:
            accounts = list(self.fetcher.get_balances(credential.access_token) or [])
        except ExternalServiceError as e:
            log.error(
                "institution_fetch_failed",
                institution=credential.institution,
                error_type=type(e).__name__,
                code=e.code,
                err=str(e),
            )
            return FetchOutcome(institution=credential.institution, error=f"{type(e).__name__}: {e}")
        except Exception as e:
            # one bad institution never aborts the others
            log.exception(
                "institution_fetch_failed",
                institution=credential.institution,
                error_type=type(e).__name__,
                code="UNEXPECTED",
                err=str(e),
            )
            return FetchOutcome(institution=credential.institution, error=f"{type(e).__name__}: {e}")
        return FetchOutcome(institution=credential.institution, accounts=accounts)

    def collect(self, credentials: Iterable[Credential]) -> AggregationResult:
        outcomes = [self.fetch(credential) for credential in credentials]
        return AggregationResult(snapshot=self.fold(outcomes), outcomes=outcomes)

    def aggregate(self, credentials: Iterable[Credential]) -> BalanceSnapshot:
        return self.collect(credentials).snapshot

    def fold(self, outcomes: Iterable[FetchOutcome]) -> BalanceSnapshot:
        values = {slot: ZERO for slot in SLOTS}
        for outcome in outcomes:
            if not outcome.ok:
                continue
            for account in outcome.accounts:
                rule = classify(self.rules, outcome.institution, account.subtype)
                if rule is None:
                    continue
                amount = to_money(account.current)
                if amount and rule.slot in LIABILITY_SLOTS and self.credit_convention == "owed_negative":
                    amount = -amount
                if rule.mode == "last":
                    values[rule.slot] = amount
                else:
                    values[rule.slot] += amount
        return BalanceSnapshot(**values)
