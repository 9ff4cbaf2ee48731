from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from ..utils import ZERO, to_money


@dataclass(frozen=True)
class AccountBalance:
    """One account as reported by the aggregation provider."""
    subtype: str | None
    current: Decimal = ZERO
    account_id: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class BalanceSnapshot:
    wells_fargo_checking: Decimal = ZERO
    wells_fargo_credit: Decimal = ZERO
    robinhood: Decimal = ZERO
    vanguard: Decimal = ZERO

    @property
    def net_worth(self) -> Decimal:
        # credit is a liability: always subtracted
        return self.wells_fargo_checking + self.robinhood + self.vanguard - self.wells_fargo_credit

    def as_dict(self) -> dict:
        return {
            "wells_fargo_checking": self.wells_fargo_checking,
            "wells_fargo_credit": self.wells_fargo_credit,
            "robinhood": self.robinhood,
            "vanguard": self.vanguard,
            "net_worth": self.net_worth,
        }


@dataclass(frozen=True)
class FetchOutcome:
    institution: str
    accounts: list[AccountBalance] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AggregationResult:
    snapshot: BalanceSnapshot
    outcomes: list[FetchOutcome] = field(default_factory=list)

    @property
    def failed_institutions(self) -> list[str]:
        return [o.institution for o in self.outcomes if not o.ok]


@dataclass(frozen=True)
class AthState:
    value: Decimal = ZERO
    date: date | None = None


@dataclass(frozen=True)
class HistoricalRecord:
    id: int
    date: date
    wells_fargo_checking: Decimal
    wells_fargo_credit: Decimal
    robinhood: Decimal
    vanguard: Decimal
    net_worth: Decimal
    is_ath: bool
    run_id: str | None = None

    @classmethod
    def from_row(cls, row) -> "HistoricalRecord":
        return cls(
            id=row[0],
            date=date.fromisoformat(row[1]),
            wells_fargo_checking=to_money(row[2]),
            wells_fargo_credit=to_money(row[3]),
            robinhood=to_money(row[4]),
            vanguard=to_money(row[5]),
            net_worth=to_money(row[6]),
            is_ath=bool(row[7]),
            run_id=row[8],
        )
