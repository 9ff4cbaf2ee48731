"""Maps (institution, account subtype) to a snapshot slot.

Adding an institution is a new row in the table, not a change to the aggregator.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Literal, Optional

SLOTS = ("wells_fargo_checking", "wells_fargo_credit", "robinhood", "vanguard")
LIABILITY_SLOTS = frozenset({"wells_fargo_credit"})
WILDCARD = "*"

Mode = Literal["sum", "last"]


@dataclass(frozen=True)
class SlotRule:
    institution: str
    subtype: Optional[str]  # None (or "*" in JSON) matches every subtype
    slot: str
    mode: Mode = "sum"

    def matches(self, institution: str, subtype: str | None) -> bool:
        if institution != self.institution:
            return False
        return self.subtype is None or subtype == self.subtype


DEFAULT_RULES: tuple[SlotRule, ...] = (
    SlotRule("wells_fargo", "checking", "wells_fargo_checking", "last"),
    SlotRule("wells_fargo", "credit card", "wells_fargo_credit", "last"),
    SlotRule("robinhood", None, "robinhood", "sum"),
    SlotRule("vanguard", None, "vanguard", "sum"),
)


def classify(rules, institution: str, subtype: str | None) -> SlotRule | None:
    for rule in rules:
        if rule.matches(institution, subtype):
            return rule
    return None


def load_rules(raw: str | None) -> tuple[SlotRule, ...]:
    """Parse CLASSIFICATION_RULES_JSON: a list of {institution, subtype, slot, mode}."""
    if not raw:
        return DEFAULT_RULES
    try:
        items = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid classification rules: {e}") from e
    if not isinstance(items, list):
        raise ValueError("classification rules must be a list")
    rules = []
    for item in items:
        if not isinstance(item, dict):
            raise ValueError("classification rule must be an object")
        slot = item.get("slot")
        if slot not in SLOTS:
            raise ValueError(f"unknown slot {slot!r}")
        mode = item.get("mode", "sum")
        if mode not in ("sum", "last"):
            raise ValueError(f"mode must be sum|last, got {mode!r}")
        institution = item.get("institution")
        if not institution:
            raise ValueError("classification rule missing institution")
        subtype = item.get("subtype")
        if subtype == WILDCARD:
            subtype = None
        rules.append(SlotRule(institution, subtype, slot, mode))
    return tuple(rules)
