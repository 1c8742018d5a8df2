"""
Configuration schema.

Human-authored source artifacts -- chart-of-accounts templates and
classification rule sets -- as parsed from YAML by the loader.  These are
plain declarative data; bridges turn them into kernel and reporting
objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Chart templates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChartAccountDef:
    """One account of a chart template; parents are referenced by code."""

    code: str
    name: str
    account_type: str
    parent_code: str | None = None
    is_group: bool = False
    is_system: bool = False
    taxonomy_code: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class ChartTemplate:
    """
    A complete chart of accounts, parents listed before children.

    ``checksum`` identifies the exact YAML content the template came from.
    """

    name: str
    description: str
    accounts: tuple[ChartAccountDef, ...]
    checksum: str = ""

    def by_code(self, code: str) -> ChartAccountDef | None:
        for account in self.accounts:
            if account.code == code:
                return account
        return None


# ---------------------------------------------------------------------------
# Classification rule sets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PredicateDef:
    """A tagged predicate, e.g. ``name_keyword: [cash, bank]``."""

    tag: str
    values: tuple[str, ...]


@dataclass(frozen=True)
class RuleDef:
    """A named conjunction of predicates and the target it maps to."""

    name: str
    target: str
    predicates: tuple[PredicateDef, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RuleSetDef:
    """
    Ordered statement rules and cash-flow rules.

    Order is significant: the first matching rule wins.
    """

    name: str
    version: int
    rules: tuple[RuleDef, ...]
    cash_flow_rules: tuple[RuleDef, ...] = field(default_factory=tuple)
    checksum: str = ""
