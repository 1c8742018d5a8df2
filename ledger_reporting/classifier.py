"""
Account classifier -- maps leaf accounts onto statement taxonomy lines.

Responsibility:
    Decides which taxonomy line each account reports under.  Precedence,
    first match wins:

        1. the account's own ``taxonomy_code``
        2. the nearest ancestor group's ``taxonomy_code``
        3. the first rule (in list order) whose predicates all match

    Rules are plain data -- a name, a target and a conjunction of tagged
    predicates -- so a rule set can be loaded from YAML and exercised
    without a database.

Architecture position:
    Reporting > Domain -- pure, zero I/O.  Works on ``AccountNode``
    snapshots from ``ledger_kernel.domain.hierarchy``.

Invariants enforced:
    - Classification is deterministic for a given (accounts, rules) pair.
    - An unknown explicit or inherited taxonomy code is skipped (and
      logged), never trusted.
    - Accounts nothing matches are reported as unmapped, not guessed.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from uuid import UUID

from ledger_kernel.domain.hierarchy import AccountNode, ancestors, index_by_id
from ledger_kernel.logging_config import get_logger
from ledger_reporting.taxonomy import is_known

logger = get_logger("reporting.classifier")


class MatchSource:
    """How a classification was reached."""

    EXPLICIT = "explicit"
    INHERITED = "inherited"
    RULE = "rule"


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CategoryMatch:
    """Account type is one of ``categories``."""

    categories: frozenset[str]
    tag = "category"

    def matches(self, account: AccountNode, taxonomy_code: str | None = None) -> bool:
        return account.account_type in self.categories


@dataclass(frozen=True)
class PrefixMatch:
    """Account code starts with one of ``prefixes``."""

    prefixes: tuple[str, ...]
    tag = "code_prefix"

    def matches(self, account: AccountNode, taxonomy_code: str | None = None) -> bool:
        return any(account.code.startswith(p) for p in self.prefixes)


@dataclass(frozen=True)
class KeywordMatch:
    """Account name contains one of ``keywords`` (case-insensitive)."""

    keywords: tuple[str, ...]
    tag = "name_keyword"

    def matches(self, account: AccountNode, taxonomy_code: str | None = None) -> bool:
        name = account.name.lower()
        return any(k.lower() in name for k in self.keywords)


@dataclass(frozen=True)
class TaxonomyMatch:
    """Resolved taxonomy code starts with one of ``prefixes``."""

    prefixes: tuple[str, ...]
    tag = "taxonomy"

    def matches(self, account: AccountNode, taxonomy_code: str | None = None) -> bool:
        if taxonomy_code is None:
            return False
        return any(taxonomy_code.startswith(p) for p in self.prefixes)


Predicate = CategoryMatch | PrefixMatch | KeywordMatch | TaxonomyMatch

PREDICATE_TAGS = ("category", "code_prefix", "name_keyword", "taxonomy")


def make_predicate(tag: str, values: Iterable[str]) -> Predicate:
    """
    Build a predicate from its tag and values.

    Raises:
        ValueError: Unknown tag or empty value list.
    """
    values = tuple(str(v) for v in values)
    if not values:
        raise ValueError(f"Predicate '{tag}' needs at least one value")
    if tag == "category":
        return CategoryMatch(frozenset(v.lower() for v in values))
    if tag == "code_prefix":
        return PrefixMatch(values)
    if tag == "name_keyword":
        return KeywordMatch(values)
    if tag == "taxonomy":
        return TaxonomyMatch(values)
    raise ValueError(f"Unknown predicate tag '{tag}'; expected one of {PREDICATE_TAGS}")


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClassificationRule:
    """
    A named conjunction of predicates pointing at a target.

    For statement rules the target is a taxonomy code; for cash-flow rules
    it is a bucket name.
    """

    name: str
    target: str
    predicates: tuple[Predicate, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.predicates:
            raise ValueError(f"Rule '{self.name}' has no predicates")

    def matches(self, account: AccountNode, taxonomy_code: str | None = None) -> bool:
        return all(p.matches(account, taxonomy_code) for p in self.predicates)


def first_match(
    rules: Sequence[ClassificationRule],
    account: AccountNode,
    taxonomy_code: str | None = None,
) -> ClassificationRule | None:
    """The first rule in list order that matches, or None."""
    for rule in rules:
        if rule.matches(account, taxonomy_code):
            return rule
    return None


@dataclass(frozen=True)
class Classification:
    account_id: UUID
    account_code: str
    taxonomy_code: str
    source: str
    rule_name: str | None = None


@dataclass(frozen=True)
class ClassificationResult:
    """Mapped leaves by account id plus the leaves nothing matched."""

    mapped: Mapping[UUID, Classification]
    unmapped: tuple[AccountNode, ...]

    def code_for(self, account_id: UUID) -> str | None:
        found = self.mapped.get(account_id)
        return found.taxonomy_code if found else None


class AccountClassifier:
    """
    Classifies the leaves of one tenant's chart.

    Usage:
        classifier = AccountClassifier(nodes, rules)
        result = classifier.classify_all()
        result.code_for(bank_id)   # "BS_ASSET_CA_CASH"
    """

    def __init__(
        self,
        accounts: Iterable[AccountNode],
        rules: Sequence[ClassificationRule] = (),
    ):
        unknown = [r.target for r in rules if not is_known(r.target)]
        if unknown:
            raise ValueError(f"Rules target unknown taxonomy codes: {unknown}")
        self._accounts = list(accounts)
        self._by_id = index_by_id(self._accounts)
        self._rules = tuple(rules)

    def _known(self, account: AccountNode, code: str | None) -> bool:
        if code is None:
            return False
        if is_known(code):
            return True
        logger.warning(
            "unknown_taxonomy_code",
            extra={"account_code": account.code, "taxonomy_code": code},
        )
        return False

    def classify(self, account: AccountNode) -> Classification | None:
        if self._known(account, account.taxonomy_code):
            return Classification(
                account_id=account.id,
                account_code=account.code,
                taxonomy_code=account.taxonomy_code,
                source=MatchSource.EXPLICIT,
            )

        for ancestor in ancestors(account.id, self._by_id):
            if self._known(ancestor, ancestor.taxonomy_code):
                return Classification(
                    account_id=account.id,
                    account_code=account.code,
                    taxonomy_code=ancestor.taxonomy_code,
                    source=MatchSource.INHERITED,
                )

        rule = first_match(self._rules, account)
        if rule is not None:
            return Classification(
                account_id=account.id,
                account_code=account.code,
                taxonomy_code=rule.target,
                source=MatchSource.RULE,
                rule_name=rule.name,
            )
        return None

    def classify_all(self) -> ClassificationResult:
        """Classify every leaf account."""
        mapped: dict[UUID, Classification] = {}
        unmapped: list[AccountNode] = []
        for account in sorted(self._accounts, key=lambda a: a.code):
            if account.is_group:
                continue
            found = self.classify(account)
            if found is None:
                unmapped.append(account)
            else:
                mapped[account.id] = found

        if unmapped:
            logger.info(
                "accounts_unmapped",
                extra={"unmapped_codes": [a.code for a in unmapped]},
            )
        return ClassificationResult(mapped=mapped, unmapped=tuple(unmapped))
