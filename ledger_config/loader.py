"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads YAML files and parses them into typed ``ledger_config.schema``
dataclass instances.  Callers normally go through
``ledger_config.get_chart_template()`` / ``get_rule_set()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  No dependency on kernel or
reporting; bridges do the translation.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required fields never get silent defaults.
* A chart template lists each code once and every parent before its
  children.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    ChartAccountDef,
    ChartTemplate,
    PredicateDef,
    RuleDef,
    RuleSetDef,
)

ACCOUNT_TYPES = ("asset", "liability", "equity", "income", "expense")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


# ---------------------------------------------------------------------------
# Chart templates
# ---------------------------------------------------------------------------


def parse_chart_account(data: dict[str, Any]) -> ChartAccountDef:
    account_type = str(data["type"]).lower()
    if account_type not in ACCOUNT_TYPES:
        raise ValueError(f"Account {data['code']}: unknown type '{data['type']}'")
    return ChartAccountDef(
        code=str(data["code"]),
        name=data["name"],
        account_type=account_type,
        parent_code=str(data["parent"]) if data.get("parent") is not None else None,
        is_group=bool(data.get("group", False)),
        is_system=bool(data.get("system", False)),
        taxonomy_code=data.get("taxonomy"),
        description=data.get("description"),
    )


def parse_chart_template(data: dict[str, Any], checksum: str = "") -> ChartTemplate:
    """
    Parse a chart template.

    Raises:
        ValueError: duplicate code, parent missing or listed after its
            child, parent not a group, or child type differs from parent.
    """
    accounts: list[ChartAccountDef] = []
    seen: dict[str, ChartAccountDef] = {}
    for raw in data["accounts"]:
        account = parse_chart_account(raw)
        if account.code in seen:
            raise ValueError(f"Duplicate account code {account.code}")
        if account.parent_code is not None:
            parent = seen.get(account.parent_code)
            if parent is None:
                raise ValueError(
                    f"Account {account.code}: parent {account.parent_code} "
                    "is not defined before it"
                )
            if not parent.is_group:
                raise ValueError(f"Account {account.code}: parent {parent.code} is not a group")
            if parent.account_type != account.account_type:
                raise ValueError(
                    f"Account {account.code}: type {account.account_type} differs "
                    f"from parent type {parent.account_type}"
                )
        seen[account.code] = account
        accounts.append(account)

    return ChartTemplate(
        name=data["name"],
        description=data.get("description", ""),
        accounts=tuple(accounts),
        checksum=checksum,
    )


# ---------------------------------------------------------------------------
# Rule sets
# ---------------------------------------------------------------------------


def parse_predicate(data: dict[str, Any]) -> PredicateDef:
    """Parse ``{tag: value}`` or ``{tag: [values]}``."""
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"Predicate must be a single-key mapping, got {data!r}")
    (tag, values), = data.items()
    if isinstance(values, str):
        values = [values]
    values = tuple(str(v) for v in values or ())
    if not values:
        raise ValueError(f"Predicate '{tag}' has no values")
    return PredicateDef(tag=str(tag), values=values)


def parse_rule(data: dict[str, Any]) -> RuleDef:
    predicates = tuple(parse_predicate(p) for p in data["when"])
    if not predicates:
        raise ValueError(f"Rule '{data['name']}' has no predicates")
    return RuleDef(name=data["name"], target=data["target"], predicates=predicates)


def _parse_rules(items: list[dict[str, Any]]) -> tuple[RuleDef, ...]:
    rules = tuple(parse_rule(r) for r in items or ())
    names = [r.name for r in rules]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate rule names: {duplicates}")
    return rules


def parse_rule_set(data: dict[str, Any], checksum: str = "") -> RuleSetDef:
    return RuleSetDef(
        name=data["name"],
        version=int(data.get("version", 1)),
        rules=_parse_rules(data.get("rules", [])),
        cash_flow_rules=_parse_rules(data.get("cash_flow_rules", [])),
        checksum=checksum,
    )
