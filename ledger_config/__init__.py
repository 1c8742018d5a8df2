"""
ledger_config -- public entrypoint for ledger configuration.

Responsibility:
    Loads the named configuration set -- a chart-of-accounts template and
    a classification rule set -- from YAML under ``sets/<name>/``.

Architecture position:
    Configuration -- the outermost layer.  It sits above ``ledger_kernel``
    and ``ledger_reporting``; neither of them may import ``ledger_config``.
    Bridges in this package translate parsed configuration into kernel and
    reporting inputs.

Failure modes:
    - ``FileNotFoundError`` -- no such configuration set.
    - ``ValueError`` / ``KeyError`` -- schema or structural errors.

Audit relevance:
    Every load emits a ``LEDGER_CONFIG_TRACE`` log entry with the set name,
    the file and its SHA-256 checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ledger_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_chart_template,
    parse_rule_set,
)
from ledger_config.schema import ChartTemplate, RuleSetDef

_logger = logging.getLogger("ledger_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

DEFAULT_SET = "india_gaap"
CHART_FILE = "chart.yaml"
RULES_FILE = "classification.yaml"


def _load(set_name: str, file_name: str, config_dir: Path | None) -> tuple[dict, str]:
    path = (config_dir or _DEFAULT_CONFIG_DIR) / set_name / file_name
    data = load_yaml_file(path)
    checksum = compute_checksum(data)
    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "config_set": set_name,
            "file": file_name,
            "checksum": checksum,
        },
    )
    return data, checksum


def get_chart_template(
    set_name: str = DEFAULT_SET,
    config_dir: Path | None = None,
) -> ChartTemplate:
    """
    Chart-of-accounts template of a configuration set.

    Args:
        set_name: Directory name under the sets directory.
        config_dir: Override path to the sets directory.
    """
    data, checksum = _load(set_name, CHART_FILE, config_dir)
    return parse_chart_template(data, checksum)


def get_rule_set(
    set_name: str = DEFAULT_SET,
    config_dir: Path | None = None,
) -> RuleSetDef:
    """Statement and cash-flow classification rules of a configuration set."""
    data, checksum = _load(set_name, RULES_FILE, config_dir)
    return parse_rule_set(data, checksum)


def available_sets(config_dir: Path | None = None) -> list[str]:
    """Names of the configuration sets that ship a chart template."""
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    return sorted(p.parent.name for p in sets_dir.glob(f"*/{CHART_FILE}"))


__all__ = [
    "ChartTemplate",
    "RuleSetDef",
    "available_sets",
    "get_chart_template",
    "get_rule_set",
]
