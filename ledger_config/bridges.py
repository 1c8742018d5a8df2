"""
Config -> Kernel / Reporting Bridges.

Functions that convert parsed configuration into kernel and reporting
inputs.  These live in ledger_config (the producer) because neither the
kernel nor the reporting layer may import ledger_config.

Usage:
    from ledger_config import get_chart_template, get_rule_set
    from ledger_config.bridges import install_chart_template, build_reporting_service

    install_chart_template(AccountService(session, tenant_id), get_chart_template(), actor_id)
    reporting = build_reporting_service(session, tenant_id, rule_set=get_rule_set())
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from ledger_config.schema import ChartTemplate, RuleDef, RuleSetDef
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.account_service import AccountService
from ledger_reporting.classifier import ClassificationRule, make_predicate
from ledger_reporting.config import ReportingConfig
from ledger_reporting.service import ReportingService
from ledger_reporting.statements import CASH_FLOW_BUCKETS
from ledger_reporting.taxonomy import is_known

logger = get_logger("config.bridges")


def _to_rule(rule: RuleDef) -> ClassificationRule:
    try:
        predicates = tuple(make_predicate(p.tag, p.values) for p in rule.predicates)
    except ValueError as exc:
        raise ValueError(f"Rule '{rule.name}': {exc}") from exc
    return ClassificationRule(name=rule.name, target=rule.target, predicates=predicates)


def build_classification_rules(rule_set: RuleSetDef) -> tuple[ClassificationRule, ...]:
    """
    Statement rules, in order.

    Raises:
        ValueError: A rule targets an unknown taxonomy code or uses an
            unknown predicate tag.
    """
    for rule in rule_set.rules:
        if not is_known(rule.target):
            raise ValueError(f"Rule '{rule.name}' targets unknown taxonomy code '{rule.target}'")
    return tuple(_to_rule(r) for r in rule_set.rules)


def build_cash_flow_rules(rule_set: RuleSetDef) -> tuple[ClassificationRule, ...]:
    """
    Cash-flow bucket rules, in order.

    Raises:
        ValueError: A rule targets an unknown bucket or uses an unknown
            predicate tag.
    """
    for rule in rule_set.cash_flow_rules:
        if rule.target not in CASH_FLOW_BUCKETS:
            raise ValueError(
                f"Cash-flow rule '{rule.name}' targets unknown bucket '{rule.target}'"
            )
    return tuple(_to_rule(r) for r in rule_set.cash_flow_rules)


def install_chart_template(
    accounts: AccountService,
    template: ChartTemplate,
    actor_id: UUID,
) -> dict[str, AccountInfo]:
    """
    Create every account of a template for the service's tenant.

    Parents are created before children (the template guarantees the
    order), so levels and parent links resolve as the chart is built.

    Returns:
        Created accounts by code.

    Raises:
        DuplicateCodeError: The tenant already has one of the codes.
    """
    created: dict[str, AccountInfo] = {}
    for account in template.accounts:
        parent_id = created[account.parent_code].id if account.parent_code else None
        created[account.code] = accounts.create_account(
            code=account.code,
            name=account.name,
            account_type=account.account_type,
            actor_id=actor_id,
            parent_id=parent_id,
            is_group=account.is_group,
            taxonomy_code=account.taxonomy_code,
            is_system=account.is_system,
            description=account.description,
        )

    logger.info(
        "chart_template_installed",
        extra={
            "template": template.name,
            "checksum": template.checksum,
            "account_count": len(created),
        },
    )
    return created


def build_reporting_service(
    session: Session,
    tenant_id: UUID,
    rule_set: RuleSetDef,
    clock: Clock | None = None,
    config: ReportingConfig | None = None,
) -> ReportingService:
    """ReportingService wired with the statement and cash-flow rules of a rule set."""
    return ReportingService(
        session,
        tenant_id,
        clock=clock,
        config=config,
        rules=build_classification_rules(rule_set),
        cash_flow_rules=build_cash_flow_rules(rule_set),
    )
