"""
Ledger Reporting

Schedule III statements over the ledger kernel:
- Static statement taxonomy and a rule-driven account classifier
- Balance sheet, statement of profit and loss, cash-flow statement
- Account rollup of the chart
"""

from ledger_reporting.classifier import (
    AccountClassifier,
    Classification,
    ClassificationResult,
    ClassificationRule,
    make_predicate,
)
from ledger_reporting.config import ReportingConfig
from ledger_reporting.models import (
    CashFlowStatement,
    FinancialStatement,
    IncomeStatement,
    ReportType,
    StatementNode,
    TrialBalanceReport,
)
from ledger_reporting.service import ReportingService

__all__ = [
    "AccountClassifier",
    "CashFlowStatement",
    "Classification",
    "ClassificationResult",
    "ClassificationRule",
    "FinancialStatement",
    "IncomeStatement",
    "ReportType",
    "ReportingConfig",
    "ReportingService",
    "StatementNode",
    "TrialBalanceReport",
    "make_predicate",
]
