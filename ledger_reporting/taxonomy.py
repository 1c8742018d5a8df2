"""
Statement taxonomy -- the fixed tree of Schedule III line items.

Responsibility:
    Names every balance sheet and profit & loss line an account can be
    mapped to, and how the lines nest.  The tree is static data shared by
    every tenant; accounts point into it through ``taxonomy_code``.

Architecture position:
    Reporting > Domain -- pure data, zero I/O.

Invariants enforced:
    - Every node except a root has a parent that is defined earlier in
      ``TAXONOMY`` (so a single pass can build the tree).
    - Every node belongs to exactly one section, inherited from its root.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Section(str, Enum):
    """Top-level statement section a taxonomy node belongs to."""

    ASSETS = "assets"
    LIABILITIES = "liabilities"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSES = "expenses"
    TAX = "tax"


# Sections whose amounts are shown debit-positive
DEBIT_POSITIVE_SECTIONS = frozenset({Section.ASSETS, Section.EXPENSES, Section.TAX})
BALANCE_SHEET_SECTIONS = frozenset({Section.ASSETS, Section.LIABILITIES, Section.EQUITY})


@dataclass(frozen=True)
class TaxonomyNode:
    code: str
    name: str
    section: Section
    parent_code: str | None = None

    @property
    def is_root(self) -> bool:
        return self.parent_code is None


def _n(code: str, name: str, section: Section, parent: str | None = None) -> TaxonomyNode:
    return TaxonomyNode(code=code, name=name, section=section, parent_code=parent)


_A, _L, _E = Section.ASSETS, Section.LIABILITIES, Section.EQUITY
_I, _X, _T = Section.INCOME, Section.EXPENSES, Section.TAX

TAXONOMY: tuple[TaxonomyNode, ...] = (
    # Balance sheet -- assets
    _n("BS_ASSETS", "Assets", _A),
    _n("BS_ASSET_NCA", "Non-Current Assets", _A, "BS_ASSETS"),
    _n("BS_ASSET_NCA_PPE", "Property, Plant and Equipment", _A, "BS_ASSET_NCA"),
    _n("BS_ASSET_NCA_CWIP", "Capital Work-in-Progress", _A, "BS_ASSET_NCA"),
    _n("BS_ASSET_NCA_INTANGIBLE", "Intangible Assets", _A, "BS_ASSET_NCA"),
    _n("BS_ASSET_NCA_INVESTMENTS", "Non-Current Investments", _A, "BS_ASSET_NCA"),
    _n("BS_ASSET_NCA_DTA", "Deferred Tax Assets (Net)", _A, "BS_ASSET_NCA"),
    _n("BS_ASSET_NCA_LOANS", "Long-Term Loans and Advances", _A, "BS_ASSET_NCA"),
    _n("BS_ASSET_NCA_OTHER", "Other Non-Current Assets", _A, "BS_ASSET_NCA"),
    _n("BS_ASSET_CA", "Current Assets", _A, "BS_ASSETS"),
    _n("BS_ASSET_CA_INVENTORIES", "Inventories", _A, "BS_ASSET_CA"),
    _n("BS_ASSET_CA_INVESTMENTS", "Current Investments", _A, "BS_ASSET_CA"),
    _n("BS_ASSET_CA_RECEIVABLES", "Trade Receivables", _A, "BS_ASSET_CA"),
    _n("BS_ASSET_CA_CASH", "Cash and Cash Equivalents", _A, "BS_ASSET_CA"),
    _n("BS_ASSET_CA_LOANS", "Short-Term Loans and Advances", _A, "BS_ASSET_CA"),
    _n("BS_ASSET_CA_OTHER", "Other Current Assets", _A, "BS_ASSET_CA"),
    # Balance sheet -- liabilities
    _n("BS_LIABILITIES", "Liabilities", _L),
    _n("BS_LIAB_NCL", "Non-Current Liabilities", _L, "BS_LIABILITIES"),
    _n("BS_LIAB_NCL_BORROWINGS", "Long-Term Borrowings", _L, "BS_LIAB_NCL"),
    _n("BS_LIAB_NCL_DTL", "Deferred Tax Liabilities (Net)", _L, "BS_LIAB_NCL"),
    _n("BS_LIAB_NCL_PROVISIONS", "Long-Term Provisions", _L, "BS_LIAB_NCL"),
    _n("BS_LIAB_NCL_OTHER", "Other Non-Current Liabilities", _L, "BS_LIAB_NCL"),
    _n("BS_LIAB_CL", "Current Liabilities", _L, "BS_LIABILITIES"),
    _n("BS_LIAB_CL_BORROWINGS", "Short-Term Borrowings", _L, "BS_LIAB_CL"),
    _n("BS_LIAB_CL_PAYABLES", "Trade Payables", _L, "BS_LIAB_CL"),
    _n("BS_LIAB_CL_OTHER", "Other Current Liabilities", _L, "BS_LIAB_CL"),
    _n("BS_LIAB_CL_PROVISIONS", "Short-Term Provisions", _L, "BS_LIAB_CL"),
    # Balance sheet -- equity
    _n("BS_EQUITY", "Shareholders' Funds", _E),
    _n("BS_EQUITY_SHARE_CAPITAL", "Share Capital", _E, "BS_EQUITY"),
    _n("BS_EQUITY_RESERVES", "Reserves and Surplus", _E, "BS_EQUITY"),
    _n("BS_EQUITY_OTHER", "Other Equity", _E, "BS_EQUITY"),
    # Profit and loss
    _n("PL_INCOME", "Income", _I),
    _n("PL_REVENUE_OPERATIONS", "Revenue from Operations", _I, "PL_INCOME"),
    _n("PL_OTHER_INCOME", "Other Income", _I, "PL_INCOME"),
    _n("PL_EXPENSES", "Expenses", _X),
    _n("PL_COST_MATERIALS", "Cost of Materials Consumed", _X, "PL_EXPENSES"),
    _n("PL_PURCHASES", "Purchases of Stock-in-Trade", _X, "PL_EXPENSES"),
    _n("PL_INVENTORY_CHANGE", "Changes in Inventories", _X, "PL_EXPENSES"),
    _n("PL_EMPLOYEE_BENEFITS", "Employee Benefits Expense", _X, "PL_EXPENSES"),
    _n("PL_FINANCE_COSTS", "Finance Costs", _X, "PL_EXPENSES"),
    _n("PL_DEPRECIATION", "Depreciation and Amortisation Expense", _X, "PL_EXPENSES"),
    _n("PL_OTHER_EXPENSES", "Other Expenses", _X, "PL_EXPENSES"),
    _n("PL_TAX_EXPENSE", "Tax Expense", _T),
)

TAXONOMY_BY_CODE: dict[str, TaxonomyNode] = {node.code: node for node in TAXONOMY}

ROOT_CODES: dict[Section, str] = {node.section: node.code for node in TAXONOMY if node.is_root}


def is_known(code: str | None) -> bool:
    return code is not None and code in TAXONOMY_BY_CODE


def get_node(code: str) -> TaxonomyNode:
    """Look up a node; unknown codes raise KeyError."""
    return TAXONOMY_BY_CODE[code]


def lineage(code: str) -> list[TaxonomyNode]:
    """The node itself followed by its ancestors, root last."""
    chain = [TAXONOMY_BY_CODE[code]]
    while chain[-1].parent_code is not None:
        chain.append(TAXONOMY_BY_CODE[chain[-1].parent_code])
    return chain


def children_of(code: str) -> tuple[TaxonomyNode, ...]:
    """Direct children in declaration (display) order."""
    return tuple(node for node in TAXONOMY if node.parent_code == code)


def section_of(code: str) -> Section:
    return TAXONOMY_BY_CODE[code].section
