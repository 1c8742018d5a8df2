"""
Module: ledger_kernel.selectors.account_selector
Responsibility: Read-only access to the chart of accounts of one tenant:
    DTO conversion, pure AccountNode snapshots for the domain layer, and the
    flat-list-plus-forest listing.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Tenant scope on every query.
    - Listing order is by code; the forest is built in two passes
      (domain/hierarchy.build_tree).
"""

from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.dtos import AccountInfo, AccountListing
from ledger_kernel.domain.hierarchy import AccountNode, build_tree
from ledger_kernel.models.account import Account, AccountType
from ledger_kernel.selectors.base import BaseSelector


def account_to_info(account: Account) -> AccountInfo:
    """Convert an ORM Account to its DTO."""
    return AccountInfo(
        id=account.id,
        code=account.code,
        name=account.name,
        account_type=AccountType(account.account_type).value,
        parent_id=account.parent_id,
        is_group=account.is_group,
        level=account.level,
        is_system=account.is_system,
        is_active=account.is_active,
        opening_balance=account.opening_balance,
        opening_side=str(getattr(account.opening_side, "value", account.opening_side)),
        taxonomy_code=account.taxonomy_code,
        description=account.description,
    )


class AccountSelector(BaseSelector[Account]):
    """Queries over the chart of accounts."""

    def _query(self):
        return select(Account).where(Account.tenant_id == self.tenant_id)

    def get(self, account_id: UUID) -> AccountInfo | None:
        account = self.session.execute(
            self._query().where(Account.id == account_id)
        ).scalar_one_or_none()
        return account_to_info(account) if account else None

    def get_by_code(self, code: str) -> AccountInfo | None:
        account = self.session.execute(
            self._query().where(Account.code == code)
        ).scalar_one_or_none()
        return account_to_info(account) if account else None

    def all_accounts(self, include_inactive: bool = True) -> list[AccountInfo]:
        query = self._query()
        if not include_inactive:
            query = query.where(Account.is_active.is_(True))
        result = self.session.execute(query.order_by(Account.code))
        return [account_to_info(a) for a in result.scalars().all()]

    def nodes(self) -> list[AccountNode]:
        """Pure snapshots of every account of the tenant, ordered by code."""
        return [info.to_node() for info in self.all_accounts()]

    def list_accounts(self, include_inactive: bool = True) -> AccountListing:
        """Flat list plus parent -> children tree."""
        accounts = self.all_accounts(include_inactive=include_inactive)
        tree = build_tree(info.to_node() for info in accounts)
        return AccountListing(accounts=tuple(accounts), tree=tree)
