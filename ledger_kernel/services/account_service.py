"""
AccountService -- structural maintenance of the chart of accounts.

Responsibility:
    Create, update, deactivate and delete accounts of one tenant while
    keeping the hierarchy consistent: unique codes, a valid parent chain,
    correct levels, protected system accounts.

Architecture position:
    Kernel > Services -- imperative shell.  Reads go through
    selectors/account_selector.py; pure tree checks come from
    domain/hierarchy.py.

Invariants enforced:
    - code unique per tenant.
    - parent is a group account of the same tenant and category; no cycles.
    - level = parent.level + 1 (1 for roots), recomputed for the whole
      subtree whenever a parent changes.
    - System accounts keep code, category and taxonomy mapping.
    - An account with children or journal lines is never deleted.

Failure modes:
    - DuplicateCodeError, InvalidHierarchyError, ImmutableSystemAccountError,
      SystemAccountError, HasChildrenError, AccountReferencedError,
      AccountNotFoundError.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.domain.amounts import ZERO, to_decimal
from ledger_kernel.domain.dtos import AccountInfo, AccountListing
from ledger_kernel.domain.hierarchy import descendant_ids, would_create_cycle
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    AccountReferencedError,
    DuplicateCodeError,
    HasChildrenError,
    ImmutableSystemAccountError,
    InvalidHierarchyError,
    MissingFieldError,
    SystemAccountError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import NORMAL_SIDE, Account, AccountType, BalanceSide
from ledger_kernel.models.journal import JournalLine
from ledger_kernel.selectors.account_selector import AccountSelector, account_to_info
from ledger_kernel.services.base import BaseService

logger = get_logger("services.account")

_UPDATABLE_FIELDS = frozenset(
    {
        "code",
        "name",
        "account_type",
        "parent_id",
        "is_group",
        "opening_balance",
        "opening_side",
        "taxonomy_code",
        "description",
        "is_active",
    }
)
_SYSTEM_LOCKED_FIELDS = ("code", "account_type", "taxonomy_code")


class AccountService(BaseService[Account]):
    """
    Service for the chart of accounts of one tenant.

    Contract:
        Every public method returns AccountInfo DTOs (or an AccountListing)
        and flushes within the caller's transaction.

    Non-goals:
        - Does NOT compute balances (see selectors/ledger_selector.py).
    """

    # -- lookups ------------------------------------------------------------

    def _get_orm(self, account_id: UUID) -> Account:
        account = self.session.execute(
            select(Account).where(
                Account.tenant_id == self.tenant_id,
                Account.id == account_id,
            )
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def _code_taken(self, code: str, exclude_id: UUID | None = None) -> bool:
        query = select(Account.id).where(
            Account.tenant_id == self.tenant_id,
            Account.code == code,
        )
        if exclude_id is not None:
            query = query.where(Account.id != exclude_id)
        return self.session.execute(query).first() is not None

    def _child_count(self, account_id: UUID) -> int:
        return self.session.execute(
            select(func.count())
            .select_from(Account)
            .where(Account.tenant_id == self.tenant_id, Account.parent_id == account_id)
        ).scalar_one()

    def _line_count(self, account_id: UUID) -> int:
        return self.session.execute(
            select(func.count())
            .select_from(JournalLine)
            .where(
                JournalLine.tenant_id == self.tenant_id,
                JournalLine.account_id == account_id,
            )
        ).scalar_one()

    def _validated_parent(
        self,
        code: str,
        account_type: AccountType,
        parent_id: UUID | None,
    ) -> Account | None:
        if parent_id is None:
            return None
        parent = self.session.execute(
            select(Account).where(
                Account.tenant_id == self.tenant_id,
                Account.id == parent_id,
            )
        ).scalar_one_or_none()
        if parent is None:
            raise InvalidHierarchyError(code, str(parent_id), "parent not found")
        if not parent.is_group:
            raise InvalidHierarchyError(code, str(parent_id), "parent is not a group account")
        if AccountType(parent.account_type) != account_type:
            raise InvalidHierarchyError(
                code, str(parent_id),
                f"parent category {parent.account_type} differs from {account_type.value}",
            )
        return parent

    @staticmethod
    def _validated_opening(amount, side, account_type: AccountType, is_group: bool):
        amount = to_decimal(amount)
        if amount < ZERO:
            raise ValidationError("opening_balance must not be negative")
        if is_group and amount != ZERO:
            raise ValidationError("group accounts cannot carry an opening balance")
        side = BalanceSide(side) if side is not None else NORMAL_SIDE[account_type]
        return amount, side

    def get_account(self, account_id: UUID) -> AccountInfo:
        return account_to_info(self._get_orm(account_id))

    def get_by_code(self, code: str) -> AccountInfo | None:
        return AccountSelector(self.session, self.tenant_id).get_by_code(code)

    def list_accounts(self, include_inactive: bool = True) -> AccountListing:
        """Flat list plus parent -> children tree."""
        return AccountSelector(self.session, self.tenant_id).list_accounts(include_inactive)

    # -- create -------------------------------------------------------------

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType | str,
        actor_id: UUID,
        parent_id: UUID | None = None,
        is_group: bool = False,
        opening_balance: Decimal | int | str = ZERO,
        opening_side: BalanceSide | str | None = None,
        taxonomy_code: str | None = None,
        is_system: bool = False,
        description: str | None = None,
    ) -> AccountInfo:
        """
        Create an account.

        Preconditions: code and name are non-empty.
        Postconditions: account flushed; level derived from the parent.

        Raises:
            MissingFieldError: Empty code or name.
            DuplicateCodeError: Code already exists in the tenant.
            InvalidHierarchyError: Parent missing, not a group, or of another
                category.
        """
        if not code:
            raise MissingFieldError("code")
        if not name:
            raise MissingFieldError("name")
        account_type = AccountType(account_type)

        if self._code_taken(code):
            raise DuplicateCodeError("Account", code)

        parent = self._validated_parent(code, account_type, parent_id)
        amount, side = self._validated_opening(
            opening_balance, opening_side, account_type, is_group
        )

        account = Account(
            tenant_id=self.tenant_id,
            code=code,
            name=name,
            account_type=account_type.value,
            parent_id=parent.id if parent else None,
            is_group=is_group,
            level=parent.level + 1 if parent else 1,
            is_system=is_system,
            is_active=True,
            opening_balance=amount,
            opening_side=side.value,
            taxonomy_code=taxonomy_code,
            description=description,
            created_by_id=actor_id,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "account_code": code,
                "account_type": account_type.value,
                "level": account.level,
                "is_group": is_group,
            },
        )
        return account_to_info(account)

    # -- update -------------------------------------------------------------

    def update_account(self, account_id: UUID, actor_id: UUID, **changes) -> AccountInfo:
        """
        Apply field changes to an account.

        Accepted fields: code, name, account_type, parent_id, is_group,
        opening_balance, opening_side, taxonomy_code, description, is_active.

        Raises:
            ValueError: Unknown field name.
            ImmutableSystemAccountError: Structural change to a system account.
            DuplicateCodeError: New code already used.
            InvalidHierarchyError: Bad parent or cycle.
            HasChildrenError: Group with children turned into a leaf.
            AccountReferencedError: Leaf with lines turned into a group.
        """
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown account fields: {sorted(unknown)}")

        account = self._get_orm(account_id)
        current_type = AccountType(account.account_type)

        if account.is_system:
            for field_name in _SYSTEM_LOCKED_FIELDS:
                if field_name in changes and changes[field_name] != _current(account, field_name):
                    raise ImmutableSystemAccountError(account.code, field_name)

        new_code = changes.get("code", account.code)
        if not new_code:
            raise MissingFieldError("code")
        if new_code != account.code and self._code_taken(new_code, exclude_id=account.id):
            raise DuplicateCodeError("Account", new_code)

        new_type = AccountType(changes.get("account_type", current_type))
        new_is_group = changes.get("is_group", account.is_group)

        if new_is_group != account.is_group:
            if not new_is_group and self._child_count(account.id):
                raise HasChildrenError(account.code, self._child_count(account.id))
            if new_is_group and self._line_count(account.id):
                raise AccountReferencedError(account.code, self._line_count(account.id))

        if new_type != current_type and self._child_count(account.id):
            raise InvalidHierarchyError(
                account.code, str(account.parent_id),
                "cannot change the category of an account with children",
            )

        parent_changed = "parent_id" in changes and changes["parent_id"] != account.parent_id
        new_parent_id = changes.get("parent_id", account.parent_id)
        if parent_changed or new_type != current_type:
            parent = self._validated_parent(new_code, new_type, new_parent_id)
            if parent is not None:
                parent_of = dict(
                    self.session.execute(
                        select(Account.id, Account.parent_id).where(
                            Account.tenant_id == self.tenant_id
                        )
                    ).all()
                )
                if would_create_cycle(account.id, parent.id, parent_of):
                    raise InvalidHierarchyError(
                        new_code, str(parent.id), "parent chain would form a cycle"
                    )

        amount, side = self._validated_opening(
            changes.get("opening_balance", account.opening_balance),
            changes.get("opening_side", account.opening_side),
            new_type,
            new_is_group,
        )

        account.code = new_code
        account.account_type = new_type.value
        account.is_group = new_is_group
        account.opening_balance = amount
        account.opening_side = side.value
        for field_name in ("name", "taxonomy_code", "description", "is_active"):
            if field_name in changes:
                setattr(account, field_name, changes[field_name])
        account.updated_by_id = actor_id

        if parent_changed:
            account.parent_id = new_parent_id
            self.session.flush()
            self._recompute_levels(account)

        self.session.flush()
        logger.info(
            "account_updated",
            extra={
                "account_id": str(account.id),
                "account_code": account.code,
                "fields": sorted(changes),
            },
        )
        return account_to_info(account)

    def _recompute_levels(self, account: Account) -> None:
        """Set level on the account and every descendant."""
        tenant_accounts = self.session.execute(
            select(Account).where(Account.tenant_id == self.tenant_id)
        ).scalars().all()
        by_id = {a.id: a for a in tenant_accounts}
        parent = by_id.get(account.parent_id) if account.parent_id else None
        account.level = parent.level + 1 if parent else 1

        subtree = descendant_ids(account.id, (account_to_info(a).to_node() for a in tenant_accounts))
        pending = [account]
        while pending:
            current = pending.pop()
            for candidate in tenant_accounts:
                if candidate.parent_id == current.id and candidate.id in subtree:
                    candidate.level = current.level + 1
                    pending.append(candidate)
        logger.debug(
            "account_levels_recomputed",
            extra={"account_code": account.code, "subtree_size": len(subtree)},
        )

    def deactivate_account(self, account_id: UUID, actor_id: UUID) -> AccountInfo:
        """Stop new postings to the account; history is untouched."""
        return self.update_account(account_id, actor_id, is_active=False)

    def activate_account(self, account_id: UUID, actor_id: UUID) -> AccountInfo:
        return self.update_account(account_id, actor_id, is_active=True)

    # -- delete -------------------------------------------------------------

    def delete_account(self, account_id: UUID) -> None:
        """
        Hard-delete an account.

        Raises:
            SystemAccountError: Account is a system account.
            HasChildrenError: Any account names it as parent.
            AccountReferencedError: Journal lines reference it (deactivate
                instead).
        """
        account = self._get_orm(account_id)
        if account.is_system:
            raise SystemAccountError(account.code)
        children = self._child_count(account.id)
        if children:
            raise HasChildrenError(account.code, children)
        lines = self._line_count(account.id)
        if lines:
            raise AccountReferencedError(account.code, lines)

        code = account.code
        self.session.delete(account)
        self.session.flush()
        logger.info("account_deleted", extra={"account_id": str(account_id), "account_code": code})


def _current(account: Account, field_name: str):
    value = getattr(account, field_name)
    if field_name == "account_type":
        return AccountType(value)
    return value
