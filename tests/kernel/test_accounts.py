"""
Chart-of-accounts maintenance through AccountService.

Verifies:
- Levels follow the parent chain and are recomputed when a subtree moves
- Codes are unique per tenant, not globally
- Parents must be group accounts of the same category; cycles are refused
- System accounts keep their structural fields and cannot be deleted
- Accounts with children or journal lines are never deleted
"""

from datetime import date
from uuid import uuid4

import pytest

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
from ledger_kernel.services.account_service import AccountService


@pytest.fixture
def assets_root(account_service, test_actor_id):
    return account_service.create_account(
        code="1000", name="Assets", account_type="asset", actor_id=test_actor_id, is_group=True,
    )


@pytest.fixture
def current_assets(account_service, assets_root, test_actor_id):
    return account_service.create_account(
        code="1200", name="Current Assets", account_type="asset",
        actor_id=test_actor_id, parent_id=assets_root.id, is_group=True,
    )


class TestCreateAccount:

    def test_root_account_is_level_one(self, assets_root):
        assert assets_root.level == 1
        assert assets_root.parent_id is None
        assert assets_root.is_group is True
        assert assets_root.opening_side == "debit"

    def test_child_level_follows_parent(self, account_service, current_assets, test_actor_id):
        bank = account_service.create_account(
            code="1242", name="Bank", account_type="asset",
            actor_id=test_actor_id, parent_id=current_assets.id,
        )
        assert bank.level == 3
        assert bank.parent_id == current_assets.id

    def test_normal_side_is_default_opening_side(self, account_service, test_actor_id):
        capital = account_service.create_account(
            code="3110", name="Capital", account_type="equity", actor_id=test_actor_id,
        )
        assert capital.opening_side == "credit"

    def test_empty_code_rejected(self, account_service, test_actor_id):
        with pytest.raises(MissingFieldError):
            account_service.create_account(
                code="", name="Nameless", account_type="asset", actor_id=test_actor_id,
            )

    def test_unknown_category_rejected(self, account_service, test_actor_id):
        with pytest.raises(ValueError):
            account_service.create_account(
                code="9000", name="Odd", account_type="contra", actor_id=test_actor_id,
            )

    def test_duplicate_code_rejected(self, account_service, assets_root, test_actor_id):
        with pytest.raises(DuplicateCodeError) as exc:
            account_service.create_account(
                code="1000", name="Again", account_type="asset", actor_id=test_actor_id,
            )
        assert exc.value.code == "DUPLICATE_CODE"

    def test_same_code_allowed_in_another_tenant(
        self, session, assets_root, other_tenant_id, deterministic_clock, test_actor_id,
    ):
        other = AccountService(session, other_tenant_id, deterministic_clock)
        created = other.create_account(
            code="1000", name="Assets", account_type="asset", actor_id=test_actor_id, is_group=True,
        )
        assert created.id != assets_root.id

    def test_parent_must_be_group(self, account_service, current_assets, test_actor_id):
        leaf = account_service.create_account(
            code="1241", name="Cash", account_type="asset",
            actor_id=test_actor_id, parent_id=current_assets.id,
        )
        with pytest.raises(InvalidHierarchyError, match="not a group"):
            account_service.create_account(
                code="1241-1", name="Petty", account_type="asset",
                actor_id=test_actor_id, parent_id=leaf.id,
            )

    def test_parent_must_share_category(self, account_service, assets_root, test_actor_id):
        with pytest.raises(InvalidHierarchyError, match="category"):
            account_service.create_account(
                code="2220", name="Payables", account_type="liability",
                actor_id=test_actor_id, parent_id=assets_root.id,
            )

    def test_parent_from_another_tenant_rejected(
        self, session, assets_root, other_tenant_id, deterministic_clock, test_actor_id,
    ):
        other = AccountService(session, other_tenant_id, deterministic_clock)
        with pytest.raises(InvalidHierarchyError, match="not found"):
            other.create_account(
                code="1200", name="Current", account_type="asset",
                actor_id=test_actor_id, parent_id=assets_root.id, is_group=True,
            )

    def test_group_cannot_carry_opening_balance(self, account_service, test_actor_id):
        with pytest.raises(ValidationError):
            account_service.create_account(
                code="1000", name="Assets", account_type="asset", actor_id=test_actor_id,
                is_group=True, opening_balance="100",
            )

    def test_negative_opening_balance_rejected(self, account_service, test_actor_id):
        with pytest.raises(ValidationError):
            account_service.create_account(
                code="1241", name="Cash", account_type="asset", actor_id=test_actor_id,
                opening_balance="-5",
            )


class TestUpdateAccount:

    def test_rename(self, account_service, assets_root, test_actor_id):
        updated = account_service.update_account(assets_root.id, test_actor_id, name="All Assets")
        assert updated.name == "All Assets"

    def test_unknown_field_rejected(self, account_service, assets_root, test_actor_id):
        with pytest.raises(ValueError, match="Unknown account fields"):
            account_service.update_account(assets_root.id, test_actor_id, colour="red")

    def test_move_recomputes_subtree_levels(self, account_service, assets_root, test_actor_id):
        other_root = account_service.create_account(
            code="1900", name="Holding", account_type="asset", actor_id=test_actor_id, is_group=True,
        )
        middle = account_service.create_account(
            code="1910", name="Middle", account_type="asset",
            actor_id=test_actor_id, parent_id=other_root.id, is_group=True,
        )
        leaf = account_service.create_account(
            code="1911", name="Leaf", account_type="asset",
            actor_id=test_actor_id, parent_id=middle.id,
        )
        assert leaf.level == 3

        deeper = account_service.create_account(
            code="1100", name="Non-Current", account_type="asset",
            actor_id=test_actor_id, parent_id=assets_root.id, is_group=True,
        )
        deepest = account_service.create_account(
            code="1110", name="PPE", account_type="asset",
            actor_id=test_actor_id, parent_id=deeper.id, is_group=True,
        )
        account_service.update_account(middle.id, test_actor_id, parent_id=deepest.id)

        assert account_service.get_account(middle.id).level == 4
        assert account_service.get_account(leaf.id).level == 5

    def test_cycle_rejected(self, account_service, assets_root, current_assets, test_actor_id):
        with pytest.raises(InvalidHierarchyError, match="cycle"):
            account_service.update_account(assets_root.id, test_actor_id, parent_id=current_assets.id)

    def test_self_parent_rejected(self, account_service, current_assets, test_actor_id):
        with pytest.raises(InvalidHierarchyError):
            account_service.update_account(current_assets.id, test_actor_id, parent_id=current_assets.id)

    def test_group_with_children_cannot_become_leaf(
        self, account_service, assets_root, current_assets, test_actor_id,
    ):
        with pytest.raises(HasChildrenError):
            account_service.update_account(assets_root.id, test_actor_id, is_group=False)

    def test_leaf_with_lines_cannot_become_group(self, account_service, chart, post, test_actor_id):
        post(date(2024, 4, 10), ("1242", 100, 0), ("3110", 0, 100))
        with pytest.raises(AccountReferencedError):
            account_service.update_account(chart["1242"].id, test_actor_id, is_group=True)

    def test_duplicate_code_on_update_rejected(
        self, account_service, assets_root, current_assets, test_actor_id,
    ):
        with pytest.raises(DuplicateCodeError):
            account_service.update_account(current_assets.id, test_actor_id, code="1000")


class TestSystemAccounts:

    @pytest.fixture
    def system_root(self, account_service, test_actor_id):
        return account_service.create_account(
            code="4000", name="Income", account_type="income", actor_id=test_actor_id,
            is_group=True, is_system=True, taxonomy_code="PL_INCOME",
        )

    @pytest.mark.parametrize(
        "field_name, value",
        [("code", "4999"), ("account_type", "expense"), ("taxonomy_code", "PL_OTHER_INCOME")],
    )
    def test_structural_fields_immutable(self, account_service, system_root, test_actor_id, field_name, value):
        with pytest.raises(ImmutableSystemAccountError) as exc:
            account_service.update_account(system_root.id, test_actor_id, **{field_name: value})
        assert exc.value.field_name == field_name

    def test_rename_allowed(self, account_service, system_root, test_actor_id):
        assert account_service.update_account(
            system_root.id, test_actor_id, name="Revenue",
        ).name == "Revenue"

    def test_unchanged_structural_value_allowed(self, account_service, system_root, test_actor_id):
        updated = account_service.update_account(system_root.id, test_actor_id, code="4000")
        assert updated.code == "4000"

    def test_cannot_delete(self, account_service, system_root):
        with pytest.raises(SystemAccountError):
            account_service.delete_account(system_root.id)


class TestDeleteAndDeactivate:

    def test_delete_unused_leaf(self, account_service, current_assets, test_actor_id):
        leaf = account_service.create_account(
            code="1299", name="Suspense", account_type="asset",
            actor_id=test_actor_id, parent_id=current_assets.id,
        )
        account_service.delete_account(leaf.id)
        with pytest.raises(AccountNotFoundError):
            account_service.get_account(leaf.id)

    def test_parent_cannot_be_deleted(self, account_service, assets_root, current_assets):
        with pytest.raises(HasChildrenError) as exc:
            account_service.delete_account(assets_root.id)
        assert exc.value.child_count == 1

    def test_referenced_account_cannot_be_deleted(self, account_service, chart, post):
        post(date(2024, 4, 10), ("1242", 100, 0), ("3110", 0, 100))
        with pytest.raises(AccountReferencedError):
            account_service.delete_account(chart["1242"].id)

    def test_deactivate_and_reactivate(self, account_service, chart, test_actor_id):
        account = account_service.deactivate_account(chart["1241"].id, test_actor_id)
        assert account.is_active is False
        assert account_service.activate_account(chart["1241"].id, test_actor_id).is_active is True

    def test_unknown_account_not_found(self, account_service):
        with pytest.raises(AccountNotFoundError):
            account_service.get_account(uuid4())


class TestListing:

    def test_listing_is_code_ordered_with_forest(self, account_service, chart):
        listing = account_service.list_accounts()
        codes = [a.code for a in listing.accounts]
        assert codes == sorted(codes)
        assert [t.account.code for t in listing.tree] == ["1000", "2000", "3000", "4000", "5000"]

    def test_forest_nests_children(self, account_service, chart):
        listing = account_service.list_accounts()
        assets = listing.tree[0]
        assert [c.account.code for c in assets.children] == ["1100", "1200"]
        cash_group = next(c for c in assets.children[1].children if c.account.code == "1240")
        assert [c.account.code for c in cash_group.children] == ["1241", "1242"]

    def test_inactive_accounts_can_be_hidden(self, account_service, chart, test_actor_id):
        account_service.deactivate_account(chart["1241"].id, test_actor_id)
        listing = account_service.list_accounts(include_inactive=False)
        assert listing.by_code("1241") is None
        assert listing.by_code("1242") is not None

    def test_listing_is_tenant_scoped(
        self, session, chart, other_tenant_id, deterministic_clock,
    ):
        other = AccountService(session, other_tenant_id, deterministic_clock)
        assert other.list_accounts().accounts == ()
        assert other.get_by_code("1242") is None
