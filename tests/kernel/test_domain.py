"""
Pure domain functions: amounts, the account forest and trial-balance math.

No database; every input is built in memory.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.amounts import (
    TOLERANCE,
    ZERO,
    DrCr,
    Side,
    expand,
    quantize,
    side_of,
    signed,
    to_decimal,
    within_tolerance,
)
from ledger_kernel.domain.balances import (
    AccountMovement,
    compute_trial_balance,
    summarize_by_type,
)
from ledger_kernel.domain.hierarchy import (
    AccountNode,
    ancestors,
    build_tree,
    descendant_ids,
    flatten,
    index_by_id,
    rollup_amounts,
    would_create_cycle,
)


def _node(code, account_type="asset", parent=None, is_group=False, **kwargs):
    return AccountNode(
        id=uuid4(),
        code=code,
        name=code,
        account_type=account_type,
        parent_id=parent.id if parent else None,
        is_group=is_group,
        level=(parent.level + 1) if parent else 1,
        **kwargs,
    )


@pytest.fixture
def forest():
    """1000 > 1200 > {1241, 1242}; 1000 > 1110; 3000 > 3110."""
    assets = _node("1000", is_group=True)
    current = _node("1200", parent=assets, is_group=True)
    cash = _node("1241", parent=current)
    bank = _node("1242", parent=current)
    ppe = _node("1110", parent=assets)
    equity = _node("3000", "equity", is_group=True)
    capital = _node("3110", "equity", parent=equity, opening_side="credit")
    return {n.code: n for n in (assets, current, cash, bank, ppe, equity, capital)}


class TestAmounts:

    def test_signed_convention(self):
        assert signed(Decimal("10"), "debit") == Decimal("10")
        assert signed(Decimal("10"), Side.CREDIT) == Decimal("-10")

    def test_expand(self):
        assert expand(Decimal("5")) == DrCr(debit=Decimal("5"), credit=ZERO)
        assert expand(Decimal("-5")) == DrCr(debit=ZERO, credit=Decimal("5"))
        assert expand(ZERO).net == ZERO

    def test_zero_is_a_debit_balance(self):
        assert side_of(ZERO) is Side.DEBIT
        assert side_of(Decimal("-0.01")) is Side.CREDIT

    @pytest.mark.parametrize(
        "left, right, expected",
        [
            ("100.00", "100.00", True),
            ("100.009", "100.00", True),
            ("100.01", "100.00", False),
            ("99.99", "100.00", False),
        ],
    )
    def test_tolerance_is_strict(self, left, right, expected):
        assert within_tolerance(Decimal(left), Decimal(right)) is expected

    def test_tolerance_is_one_cent(self):
        assert TOLERANCE == Decimal("0.01")

    def test_to_decimal(self):
        assert to_decimal(5) == Decimal("5")
        assert to_decimal("1.25") == Decimal("1.25")
        assert to_decimal(None) == ZERO
        with pytest.raises(TypeError):
            to_decimal(1.5)

    def test_quantize_rounds_half_up(self):
        assert quantize(Decimal("1.005")) == Decimal("1.01")
        assert quantize(Decimal("2")) == Decimal("2.00")


class TestHierarchy:

    def test_build_tree_nests_by_code(self, forest):
        tree = build_tree(forest.values())
        assert [t.account.code for t in tree] == ["1000", "3000"]
        assets = tree[0]
        assert [c.account.code for c in assets.children] == ["1110", "1200"]
        assert [c.account.code for c in assets.children[1].children] == ["1241", "1242"]

    def test_flatten_is_depth_first(self, forest):
        codes = [n.code for n in flatten(build_tree(forest.values()))]
        assert codes == ["1000", "1110", "1200", "1241", "1242", "3000", "3110"]

    def test_orphan_becomes_root(self, forest):
        nodes = [n for n in forest.values() if n.code != "1000"]
        roots = [t.account.code for t in build_tree(nodes)]
        assert roots == ["1110", "1200", "3000"]

    def test_ancestors(self, forest):
        chain = ancestors(forest["1242"].id, index_by_id(forest.values()))
        assert [n.code for n in chain] == ["1200", "1000"]

    def test_descendants(self, forest):
        found = descendant_ids(forest["1000"].id, forest.values())
        assert found == {forest[c].id for c in ("1200", "1241", "1242", "1110")}

    def test_cycle_detection(self, forest):
        parent_of = {n.id: n.parent_id for n in forest.values()}
        assert would_create_cycle(forest["1000"].id, forest["1242"].id, parent_of)
        assert would_create_cycle(forest["1200"].id, forest["1200"].id, parent_of)
        assert not would_create_cycle(forest["1110"].id, forest["1200"].id, parent_of)
        assert not would_create_cycle(forest["1110"].id, None, parent_of)

    def test_rollup(self, forest):
        amounts = {
            forest["1241"].id: Decimal("10"),
            forest["1242"].id: Decimal("90"),
            forest["1110"].id: Decimal("400"),
        }
        rolled = rollup_amounts(forest.values(), amounts)
        assert rolled[forest["1200"].id] == Decimal("100")
        assert rolled[forest["1000"].id] == Decimal("500")
        assert rolled[forest["3000"].id] == ZERO
        assert rolled[forest["3110"].id] == ZERO

    def test_rollup_survives_a_cycle(self):
        a_id, b_id = uuid4(), uuid4()
        a = AccountNode(id=a_id, code="A", name="A", account_type="asset", parent_id=b_id, is_group=True)
        b = AccountNode(id=b_id, code="B", name="B", account_type="asset", parent_id=a_id, is_group=True)
        rolled = rollup_amounts([a, b], {})
        assert rolled[a_id] == ZERO
        assert rolled[b_id] == ZERO

    def test_deep_chain_builds_and_rolls_up(self):
        depth = 3000
        chain = []
        parent_id = None
        for level in range(1, depth + 1):
            node = AccountNode(
                id=uuid4(), code=f"G{level:05d}", name="Group", account_type="asset",
                parent_id=parent_id, is_group=True, level=level,
            )
            chain.append(node)
            parent_id = node.id
        leaf = AccountNode(
            id=uuid4(), code="L00001", name="Leaf", account_type="asset",
            parent_id=parent_id, level=depth + 1,
        )
        nodes = chain + [leaf]

        rolled = rollup_amounts(nodes, {leaf.id: Decimal("10")})
        assert rolled[chain[0].id] == Decimal("10")
        assert rolled[chain[-1].id] == Decimal("10")

        tree = build_tree(nodes)
        assert len(tree) == 1
        assert [n.code for n in flatten(tree)] == [n.code for n in nodes]


class TestComputeTrialBalance:

    def _tb(self, forest, movements, from_date=date(2024, 4, 1)):
        return compute_trial_balance(
            period_id=uuid4(),
            period_code="2024-25",
            from_date=from_date,
            as_of_date=date(2025, 3, 31),
            accounts=forest.values(),
            movements=movements,
        )

    def test_buckets(self, forest):
        bank = forest["1242"].id
        capital = forest["3110"].id
        tb = self._tb(
            forest,
            {
                bank: AccountMovement(bank, prior_debit=Decimal("100"), period_credit=Decimal("30")),
                capital: AccountMovement(capital, prior_credit=Decimal("100"), period_debit=Decimal("30")),
            },
        )
        row = tb.row_for("1242")
        assert (row.opening_debit, row.period_credit, row.closing_debit) == (
            Decimal("100"), Decimal("30"), Decimal("70"),
        )
        assert tb.row_for("3110").closing_credit == Decimal("70")
        assert tb.row_for("1000").closing_debit == Decimal("70")
        assert tb.is_balanced
        assert tb.totals.difference == ZERO

    def test_opening_balance_counts(self, forest):
        forest = dict(forest)
        forest["1241"] = AccountNode(
            id=forest["1241"].id, code="1241", name="1241", account_type="asset",
            parent_id=forest["1200"].id, level=3, opening_balance=Decimal("25"),
        )
        tb = self._tb(forest, {})
        assert tb.row_for("1241").opening_debit == Decimal("25")
        assert tb.row_for("1241").closing_debit == Decimal("25")
        assert not tb.is_balanced

    def test_groups_not_in_totals(self, forest):
        bank = forest["1242"].id
        capital = forest["3110"].id
        tb = self._tb(
            forest,
            {
                bank: AccountMovement(bank, period_debit=Decimal("50")),
                capital: AccountMovement(capital, period_credit=Decimal("50")),
            },
        )
        assert tb.totals.period_debit == Decimal("50")
        assert tb.totals.closing_credit == Decimal("50")

    def test_non_zero_filter(self, forest):
        bank = forest["1242"].id
        capital = forest["3110"].id
        tb = self._tb(
            forest,
            {
                bank: AccountMovement(bank, period_debit=Decimal("50")),
                capital: AccountMovement(capital, period_credit=Decimal("50")),
            },
        ).non_zero()
        assert {r.account_code for r in tb.rows} == {"1000", "1200", "1242", "3000", "3110"}

    def test_summary(self, forest):
        bank = forest["1242"].id
        capital = forest["3110"].id
        tb = self._tb(
            forest,
            {
                bank: AccountMovement(bank, period_debit=Decimal("50")),
                capital: AccountMovement(capital, period_credit=Decimal("50")),
            },
        )
        summary = summarize_by_type(tb)
        assert summary.assets == Decimal("50")
        assert summary.equity == Decimal("50")
        assert summary.is_balanced
