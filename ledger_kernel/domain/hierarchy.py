"""
Hierarchy -- pure operations on the account forest.

Responsibility:
    Snapshot type for accounts (AccountNode), two-pass tree building,
    ancestor/descendant walks, cycle detection and stack-based rollup of leaf
    amounts into group accounts.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Selectors convert
    ORM rows to AccountNode before calling anything here.

Invariants enforced:
    - A group amount is the sum of its leaf descendants at any depth.
    - Walks are cycle-safe: a corrupted parent chain terminates instead of
      looping.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.amounts import ZERO, signed


@dataclass(frozen=True)
class AccountNode:
    """Immutable snapshot of one account, as seen by pure code."""

    id: UUID
    code: str
    name: str
    account_type: str
    parent_id: UUID | None = None
    is_group: bool = False
    level: int = 1
    is_active: bool = True
    is_system: bool = False
    opening_balance: Decimal = ZERO
    opening_side: str = "debit"
    taxonomy_code: str | None = None

    @property
    def signed_opening(self) -> Decimal:
        return signed(self.opening_balance, self.opening_side)


@dataclass(frozen=True)
class TreeNode:
    """An account with its children, sorted by code."""

    account: AccountNode
    children: tuple[TreeNode, ...] = field(default_factory=tuple)


def index_by_id(nodes: Iterable[AccountNode]) -> dict[UUID, AccountNode]:
    return {n.id: n for n in nodes}


def children_index(nodes: Iterable[AccountNode]) -> dict[UUID | None, list[AccountNode]]:
    """parent_id -> children (sorted by code); parentless nodes under None."""
    result: dict[UUID | None, list[AccountNode]] = {}
    for node in nodes:
        result.setdefault(node.parent_id, []).append(node)
    for kids in result.values():
        kids.sort(key=lambda n: n.code)
    return result


def build_tree(nodes: Iterable[AccountNode]) -> tuple[TreeNode, ...]:
    """
    Build the parent -> children forest.

    First pass indexes every node; second pass attaches each node to its
    parent.  A node whose parent is missing from the input becomes a root.
    """
    nodes = list(nodes)
    by_id = index_by_id(nodes)
    kids: dict[UUID, list[AccountNode]] = {}
    roots: list[AccountNode] = []
    for node in nodes:
        if node.parent_id is not None and node.parent_id in by_id and node.parent_id != node.id:
            kids.setdefault(node.parent_id, []).append(node)
        else:
            roots.append(node)

    ordered_kids = {parent_id: sorted(group, key=lambda n: n.code) for parent_id, group in kids.items()}

    def _build(root: AccountNode) -> TreeNode:
        # Explicit post-order stack; no Python recursion.
        visiting = {root.id}
        stack = [(root, iter(ordered_kids.get(root.id, ())), [])]
        while True:
            node, pending, built = stack[-1]
            child = next((c for c in pending if c.id not in visiting), None)
            if child is not None:
                visiting.add(child.id)
                stack.append((child, iter(ordered_kids.get(child.id, ())), []))
                continue
            stack.pop()
            visiting.discard(node.id)
            tree = TreeNode(account=node, children=tuple(built))
            if not stack:
                return tree
            stack[-1][2].append(tree)

    return tuple(_build(root) for root in sorted(roots, key=lambda n: n.code))


def flatten(tree: Iterable[TreeNode]) -> list[AccountNode]:
    """Depth-first, code-ordered listing of a forest."""
    result: list[AccountNode] = []
    stack = list(reversed(list(tree)))
    while stack:
        item = stack.pop()
        result.append(item.account)
        stack.extend(reversed(item.children))
    return result


def ancestors(node_id: UUID, by_id: Mapping[UUID, AccountNode]) -> list[AccountNode]:
    """Parent first, root last."""
    chain: list[AccountNode] = []
    seen = {node_id}
    current = by_id.get(node_id)
    while current is not None and current.parent_id is not None:
        if current.parent_id in seen:
            break
        seen.add(current.parent_id)
        current = by_id.get(current.parent_id)
        if current is not None:
            chain.append(current)
    return chain


def descendant_ids(root_id: UUID, nodes: Iterable[AccountNode]) -> set[UUID]:
    """All accounts below root_id (excluding root_id itself)."""
    kids = children_index(nodes)
    found: set[UUID] = set()
    stack = [root_id]
    while stack:
        current = stack.pop()
        for child in kids.get(current, ()):
            if child.id not in found and child.id != root_id:
                found.add(child.id)
                stack.append(child.id)
    return found


def would_create_cycle(
    account_id: UUID,
    new_parent_id: UUID | None,
    parent_of: Mapping[UUID, UUID | None],
) -> bool:
    """True if making new_parent_id the parent of account_id closes a loop."""
    current = new_parent_id
    seen: set[UUID] = set()
    while current is not None:
        if current == account_id:
            return True
        if current in seen:
            return True
        seen.add(current)
        current = parent_of.get(current)
    return False


def rollup_amounts(
    nodes: Iterable[AccountNode],
    leaf_amounts: Mapping[UUID, Decimal],
) -> dict[UUID, Decimal]:
    """
    Amount per account where groups carry the sum of their leaf descendants.

    Leaves keep their own amount (zero when absent).  Groups ignore any
    amount posted directly to them, since only leaves take postings.
    """
    nodes = list(nodes)
    kids = children_index(nodes)
    result: dict[UUID, Decimal] = {}

    for start in nodes:
        if start.id in result:
            continue
        on_path = {start.id}
        # frame: [node, remaining children, running total]
        stack = [[start, iter(kids.get(start.id, ())), ZERO]]
        while stack:
            frame = stack[-1]
            node, pending = frame[0], frame[1]
            if node.is_group:
                child = next((c for c in pending if c.id not in on_path), None)
                if child is not None:
                    if child.id in result:
                        frame[2] += result[child.id]
                    else:
                        on_path.add(child.id)
                        stack.append([child, iter(kids.get(child.id, ())), ZERO])
                    continue
                value = frame[2]
            else:
                value = leaf_amounts.get(node.id, ZERO)
            result[node.id] = value
            on_path.discard(node.id)
            stack.pop()
            if stack:
                stack[-1][2] += value
    return result
