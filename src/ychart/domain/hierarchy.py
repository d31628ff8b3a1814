"""Hierarchy operations on the ordered record list.

Sibling order is array order: the children of a node are drawn in the
order their records appear in the data block. Structural gestures are
therefore pure array permutations that never touch ``id`` or ``parentId``:

- :func:`move_sibling` swaps a record with its previous/next sibling.
- :func:`swap_records` swaps any two records' array positions.

:func:`build_forest` turns the records into a NetworkX DiGraph (parent ->
child edges) for layout and display. Records whose parent does not resolve
become roots; the first record wins when an id is duplicated.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import networkx as nx

from ychart.domain.errors import ReorderError
from ychart.domain.records import Record, find_index, id_key, plain
from ychart.domain.types import Direction

type Forest = nx.DiGraph


def sibling_indices(records: Sequence[Record], index: int) -> list[int]:
    """Array indices of all records sharing ``records[index]``'s parent.

    Root records (no ``parentId``) are siblings of each other.
    """
    parent = records[index].parent_key
    return [i for i, record in enumerate(records) if record.parent_key == parent]


def move_sibling(
    records: Sequence[Record],
    record_id: Any,
    direction: Direction | str,
) -> list[Record]:
    """Return a copy of *records* with *record_id* moved among its siblings.

    Raises:
        ReorderError: ``NOT_FOUND`` if the id does not exist, ``BOUNDARY``
            if the record is already first (up) or last (down).
    """
    direction = Direction(direction)
    index = find_index(records, record_id)
    if index is None:
        msg = f"Node {id_key(record_id)!r} not found"
        raise ReorderError(msg, code="NOT_FOUND")

    siblings = sibling_indices(records, index)
    position = siblings.index(index)
    target = position - 1 if direction is Direction.UP else position + 1
    if not 0 <= target < len(siblings):
        edge = "top" if direction is Direction.UP else "bottom"
        msg = f"Cannot move {direction}: already at {edge} of group"
        raise ReorderError(msg, code="BOUNDARY")

    return _swapped(records, index, siblings[target])


def swap_records(records: Sequence[Record], id_a: Any, id_b: Any) -> list[Record]:
    """Return a copy of *records* with the two records' positions exchanged.

    Raises:
        ReorderError: ``NOT_FOUND`` if either id does not exist.
    """
    index_a = find_index(records, id_a)
    index_b = find_index(records, id_b)
    missing = [id_key(i) for i, idx in ((id_a, index_a), (id_b, index_b)) if idx is None]
    if missing:
        msg = f"Could not find nodes in data: {', '.join(str(m) for m in missing)}"
        raise ReorderError(msg, code="NOT_FOUND")
    assert index_a is not None and index_b is not None
    return _swapped(records, index_a, index_b)


def _swapped(records: Sequence[Record], i: int, j: int) -> list[Record]:
    result = list(records)
    result[i], result[j] = result[j], result[i]
    return result


# ---------------------------------------------------------------------------
# Forest
# ---------------------------------------------------------------------------


def build_forest(records: Sequence[Record]) -> Forest:
    """Build a parent -> child DiGraph keyed by record id string.

    Node attributes: ``record`` and ``index`` (array position). Successor
    order follows array order.
    """
    g: Forest = nx.DiGraph()
    for index, record in enumerate(records):
        key = record.key
        if key is None or key in g:
            continue
        g.add_node(key, record=record, index=index)

    for node in list(g.nodes):
        parent = g.nodes[node]["record"].parent_key
        if parent is not None and parent in g and parent != node:
            g.add_edge(parent, node)
    return g


def roots(forest: Forest) -> list[str]:
    """Nodes without a (resolvable) parent, in array order."""
    return [node for node in forest.nodes if forest.in_degree(node) == 0]


def children(forest: Forest, node: str) -> list[str]:
    return list(forest.successors(node))


def walk(forest: Forest) -> list[tuple[str, int]]:
    """Pre-order ``(node, depth)`` traversal of every tree in the forest."""
    order: list[tuple[str, int]] = []

    def visit(node: str, depth: int) -> None:
        order.append((node, depth))
        for child in children(forest, node):
            visit(child, depth + 1)

    for root in roots(forest):
        visit(root, 0)
    return order


def nest(forest: Forest, fields: Sequence[str] = ("name", "title")) -> list[dict[str, Any]]:
    """Nested ``{id, <fields>, children}`` dicts for display."""

    def build(node: str) -> dict[str, Any]:
        record: Record = forest.nodes[node]["record"]
        item: dict[str, Any] = {"id": node}
        for name in fields:
            value = record.get(name)
            if value is not None:
                item[name] = plain(value)
        item["children"] = [build(child) for child in children(forest, node)]
        return item

    return [build(root) for root in roots(forest)]
