"""TreeEngine — layered top-down tree layout with HTML node cards.

Each node is drawn as a ``foreignObject.node-foreign-object`` holding a
``div.node-foreign-object-div`` with the markup produced by the content
renderer. Children are laid out left to right in input order below their
parent; independent roots sit side by side.

Spacing rules:

- parent to children: ``children_margin(parent)``
- adjacent siblings: ``compact_margin_pair`` when both are leaves,
  ``neighbour_margin`` otherwise
- adjacent root trees: ``compact_margin_between``

Layout is recomputed from the nodes' current ``width`` / ``height`` on
every read, so a height written back by height synchronization is picked
up by the next SVG export, fit or hit test.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from pathlib import Path

import networkx as nx

from ychart.infrastructure.engines import (
    DEFAULT_CONTAINER,
    ChartNode,
    Geometry,
    clamp_zoom,
)
from ychart.infrastructure.engines.measure import estimate_content_height
from ychart.infrastructure.events import Listeners, Subscription
from ychart.infrastructure.positions import Position
from ychart.infrastructure.templates import build_template_environment

logger = logging.getLogger(__name__)

FIT_PADDING = 20.0


class ForeignObjectBox:
    """The content container of one rendered node.

    ``height`` is None while the box is at its natural (auto) height.
    """

    def __init__(self, node: ChartNode) -> None:
        self.node = node
        self.height: float | None = None
        self.synced = False
        self._resize = Listeners()

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def datum(self) -> ChartNode:
        return self.node

    def reset_height(self) -> None:
        self.height = None
        self.synced = False

    def measure(self) -> float:
        return estimate_content_height(self.node.html, self.node.width)

    def apply_height(self, height: float) -> None:
        self.height = height
        self.synced = True

    def set_content(self, html: str) -> None:
        """Replace the box markup; notifies resize observers if its natural size changed."""
        before = self.measure()
        self.node.html = html
        if self.measure() != before:
            self._resize.emit(self)

    def observe_resize(self, callback: Callable[[ForeignObjectBox], None]) -> Subscription:
        return self._resize.add(callback)

    def disconnect(self) -> None:
        self._resize.clear()


class TreeEngine:
    """Hierarchical chart engine producing SVG."""

    view = "tree"

    def __init__(
        self,
        *,
        container: tuple[float, float] = DEFAULT_CONTAINER,
        project_root: Path | None = None,
    ) -> None:
        self.container = container
        self.geometry = Geometry.uniform()
        self.swap_mode = False
        self.zoom = 1.0
        self.background_version = 0
        self.render_count = 0
        self._pending: list[ChartNode] = []
        self._nodes: list[ChartNode] = []
        self._boxes: dict[str, ForeignObjectBox] = {}
        self._graph: nx.DiGraph = nx.DiGraph()
        self._positions: dict[str, Position] = {}
        self._content: Callable[[ChartNode], str] = lambda node: ""
        self._click = Listeners()
        self._swap = Listeners()
        self._moved = Listeners()
        self._mutation = Listeners()
        self._resize = Listeners()
        self._env = build_template_environment("svg", project_root=project_root)
        self._destroyed = False

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> Sequence[ChartNode]:
        return list(self._nodes)

    def set_data(self, nodes: Sequence[ChartNode]) -> None:
        self._pending = list(nodes)

    def set_geometry(self, geometry: Geometry) -> None:
        self.geometry = geometry

    def set_content_renderer(self, renderer: Callable[[ChartNode], str]) -> None:
        self._content = renderer

    def set_positions(self, positions: dict[str, Position]) -> None:
        """Saved top-left positions that override the computed layout."""
        self._positions = dict(positions)

    def enable_swap_mode(self, enabled: bool) -> None:
        self.swap_mode = enabled

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def on_node_click(self, callback: Callable[[ChartNode], None]) -> Subscription:
        return self._click.add(callback)

    def on_node_swap(self, callback: Callable[[ChartNode, ChartNode], None]) -> Subscription:
        return self._swap.add(callback)

    def on_node_moved(self, callback: Callable[[ChartNode, Position], None]) -> Subscription:
        return self._moved.add(callback)

    def on_resize(self, callback: Callable[[float, float], None]) -> Subscription:
        return self._resize.add(callback)

    def observe_mutations(self, callback: Callable[[], None]) -> Subscription:
        return self._mutation.add(callback)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self) -> None:
        """Lay out the pending data and rebuild every node box.

        Raises:
            RuntimeError: If the engine was destroyed.
            ValueError: If node ids repeat or a node size is not a positive
                finite number.
        """
        if self._destroyed:
            msg = "TreeEngine has been destroyed"
            raise RuntimeError(msg)

        nodes = self._pending
        seen: set[str] = set()
        for node in nodes:
            if node.id in seen:
                msg = f"Duplicate node id {node.id!r}"
                raise ValueError(msg)
            seen.add(node.id)
            node.width = _positive(self.geometry.node_width(node), "width", node.id)
            node.height = _positive(self.geometry.node_height(node), "height", node.id)
            node.html = self._content(node)

        graph: nx.DiGraph = nx.DiGraph()
        graph.add_nodes_from(node.id for node in nodes)
        for node in nodes:
            if node.parent_id is not None and node.parent_id in seen and node.parent_id != node.id:
                graph.add_edge(node.parent_id, node.id)
        if not nx.is_directed_acyclic_graph(graph):
            msg = "Node hierarchy contains a cycle"
            raise ValueError(msg)

        for box in self._boxes.values():
            box.disconnect()
        previous = self.render_count
        self._nodes = list(nodes)
        self._graph = graph
        self._boxes = {node.id: ForeignObjectBox(node) for node in nodes}
        self.render_count += 1
        self.layout()
        logger.debug("Tree rendered: %d nodes", len(nodes))
        if previous:
            self._mutation.emit()

    def boxes(self) -> list[ForeignObjectBox]:
        return list(self._boxes.values())

    def box(self, node_id: str) -> ForeignObjectBox | None:
        return self._boxes.get(node_id)

    def redraw_background(self) -> None:
        self.background_version += 1

    def layout(self) -> None:
        """Assign ``x`` / ``y`` to every node, then apply saved positions."""
        by_id = {node.id: node for node in self._nodes}
        extents: dict[str, float] = {}

        def gap(a: ChartNode, b: ChartNode) -> float:
            if self._graph.out_degree(a.id) == 0 and self._graph.out_degree(b.id) == 0:
                return self.geometry.compact_margin_pair(a)
            return self.geometry.neighbour_margin(a, b)

        def extent(node_id: str) -> float:
            node = by_id[node_id]
            kids = [by_id[k] for k in self._graph.successors(node_id)]
            total = sum(extent(k.id) for k in kids)
            total += sum(gap(a, b) for a, b in zip(kids, kids[1:], strict=False))
            extents[node_id] = max(node.width, total)
            return extents[node_id]

        def place(node_id: str, left: float, top: float) -> None:
            node = by_id[node_id]
            node.x = left + (extents[node_id] - node.width) / 2
            node.y = top
            kids = [by_id[k] for k in self._graph.successors(node_id)]
            if not kids:
                return
            span = sum(extents[k.id] for k in kids)
            span += sum(gap(a, b) for a, b in zip(kids, kids[1:], strict=False))
            cursor = left + (extents[node_id] - span) / 2
            child_top = top + node.height + self.geometry.children_margin(node)
            for index, kid in enumerate(kids):
                place(kid.id, cursor, child_top)
                cursor += extents[kid.id]
                if index + 1 < len(kids):
                    cursor += gap(kid, kids[index + 1])

        roots = [node for node in self._nodes if self._graph.in_degree(node.id) == 0]
        cursor = 0.0
        for index, root in enumerate(roots):
            extent(root.id)
            place(root.id, cursor, 0.0)
            cursor += extents[root.id]
            if index + 1 < len(roots):
                cursor += self.geometry.compact_margin_between(root)

        for node in self._nodes:
            saved = self._positions.get(node.id)
            if saved is not None:
                node.x, node.y = saved.x, saved.y

    def bounds(self) -> tuple[float, float, float, float]:
        """``(min_x, min_y, width, height)`` of all nodes, padded."""
        if not self._nodes:
            return 0.0, 0.0, *self.container
        min_x = min(node.x for node in self._nodes) - FIT_PADDING
        min_y = min(node.y for node in self._nodes) - FIT_PADDING
        max_x = max(node.x + node.width for node in self._nodes) + FIT_PADDING
        max_y = max(node.y + node.height for node in self._nodes) + FIT_PADDING
        return min_x, min_y, max_x - min_x, max_y - min_y

    def fit(self) -> None:
        """Zoom so the whole tree fits the container, within the scale extent."""
        self.layout()
        _, _, width, height = self.bounds()
        scale = min(self.container[0] / width, self.container[1] / height)
        self.zoom = clamp_zoom(scale, self.geometry.scale_extent)

    def resize(self, width: float, height: float) -> None:
        self.container = (width, height)
        self._resize.emit(width, height)

    # ------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------

    def click(self, node_id: str) -> None:
        node = self._node(node_id)
        self._click.emit(node)

    def drop(self, node_id: str, x: float, y: float) -> None:
        """Finish dragging *node_id* with its top-left corner at ``(x, y)``.

        In swap mode a drop whose center lands on another node swaps the
        two; a drop on empty space is discarded. Otherwise the drop is a
        free move and the new position is kept.
        """
        node = self._node(node_id)
        self.layout()
        if self.swap_mode:
            cx, cy = x + node.width / 2, y + node.height / 2
            for target in self._nodes:
                if target.id != node.id and target.contains(cx, cy):
                    logger.debug("Drop of %s on %s", node.id, target.id)
                    self._swap.emit(node, target)
                    return
            return

        position = Position(x, y)
        self._positions[node.id] = position
        node.x, node.y = x, y
        self._moved.emit(node, position)

    def _node(self, node_id: str) -> ChartNode:
        for node in self._nodes:
            if node.id == node_id:
                return node
        msg = f"No rendered node with id {node_id!r}"
        raise KeyError(msg)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def links(self) -> list[tuple[ChartNode, ChartNode]]:
        by_id = {node.id: node for node in self._nodes}
        return [(by_id[a], by_id[b]) for a, b in self._graph.edges]

    def to_svg(self) -> str:
        self.layout()
        min_x, min_y, width, height = self.bounds()
        template = self._env.get_template("tree.svg.j2")
        return template.render(
            nodes=self._nodes,
            boxes=self._boxes,
            links=self.links(),
            view_box=(min_x, min_y, width, height),
            container=self.container,
            zoom=self.zoom,
            background_version=self.background_version,
            swap_mode=self.swap_mode,
        )

    def destroy(self) -> None:
        for listeners in (self._click, self._swap, self._moved, self._mutation, self._resize):
            listeners.clear()
        for box in self._boxes.values():
            box.disconnect()
        self._boxes.clear()
        self._nodes = []
        self._pending = []
        self._destroyed = True


def _positive(value: float, name: str, node_id: str) -> float:
    number = float(value)
    if not math.isfinite(number) or number <= 0:
        msg = f"Node {node_id!r} has invalid {name} {value!r}"
        raise ValueError(msg)
    return number
