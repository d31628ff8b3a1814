"""ForceGraphEngine — spring layout of nodes and parent links.

Links whose parent id is not among the nodes are dropped. The layout is
seeded so the same data always produces the same picture.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from pathlib import Path

import networkx as nx

from ychart.infrastructure.engines import DEFAULT_CONTAINER, ChartNode, Geometry, clamp_zoom
from ychart.infrastructure.events import Listeners, Subscription
from ychart.infrastructure.templates import build_template_environment

logger = logging.getLogger(__name__)

LINK_DISTANCE = 150.0
NODE_RADIUS = 40.0
COLLIDE_RADIUS = 60.0
LAYOUT_SEED = 42


class ForceGraphEngine:
    """Force-directed view of the hierarchy."""

    view = "graph"

    def __init__(
        self,
        *,
        container: tuple[float, float] = DEFAULT_CONTAINER,
        project_root: Path | None = None,
    ) -> None:
        self.container = container
        self.geometry = Geometry.uniform()
        self.zoom = 1.0
        self._pending: list[ChartNode] = []
        self._nodes: list[ChartNode] = []
        self._links: list[tuple[ChartNode, ChartNode]] = []
        self._click = Listeners()
        self._env = build_template_environment("svg", project_root=project_root)

    @property
    def nodes(self) -> Sequence[ChartNode]:
        return list(self._nodes)

    @property
    def links(self) -> list[tuple[ChartNode, ChartNode]]:
        return list(self._links)

    def set_data(self, nodes: Sequence[ChartNode]) -> None:
        self._pending = list(nodes)

    def set_geometry(self, geometry: Geometry) -> None:
        self.geometry = geometry

    def set_content_renderer(self, renderer: Callable[[ChartNode], str]) -> None:
        """Cards are not drawn in this view; nodes are labelled by name."""

    def on_node_click(self, callback: Callable[[ChartNode], None]) -> Subscription:
        return self._click.add(callback)

    def render(self) -> None:
        nodes = self._pending
        by_id = {node.id: node for node in nodes}
        if len(by_id) != len(nodes):
            msg = "Duplicate node id in graph data"
            raise ValueError(msg)

        graph: nx.Graph = nx.Graph()
        graph.add_nodes_from(by_id)
        links: list[tuple[ChartNode, ChartNode]] = []
        for node in nodes:
            parent = by_id.get(node.parent_id) if node.parent_id is not None else None
            if parent is not None and parent is not node:
                graph.add_edge(parent.id, node.id)
                links.append((parent, node))

        if nodes:
            center = (self.container[0] / 2, self.container[1] / 2)
            scale = LINK_DISTANCE * max(1.0, math.sqrt(len(nodes))) / 2
            pos = nx.spring_layout(graph, seed=LAYOUT_SEED, scale=scale, center=center)
            for node in nodes:
                x, y = pos[node.id]
                node.x, node.y = float(x), float(y)
                node.width = node.height = 2 * NODE_RADIUS

        self._nodes = list(nodes)
        self._links = links
        logger.debug("Graph rendered: %d nodes, %d links", len(nodes), len(links))

    def fit(self) -> None:
        if not self._nodes:
            self.zoom = 1.0
            return
        xs = [node.x for node in self._nodes]
        ys = [node.y for node in self._nodes]
        width = max(xs) - min(xs) + 2 * COLLIDE_RADIUS
        height = max(ys) - min(ys) + 2 * COLLIDE_RADIUS
        scale = min(self.container[0] / width, self.container[1] / height)
        self.zoom = clamp_zoom(scale, self.geometry.scale_extent)

    def click(self, node_id: str) -> None:
        for node in self._nodes:
            if node.id == node_id:
                self._click.emit(node)
                return
        msg = f"No rendered node with id {node_id!r}"
        raise KeyError(msg)

    def to_svg(self) -> str:
        template = self._env.get_template("graph.svg.j2")
        return template.render(
            nodes=self._nodes,
            links=self._links,
            container=self.container,
            radius=NODE_RADIUS,
            zoom=self.zoom,
        )

    def destroy(self) -> None:
        self._click.clear()
        self._nodes = []
        self._links = []
        self._pending = []
