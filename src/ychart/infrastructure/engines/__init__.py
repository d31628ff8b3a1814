"""Chart engines — layout and SVG output for one view of the chart.

Engines know nothing about records, schemas or card templates. They are
fed :class:`ChartNode` objects (an id, an optional parent id and a plain
``data`` dict), geometry callbacks and a content renderer, and they report
clicks and gestures back through listener callbacks.

Two engines exist and are mutually exclusive per container:

- :class:`~ychart.infrastructure.engines.tree.TreeEngine` — layered tree,
  HTML cards in ``foreignObject`` boxes.
- :class:`~ychart.infrastructure.engines.graph.ForceGraphEngine` — spring
  layout of the same nodes and parent links.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from ychart.infrastructure.events import Subscription

DEFAULT_CONTAINER = (1200.0, 800.0)


@dataclass
class ChartNode:
    """Per-node engine datum. ``height`` is rewritten by height sync."""

    id: str
    parent_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    width: float = 0.0
    height: float = 0.0
    x: float = 0.0
    y: float = 0.0
    html: str = ""

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.width and self.y <= y <= self.y + self.height


type NodeMetric = Callable[[ChartNode], float]


@dataclass(frozen=True)
class Geometry:
    """Geometry callbacks, each evaluated per node at layout time."""

    node_width: NodeMetric
    node_height: NodeMetric
    children_margin: NodeMetric
    compact_margin_between: NodeMetric
    compact_margin_pair: NodeMetric
    neighbour_margin: Callable[[ChartNode, ChartNode], float]
    scale_extent: tuple[float, float] = (0.1, 4.0)

    @classmethod
    def uniform(
        cls,
        *,
        node_width: float = 220,
        node_height: float = 110,
        children_margin: float = 50,
        compact_margin_between: float = 35,
        compact_margin_pair: float = 30,
        neighbour_margin: float = 20,
        scale_extent: tuple[float, float] = (0.1, 4.0),
    ) -> Geometry:
        """Geometry with the same value for every node."""
        return cls(
            node_width=lambda _n: node_width,
            node_height=lambda _n: node_height,
            children_margin=lambda _n: children_margin,
            compact_margin_between=lambda _n: compact_margin_between,
            compact_margin_pair=lambda _n: compact_margin_pair,
            neighbour_margin=lambda _a, _b: neighbour_margin,
            scale_extent=scale_extent,
        )


def clamp_zoom(scale: float, extent: tuple[float, float]) -> float:
    low, high = extent
    return min(max(scale, low), high)


class ChartEngine(Protocol):
    """Operations the chart adapter drives on either engine."""

    view: str

    @property
    def nodes(self) -> Sequence[ChartNode]: ...

    def set_data(self, nodes: Sequence[ChartNode]) -> None: ...

    def set_geometry(self, geometry: Geometry) -> None: ...

    def set_content_renderer(self, renderer: Callable[[ChartNode], str]) -> None: ...

    def on_node_click(self, callback: Callable[[ChartNode], None]) -> Subscription: ...

    def render(self) -> None: ...

    def fit(self) -> None: ...

    def click(self, node_id: str) -> None: ...

    def to_svg(self) -> str: ...

    def destroy(self) -> None: ...
