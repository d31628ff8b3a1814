"""ChartAdapter — owns the active chart engine and feeds it records.

Per render the adapter supplies geometry derived from the resolved chart
options, a content callback and a click handler. The content callback
picks, for each node at render time:

1. the caller-supplied override, if one is installed,
2. else the document's card template, if it has one,
3. else the built-in name/title/department card.

The tree and force-graph engines are mutually exclusive: switching view
destroys the active engine before the other one is constructed. Every
tree render also redraws the background pattern, applies cached node
positions, re-attaches height synchronization and schedules a deferred
``fit()``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from ychart.config.models import ChartOptions
from ychart.domain.card import CardTemplate, fallback_card, render_template
from ychart.domain.errors import RenderError
from ychart.domain.records import Record
from ychart.domain.types import ViewMode
from ychart.infrastructure.engines import ChartEngine, ChartNode, Geometry
from ychart.infrastructure.engines.graph import ForceGraphEngine
from ychart.infrastructure.engines.tree import TreeEngine
from ychart.infrastructure.events import Listeners, Subscription
from ychart.infrastructure.positions import MemoryPositionCache, Position, PositionCache
from ychart.infrastructure.scheduling import Handle, Scheduler
from ychart.services.height_sync import NodeHeightSyncService

logger = logging.getLogger(__name__)

type ContentOverride = Callable[[Record], str]
type EngineFactory = Callable[[], ChartEngine]


@dataclass
class RenderState:
    """The live engine and what it last rendered."""

    engine: ChartEngine
    view: ViewMode
    swap_mode: bool = False
    records: list[Record] = field(default_factory=list)
    options: ChartOptions = field(default_factory=ChartOptions)
    card: CardTemplate | None = None
    renders: int = 0

    @property
    def rendered(self) -> bool:
        return self.renders > 0


def geometry_from(options: ChartOptions) -> Geometry:
    return Geometry.uniform(
        node_width=options.node_width,
        node_height=options.node_height,
        children_margin=options.children_margin,
        compact_margin_between=options.compact_margin_between,
        compact_margin_pair=options.compact_margin_pair,
        neighbour_margin=options.neighbour_margin,
        scale_extent=(options.min_zoom, options.max_zoom),
    )


class ChartAdapter:
    """Wraps the chart engines behind one render surface."""

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        height_sync: NodeHeightSyncService | None = None,
        positions: PositionCache | None = None,
        engine_factories: dict[ViewMode, EngineFactory] | None = None,
        project_root: Path | None = None,
    ) -> None:
        self.scheduler = scheduler
        self.height_sync = height_sync or NodeHeightSyncService(scheduler)
        self.positions: PositionCache = positions if positions is not None else MemoryPositionCache()
        self._factories: dict[ViewMode, EngineFactory] = engine_factories or {
            ViewMode.TREE: lambda: TreeEngine(project_root=project_root),
            ViewMode.GRAPH: lambda: ForceGraphEngine(project_root=project_root),
        }
        self.state: RenderState | None = None
        self._view = ViewMode.TREE
        self._swap_mode = False
        self._override: ContentOverride | None = None
        self._by_id: dict[str, Record] = {}
        self._options = ChartOptions()
        self._card: CardTemplate | None = None
        self._select = Listeners()
        self._swap = Listeners()
        self._fit_handle: Handle | None = None
        self._engine_subs: list[Subscription] = []

    # ------------------------------------------------------------------
    # Listeners and settings
    # ------------------------------------------------------------------

    @property
    def view(self) -> ViewMode:
        return self.state.view if self.state is not None else self._view

    @property
    def engine(self) -> ChartEngine | None:
        return self.state.engine if self.state is not None else None

    def on_select(self, callback: Callable[[Record], None]) -> Subscription:
        """Called with the clicked record."""
        return self._select.add(callback)

    def on_swap(self, callback: Callable[[str, str], None]) -> Subscription:
        """Called with both ids when a drag-swap gesture completes."""
        return self._swap.add(callback)

    def set_content_override(self, override: ContentOverride | None) -> None:
        self._override = override

    def enable_reorder_mode(self, enabled: bool) -> None:
        self._swap_mode = enabled
        if self.state is not None:
            self.state.swap_mode = enabled
            if isinstance(self.state.engine, TreeEngine):
                self.state.engine.enable_swap_mode(enabled)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def content_for(self, record: Record) -> str:
        """Markup for one node, following override > card > fallback."""
        if self._override is not None:
            return self._override(record)
        if self._card:
            return render_template(self._card, record)
        return fallback_card(
            record, width=self._options.node_width, height=self._options.node_height
        )

    def _render_node(self, node: ChartNode) -> str:
        return self.content_for(self._by_id[node.id])

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(
        self,
        records: Sequence[Record],
        options: ChartOptions | None = None,
        card: CardTemplate | None = None,
    ) -> None:
        """Render *records* in the active view.

        Raises:
            RenderError: If the engine rejects the data. The previous
                render state is kept.
        """
        options = options or ChartOptions()
        state = self._ensure_state()
        nodes: list[ChartNode] = []
        by_id: dict[str, Record] = {}
        for record in records:
            key = record.key
            if key is None:
                continue
            if key not in by_id:
                by_id[key] = record
            nodes.append(ChartNode(id=key, parent_id=record.parent_key, data=record.to_dict()))

        previous = (self._by_id, self._options, self._card)
        self._by_id, self._options, self._card = by_id, options, card
        engine = state.engine
        try:
            engine.set_geometry(geometry_from(options))
            engine.set_content_renderer(self._render_node)
            engine.set_data(nodes)
            if isinstance(engine, TreeEngine):
                engine.set_positions(dict(self.positions.items()))
                engine.enable_swap_mode(state.swap_mode)
                engine.redraw_background()
                engine.render()
                self.height_sync.attach(engine)
            else:
                engine.render()
        except Exception as exc:
            self._by_id, self._options, self._card = previous
            logger.warning("Chart engine rejected the data: %s", exc)
            raise RenderError(str(exc)) from exc

        state.records = list(records)
        state.options = options
        state.card = card
        state.renders += 1
        self.schedule_fit()

    def rerender(self) -> None:
        """Render the last records again (positions, view or override changed)."""
        if self.state is not None and self.state.rendered:
            self.render(self.state.records, self.state.options, self.state.card)

    def schedule_fit(self) -> None:
        """Fit after layout settles; a later request replaces a pending one."""
        if self._fit_handle is not None:
            self._fit_handle.cancel()
        self._fit_handle = self.scheduler.call_later(0, self._run_fit)

    def _run_fit(self) -> None:
        self._fit_handle = None
        if self.state is not None:
            self.state.engine.fit()

    def switch_view(self, mode: ViewMode | str) -> None:
        """Replace the active engine with the one for *mode* and re-render.

        Raises:
            ValueError: If *mode* is not a known view.
            RenderError: If the new engine rejects the data.
        """
        mode = ViewMode(mode)
        self._view = mode
        if self.state is None or self.state.view is mode:
            return

        previous = self.state
        self._destroy_engine()
        self.state = self._new_state(mode)
        self.state.swap_mode = previous.swap_mode
        if previous.rendered:
            self.render(previous.records, previous.options, previous.card)

    def resize(self, width: float, height: float) -> None:
        """The container changed size; refit and re-sync node heights."""
        if self.state is None:
            return
        engine = self.state.engine
        if isinstance(engine, TreeEngine):
            engine.resize(width, height)
        elif isinstance(engine, ForceGraphEngine):
            engine.container = (width, height)
            self.schedule_fit()

    def to_svg(self) -> str:
        if self.state is None:
            return ""
        return self.state.engine.to_svg()

    def teardown(self) -> None:
        """Destroy the engine and forget the render state."""
        if self._fit_handle is not None:
            self._fit_handle.cancel()
            self._fit_handle = None
        self._destroy_engine()
        self.state = None
        self._by_id = {}

    def _ensure_state(self) -> RenderState:
        if self.state is None:
            self.state = self._new_state(self._view)
        return self.state

    def _new_state(self, mode: ViewMode) -> RenderState:
        engine = self._factories[mode]()
        self._engine_subs = [engine.on_node_click(self._on_click)]
        if isinstance(engine, TreeEngine):
            self._engine_subs.append(engine.on_node_swap(self._on_swap))
            self._engine_subs.append(engine.on_node_moved(self._on_moved))
            self._engine_subs.append(engine.on_resize(self._on_engine_resize))
        logger.debug("Created %s engine", mode)
        return RenderState(engine=engine, view=mode, swap_mode=self._swap_mode)

    def _on_engine_resize(self, _width: float, _height: float) -> None:
        self.schedule_fit()
        self.height_sync.trigger_sync()

    def _destroy_engine(self) -> None:
        self.height_sync.detach()
        for subscription in self._engine_subs:
            subscription.cancel()
        self._engine_subs = []
        if self.state is not None:
            self.state.engine.destroy()

    # ------------------------------------------------------------------
    # Gestures and positions
    # ------------------------------------------------------------------

    def click(self, node_id: str) -> None:
        if self.state is None:
            msg = "Nothing has been rendered"
            raise KeyError(msg)
        self.state.engine.click(node_id)

    def drop(self, node_id: str, x: float, y: float) -> None:
        """Finish a drag gesture on the tree view."""
        if self.state is None or not isinstance(self.state.engine, TreeEngine):
            msg = "Drag gestures need a rendered tree view"
            raise RuntimeError(msg)
        self.state.engine.drop(node_id, x, y)

    def _on_click(self, node: ChartNode) -> None:
        record = self._by_id.get(node.id)
        if record is not None:
            self._select.emit(record)

    def _on_swap(self, source: ChartNode, target: ChartNode) -> None:
        self._swap.emit(source.id, target.id)

    def _on_moved(self, node: ChartNode, position: Position) -> None:
        self.positions.set(node.id, position)

    def set_position(self, node_id: str, position: Position) -> None:
        self.positions.set(node_id, position)

    def exchange_positions(self, id_a: str, id_b: str) -> None:
        """Swap the cached positions of two nodes."""
        pos_a = self.positions.get(id_a)
        pos_b = self.positions.get(id_b)
        for key, position in ((id_a, pos_b), (id_b, pos_a)):
            if position is None:
                self.positions.delete(key)
            else:
                self.positions.set(key, position)

    def reset_positions(self) -> None:
        self.positions.clear()
