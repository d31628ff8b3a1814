"""NodeHeightSyncService — one uniform height for every rendered node.

Card content has variable height but the tree layout uses a single row
height, so after every render the service:

1. resets each node box to its natural height,
2. measures every box,
3. computes ``ceil(clamp(max(measured) + padding, min_height, max_height))``,
4. applies that height to every box, and
5. writes it back into each node's engine datum so later layout passes
   agree with what is drawn.

While attached it observes each box for size changes and the surface for
node additions/removals. Any of those schedules a debounced full re-run;
the result depends on a global max, so there is no incremental path.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Sequence
from typing import Any, Protocol

from ychart.config.models import HeightSyncConfig
from ychart.infrastructure.events import Subscription
from ychart.infrastructure.scheduling import Handle, Scheduler

logger = logging.getLogger(__name__)


class NodeBox(Protocol):
    """Content container of one rendered node."""

    @property
    def id(self) -> str: ...

    @property
    def datum(self) -> Any: ...

    def reset_height(self) -> None: ...

    def measure(self) -> float: ...

    def apply_height(self, height: float) -> None: ...

    def observe_resize(self, callback: Callable[[Any], None]) -> Subscription: ...


class Surface(Protocol):
    """A rendered chart whose node boxes can be enumerated and observed."""

    def boxes(self) -> Sequence[NodeBox]: ...

    def observe_mutations(self, callback: Callable[[], None]) -> Subscription: ...


class NodeHeightSyncService:
    """Measures node boxes and forces a uniform height across them."""

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        min_height: float = 80,
        max_height: float | None = None,
        padding: float = 0,
        debounce: float = 0.15,
        on_height_change: Callable[[int], None] | None = None,
    ) -> None:
        self.scheduler = scheduler
        self.min_height = min_height
        self.max_height = math.inf if max_height is None else max_height
        self.padding = padding
        self.debounce = debounce
        self.on_height_change = on_height_change
        self.current_height = 0
        self.sync_count = 0
        self._surface: Surface | None = None
        self._mutation_sub: Subscription | None = None
        self._resize_subs: dict[int, tuple[NodeBox, Subscription]] = {}
        self._debounce_handle: Handle | None = None
        self._tick_handle: Handle | None = None

    @classmethod
    def from_config(
        cls,
        config: HeightSyncConfig,
        scheduler: Scheduler,
        *,
        on_height_change: Callable[[int], None] | None = None,
    ) -> NodeHeightSyncService:
        return cls(
            scheduler,
            min_height=config.min_height,
            max_height=config.max_height,
            padding=config.padding,
            debounce=config.debounce,
            on_height_change=on_height_change,
        )

    @property
    def attached(self) -> bool:
        return self._surface is not None

    def unified_height(self, measured: Iterable[float]) -> int:
        """Apply padding and bounds to the tallest measurement.

        With nothing measured the result is ``min_height``. When the
        bounds conflict, ``min_height`` wins.
        """
        tallest = max(measured, default=None)
        if tallest is None:
            height = self.min_height
        else:
            height = min(tallest + self.padding, self.max_height)
        return math.ceil(max(height, self.min_height))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def attach(self, surface: Surface) -> int:
        """Sync *surface* now and keep it in sync until :meth:`detach`."""
        self.detach()
        self._surface = surface
        height = self.sync_now()
        self._observe_boxes()
        self._mutation_sub = surface.observe_mutations(self._on_mutation)
        return height

    def detach(self) -> None:
        """Cancel observers and any pending run."""
        for _, subscription in self._resize_subs.values():
            subscription.cancel()
        self._resize_subs.clear()
        if self._mutation_sub is not None:
            self._mutation_sub.cancel()
            self._mutation_sub = None
        for handle in (self._debounce_handle, self._tick_handle):
            if handle is not None:
                handle.cancel()
        self._debounce_handle = None
        self._tick_handle = None
        self._surface = None

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def sync_now(self) -> int:
        """Run the full measure/apply pass immediately."""
        if self._surface is None:
            return self.current_height
        boxes = list(self._surface.boxes())
        for box in boxes:
            box.reset_height()
        height = self.unified_height(box.measure() for box in boxes)
        for box in boxes:
            box.apply_height(height)
            box.datum.height = height

        self.sync_count += 1
        self.current_height = height
        logger.debug("Synced %d node heights to %dpx", len(boxes), height)
        if self.on_height_change is not None:
            self.on_height_change(height)
        return height

    def trigger_sync(self) -> None:
        """Run one sync on the next scheduler tick."""
        if self._tick_handle is not None:
            self._tick_handle.cancel()
        self._tick_handle = self.scheduler.call_later(0, self._run_tick)

    def _run_tick(self) -> None:
        self._tick_handle = None
        self.sync_now()

    def _schedule_debounced(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        self._debounce_handle = self.scheduler.call_later(self.debounce, self._run_debounced)

    def _run_debounced(self) -> None:
        self._debounce_handle = None
        self.sync_now()

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def _observe_boxes(self) -> None:
        if self._surface is None:
            return
        current = {id(box): box for box in self._surface.boxes()}
        for key in list(self._resize_subs):
            if key not in current:
                self._resize_subs.pop(key)[1].cancel()
        for key, box in current.items():
            if key not in self._resize_subs:
                subscription = box.observe_resize(self._on_resize)
                self._resize_subs[key] = (box, subscription)

    def _on_resize(self, _box: Any) -> None:
        self._schedule_debounced()

    def _on_mutation(self) -> None:
        self._observe_boxes()
        self._schedule_debounced()
