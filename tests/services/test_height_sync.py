"""Tests for NodeHeightSyncService against a fake rendering surface."""

from __future__ import annotations

from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

import pytest

from ychart.config.models import HeightSyncConfig
from ychart.infrastructure.events import Listeners, Subscription
from ychart.infrastructure.scheduling import ManualScheduler
from ychart.services.height_sync import NodeHeightSyncService


class FakeBox:
    def __init__(self, box_id: str, natural: float) -> None:
        self.id = box_id
        self.natural = natural
        self.height: float | None = None
        self.datum = SimpleNamespace(height=0)
        self.resets = 0
        self._resize = Listeners()

    def reset_height(self) -> None:
        self.height = None
        self.resets += 1

    def measure(self) -> float:
        assert self.height is None, "measured while a forced height was applied"
        return self.natural

    def apply_height(self, height: float) -> None:
        self.height = height

    def observe_resize(self, callback: Callable[[Any], None]) -> Subscription:
        return self._resize.add(callback)

    def grow(self, natural: float) -> None:
        self.natural = natural
        self._resize.emit(self)


class FakeSurface:
    def __init__(self, *boxes: FakeBox) -> None:
        self._boxes = list(boxes)
        self._mutations = Listeners()

    def boxes(self) -> list[FakeBox]:
        return list(self._boxes)

    def observe_mutations(self, callback: Callable[[], None]) -> Subscription:
        return self._mutations.add(callback)

    def add(self, box: FakeBox) -> None:
        self._boxes.append(box)
        self._mutations.emit()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


class TestUnifiedHeight:
    def test_tallest_wins(self, scheduler: ManualScheduler) -> None:
        assert NodeHeightSyncService(scheduler).unified_height([40, 90, 60]) == 90

    def test_min_height(self, scheduler: ManualScheduler) -> None:
        assert NodeHeightSyncService(scheduler).unified_height([40, 50]) == 80

    def test_padding_and_max(self, scheduler: ManualScheduler) -> None:
        service = NodeHeightSyncService(scheduler, padding=10, max_height=95)
        assert service.unified_height([80]) == 90
        assert service.unified_height([90]) == 95

    def test_min_wins_on_conflict(self, scheduler: ManualScheduler) -> None:
        service = NodeHeightSyncService(scheduler, min_height=100, max_height=50)
        assert service.unified_height([70]) == 100

    def test_rounds_up(self, scheduler: ManualScheduler) -> None:
        assert NodeHeightSyncService(scheduler).unified_height([90.2]) == 91

    def test_empty(self, scheduler: ManualScheduler) -> None:
        assert NodeHeightSyncService(scheduler, min_height=64).unified_height([]) == 64

    def test_from_config(self, scheduler: ManualScheduler) -> None:
        config = HeightSyncConfig(min_height=10, max_height=20, padding=1, debounce=0.5)
        service = NodeHeightSyncService.from_config(config, scheduler)
        assert (service.min_height, service.max_height) == (10, 20)
        assert service.debounce == 0.5


class TestAttach:
    def test_applies_uniform_height(self, scheduler: ManualScheduler) -> None:
        heights: list[int] = []
        boxes = [FakeBox("a", 60), FakeBox("b", 120), FakeBox("c", 90)]
        service = NodeHeightSyncService(scheduler, on_height_change=heights.append)

        assert service.attach(FakeSurface(*boxes)) == 120
        assert [box.height for box in boxes] == [120, 120, 120]
        assert [box.datum.height for box in boxes] == [120, 120, 120]
        assert heights == [120]
        assert service.attached

    def test_resets_before_measuring(self, scheduler: ManualScheduler) -> None:
        box = FakeBox("a", 100)
        service = NodeHeightSyncService(scheduler)
        service.attach(FakeSurface(box))
        box.natural = 85
        assert service.sync_now() == 85
        assert box.resets == 2

    def test_resize_schedules_debounced_sync(self, scheduler: ManualScheduler) -> None:
        box = FakeBox("a", 100)
        service = NodeHeightSyncService(scheduler, debounce=0.15)
        service.attach(FakeSurface(box, FakeBox("b", 90)))

        box.grow(140)
        scheduler.advance(0.1)
        assert service.sync_count == 1
        scheduler.advance(0.1)
        assert service.sync_count == 2
        assert service.current_height == 140

    def test_bursts_coalesce(self, scheduler: ManualScheduler) -> None:
        box = FakeBox("a", 100)
        service = NodeHeightSyncService(scheduler)
        service.attach(FakeSurface(box))
        for natural in (110, 120, 130):
            box.grow(natural)
            scheduler.advance(0.05)
        scheduler.run_all()
        assert service.sync_count == 2
        assert service.current_height == 130

    def test_mutation_observes_new_boxes(self, scheduler: ManualScheduler) -> None:
        surface = FakeSurface(FakeBox("a", 90))
        service = NodeHeightSyncService(scheduler)
        service.attach(surface)

        late = FakeBox("b", 100)
        surface.add(late)
        scheduler.run_all()
        assert late.height == 100

        late.grow(150)
        scheduler.run_all()
        assert service.current_height == 150

    def test_notifies_even_when_unchanged(self, scheduler: ManualScheduler) -> None:
        heights: list[int] = []
        service = NodeHeightSyncService(scheduler, on_height_change=heights.append)
        service.attach(FakeSurface(FakeBox("a", 90)))
        service.sync_now()
        assert heights == [90, 90]

    def test_trigger_sync_runs_next_tick(self, scheduler: ManualScheduler) -> None:
        service = NodeHeightSyncService(scheduler)
        service.attach(FakeSurface(FakeBox("a", 90)))
        service.trigger_sync()
        service.trigger_sync()
        assert service.sync_count == 1
        scheduler.run_all()
        assert service.sync_count == 2

    def test_detach_cancels_pending(self, scheduler: ManualScheduler) -> None:
        box = FakeBox("a", 90)
        service = NodeHeightSyncService(scheduler)
        service.attach(FakeSurface(box))
        box.grow(200)
        service.detach()
        scheduler.run_all()
        assert service.sync_count == 1
        assert not service.attached

        box.grow(300)
        assert scheduler.pending == 0

    def test_reattach_replaces_surface(self, scheduler: ManualScheduler) -> None:
        old = FakeBox("old", 90)
        service = NodeHeightSyncService(scheduler)
        service.attach(FakeSurface(old))
        service.attach(FakeSurface(FakeBox("new", 100)))
        old.grow(300)
        assert scheduler.pending == 0
        assert service.current_height == 100

    def test_sync_without_surface(self, scheduler: ManualScheduler) -> None:
        assert NodeHeightSyncService(scheduler).sync_now() == 0
