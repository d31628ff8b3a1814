"""Tests for the force-graph engine."""

from __future__ import annotations

import math

import pytest

from ychart.infrastructure.engines import ChartNode
from ychart.infrastructure.engines.graph import NODE_RADIUS, ForceGraphEngine


def _engine() -> ForceGraphEngine:
    engine = ForceGraphEngine()
    engine.set_data(
        [
            ChartNode(id="1", data={"name": "Ada", "title": "CEO"}),
            ChartNode(id="2", parent_id="1", data={"name": "Bob"}),
            ChartNode(id="3", parent_id="99", data={}),
        ]
    )
    engine.render()
    return engine


class TestForceGraphEngine:
    def test_dangling_links_dropped(self) -> None:
        engine = _engine()
        assert [(a.id, b.id) for a, b in engine.links] == [("1", "2")]

    def test_positions_are_deterministic(self) -> None:
        first = [(n.x, n.y) for n in _engine().nodes]
        second = [(n.x, n.y) for n in _engine().nodes]
        assert first == second
        assert all(math.isfinite(x) and math.isfinite(y) for x, y in first)

    def test_node_size(self) -> None:
        assert all(node.width == 2 * NODE_RADIUS for node in _engine().nodes)

    def test_duplicate_ids(self) -> None:
        engine = ForceGraphEngine()
        engine.set_data([ChartNode(id="1"), ChartNode(id="1")])
        with pytest.raises(ValueError):
            engine.render()

    def test_click(self) -> None:
        engine = _engine()
        clicked: list[str] = []
        engine.on_node_click(lambda node: clicked.append(node.id))
        engine.click("2")
        assert clicked == ["2"]
        with pytest.raises(KeyError):
            engine.click("nope")

    def test_fit_within_extent(self) -> None:
        engine = _engine()
        engine.fit()
        low, high = engine.geometry.scale_extent
        assert low <= engine.zoom <= high

    def test_svg_labels(self) -> None:
        svg = _engine().to_svg()
        assert 'data-view="graph"' in svg
        assert "Ada" in svg
        assert ">3</text>" in svg
        assert svg.count("<circle") == 3

    def test_destroy(self) -> None:
        engine = _engine()
        engine.destroy()
        assert engine.nodes == []
        assert engine.links == []
