"""Tests for the tree engine layout, gestures and SVG output."""

from __future__ import annotations

from pathlib import Path

import pytest

from ychart.infrastructure.engines import ChartNode, Geometry
from ychart.infrastructure.engines.tree import TreeEngine
from ychart.infrastructure.positions import Position

GEOMETRY = Geometry.uniform(
    node_width=100,
    node_height=50,
    children_margin=40,
    compact_margin_between=60,
    compact_margin_pair=10,
    neighbour_margin=30,
)


def _nodes(*pairs: tuple[str, str | None]) -> list[ChartNode]:
    return [ChartNode(id=node_id, parent_id=parent, data={"name": node_id}) for node_id, parent in pairs]


@pytest.fixture
def engine() -> TreeEngine:
    tree = TreeEngine()
    tree.set_geometry(GEOMETRY)
    tree.set_content_renderer(lambda node: f"<b>{node.id}</b>")
    tree.set_data(_nodes(("1", None), ("2", "1"), ("3", "1")))
    tree.render()
    return tree


def _xy(engine: TreeEngine, node_id: str) -> tuple[float, float]:
    box = engine.box(node_id)
    assert box is not None
    return box.datum.x, box.datum.y


class TestLayout:
    def test_parent_centered_over_leaf_pair(self, engine: TreeEngine) -> None:
        assert _xy(engine, "1") == (55, 0)
        assert _xy(engine, "2") == (0, 90)
        assert _xy(engine, "3") == (110, 90)

    def test_non_leaf_siblings_use_neighbour_margin(self) -> None:
        tree = TreeEngine()
        tree.set_geometry(GEOMETRY)
        tree.set_data(_nodes(("1", None), ("2", "1"), ("3", "1"), ("4", "2")))
        tree.render()
        assert _xy(tree, "3") == (130, 90)
        assert _xy(tree, "4") == (0, 180)

    def test_roots_side_by_side(self) -> None:
        tree = TreeEngine()
        tree.set_geometry(GEOMETRY)
        tree.set_data(_nodes(("a", None), ("b", None)))
        tree.render()
        assert _xy(tree, "b") == (160, 0)

    def test_dangling_parent_is_root(self) -> None:
        tree = TreeEngine()
        tree.set_geometry(GEOMETRY)
        tree.set_data(_nodes(("1", None), ("2", "99")))
        tree.render()
        assert tree.links() == []
        assert _xy(tree, "2") == (160, 0)

    def test_saved_positions_override(self, engine: TreeEngine) -> None:
        engine.set_positions({"3": Position(500, 5)})
        engine.layout()
        assert _xy(engine, "3") == (500, 5)

    def test_height_written_to_datum_moves_children(self, engine: TreeEngine) -> None:
        box = engine.box("1")
        assert box is not None
        box.datum.height = 80
        engine.layout()
        assert _xy(engine, "2") == (0, 120)

    def test_content_rendered_per_node(self, engine: TreeEngine) -> None:
        assert [node.html for node in engine.nodes] == ["<b>1</b>", "<b>2</b>", "<b>3</b>"]


class TestRenderErrors:
    def test_duplicate_ids(self) -> None:
        tree = TreeEngine()
        tree.set_data(_nodes(("1", None), ("1", None)))
        with pytest.raises(ValueError, match="Duplicate"):
            tree.render()

    def test_cycle(self) -> None:
        tree = TreeEngine()
        tree.set_data(_nodes(("1", "2"), ("2", "1")))
        with pytest.raises(ValueError, match="cycle"):
            tree.render()

    def test_invalid_size(self) -> None:
        tree = TreeEngine()
        tree.set_geometry(Geometry.uniform(node_width=0))
        tree.set_data(_nodes(("1", None)))
        with pytest.raises(ValueError, match="width"):
            tree.render()

    def test_destroyed(self, engine: TreeEngine) -> None:
        engine.destroy()
        with pytest.raises(RuntimeError):
            engine.render()


class TestObservers:
    def test_rerender_notifies_mutation(self, engine: TreeEngine) -> None:
        seen: list[int] = []
        engine.observe_mutations(lambda: seen.append(1))
        engine.set_data(_nodes(("1", None)))
        engine.render()
        assert seen == [1]
        assert len(engine.boxes()) == 1

    def test_box_resize_on_content_change(self, engine: TreeEngine) -> None:
        box = engine.box("2")
        assert box is not None
        seen: list[str] = []
        box.observe_resize(lambda b: seen.append(b.id))
        box.set_content("<b>2</b>")
        assert seen == []
        box.set_content("<p>a</p><p>b</p><p>c</p>")
        assert seen == ["2"]

    def test_box_height_state(self, engine: TreeEngine) -> None:
        box = engine.box("2")
        assert box is not None
        box.apply_height(70)
        assert box.synced
        box.reset_height()
        assert box.height is None
        assert not box.synced

    def test_resize(self, engine: TreeEngine) -> None:
        seen: list[tuple[float, float]] = []
        engine.on_resize(lambda w, h: seen.append((w, h)))
        engine.resize(640, 480)
        assert seen == [(640, 480)]
        assert engine.container == (640, 480)


class TestGestures:
    def test_click(self, engine: TreeEngine) -> None:
        clicked: list[str] = []
        engine.on_node_click(lambda node: clicked.append(node.id))
        engine.click("3")
        assert clicked == ["3"]

    def test_click_unknown(self, engine: TreeEngine) -> None:
        with pytest.raises(KeyError):
            engine.click("42")

    def test_drop_on_node_swaps(self, engine: TreeEngine) -> None:
        swaps: list[tuple[str, str]] = []
        engine.on_node_swap(lambda a, b: swaps.append((a.id, b.id)))
        engine.enable_swap_mode(True)
        engine.drop("2", 110, 90)
        assert swaps == [("2", "3")]

    def test_drop_on_empty_space_discarded(self, engine: TreeEngine) -> None:
        swaps: list[tuple[str, str]] = []
        engine.on_node_swap(lambda a, b: swaps.append((a.id, b.id)))
        engine.enable_swap_mode(True)
        engine.drop("2", 1000, 1000)
        assert swaps == []
        assert _xy(engine, "2") == (0, 90)

    def test_free_move(self, engine: TreeEngine) -> None:
        moves: list[tuple[str, Position]] = []
        engine.on_node_moved(lambda node, pos: moves.append((node.id, pos)))
        engine.drop("3", 300, 250)
        assert moves == [("3", Position(300, 250))]
        engine.layout()
        assert _xy(engine, "3") == (300, 250)


class TestFitAndSvg:
    def test_fit_clamps_to_extent(self, engine: TreeEngine) -> None:
        engine.fit()
        assert engine.zoom == 4

    def test_fit_scales_down(self) -> None:
        tree = TreeEngine(container=(100, 100))
        tree.set_geometry(GEOMETRY)
        tree.set_data(_nodes(("1", None), ("2", "1"), ("3", "1")))
        tree.render()
        tree.fit()
        assert tree.zoom == pytest.approx(100 / 250)

    def test_svg(self, engine: TreeEngine) -> None:
        engine.redraw_background()
        svg = engine.to_svg()
        assert svg.startswith("<svg")
        assert svg.count('class="node-foreign-object"') == 3
        assert 'class="node-foreign-object-div"' in svg
        assert "<b>2</b>" in svg
        assert 'data-source="1" data-target="3"' in svg
        assert 'id="ychart-grid" data-version="1"' in svg

    def test_svg_marks_synced_boxes(self, engine: TreeEngine) -> None:
        for box in engine.boxes():
            box.apply_height(64)
        svg = engine.to_svg()
        assert svg.count('data-height-synced="true"') == 3
        assert "min-height:64px" in svg

    def test_project_template_override(self, tmp_path: Path) -> None:
        override = tmp_path / ".ychart" / "templates" / "svg"
        override.mkdir(parents=True)
        (override / "tree.svg.j2").write_text("custom {{ nodes|length }}")
        tree = TreeEngine(project_root=tmp_path)
        assert tree.to_svg() == "custom 0"
