"""Tests for DocumentSyncEngine — both sync directions and the re-entrancy guard."""

from __future__ import annotations

import logging

import pytest

from tests.conftest import MINIMAL_DOC, ORG_DOC, record_ids
from ychart.domain.errors import RenderError
from ychart.domain.types import SyncState, ViewMode
from ychart.infrastructure.buffer import InMemoryBuffer
from ychart.infrastructure.engines.tree import TreeEngine
from ychart.infrastructure.positions import Position
from ychart.services.chart import ChartAdapter
from ychart.services.sync import DocumentSyncEngine

MISSING_NAME_DOC = """\
---
schema:
  id: number | required
  name: string | required
---
- id: 1
"""

DANGLING_DOC = """\
- id: 1
  name: A
- id: 2
  parentId: 99
  name: B
"""

UNREADABLE_CONFIG_DOC = """\
---
options:
  nodeWidth: 300  # wide cards
schema:
  name: string | required
  age:
    type: number
card:
  - bad tag: $name$
---
- id: 1
  name: A
- id: 2
  parentId: 1
  name: B
- id: 3
  parentId: 1
  name: C
"""


class TestTextToChart:
    def test_refresh(self, sync: DocumentSyncEngine) -> None:
        result = sync.last_result
        assert result is not None
        assert result.ok
        assert result.op == "refresh"
        assert result.data["records"] == 4
        assert result.data["roots"] == ["1"]
        assert result.data["view"] == "tree"
        assert result.data["tree"][0]["children"][0]["name"] == "Bob"

    def test_options_applied(self, sync: DocumentSyncEngine) -> None:
        state = sync.adapter.state
        assert state is not None
        assert state.options.node_width == 200

    def test_user_edit_rerenders(self, sync: DocumentSyncEngine, buffer: InMemoryBuffer) -> None:
        buffer.edit(MINIMAL_DOC)
        assert sync.refresh_count == 2
        assert sync.last_result is not None
        assert sync.last_result.data["records"] == 2

    def test_valid_minimal_document(self, adapter: ChartAdapter) -> None:
        engine = DocumentSyncEngine(InMemoryBuffer(), adapter)
        result = engine.load_document(MINIMAL_DOC)
        assert result.ok
        assert result.op == "load_document"
        assert result.data["records"] == 2
        assert result.data["roots"] == ["1"]
        assert engine.last_validation is not None
        assert engine.last_validation.valid
        assert engine.refresh_count == 1
        assert engine.suppressed_count == 1

    def test_missing_required_field(self, sync: DocumentSyncEngine, buffer: InMemoryBuffer) -> None:
        buffer.edit(MISSING_NAME_DOC)
        result = sync.last_result
        assert result is not None
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"
        (error,) = result.error.detail["errors"]
        assert "Item 1" in error
        assert "name" in error

    def test_dangling_parent_renders_as_root(self, sync: DocumentSyncEngine) -> None:
        result = sync.load_document(DANGLING_DOC)
        assert result.ok
        assert result.data["roots"] == ["1", "2"]
        assert len(result.warnings) == 1
        assert "99" in result.warnings[0]
        assert sync.last_validation is not None
        assert len(sync.last_validation.errors) == 1

    def test_parse_error_keeps_previous_render(
        self, sync: DocumentSyncEngine, buffer: InMemoryBuffer
    ) -> None:
        before = sync.adapter.state
        assert before is not None
        rendered = list(before.records)

        buffer.edit("- id: [1\n")
        result = sync.last_result
        assert result is not None
        assert result.error is not None
        assert result.error.code == "PARSE_ERROR"
        assert sync.adapter.state is before
        assert before.records == rendered
        assert before.renders == 1

    def test_validation_failure_skips_render(
        self, sync: DocumentSyncEngine, buffer: InMemoryBuffer
    ) -> None:
        buffer.edit(MISSING_NAME_DOC)
        assert sync.adapter.state is not None
        assert sync.adapter.state.renders == 1

    @pytest.mark.parametrize("text", ["", "   \n", "[]", "---\nschema: {}\n---\n"])
    def test_empty_data(self, sync: DocumentSyncEngine, text: str) -> None:
        result = sync.load_document(text)
        assert result.error is not None
        assert result.error.code == "EMPTY_DATA"

    def test_mapping_data_block(self, sync: DocumentSyncEngine) -> None:
        result = sync.load_document("id: 1\nname: A\n")
        assert result.error is not None
        assert result.error.code == "PARSE_ERROR"

    def test_invalid_front_matter_treated_as_data(self, sync: DocumentSyncEngine) -> None:
        result = sync.load_document("---\nschema: [oops\n---\n- id: 1\n")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "PARSE_ERROR"

    def test_render_error_reported(
        self, sync: DocumentSyncEngine, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def reject(*_args: object, **_kwargs: object) -> None:
            raise RenderError("engine exploded")

        monkeypatch.setattr(sync.adapter, "render", reject)
        result = sync.refresh()
        assert result.error is not None
        assert result.error.code == "RENDER_ERROR"
        assert "exploded" in result.error.message

    def test_never_raises(self, sync: DocumentSyncEngine, monkeypatch: pytest.MonkeyPatch) -> None:
        def boom(*_args: object, **_kwargs: object) -> None:
            raise RuntimeError("unexpected")

        monkeypatch.setattr(sync.adapter, "render", boom)
        result = sync.refresh()
        assert result.error is not None
        assert result.error.code == "INTERNAL_ERROR"

    def test_validate_does_not_render(self, sync: DocumentSyncEngine, buffer: InMemoryBuffer) -> None:
        sync.close()
        buffer.replace_all(MISSING_NAME_DOC)
        result = sync.validate()
        assert not result.valid
        assert len(result.errors) == 1

    def test_validate_parse_error(self, sync: DocumentSyncEngine, buffer: InMemoryBuffer) -> None:
        sync.close()
        buffer.replace_all("name: x\n")
        result = sync.validate()
        assert not result.valid
        assert result.issues[0].code == "parse_error"

    def test_get_document(self, sync: DocumentSyncEngine) -> None:
        assert sync.get_document() == ORG_DOC


class TestGuard:
    def test_programmatic_update_is_suppressed(
        self, sync: DocumentSyncEngine, buffer: InMemoryBuffer
    ) -> None:
        states: list[SyncState] = []
        buffer.on_change(lambda _text: states.append(sync.state))

        sync.move_sibling(3, "up")
        assert states == [SyncState.PROGRAMMATIC_UPDATE]
        assert sync.state is SyncState.IDLE
        assert sync.suppressed_count == 1
        assert sync.refresh_count == 2

    def test_guard_released_after_failure(
        self, sync: DocumentSyncEngine, buffer: InMemoryBuffer, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def fail(_text: str) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(buffer, "replace_all", fail)
        result = sync.move_sibling(3, "up")
        assert not result.ok
        assert sync.state is SyncState.IDLE

    def test_close_stops_listening(self, sync: DocumentSyncEngine, buffer: InMemoryBuffer) -> None:
        sync.close()
        buffer.edit(MINIMAL_DOC)
        assert sync.refresh_count == 1
        assert sync.adapter.state is None


class TestChartToText:
    def test_move_sibling(self, sync: DocumentSyncEngine) -> None:
        result = sync.move_sibling(3, "up")
        assert result.ok
        assert result.data == {"id": "3", "direction": "up", "rendered": True}
        assert record_ids(sync.get_document()) == ["1", "3", "2", "4"]
        assert sync.last_gesture == result

    def test_move_keeps_configuration(self, sync: DocumentSyncEngine) -> None:
        sync.move_sibling("3", "up")
        text = sync.get_document()
        assert text.startswith("---\noptions:\n  nodeWidth: 200\n")
        assert "name: string | required" in text

    def test_swap_keeps_unreadable_configuration(self, sync: DocumentSyncEngine) -> None:
        sync.load_document(UNREADABLE_CONFIG_DOC)
        assert sync.swap_records(2, 3).ok
        text = sync.get_document()
        assert record_ids(text) == ["1", "3", "2"]
        assert "bad tag: $name$" in text
        assert "type: number" in text
        assert "name: string | required" in text

    def test_move_keeps_comments(self, sync: DocumentSyncEngine) -> None:
        sync.load_document(UNREADABLE_CONFIG_DOC)
        assert sync.move_sibling(3, "up").ok
        text = sync.get_document()
        assert "nodeWidth: 300  # wide cards" in text
        assert record_ids(text) == ["1", "3", "2"]

    def test_move_rerenders_in_new_order(self, sync: DocumentSyncEngine) -> None:
        sync.move_sibling(3, "up")
        assert sync.adapter.state is not None
        assert [r.key for r in sync.adapter.state.records] == ["1", "3", "2", "4"]

    @pytest.mark.parametrize(("record_id", "direction"), [(2, "up"), (3, "down"), (1, "up")])
    def test_boundary_leaves_text_unchanged(
        self, sync: DocumentSyncEngine, record_id: int, direction: str
    ) -> None:
        result = sync.move_sibling(record_id, direction)
        assert result.error is not None
        assert result.error.code == "BOUNDARY"
        assert sync.get_document() == ORG_DOC
        assert sync.suppressed_count == 0

    def test_move_unknown_id(self, sync: DocumentSyncEngine) -> None:
        result = sync.move_sibling(42, "down")
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"

    def test_move_invalid_direction(self, sync: DocumentSyncEngine) -> None:
        result = sync.move_sibling(3, "sideways")
        assert result.error is not None
        assert result.error.code == "INVALID_ARGUMENT"

    def test_move_on_unparseable_text(self, sync: DocumentSyncEngine, buffer: InMemoryBuffer) -> None:
        buffer.edit("- id: [1\n")
        result = sync.move_sibling(3, "up")
        assert result.error is not None
        assert result.error.code == "PARSE_ERROR"

    def test_swap_symmetry(self, sync: DocumentSyncEngine) -> None:
        original = record_ids(sync.get_document())
        assert sync.swap_records(2, 4).ok
        assert record_ids(sync.get_document()) == ["1", "4", "3", "2"]
        assert sync.swap_records(2, 4).ok
        assert record_ids(sync.get_document()) == original

    def test_swap_logs_once(self, sync: DocumentSyncEngine, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="ychart"):
            sync.swap_records(2, 3)
        assert caplog.text.count("Nodes swapped: Bob <-> Cy") == 1

    def test_swap_exchanges_positions_once(self, sync: DocumentSyncEngine) -> None:
        sync.adapter.set_position("2", Position(10, 20))
        sync.swap_records(2, 4)
        assert sync.adapter.positions.get("4") == Position(10, 20)
        assert sync.adapter.positions.get("2") is None

    def test_swap_unknown(self, sync: DocumentSyncEngine) -> None:
        result = sync.swap_records(2, 42)
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"
        assert sync.get_document() == ORG_DOC

    def test_drag_swap_gesture(self, sync: DocumentSyncEngine) -> None:
        sync.enable_reorder_mode(True)
        engine = sync.adapter.engine
        assert isinstance(engine, TreeEngine)
        target = next(n for n in engine.nodes if n.id == "3")
        sync.adapter.drop("2", target.x, target.y)
        assert record_ids(sync.get_document()) == ["1", "3", "2", "4"]
        assert sync.suppressed_count == 1

    def test_gesture_round_trip(self, sync: DocumentSyncEngine) -> None:
        sync.move_sibling(3, "up")
        regenerated = sync.get_document()
        sync.format_document()
        assert sync.get_document() == regenerated

    def test_format_document(self, sync: DocumentSyncEngine) -> None:
        checked = sync.format_document(check_only=True)
        assert checked.data["changed"] is True
        assert sync.get_document() == ORG_DOC

        formatted = sync.format_document()
        assert formatted.data == {"changed": True, "records": 4}
        assert sync.format_document(check_only=True).data["changed"] is False
        assert record_ids(sync.get_document()) == ["1", "2", "3", "4"]


class TestViewAndSelection:
    def test_switch_view(self, sync: DocumentSyncEngine) -> None:
        result = sync.switch_view("graph")
        assert result.ok
        assert sync.adapter.view is ViewMode.GRAPH
        assert sync.refresh().data["view"] == "graph"

    def test_switch_view_unknown(self, sync: DocumentSyncEngine) -> None:
        result = sync.switch_view("radial")
        assert result.error is not None
        assert result.error.code == "INVALID_ARGUMENT"

    def test_content_override(self, sync: DocumentSyncEngine) -> None:
        assert sync.set_content_override(lambda record: f"<i>{record.name}</i>").ok
        assert sync.adapter.engine is not None
        assert sync.adapter.engine.nodes[0].html == "<i>Ada</i>"
        sync.set_content_override(None)
        assert "ychart-card" in sync.adapter.engine.nodes[0].html

    def test_select(self, sync: DocumentSyncEngine) -> None:
        result = sync.select("2")
        assert result.ok
        assert result.data == {
            "id": "2",
            "index": 1,
            "fields": {"id": 2, "parentId": 1, "name": "Bob", "title": "CTO"},
        }

    def test_select_unknown(self, sync: DocumentSyncEngine) -> None:
        result = sync.select(42)
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"

    def test_click_selects(self, sync: DocumentSyncEngine) -> None:
        sync.adapter.click("4")
        assert sync.selected is not None
        assert sync.selected["name"] == "Dee"

    def test_set_and_reset_positions(self, sync: DocumentSyncEngine) -> None:
        assert sync.set_position(4, 900, 10).ok
        engine = sync.adapter.engine
        assert isinstance(engine, TreeEngine)
        node = next(n for n in engine.nodes if n.id == "4")
        assert (node.x, node.y) == (900, 10)

        assert sync.reset_positions().ok
        assert list(sync.adapter.positions.items()) == []
        node = next(n for n in sync.adapter.engine.nodes if n.id == "4")  # type: ignore[union-attr]
        assert (node.x, node.y) != (900, 10)
