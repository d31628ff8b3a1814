"""Shared pytest fixtures and test helpers for ychart tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from ychart.infrastructure.buffer import InMemoryBuffer
from ychart.infrastructure.positions import MemoryPositionCache
from ychart.infrastructure.scheduling import ManualScheduler
from ychart.services.chart import ChartAdapter
from ychart.services.height_sync import NodeHeightSyncService
from ychart.services.sync import DocumentSyncEngine

ORG_DOC = """\
---
options:
  nodeWidth: 200
schema:
  id: number | required
  name: string | required
  title: string | optional
---
- id: 1
  name: Ada
  title: CEO
- id: 2
  parentId: 1
  name: Bob
  title: CTO
- id: 3
  parentId: 1
  name: Cy
  title: CFO
- id: 4
  parentId: 2
  name: Dee
  title: Engineer
"""

MINIMAL_DOC = """\
---
schema:
  id: number | required
  name: string | required
---
- id: 1
  name: CEO
- id: 2
  parentId: 1
  name: CTO
"""


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def adapter(scheduler: ManualScheduler) -> ChartAdapter:
    """Chart adapter on a virtual clock with an in-memory position cache."""
    return ChartAdapter(
        scheduler,
        height_sync=NodeHeightSyncService(scheduler),
        positions=MemoryPositionCache(),
    )


@pytest.fixture
def buffer() -> InMemoryBuffer:
    return InMemoryBuffer(ORG_DOC)


@pytest.fixture
def sync(buffer: InMemoryBuffer, adapter: ChartAdapter) -> DocumentSyncEngine:
    """Sync engine over ORG_DOC that has already rendered once."""
    engine = DocumentSyncEngine(buffer, adapter)
    result = engine.refresh()
    assert result.ok, result.error
    try:
        yield engine
    finally:
        engine.close()


@pytest.fixture
def org_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """ORG_DOC on disk, with CWD moved to its directory.

    Use in command tests so config discovery and position caches stay
    inside the temp directory.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("YCHART_CONFIG", raising=False)
    path = tmp_path / "org.yaml"
    path.write_text(ORG_DOC, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def record_ids(text: str) -> list[str]:
    """Ids of the data records of *text*, in array order."""
    from ychart.domain.frontmatter import parse_document
    from ychart.domain.records import parse_records

    return [str(r.key) for r in parse_records(parse_document(text).data_text)]
