"""Tests for natural-height estimation of card markup."""

from __future__ import annotations

import pytest

from ychart.infrastructure.engines.measure import estimate_content_height, parse_style, px


class TestStyleHelpers:
    def test_parse_style(self) -> None:
        assert parse_style("Color: red; HEIGHT: 10px;;bad") == {"color": "red", "height": "10px"}
        assert parse_style(None) == {}

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("12px", 12.0), ("12", 12.0), (" 8.5px ", 8.5), ("2em", None), (None, None)],
    )
    def test_px(self, value: str | None, expected: float | None) -> None:
        assert px(value) == expected


class TestEstimate:
    def test_empty(self) -> None:
        assert estimate_content_height("", 200) == 0

    def test_one_line(self) -> None:
        assert estimate_content_height("<div>Hello</div>", 200) == 19

    def test_blocks_stack(self) -> None:
        assert estimate_content_height("<p>a</p><p>b</p>", 200) == 37

    def test_line_break(self) -> None:
        assert estimate_content_height("<span>a<br>b</span>", 200) == 37

    def test_heading_is_taller(self) -> None:
        assert estimate_content_height("<h1>X</h1>", 200) == 42

    def test_explicit_height_is_floor(self) -> None:
        assert estimate_content_height('<div style="height: 120px">x</div>', 200) == 120

    def test_padding(self) -> None:
        assert estimate_content_height('<div style="padding: 10px">x</div>', 200) == 39

    def test_wraps_narrower(self) -> None:
        text = "<p>" + "word " * 40 + "</p>"
        assert estimate_content_height(text, 100) > estimate_content_height(text, 400)

    def test_more_content_is_taller(self) -> None:
        short = "<div><h3>Ada</h3></div>"
        tall = "<div><h3>Ada</h3><p>CEO</p><p>Exec</p></div>"
        assert estimate_content_height(tall, 200) > estimate_content_height(short, 200)
