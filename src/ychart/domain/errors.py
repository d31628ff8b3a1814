"""Exception taxonomy for document handling.

Schema violations are never raised: they are collected into a
:class:`~ychart.domain.validation.ValidationResult`. Everything else that
can go wrong while turning text into a chart derives from
:class:`YChartError` and is converted into a ``ServiceResult`` by the
sync engine.
"""

from __future__ import annotations


class YChartError(Exception):
    """Base class for recoverable document errors."""

    code = "ERROR"


class ParseError(YChartError):
    """The data block is not a sequence of records."""

    code = "PARSE_ERROR"


class ReorderError(YChartError):
    """A sibling move or swap could not be applied.

    ``code`` is ``BOUNDARY`` when the record is already first/last among
    its siblings, ``NOT_FOUND`` when an id does not exist.
    """

    def __init__(self, message: str, *, code: str = "BOUNDARY") -> None:
        super().__init__(message)
        self.code = code


class RenderError(YChartError):
    """The rendering engine rejected the data."""

    code = "RENDER_ERROR"
