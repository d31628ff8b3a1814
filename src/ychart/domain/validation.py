"""Record validation — schema violations and hierarchy integrity.

Validation never raises and never short-circuits: every violation in every
record is collected so the caller can show the complete list at once.
Item numbers in messages are 1-based positions in the data block.

Schema rules:

- An empty schema accepts everything (schema is opt-in).
- ``required`` and absent -> error.
- Absent and not required -> skipped. Fields flagged ``missing`` that are
  absent are additionally listed in ``warnings``.
- Present and non-null -> type-checked against ``string``, ``number`` or
  ``boolean``; other declared types are not checked.

Hierarchy rules (see :func:`check_hierarchy`): missing ids, duplicate ids
and parent cycles block rendering; a dangling ``parentId`` is reported but
the record is still rendered as a root.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date

import networkx as nx

from ychart.domain.frontmatter import FieldSchema
from ychart.domain.records import ID_KEY, PARENT_KEY, Record
from ychart.domain.types import FieldType

MISSING_REQUIRED = "missing_required"
TYPE_MISMATCH = "type_mismatch"
MISSING_ID = "missing_id"
DUPLICATE_ID = "duplicate_id"
DANGLING_PARENT = "dangling_parent"
PARENT_CYCLE = "parent_cycle"


@dataclass(frozen=True)
class ValidationIssue:
    """One violation, located by record position and field."""

    code: str
    index: int
    message: str
    field: str | None = None
    blocking: bool = True


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a record set. Always recomputed from scratch."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def blocking(self) -> bool:
        """True if any issue must prevent rendering."""
        return any(issue.blocking for issue in self.issues)

    @classmethod
    def from_issues(
        cls,
        issues: list[ValidationIssue],
        warnings: list[str] | None = None,
    ) -> ValidationResult:
        return cls(
            valid=not issues,
            errors=[issue.message for issue in issues],
            warnings=list(warnings or []),
            issues=issues,
        )

    def merge(self, other: ValidationResult) -> ValidationResult:
        return ValidationResult.from_issues(
            [*self.issues, *other.issues],
            [*self.warnings, *other.warnings],
        )


def type_name(value: object) -> str:
    """Name of a value's type in schema vocabulary."""
    if isinstance(value, bool):
        return FieldType.BOOLEAN
    if isinstance(value, (int, float)):
        return FieldType.NUMBER
    if isinstance(value, str):
        return FieldType.STRING
    if isinstance(value, date):
        return "date"
    if isinstance(value, list):
        return "array"
    return "object"


def _matches(declared: str, value: object) -> bool:
    if declared == FieldType.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if declared == FieldType.STRING:
        return isinstance(value, str)
    if declared == FieldType.BOOLEAN:
        return isinstance(value, bool)
    return True


def validate_records(
    records: Sequence[Record],
    schema: Mapping[str, FieldSchema],
) -> ValidationResult:
    """Check every record against every schema field."""
    if not schema:
        return ValidationResult(valid=True)

    issues: list[ValidationIssue] = []
    warnings: list[str] = []
    for index, record in enumerate(records, start=1):
        for field_name, schema_field in schema.items():
            if field_name not in record:
                if schema_field.required:
                    issues.append(
                        ValidationIssue(
                            code=MISSING_REQUIRED,
                            index=index,
                            field=field_name,
                            message=f'Item {index}: Missing required field "{field_name}"',
                        )
                    )
                elif schema_field.missing:
                    warnings.append(f'Item {index}: Field "{field_name}" is missing')
                continue

            value = record.get(field_name)
            if value is None or _matches(schema_field.type, value):
                continue
            issues.append(
                ValidationIssue(
                    code=TYPE_MISMATCH,
                    index=index,
                    field=field_name,
                    message=(
                        f'Item {index}: Field "{field_name}" should be a '
                        f"{schema_field.type}, got {type_name(value)}"
                    ),
                )
            )

    return ValidationResult.from_issues(issues, warnings)


def check_hierarchy(
    records: Sequence[Record],
    schema: Mapping[str, FieldSchema] | None = None,
) -> ValidationResult:
    """Check id uniqueness, parent references and parent cycles."""
    schema = schema or {}
    id_reported = ID_KEY in schema and schema[ID_KEY].required

    issues: list[ValidationIssue] = []
    first_seen: dict[str, int] = {}
    for index, record in enumerate(records, start=1):
        key = record.key
        if key is None:
            if not id_reported:
                issues.append(
                    ValidationIssue(
                        code=MISSING_ID,
                        index=index,
                        field=ID_KEY,
                        message=f'Item {index}: Missing "{ID_KEY}"',
                    )
                )
            continue
        if key in first_seen:
            issues.append(
                ValidationIssue(
                    code=DUPLICATE_ID,
                    index=index,
                    field=ID_KEY,
                    message=(
                        f'Item {index}: Duplicate id "{key}" (first used by item {first_seen[key]})'
                    ),
                )
            )
            continue
        first_seen[key] = index

    for index, record in enumerate(records, start=1):
        parent = record.parent_key
        if parent is not None and parent not in first_seen:
            issues.append(
                ValidationIssue(
                    code=DANGLING_PARENT,
                    index=index,
                    field=PARENT_KEY,
                    message=f'Item {index}: Parent "{parent}" not found',
                    blocking=False,
                )
            )

    graph: nx.DiGraph[str] = nx.DiGraph()
    for record in records:
        if record.key is not None and record.parent_key in first_seen:
            graph.add_edge(record.parent_key, record.key)
    reported: set[str] = set()
    for cycle in nx.simple_cycles(graph):
        members = sorted(cycle)
        if reported.intersection(members):
            continue
        reported.update(members)
        index = first_seen[members[0]]
        issues.append(
            ValidationIssue(
                code=PARENT_CYCLE,
                index=index,
                field=PARENT_KEY,
                message=f"Item {index}: parentId cycle between ids {', '.join(members)}",
            )
        )

    return ValidationResult.from_issues(issues)


def validate_document(
    records: Sequence[Record],
    schema: Mapping[str, FieldSchema],
) -> ValidationResult:
    """Schema validation followed by hierarchy checks."""
    return validate_records(records, schema).merge(check_hierarchy(records, schema))
