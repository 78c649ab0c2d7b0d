"""Pre-flight validation of attribute trees.

Catches field relationship errors before any device communication. The
serializer runs the same checks and stops at the first violation.
"""
from typing import Any, Iterator

from ..errors import (
    DependencyConflict,
    DuplicateIdentifier,
    MutualExclusionConflict,
    SerializeError,
)
from .schema import (
    AttributePath,
    FieldDef,
    FieldKind,
    Schema,
    ValidationResult,
    is_set,
)


def iter_violations(
    tree: Any,
    schema: Schema,
    path: AttributePath = AttributePath(),
) -> Iterator[SerializeError]:
    """Yield every rule violation in a tree, in serialization order.

    Rules are checked per level before descending, so a conflict at one
    level is reported ahead of anything inside its sub-blocks.
    """
    yield from _check_level(tree, schema, path)

    for f in schema.fields:
        value = getattr(tree, f.name)
        if f.kind == FieldKind.CONTAINER and value is not None:
            yield from iter_violations(value, f.schema, path.at_name(f.name))
        elif f.kind == FieldKind.BLOCK:
            yield from _check_duplicates(f, value or [], path)
            for index, entry in enumerate(value or []):
                yield from iter_violations(entry, f.schema, path.at_name(f.name).at_index(index))


def _check_level(tree: Any, schema: Schema, path: AttributePath) -> Iterator[SerializeError]:
    for f in schema.fields:
        value = getattr(tree, f.name)
        if not is_set(f, value):
            continue

        if f.requires is not None:
            governing = getattr(tree, f.requires)
            if governing is None:
                yield DependencyConflict(
                    f"{f.name} set but {f.requires} not set",
                    path=path.at_name(f.name),
                )
            elif governing is False:
                yield MutualExclusionConflict(
                    f"{f.name} set while {f.requires} is explicitly disabled",
                    path=path.at_name(f.name),
                )

        for other_name in f.conflicts:
            other = schema.get(other_name)
            if is_set(other, getattr(tree, other_name)):
                yield MutualExclusionConflict(
                    f"only one of {f.name} or {other_name} can be set",
                    path=path.at_name(f.name),
                )


def _check_duplicates(f: FieldDef, entries: list, path: AttributePath) -> Iterator[SerializeError]:
    id_field = f.schema.identifier
    seen = set()
    for index, entry in enumerate(entries):
        key = getattr(entry, id_field.name)
        if key in seen:
            yield DuplicateIdentifier(
                f"multiple blocks {f.name} with the same {id_field.name} '{key}'",
                path=path.at_name(f.name).at_index(index).at_name(id_field.name),
            )
        seen.add(key)


def _iter_values(tree: Any, schema: Schema, path: AttributePath) -> Iterator[tuple[AttributePath, Any]]:
    for f in schema.fields:
        value = getattr(tree, f.name)
        if f.kind == FieldKind.VALUE and isinstance(value, str):
            yield path.at_name(f.name), value
        elif f.kind == FieldKind.LIST:
            for index, item in enumerate(value or []):
                if isinstance(item, str):
                    yield path.at_name(f.name).at_index(index), item
        elif f.kind == FieldKind.CONTAINER and value is not None:
            yield from _iter_values(value, f.schema, path.at_name(f.name))
        elif f.kind == FieldKind.BLOCK:
            for index, entry in enumerate(value or []):
                yield from _iter_values(entry, f.schema, path.at_name(f.name).at_index(index))


class ConfigValidator:
    """Validate attribute trees for logical errors before execution."""

    def __init__(self, schema: Schema):
        self.schema = schema

    def validate(self, tree: Any) -> ValidationResult:
        """
        Validate an attribute tree.

        Performs pre-flight checks:
        - Dependent fields set without their governing flag
        - Mutually exclusive fields set together
        - Duplicate block identifiers
        - Values containing a double quote (not escaped on the wire)

        Args:
            tree: Attribute tree built from self.schema

        Returns:
            ValidationResult with valid flag, errors, and warnings
        """
        errors = [
            f"{violation.path}: {violation.message}"
            for violation in iter_violations(tree, self.schema)
        ]
        warnings: list[str] = []

        for path, value in _iter_values(tree, self.schema, AttributePath()):
            if '"' in value:
                warnings.append(f"{path}: value contains a double quote which is sent unescaped")

        if not any(is_set(f, getattr(tree, f.name)) for f in self.schema.fields if not f.identifier):
            warnings.append("No fields set, only the bare entity will be configured")

        return ValidationResult(
            valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )
