"""Statement generator for attribute trees.

Turns a typed attribute tree into the ordered batch of flat ``set``
statements that recreates it under an entity prefix.
"""
import logging
from typing import Any, Optional

from ..errors import SerializeError
from .lines import render_value
from .schema import (
    AttributePath,
    FieldDef,
    FieldKind,
    Operation,
    Schema,
    Statement,
)
from .validator import iter_violations

logger = logging.getLogger(__name__)


class ConfigSerializer:
    """Generate statement batches from attribute trees."""

    def serialize(
        self,
        tree: Any,
        schema: Schema,
        prefix: tuple[str, ...] = (),
    ) -> list[Statement]:
        """
        Serialize a tree into ADD statements.

        Args:
            tree: Attribute tree built from schema
            schema: Field table of the tree
            prefix: Path tokens of the entity (e.g. applications application-set G1)

        Returns:
            Statements in schema field order

        Raises:
            SerializeError: First rule violation, tagged with its attribute path.
                Nothing is emitted for a tree that violates a rule.
        """
        violation = next(iter_violations(tree, schema), None)
        if violation is not None:
            raise violation

        statements: list[Statement] = []
        self._walk(tree, schema, tuple(prefix), statements)
        logger.debug(f"Serialized {schema.type_name} into {len(statements)} statements")
        return statements

    def try_serialize(
        self,
        tree: Any,
        schema: Schema,
        prefix: tuple[str, ...] = (),
    ) -> tuple[list[Statement], Optional[AttributePath], Optional[SerializeError]]:
        """Serialize without raising.

        Returns:
            Tuple of (statements, error_path, error); statements is empty on error
        """
        try:
            return self.serialize(tree, schema, prefix), None, None
        except SerializeError as e:
            return [], e.path, e

    def delete_statements(self, prefix: tuple[str, ...]) -> list[Statement]:
        """REMOVE batch dropping a whole entity subtree."""
        return [Statement(Operation.REMOVE, tuple(prefix))]

    def _walk(
        self,
        tree: Any,
        schema: Schema,
        prefix: tuple[str, ...],
        out: list[Statement],
    ) -> None:
        for f in schema.fields:
            if f.identifier:
                continue
            value = getattr(tree, f.name)
            base = prefix + f.tokens

            if f.kind == FieldKind.FLAG:
                if value is True:
                    out.append(Statement(Operation.ADD, base))

            elif f.kind in (FieldKind.VALUE, FieldKind.NUMBER):
                if value is not None and value != "":
                    out.append(Statement(Operation.ADD, base + (self._token(f, value),)))

            elif f.kind == FieldKind.LIST:
                for item in value or []:
                    out.append(Statement(Operation.ADD, base + (self._token(f, item),)))

            elif f.kind == FieldKind.CONTAINER:
                if value is not None:
                    self._emit_sub(value, f.schema, base, out)

            elif f.kind == FieldKind.BLOCK:
                id_field = f.schema.identifier
                for entry in value or []:
                    key = self._token(id_field, getattr(entry, id_field.name))
                    self._emit_sub(entry, f.schema, base + (key,), out)

    def _emit_sub(
        self,
        tree: Any,
        schema: Schema,
        prefix: tuple[str, ...],
        out: list[Statement],
    ) -> None:
        # A sub-block with nothing set still exists on the device as a bare path
        sub: list[Statement] = []
        self._walk(tree, schema, prefix, sub)
        if sub:
            out.extend(sub)
        else:
            out.append(Statement(Operation.ADD, prefix))

    @staticmethod
    def _token(f: FieldDef, value: Any) -> str:
        if f.is_numeric:
            return str(int(value))
        return render_value(str(value), force=f.quoted)


def serialize(tree: Any, schema: Schema, prefix: tuple[str, ...] = ()) -> list[Statement]:
    """Module-level shortcut for ConfigSerializer().serialize."""
    return ConfigSerializer().serialize(tree, schema, prefix)
