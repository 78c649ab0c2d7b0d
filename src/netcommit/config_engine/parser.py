"""Parsers for attribute trees.

ConfigParser turns the flat ``set`` lines of a subtree query back into a
typed attribute tree, merging repeated block lines by identifier. It also
builds trees from plain dict/YAML desired state.
"""
import dataclasses
import logging
from typing import Any, Union

from ..errors import ParseNumericFailure
from .lines import parse_int, split_tokens, unquote
from .schema import (
    AttributePath,
    ConfigSnapshot,
    FieldDef,
    FieldKind,
    Schema,
)

logger = logging.getLogger(__name__)


class ParseError(Exception):
    """Error parsing desired state input."""
    pass


def extract_block(entries: list, id_name: str, key: Any) -> tuple[list, Any]:
    """Pull the entry with a given identifier out of a block list.

    Returns:
        Tuple of (remaining entries, entry or None)
    """
    for index, entry in enumerate(entries):
        if getattr(entry, id_name) == key:
            return entries[:index] + entries[index + 1:], entry
    return entries, None


class ConfigParser:
    """Parse attribute trees from query output or desired state dicts."""

    def parse(
        self,
        snapshot: Union[ConfigSnapshot, str],
        schema: Schema,
        **keys: Any,
    ) -> Any:
        """
        Build a fresh tree from a relative ``display set`` snapshot.

        Args:
            snapshot: Query output (markers and ``set`` leader are stripped)
            schema: Field table of the tree
            **keys: Values for tree fields outside the schema (e.g. name)

        Returns:
            New attribute tree

        Raises:
            ParseNumericFailure: A numeric field holds a non-integer value
        """
        if isinstance(snapshot, str):
            snapshot = ConfigSnapshot(snapshot)
        return self.parse_lines(snapshot.lines(), schema, **keys)

    def parse_lines(self, lines: list[str], schema: Schema, **keys: Any) -> Any:
        tree = schema.new(**keys)
        for line in lines:
            if not self._merge(tree, schema, split_tokens(line), AttributePath()):
                logger.debug(f"Ignoring unrecognized line for {schema.type_name}: {line}")
        return tree

    def _merge(
        self,
        tree: Any,
        schema: Schema,
        tokens: list[str],
        path: AttributePath,
    ) -> bool:
        """Apply one line to a tree. Returns False when no field claims it."""
        for f in schema.dispatch_order:
            size = len(f.tokens)
            if tuple(tokens[:size]) != f.tokens:
                continue
            rest = tokens[size:]

            if f.kind == FieldKind.FLAG:
                if rest:
                    continue
                setattr(tree, f.name, True)

            elif f.kind == FieldKind.CONTAINER:
                sub = getattr(tree, f.name)
                if sub is None:
                    sub = f.schema.new()
                    setattr(tree, f.name, sub)
                if rest:
                    self._merge(sub, f.schema, rest, path.at_name(f.name))

            elif not rest:
                continue

            elif f.kind == FieldKind.VALUE:
                setattr(tree, f.name, unquote(" ".join(rest)))

            elif f.kind == FieldKind.NUMBER:
                setattr(tree, f.name, parse_int(" ".join(rest), path.at_name(f.name)))

            elif f.kind == FieldKind.LIST:
                items = getattr(tree, f.name)
                items.append(self._leaf(f, " ".join(rest), path.at_name(f.name)))

            elif f.kind == FieldKind.BLOCK:
                self._merge_block(tree, f, rest, path)

            if f.requires is not None:
                # "preempt delay 5" only exists on the device when preempt does
                setattr(tree, f.requires, True)
            return True
        return False

    def _merge_block(
        self,
        tree: Any,
        f: FieldDef,
        rest: list[str],
        path: AttributePath,
    ) -> None:
        id_field = f.schema.identifier
        key = self._leaf(id_field, rest[0], path.at_name(f.name).at_name(id_field.name))

        entries, entry = extract_block(getattr(tree, f.name), id_field.name, key)
        if entry is None:
            entry = f.schema.new(**{id_field.name: key})
        if len(rest) > 1:
            index = len(entries)
            if not self._merge(entry, f.schema, rest[1:], path.at_name(f.name).at_index(index)):
                logger.debug(f"Ignoring unrecognized {f.name} line: {' '.join(rest)}")
        setattr(tree, f.name, entries + [entry])

    @staticmethod
    def _leaf(f: FieldDef, text: str, path: AttributePath) -> Any:
        if f.is_numeric:
            return parse_int(unquote(text), path)
        return unquote(text)

    # --- Desired state input ---

    def from_dict(self, data: dict[str, Any], schema: Schema) -> Any:
        """
        Build a tree from a dict (e.g. loaded from YAML).

        Keys that are not schema fields are passed to the tree factory as-is,
        which is how entity names reach the root tree.

        Raises:
            ParseError: If a key is unknown or a value has the wrong shape
        """
        if not isinstance(data, dict):
            raise ParseError(f"Expected a mapping for {schema.type_name}, got {type(data).__name__}")

        allowed = {f.name for f in dataclasses.fields(schema.factory)}
        unknown = set(data) - allowed
        if unknown:
            raise ParseError(f"Unknown keys for {schema.type_name}: {', '.join(sorted(unknown))}")

        values: dict[str, Any] = {}
        for key, value in data.items():
            f = schema.get(key)
            if f is None:
                values[key] = value
                continue
            if value is None:
                if f.identifier:
                    raise ParseError(f"Missing identifier {f.name} for {schema.type_name}")
                values[key] = None
                continue
            values[key] = self._value_from_dict(f, value)
        if schema.identifier is not None and values.get(schema.identifier.name) is None:
            raise ParseError(f"Missing identifier {schema.identifier.name} for {schema.type_name}")
        return schema.new(**values)

    @staticmethod
    def _scalar_from_dict(name: str, kind: FieldKind, value: Any) -> Any:
        # bool is an int subclass, so it is rejected before the int check
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise ParseError(f"Invalid value for {name}: expected a scalar, got {value!r}")
        if kind == FieldKind.NUMBER:
            if isinstance(value, int):
                return value
            try:
                return parse_int(value.strip())
            except ParseNumericFailure as e:
                raise ParseError(f"Invalid value for {name}: {e}") from e
        return str(value)

    def _value_from_dict(self, f: FieldDef, value: Any) -> Any:
        if f.kind == FieldKind.FLAG:
            if not isinstance(value, bool):
                raise ParseError(f"Invalid value for {f.name}: expected true or false, got {value!r}")
            return value
        if f.kind in (FieldKind.NUMBER, FieldKind.VALUE):
            return self._scalar_from_dict(f.name, f.kind, value)
        if f.kind == FieldKind.LIST:
            if not isinstance(value, list):
                raise ParseError(f"{f.name} must be a list")
            return [self._scalar_from_dict(f.name, f.item_kind, v) for v in value]
        if f.kind == FieldKind.CONTAINER:
            return self.from_dict(value, f.schema)
        if f.kind == FieldKind.BLOCK:
            if not isinstance(value, list):
                raise ParseError(f"{f.name} must be a list of mappings")
            return [self.from_dict(entry, f.schema) for entry in value]
        return value


def parse(snapshot: Union[ConfigSnapshot, str], schema: Schema, **keys: Any) -> Any:
    """Module-level shortcut for ConfigParser().parse."""
    return ConfigParser().parse(snapshot, schema, **keys)
