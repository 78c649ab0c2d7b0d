"""Schema definitions for the Config Engine.

Defines the line model (statements, snapshots, query results), the field
descriptors that give attribute trees their shape, and the result
dataclasses shared by the engine.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Union

from ..errors import Diagnostics


class Operation(str, Enum):
    """Edit operation carried by a statement, valued by its wire verb."""
    ADD = "set"
    REMOVE = "delete"


class ChangeType(str, Enum):
    """Type of change in a diff."""
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"
    NO_CHANGE = "no_change"


class FieldKind(str, Enum):
    """Shape of a field in an attribute tree."""
    FLAG = "flag"            # presence-only boolean
    VALUE = "value"          # single string value
    NUMBER = "number"        # single integer value
    LIST = "list"            # repeated leaf values, order preserved
    BLOCK = "block"          # repeated sub-blocks keyed by identifier
    CONTAINER = "container"  # optional single sub-block


class LoadAction(str, Enum):
    MERGE = "merge"
    OVERRIDE = "override"
    REPLACE = "replace"
    UPDATE = "update"
    SET = "set"


class ConfigFormat(str, Enum):
    TEXT = "text"
    SET = "set"
    XML = "xml"
    JSON = "json"


class TransactionState(str, Enum):
    IDLE = "idle"
    LOCKED = "locked"
    APPLIED = "applied"
    COMMITTED = "committed"


# --- Line model ---

@dataclass(frozen=True)
class Statement:
    """One flat edit: an operation and the tokens of its path.

    Tokens are stored already rendered, so a value that needs quoting keeps
    its surrounding quotes here.
    """
    operation: Operation
    path: tuple[str, ...]

    @property
    def text(self) -> str:
        return f"{self.operation.value} {' '.join(self.path)}"

    def relative_to(self, prefix: tuple[str, ...]) -> "Statement":
        """Drop a leading prefix from the path (no-op when it does not match)."""
        if prefix and self.path[:len(prefix)] == tuple(prefix):
            return Statement(self.operation, self.path[len(prefix):])
        return self

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class AttributePath:
    """Location of a field inside an attribute tree, e.g. ``group[0].node0_priority``."""
    steps: tuple[Union[str, int], ...] = ()

    def at_name(self, name: str) -> "AttributePath":
        return AttributePath(self.steps + (name,))

    def at_index(self, index: int) -> "AttributePath":
        return AttributePath(self.steps + (index,))

    def __str__(self) -> str:
        out = ""
        for step in self.steps:
            if isinstance(step, int):
                out += f"[{step}]"
            elif out:
                out += f".{step}"
            else:
                out = step
        return out


@dataclass(frozen=True)
class ConfigSnapshot:
    """Raw text returned by a subtree query."""
    text: str

    def lines(self) -> list[str]:
        from .lines import snapshot_lines
        return snapshot_lines(self.text)

    @property
    def is_empty(self) -> bool:
        return not self.lines()


@dataclass(frozen=True)
class Found:
    snapshot: ConfigSnapshot


@dataclass(frozen=True)
class NotFound:
    pass


QueryResult = Union[Found, NotFound]


# --- Field descriptors ---

@dataclass(frozen=True)
class FieldDef:
    """Declares one field of an attribute tree.

    Args:
        name: Attribute name on the tree dataclass
        path: Space separated configuration path relative to the parent
        kind: Field shape
        schema: Sub-schema for BLOCK and CONTAINER fields
        identifier: Marks the key field of a block entry (has no path)
        quoted: Always render the value quoted
        requires: Name of the FLAG field this one depends on
        conflicts: Names of fields that must not be set together with this one
        item_kind: VALUE or NUMBER, element type of a LIST field
    """
    name: str
    path: str = ""
    kind: FieldKind = FieldKind.VALUE
    schema: Optional["Schema"] = None
    identifier: bool = False
    quoted: bool = False
    requires: Optional[str] = None
    conflicts: tuple[str, ...] = ()
    item_kind: FieldKind = FieldKind.VALUE

    @property
    def tokens(self) -> tuple[str, ...]:
        return tuple(self.path.split())

    @property
    def is_numeric(self) -> bool:
        if self.kind == FieldKind.LIST:
            return self.item_kind == FieldKind.NUMBER
        return self.kind == FieldKind.NUMBER


@dataclass
class Schema:
    """Ordered field table for one attribute tree type.

    Field order is serialization order. Parse dispatch uses the same fields
    sorted by path length, longest first, so a more specific path is never
    shadowed by a shorter one that prefixes it.
    """
    factory: Callable[..., Any]
    fields: list[FieldDef]
    dispatch_order: list[FieldDef] = field(init=False, repr=False)

    def __post_init__(self):
        names = [f.name for f in self.fields]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate field names in schema for {self.type_name}")

        identifiers = [f for f in self.fields if f.identifier]
        if len(identifiers) > 1:
            raise ValueError(f"Schema for {self.type_name} declares more than one identifier")

        for f in self.fields:
            if f.kind in (FieldKind.BLOCK, FieldKind.CONTAINER) and f.schema is None:
                raise ValueError(f"Field {f.name} of kind {f.kind.value} needs a sub-schema")
            if f.kind == FieldKind.BLOCK and f.schema.identifier is None:
                raise ValueError(f"Block field {f.name} needs an identifier in its sub-schema")
            if f.requires is not None:
                governing = self.get(f.requires)
                if governing is None or governing.kind != FieldKind.FLAG:
                    raise ValueError(f"Field {f.name} requires unknown flag {f.requires}")
            for other in f.conflicts:
                if other not in names:
                    raise ValueError(f"Field {f.name} conflicts with unknown field {other}")

        # sorted() is stable: equal lengths keep declaration order
        self.dispatch_order = sorted(
            (f for f in self.fields if not f.identifier),
            key=lambda f: len(f.tokens),
            reverse=True,
        )

    @property
    def type_name(self) -> str:
        return getattr(self.factory, "__name__", str(self.factory))

    @property
    def identifier(self) -> Optional[FieldDef]:
        for f in self.fields:
            if f.identifier:
                return f
        return None

    def get(self, name: str) -> Optional[FieldDef]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def new(self, **values: Any) -> Any:
        return self.factory(**values)


def is_set(field_def: FieldDef, value: Any) -> bool:
    """Whether a field value would produce any statement."""
    if field_def.kind == FieldKind.FLAG:
        return value is True
    if field_def.kind in (FieldKind.LIST, FieldKind.BLOCK):
        return bool(value)
    if field_def.kind == FieldKind.VALUE:
        return value is not None and value != ""
    return value is not None


# --- Validation Results ---

@dataclass
class ValidationResult:
    """Result of tree validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# --- Diff Results ---

@dataclass
class FieldChange:
    """A single field difference between two trees."""
    path: str
    change_type: ChangeType
    before: Any = None
    after: Any = None


@dataclass
class TreeDiff:
    """Result of diffing desired vs current tree."""
    changes: list[FieldChange] = field(default_factory=list)

    @property
    def no_change(self) -> bool:
        return len(self.changes) == 0

    @property
    def total_changes(self) -> int:
        return len(self.changes)


# --- Operation result ---

@dataclass
class OperationResult:
    """Result of a resource operation."""
    success: bool
    operation: str
    device_id: str
    tree: Any = None
    statements: list[Statement] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    diff: Optional[TreeDiff] = None

    @property
    def error(self) -> Optional[str]:
        errors = self.diagnostics.errors
        return errors[0].detail if errors else None
