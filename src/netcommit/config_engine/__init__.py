"""Config Engine - hierarchical line codec and resource transactions.

The Config Engine declares entities as typed attribute trees and keeps a
device in line with them:
- Trees serialize into flat ``set`` statements, table driven by a Schema
- ``display set relative`` output parses back into trees, merging repeated
  blocks by identifier
- Statements are applied in lock -> apply -> commit -> unlock transactions
  with guaranteed cleanup

Usage:
    from netcommit.config_engine import ConfigEngine
    from netcommit.entities import APPLICATION_SET, ApplicationSet

    engine = ConfigEngine(settings)
    result = await engine.apply(APPLICATION_SET, ApplicationSet(
        name="web",
        applications=["junos-http", "junos-https"],
        description="web traffic",
    ))
"""

from .engine import ConfigEngine, Resource
from .schema import (
    AttributePath,
    ChangeType,
    ConfigFormat,
    ConfigSnapshot,
    FieldChange,
    FieldDef,
    FieldKind,
    Found,
    LoadAction,
    NotFound,
    Operation,
    OperationResult,
    QueryResult,
    Schema,
    Statement,
    TransactionState,
    TreeDiff,
    ValidationResult,
)
from .lines import render_as_snapshot
from .parser import ConfigParser, ParseError, parse
from .validator import ConfigValidator
from .diff import DiffEngine, diff_trees, summarize_diff
from .generator import ConfigSerializer, serialize
from .executor import Transaction, TransactionStateError

__all__ = [
    # Main engine
    "ConfigEngine",
    "Resource",
    # Line model and schema
    "AttributePath",
    "ChangeType",
    "ConfigFormat",
    "ConfigSnapshot",
    "FieldChange",
    "FieldDef",
    "FieldKind",
    "Found",
    "LoadAction",
    "NotFound",
    "Operation",
    "OperationResult",
    "QueryResult",
    "Schema",
    "Statement",
    "TransactionState",
    "TreeDiff",
    "ValidationResult",
    "render_as_snapshot",
    # Codec
    "ConfigParser",
    "ParseError",
    "parse",
    "ConfigSerializer",
    "serialize",
    "ConfigValidator",
    # Diff
    "DiffEngine",
    "diff_trees",
    "summarize_diff",
    # Transactions
    "Transaction",
    "TransactionStateError",
]
