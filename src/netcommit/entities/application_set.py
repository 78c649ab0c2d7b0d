"""Security application sets: ``applications application-set <name>``."""
from dataclasses import dataclass, field
from typing import Optional

from ..config_engine.engine import Resource
from ..config_engine.schema import FieldDef, FieldKind, Schema


@dataclass
class ApplicationSet:
    name: str
    applications: list[str] = field(default_factory=list)
    application_sets: list[str] = field(default_factory=list)
    description: Optional[str] = None


APPLICATION_SET_SCHEMA = Schema(ApplicationSet, [
    FieldDef("applications", "application", FieldKind.LIST),
    FieldDef("application_sets", "application-set", FieldKind.LIST),
    FieldDef("description", "description", quoted=True),
])

APPLICATION_SET = Resource(
    type_name="application_set",
    schema=APPLICATION_SET_SCHEMA,
    path="applications application-set {name}",
)
