"""Main Config Engine - resource operations against one device.

Provides create / read / update / delete / import for entities described by
a Resource, plus the declarative entry point apply():
1. Serializing and validating the plan (no I/O on failure)
2. Opening a session and locking the candidate configuration
3. Existence checks around creation
4. Applying and committing statements
5. Collecting warnings and errors as diagnostics
"""
import dataclasses
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from ..config.settings import Settings
from ..errors import (
    COMMIT_WARNING_SUMMARY,
    NOT_FOUND_SUMMARY,
    SUMMARIES,
    ErrorKind,
    NetcommitError,
    PostCheckFailed,
    PreCheckFailed,
    SerializeError,
)
from ..utils.audit_log import ChangeTracker
from ..utils.logging_config import timed, timed_section
from .diff import DiffEngine, summarize_diff
from .executor import Transaction
from .generator import ConfigSerializer
from .lines import render_value
from .parser import ConfigParser
from .schema import Found, OperationResult, Schema, Statement
from .validator import ConfigValidator

if TYPE_CHECKING:
    from ..session.base import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resource:
    """Binds an entity schema to its place in the configuration.

    Args:
        type_name: Resource type, used in commit messages and audit records
        schema: Field table of the entity tree
        path: Path template; ``{key}`` tokens are filled from key fields
        keys: Tree fields outside the schema that identify the entity
    """
    type_name: str
    schema: Schema
    path: str
    keys: tuple[str, ...] = ("name",)

    def key_values(self, tree: Any) -> dict[str, Any]:
        return {k: getattr(tree, k) for k in self.keys}

    def prefix_for(self, **keys: Any) -> tuple[str, ...]:
        tokens = []
        for token in self.path.split():
            if token.startswith("{") and token.endswith("}"):
                tokens.append(render_value(str(keys[token[1:-1]])))
            else:
                tokens.append(token)
        return tuple(tokens)

    def prefix(self, tree: Any) -> tuple[str, ...]:
        return self.prefix_for(**self.key_values(tree))

    def query_path(self, **keys: Any) -> str:
        return " ".join(self.prefix_for(**keys))


class ConfigEngine:
    """
    Config Engine for one device.

    Usage:
        engine = ConfigEngine(Settings.from_env())
        result = await engine.create(APPLICATION_SET, ApplicationSet(name="web", applications=["junos-http"]))
        if not result.success:
            for diag in result.diagnostics.errors:
                print(diag.summary, diag.detail)
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: Optional[Callable[[Settings], "Session"]] = None,
    ):
        """
        Initialize the Config Engine.

        Args:
            settings: Device settings
            session_factory: Builds a session from settings; defaults to
                netcommit.session.create_session
        """
        self.settings = settings
        self.device_id = settings.device_id
        self._session_factory = session_factory
        self.serializer = ConfigSerializer()
        self.parser = ConfigParser()
        self.diff_engine = DiffEngine()
        self.tracker = ChangeTracker(self.device_id)

    def _new_session(self, offline: bool = True) -> "Session":
        settings = self.settings
        if not offline and settings.fake_set_file:
            settings = dataclasses.replace(settings, fake_set_file=None)
        if self._session_factory is not None:
            return self._session_factory(settings)
        from ..session import create_session
        return create_session(settings)

    def _commit_message(self, verb: str, resource: Resource) -> str:
        return f"{verb} resource {self.settings.provider_name}_{resource.type_name}"

    @timed("serialize")
    def _serialize(self, resource: Resource, tree: Any) -> list[Statement]:
        return self.serializer.serialize(tree, resource.schema, resource.prefix(tree))

    # --- Transactions ---

    async def _transact(
        self,
        result: OperationResult,
        session: "Session",
        steps: Callable[["Session", Transaction], Awaitable[None]],
    ) -> None:
        """Run steps inside a locked transaction, recording every diagnostic."""
        try:
            async with timed_section(result.operation, self.device_id):
                async with session:
                    txn = Transaction(session)
                    try:
                        async with txn:
                            await steps(session, txn)
                    finally:
                        result.warnings.extend(txn.warnings)
                        result.diagnostics.add_warnings(COMMIT_WARNING_SUMMARY, txn.commit_warnings)
                        result.diagnostics.add_warnings(
                            SUMMARIES[ErrorKind.UNLOCK_WARNING], txn.cleanup_warnings
                        )
        except NetcommitError as e:
            logger.error(f"{result.operation} on {self.device_id} failed at {e.stage}: {e}")
            result.diagnostics.add_exception(e)
        result.success = not result.diagnostics.has_error()

    def _audit(
        self,
        result: OperationResult,
        resource_name: str,
        keys: dict,
        message: str,
        offline: bool,
        before: Any = None,
        after: Any = None,
    ) -> None:
        self.tracker.log_change(
            operation=result.operation,
            resource=resource_name,
            keys=keys,
            success=result.success,
            statements=[s.text for s in result.statements],
            warnings=result.warnings,
            error=result.error,
            commit_message=message,
            dry_run=offline,
            before_state=dataclasses.asdict(before) if before is not None else None,
            after_state=dataclasses.asdict(after) if after is not None else None,
        )

    async def create(self, resource: Resource, plan: Any) -> OperationResult:
        """
        Create an entity.

        Fails with a pre-check error when the entity already exists, and with
        a post-check error when it cannot be read back after commit. Both
        checks are skipped by offline sessions.
        """
        result = OperationResult(success=False, operation="create", device_id=self.device_id)
        keys = resource.key_values(plan)
        try:
            result.statements = self._serialize(resource, plan)
        except SerializeError as e:
            result.diagnostics.add_exception(e)
            return result

        session = self._new_session()
        message = self._commit_message("create", resource)
        query_path = resource.query_path(**keys)

        async def steps(session: "Session", txn: Transaction) -> None:
            if not session.offline and await session.exists(query_path):
                raise PreCheckFailed(f"{resource.type_name} {self._describe(keys)} already exists")
            await txn.apply(result.statements)
            await txn.commit(message)
            if not session.offline and not await session.exists(query_path):
                raise PostCheckFailed(
                    f"{resource.type_name} {self._describe(keys)} does not exist after commit"
                )

        await self._transact(result, session, steps)
        if result.success:
            result.tree = plan
        self._audit(result, resource.type_name, keys, message, session.offline, after=plan)
        return result

    async def read(self, resource: Resource, **keys: Any) -> OperationResult:
        """
        Read an entity back from the device.

        result.tree is None when nothing is configured under the entity path.
        """
        result = OperationResult(success=False, operation="read", device_id=self.device_id)
        session = self._new_session()
        try:
            async with timed_section("read", self.device_id, resource=resource.type_name):
                async with session:
                    found = await session.query(resource.query_path(**keys))
                    if isinstance(found, Found):
                        result.tree = self.parser.parse(found.snapshot, resource.schema, **keys)
        except NetcommitError as e:
            result.diagnostics.add_exception(e)
        result.success = not result.diagnostics.has_error()
        return result

    async def update(self, resource: Resource, state: Any, plan: Any) -> OperationResult:
        """Replace an entity: delete its old subtree and set the new one in one commit."""
        result = OperationResult(success=False, operation="update", device_id=self.device_id)
        keys = resource.key_values(plan)
        try:
            statements = self._serialize(resource, plan)
        except SerializeError as e:
            result.diagnostics.add_exception(e)
            return result
        result.statements = self.serializer.delete_statements(resource.prefix(state)) + statements

        session = self._new_session(offline=self.settings.fake_update_also)
        message = self._commit_message("update", resource)

        async def steps(session: "Session", txn: Transaction) -> None:
            await txn.apply(result.statements)
            await txn.commit(message)

        await self._transact(result, session, steps)
        if result.success:
            result.tree = plan
        self._audit(result, resource.type_name, keys, message, session.offline, before=state, after=plan)
        return result

    async def delete(self, resource: Resource, state: Any) -> OperationResult:
        """Remove an entity's whole subtree."""
        result = OperationResult(success=False, operation="delete", device_id=self.device_id)
        keys = resource.key_values(state)
        result.statements = self.serializer.delete_statements(resource.prefix(state))

        session = self._new_session(offline=self.settings.fake_delete_also)
        message = self._commit_message("delete", resource)

        async def steps(session: "Session", txn: Transaction) -> None:
            await txn.apply(result.statements)
            await txn.commit(message)

        await self._transact(result, session, steps)
        self._audit(result, resource.type_name, keys, message, session.offline, before=state)
        return result

    async def import_state(self, resource: Resource, **keys: Any) -> OperationResult:
        """Read an entity that must exist."""
        result = await self.read(resource, **keys)
        result.operation = "import"
        if result.success and result.tree is None:
            result.diagnostics.add_error(
                NOT_FOUND_SUMMARY,
                f"don't find {resource.type_name} with id '{self._describe(keys)}'",
            )
            result.success = False
        return result

    async def load(
        self,
        action: str,
        fmt: str,
        blob: str,
        message: str = "load raw configuration",
    ) -> OperationResult:
        """Load and commit a raw configuration blob."""
        result = OperationResult(success=False, operation="load", device_id=self.device_id)
        session = self._new_session()

        async def steps(session: "Session", txn: Transaction) -> None:
            await txn.load(action, fmt, blob)
            await txn.commit(message)

        await self._transact(result, session, steps)
        self._audit(result, f"raw:{action}:{fmt}", {}, message, session.offline)
        return result

    # --- No-commit helpers ---

    def preview(self, resource: Resource, plan: Any) -> OperationResult:
        """Validate and serialize a plan without touching the device."""
        result = OperationResult(success=False, operation="preview", device_id=self.device_id)
        validation = ConfigValidator(resource.schema).validate(plan)
        for warning in validation.warnings:
            result.diagnostics.add_warning("Validation Warning", warning)
        try:
            result.statements = self._serialize(resource, plan)
        except SerializeError as e:
            result.diagnostics.add_exception(e)
            return result
        result.success = True
        result.tree = plan
        return result

    async def drift(self, resource: Resource, plan: Any) -> OperationResult:
        """Diff the device's current entity against a plan."""
        result = await self.read(resource, **resource.key_values(plan))
        result.operation = "drift"
        if result.success:
            result.diff = self.diff_engine.calculate(resource.schema, result.tree, plan)
            logger.info(f"Drift for {resource.type_name} on {self.device_id}:\n{summarize_diff(result.diff)}")
        return result

    async def apply(self, resource: Resource, plan: Any) -> OperationResult:
        """
        Reconcile the device with a plan.

        Creates the entity when absent, updates it when it differs, and does
        nothing when it already matches.
        """
        current = await self.drift(resource, plan)
        if not current.success:
            current.operation = "apply"
            return current
        if current.tree is None:
            return await self.create(resource, plan)
        if current.diff.no_change:
            current.operation = "apply"
            current.tree = plan
            return current
        result = await self.update(resource, current.tree, plan)
        result.diff = current.diff
        return result

    @staticmethod
    def _describe(keys: dict) -> str:
        return "_-_".join(str(v) for v in keys.values()) or "-"
