"""Diff engine for attribute trees.

Computes field level differences between the tree read back from a device
and the desired tree, matching block entries by identifier.
"""
from typing import Any, Optional

from .schema import (
    AttributePath,
    ChangeType,
    FieldChange,
    FieldKind,
    Schema,
    TreeDiff,
    is_set,
)


def _normalize(kind: FieldKind, value: Any) -> Any:
    # Values that produce no statement compare equal to absent
    if kind == FieldKind.FLAG:
        return True if value is True else None
    if kind == FieldKind.VALUE and value == "":
        return None
    if kind == FieldKind.LIST:
        return list(value or [])
    return value


class DiffEngine:
    """Calculate differences between current and desired trees."""

    def calculate(self, schema: Schema, current: Optional[Any], desired: Optional[Any]) -> TreeDiff:
        """
        Diff two trees of the same schema.

        Args:
            schema: Field table shared by both trees
            current: Tree read from the device, or None when absent
            desired: Desired tree, or None when it should be absent

        Returns:
            TreeDiff with one FieldChange per differing field or block entry
        """
        result = TreeDiff()
        self._diff(schema, current, desired, AttributePath(), result.changes)
        return result

    def _diff(
        self,
        schema: Schema,
        current: Optional[Any],
        desired: Optional[Any],
        path: AttributePath,
        out: list[FieldChange],
    ) -> None:
        for f in schema.fields:
            if f.identifier:
                continue
            before = getattr(current, f.name) if current is not None else None
            after = getattr(desired, f.name) if desired is not None else None
            field_path = path.at_name(f.name)

            if f.kind == FieldKind.BLOCK:
                self._diff_blocks(f.schema, before or [], after or [], field_path, out)
            elif f.kind == FieldKind.CONTAINER:
                if before is None and after is None:
                    continue
                if before is None or after is None:
                    out.append(self._change(str(field_path), before, after))
                else:
                    self._diff(f.schema, before, after, field_path, out)
            else:
                before = _normalize(f.kind, before)
                after = _normalize(f.kind, after)
                if before != after:
                    out.append(self._change(
                        str(field_path),
                        before if is_set(f, before) else None,
                        after if is_set(f, after) else None,
                    ))

    def _diff_blocks(
        self,
        schema: Schema,
        before: list,
        after: list,
        path: AttributePath,
        out: list[FieldChange],
    ) -> None:
        id_name = schema.identifier.name
        current_map = {getattr(e, id_name): (i, e) for i, e in enumerate(before)}
        desired_map = {getattr(e, id_name): (i, e) for i, e in enumerate(after)}

        # entries are located by their index in the list they come from
        for key, (index, entry) in desired_map.items():
            entry_path = path.at_index(index)
            if key not in current_map:
                out.append(FieldChange(str(entry_path), ChangeType.CREATE, None, entry))
            else:
                self._diff(schema, current_map[key][1], entry, entry_path, out)

        for key, (index, entry) in current_map.items():
            if key not in desired_map:
                out.append(FieldChange(str(path.at_index(index)), ChangeType.DELETE, entry, None))

    @staticmethod
    def _change(path: str, before: Any, after: Any) -> FieldChange:
        if before is None or before == []:
            change_type = ChangeType.CREATE
        elif after is None or after == []:
            change_type = ChangeType.DELETE
        else:
            change_type = ChangeType.MODIFY
        return FieldChange(path, change_type, before, after)


def diff_trees(schema: Schema, current: Optional[Any], desired: Optional[Any]) -> TreeDiff:
    """Module-level shortcut for DiffEngine().calculate."""
    return DiffEngine().calculate(schema, current, desired)


def summarize_diff(diff: TreeDiff) -> str:
    """
    Create a human-readable summary of a diff.

    Useful for drift reports and logging.
    """
    if diff.no_change:
        return "No changes needed - current state matches desired state"

    lines = [f"Changes to apply ({diff.total_changes} total):", ""]
    for change in diff.changes:
        if change.change_type == ChangeType.CREATE:
            lines.append(f"  [+] {change.path}: {change.after}")
        elif change.change_type == ChangeType.DELETE:
            lines.append(f"  [-] {change.path} (was: {change.before})")
        elif change.change_type == ChangeType.MODIFY:
            lines.append(f"  [~] {change.path}: {change.before} -> {change.after}")

    return "\n".join(lines)
