"""Minimal JSON patch assembly between desired and observed field values."""

from typing import Any

from .models import PatchOp, PatchOperation


def is_empty(value: Any) -> bool:
    """Whether a field value counts as absent on the server."""
    return value is None or value == "" or value == [] or value == {}


def values_equal(desired: Any, observed: Any) -> bool:
    """
    Compare a desired field value with the observed one.

    Scalars compare by value. Network fields are single-element lists and
    compare structurally, order included.
    """
    if is_empty(desired) and is_empty(observed):
        return True
    return desired == observed


def append_patch(
    ops: list[PatchOperation], path: str, desired: Any, observed: Any
) -> list[PatchOperation]:
    """
    Append a patch operation for ``path`` when ``desired`` differs from ``observed``.

    The store rejects ``replace`` on a missing path, so ``add`` is used when
    nothing is observed yet.

    Args:
        ops: Operation list, mutated in place
        path: JSON pointer of the field
        desired: Value the wizard wants
        observed: Value last read from the store

    Returns:
        The same ``ops`` list
    """
    if values_equal(desired, observed):
        return ops

    op = PatchOp.ADD if is_empty(observed) else PatchOp.REPLACE
    ops.append(PatchOperation(op=op, path=path, value=desired))
    return ops


def get_path(record: dict[str, Any], *keys: str) -> Any:
    """Read a nested field from a record, None when any level is missing."""
    current: Any = record
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current
