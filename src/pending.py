"""
Pending Initializers - Decision logic for the initializer queue.

An uninitialized object carries an ordered queue of initializer records at
metadata.initializers.pending. Only the initializer at the head of the queue
may act on the object, and after it succeeds exactly that head entry is
removed. Everything here is pure except the two apply helpers, which mutate
the object they are given.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple, Union

INITIALIZERS_PATH = ("metadata", "initializers")
PENDING_PATH = INITIALIZERS_PATH + ("pending",)
RESULT_PATH = INITIALIZERS_PATH + ("result",)


@dataclass(frozen=True)
class ClearField:
    """Remove the whole metadata.initializers block."""


@dataclass(frozen=True)
class SetQueue:
    """Replace the pending queue with the remaining entries."""

    pending: Tuple[Any, ...]


QueueUpdate = Union[ClearField, SetQueue]


def _get_nested(obj: Dict[str, Any], path: Sequence[str]) -> Any:
    target: Any = obj
    for part in path:
        if not isinstance(target, dict) or part not in target:
            return None
        target = target[part]
    return target


def _set_nested(obj: Dict[str, Any], value: Any, path: Sequence[str]) -> None:
    target = obj
    for part in path[:-1]:
        child = target.get(part)
        if not isinstance(child, dict):
            child = {}
            target[part] = child
        target = child
    target[path[-1]] = value


def _delete_nested(obj: Dict[str, Any], path: Sequence[str]) -> None:
    parent = _get_nested(obj, path[:-1])
    if isinstance(parent, dict):
        parent.pop(path[-1], None)


def get_pending(obj: Dict[str, Any]) -> List[Any]:
    """
    Read the pending initializer queue of an object.

    Returns:
        A copy of metadata.initializers.pending, or an empty list when the
        field is absent or not a list (the object is initialized).
    """
    pending = _get_nested(obj, PENDING_PATH)
    if not isinstance(pending, list):
        return []
    return list(pending)


def is_eligible(pending: Sequence[Any], initializer_name: str) -> bool:
    """
    Check whether an initializer is at the head of a pending queue.

    A head entry that is not a name-bearing record never matches.
    """
    if not pending:
        return False
    first = pending[0]
    if not isinstance(first, dict):
        return False
    name = first.get("name")
    return isinstance(name, str) and name == initializer_name


def next_queue_state(pending: Sequence[Any]) -> QueueUpdate:
    """
    Compute the queue state after the head initializer has finished.

    Args:
        pending: The queue as it was read before the hook was called.

    Returns:
        ClearField when the head was the last entry, otherwise SetQueue
        holding the remaining entries in their original order.

    Raises:
        ValueError: If the queue is empty.
    """
    if not pending:
        raise ValueError("cannot advance an empty pending queue")
    remaining = tuple(pending[1:])
    if not remaining:
        return ClearField()
    return SetQueue(pending=remaining)


def apply_queue_update(obj: Dict[str, Any], update: QueueUpdate) -> Dict[str, Any]:
    """
    Write a queue update into an object's metadata.

    An empty pending list is rejected by the API server, so ClearField drops
    metadata.initializers altogether instead of setting ``pending: []``.
    """
    if isinstance(update, ClearField):
        _delete_nested(obj, INITIALIZERS_PATH)
    elif isinstance(update, SetQueue):
        _set_nested(obj, list(update.pending), PENDING_PATH)
    else:
        raise TypeError(f"Unsupported queue update: {update!r}")
    return obj


def set_result(obj: Dict[str, Any], result: Any) -> Dict[str, Any]:
    """Attach an initializer result to metadata.initializers.result."""
    _set_nested(obj, result, RESULT_PATH)
    return obj
