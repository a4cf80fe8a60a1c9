"""Rules that decide a task's status from the statuses of its worker assignments."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

AUTOFINISH = "autofinish"
STOP_STATUSES = frozenset({"finish", "process", AUTOFINISH})
# Later entries take precedence over earlier ones.
_PRECEDENCE = ("finish", "wait", "pause", "process")


def _id_of(item: Any) -> Any:
    if isinstance(item, Mapping):
        return item.get("_id", item.get("id"))
    return getattr(item, "id", None)


def find_operation(operations: Iterable[Any], operation_id: Any) -> Any:
    """The last operation whose id matches; LookupError if there is none."""
    wanted = str(operation_id)
    found = None
    for operation in operations:
        if str(_id_of(operation)) == wanted:
            found = operation
    if found is None:
        raise LookupError(f"operation {wanted} not found")
    return found


def distinct_statuses(task_workers: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    """Each status of the assignments, except autofinish, with the first status record seen."""
    statuses: dict[str, Any] = {}
    for worker in task_workers:
        status = worker.get("status")
        if status == AUTOFINISH or status in statuses:
            continue
        statuses[status] = worker.get("taskStatus")
    return statuses


def resolve_task_status(
    statuses: Mapping[str, Any], fallback_status: str, fallback_status_id: Any
) -> tuple[str, Any, bool]:
    """Pick the task status from its assignments' statuses.

    process beats pause, which beats wait, which beats finish; with none of
    them the fallback is kept. The third value tells whether any assignment
    is finished.
    """
    status, status_id = fallback_status, fallback_status_id
    for name in _PRECEDENCE:
        if name in statuses:
            status, status_id = name, _id_of(statuses[name] or {})
    return status, status_id, "finish" in statuses


def needs_autofinish(status: str) -> bool:
    """Whether an assignment in this status is closed when installation finishes."""
    return status not in STOP_STATUSES