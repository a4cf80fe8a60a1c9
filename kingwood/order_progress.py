"""Progress of an order's work stages, worked out from the statuses of its tasks."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

JOINERY = "2"
PAINTING = "3"
INSTALLATION = "5"
FINISHED_STATUSES = frozenset({"finish", "autofinish"})

COMPLETE = 1
INCOMPLETE = 0


@dataclass
class GroupProgress:
    """How many tasks of one operation group exist and how many are finished."""

    count_all: int = 0
    count_finish: int = 0
    status: int = INCOMPLETE

    @property
    def complete(self) -> bool:
        return self.status == COMPLETE

    def add(self, task_status: str) -> None:
        self.count_all += 1
        if task_status in FINISHED_STATUSES:
            self.count_finish += 1


@dataclass
class OrderProgress:
    """Completion of joinery, painting and installation, and whether the order may go out."""

    joinery: GroupProgress = field(default_factory=GroupProgress)
    painting: GroupProgress = field(default_factory=GroupProgress)
    installation: GroupProgress = field(default_factory=GroupProgress)
    go: int = INCOMPLETE

    def as_update(self) -> dict[str, int]:
        """The order fields that record this progress."""
        return {
            "stolyarComplete": self.joinery.status,
            "malyarComplete": self.painting.status,
            "montajComplete": self.installation.status,
            "goComplete": self.go,
        }


def _group_of(task: Mapping[str, Any]) -> Any:
    operation = task.get("operation") or {}
    if isinstance(operation, Mapping):
        return operation.get("group")
    return getattr(operation, "group", None)


def order_progress(tasks: Iterable[Mapping[str, Any]]) -> OrderProgress:
    """Count finished tasks per group and decide which stages are complete.

    Joinery and painting are complete when all their tasks are finished;
    installation is complete once any of its tasks is finished. The order may
    go out once joinery is complete and painting is complete or absent.
    """
    progress = OrderProgress()
    groups = {
        JOINERY: progress.joinery,
        PAINTING: progress.painting,
        INSTALLATION: progress.installation,
    }
    for task in tasks:
        group = groups.get(_group_of(task))
        if group is not None:
            group.add(task.get("status", ""))

    for group in (progress.joinery, progress.painting):
        if group.count_all > 0 and group.count_all == group.count_finish:
            group.status = COMPLETE
    if progress.installation.count_finish > 0:
        progress.installation.status = COMPLETE
    if progress.joinery.complete and (
        progress.painting.complete or progress.painting.count_all == 0
    ):
        progress.go = COMPLETE
    return progress