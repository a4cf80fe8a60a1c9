"""Tasks of an order: default status, order progress and installation crews."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .hub import DEFAULT_ROOM, MessageSocket
from .order_progress import INSTALLATION, order_progress
from .task_worker_rules import find_operation
from .work_services import require_object_id

DEFAULT_STATUS = "wait"


def _field(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def _id_of(item: Any) -> Any:
    value = _field(item, "_id")
    return _field(item, "id") if value is None else value


@dataclass
class TaskService:
    """Manages tasks and keeps the progress of their order up to date."""

    repo: Any
    hub: Any = None
    user_service: Any = None
    task_status: Any = None
    order_service: Any = None
    services: Any = None
    clock: Callable[[], datetime] = field(default=datetime.now)

    def find_task(self, params):
        return self.repo.find_task(params)

    def find_task_populate(self, query):
        return self.repo.find_task_populate(query)

    def _announce(self, method: str, sender: str, content: Any) -> None:
        self.hub.handle_message(
            MessageSocket(
                type="message",
                method=method,
                sender=sender,
                recipient="",
                content=content,
                id=DEFAULT_ROOM,
                service="task",
            )
        )

    def create_task(self, user_id, data):
        """Create a task, update its order and, for installation, assign the site's crew."""
        require_object_id(user_id)
        data = dict(data)
        if not data.get("statusId"):
            found = (
                self.services.task_status.find_task_status(
                    {"filter": {"status": DEFAULT_STATUS}}
                ).get("data")
                or []
            )
            if found:
                data["statusId"] = _id_of(found[0])
                data["status"] = _field(found[0], "status")

        result = self.repo.create_task(user_id, data)
        self.check_status_order(user_id, result)

        operations = (
            self.order_service.operation_service.find_operation({"filter": {}}).get("data")
            or []
        )
        operation = find_operation(operations, result["operationId"])
        if _field(operation, "group") == INSTALLATION:
            self._assign_crew(user_id, result)
        return result

    def _assign_crew(self, user_id: str, task: Mapping[str, Any]) -> None:
        """Give the new task to every worker already installing on the same site."""
        task_workers = self.services.task_worker
        found = (
            task_workers.find_task_worker_populate(
                {
                    "objectId": [str(task["objectId"])],
                    "operationId": [str(task["operationId"])],
                    "date": self.clock(),
                }
            ).get("data")
            or []
        )
        assigned: set[str] = set()
        for assignment in found:
            worker = str(assignment["workerId"])
            if worker in assigned:
                continue
            task_workers.create_task_worker(
                user_id,
                {
                    "objectId": assignment.get("objectId"),
                    "orderId": task.get("orderId"),
                    "taskId": _id_of(task),
                    "operationId": task.get("operationId"),
                    "workerId": assignment["workerId"],
                    "sortOrder": assignment.get("sortOrder"),
                    "statusId": task.get("statusId"),
                    "status": task.get("status"),
                    "from": assignment.get("from"),
                    "to": assignment.get("to"),
                    "typeGo": assignment.get("typeGo"),
                },
                0,
            )
            assigned.add(worker)

    def update_task(self, task_id, user_id, data):
        """Update a task, refresh its order's progress and announce the change."""
        result = self.repo.update_task(task_id, user_id, data)
        self.check_status_order(user_id, result)
        self._announce("PATCH", user_id, result)
        return result

    def delete_task(self, task_id, user_id, check_status):
        """Delete a task, optionally refreshing its order's progress."""
        result = self.repo.delete_task(task_id)
        if check_status:
            self.check_status_order(user_id, result)
        self._announce("DELETE", user_id, result)
        return result

    def check_status_order(self, user_id, task):
        """Recompute the stage completion of the task's order from all its tasks."""
        order_id = str(task["orderId"])
        tasks = self.find_task_populate({"orderId": [order_id]}).get("data") or []
        progress = order_progress(tasks)
        self.order_service.update_order(order_id, user_id, progress.as_update())
        return task