"""Worker assignments to tasks: notices, crew propagation, task status and work history."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .hub import DEFAULT_ROOM, MessageSocket
from .order_progress import INSTALLATION
from .task_worker_rules import (
    AUTOFINISH,
    distinct_statuses,
    find_operation,
    needs_autofinish,
    resolve_task_status,
)
from .work_services import require_object_id

_log = logging.getLogger(__name__)

PROCESS = "process"
FINISH = "finish"
OPEN = 0
CLOSED = 1

CREATE_TASK_WORKER_TITLE = "New task"
CREATE_TASK_WORKER = "Task {task}, order No. {number} {order}, object {object}"
PATCH_TASK_WORKER_TITLE = "Task changed"
PATCH_TASK_WORKER = "Task {task} changed, order No. {number} {order}, object {object}"
DELETE_TASK_WORKER_TITLE = "Task removed"
DELETE_TASK_WORKER = "Task {task} removed, order No. {number} {order}, object {object}"


def _field(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def _id_of(item: Any) -> Any:
    value = _field(item, "_id")
    return _field(item, "id") if value is None else value


def _describe(template: str, assignment: Mapping[str, Any]) -> str:
    task = assignment.get("task") or {}
    order = assignment.get("order") or {}
    site = assignment.get("object") or {}
    return template.format(
        task=_field(task, "name"),
        number=_field(order, "number"),
        order=_field(order, "name"),
        object=_field(site, "name"),
    )


@dataclass
class TaskWorkerService:
    """Manages who works on which task and keeps the task's status in step."""

    repo: Any
    user_service: Any = None
    task_status_service: Any = None
    task_service: Any = None
    hub: Any = None
    services: Any = None
    clock: Callable[[], datetime] = field(default=datetime.now)

    def find_task_worker_populate(self, query):
        return self.repo.find_task_worker_populate(query)

    def _announce(self, method: str, sender: str, content: Any) -> None:
        self.hub.handle_message(
            MessageSocket(
                type="message",
                method=method,
                sender=sender,
                recipient="",
                content=content,
                id=DEFAULT_ROOM,
                service="taskWorker",
            )
        )

    def _notify(self, user_id: str, assignment: Mapping[str, Any], title: str, template: str):
        self.services.notify.create_notify(
            user_id,
            {
                "userTo": str(assignment["workerId"]),
                "title": title,
                "message": _describe(template, assignment),
            },
        )

    def _operation_group(self, assignment: Mapping[str, Any]) -> Any:
        operations = self.services.operation.find_operation({"filter": {}}).get("data") or []
        return _field(find_operation(operations, assignment["operationId"]), "group")

    def create_task_worker(self, user_id, data, auto_create):
        """Assign a worker; with auto_create, installers also join the site's open tasks."""
        require_object_id(user_id)
        result = self.repo.create_task_worker(user_id, data)
        self.check_status_task(user_id, result)
        self._announce("CREATE", user_id, result)
        self._notify(user_id, result, CREATE_TASK_WORKER_TITLE, CREATE_TASK_WORKER)

        if auto_create > 0 and self._operation_group(result) == INSTALLATION:
            tasks = (
                self.services.task.find_task_populate(
                    {
                        "objectId": [str(result["objectId"])],
                        "operationId": [str(result["operationId"])],
                    }
                ).get("data")
                or []
            )
            worker = str(result["workerId"])
            for task in tasks:
                if task.get("status") == FINISH:
                    continue
                crew = {str(member["workerId"]) for member in task.get("workers") or ()}
                if str(_id_of(task)) == str(result["taskId"]) or worker in crew:
                    continue
                self.create_task_worker(
                    user_id,
                    {
                        "objectId": task.get("objectId"),
                        "orderId": task.get("orderId"),
                        "taskId": _id_of(task),
                        "operationId": task.get("operationId"),
                        "workerId": result["workerId"],
                        "sortOrder": result.get("sortOrder"),
                        "statusId": result.get("statusId"),
                        "status": result.get("status"),
                        "from": result.get("from"),
                        "to": result.get("to"),
                        "typeGo": result.get("typeGo"),
                    },
                    0,
                )
        return result

    def update_task_worker(self, worker_task_id, user_id, data, auto_update):
        """Update an assignment, propagate installer times and track the work history."""
        result = self.repo.update_task_worker(worker_task_id, user_id, data)
        self._announce("PATCH", user_id, result)

        worker_record = result.get("worker") or {}
        if str(_id_of(worker_record)) != user_id:
            self._notify(user_id, result, PATCH_TASK_WORKER_TITLE, PATCH_TASK_WORKER)

        if auto_update > 0:
            self.check_status_task(user_id, result)
            if self._operation_group(result) == INSTALLATION:
                self._propagate_times(user_id, result)

        worker = str(result["workerId"])
        if result.get("status") == PROCESS:
            self._open_history(user_id, result, worker)
        else:
            self._close_history(user_id, result, worker)
        return result

    def _propagate_times(self, user_id: str, result: Mapping[str, Any]) -> None:
        siblings = (
            self.services.task_worker.find_task_worker_populate(
                {
                    "objectId": [str(result["objectId"])],
                    "workerId": [str(result["workerId"])],
                    "operationId": [str(result["operationId"])],
                }
            ).get("data")
            or []
        )
        own_id = str(_id_of(result))
        for sibling in siblings:
            if str(_id_of(sibling)) == own_id or not needs_autofinish(sibling.get("status")):
                continue
            self.update_task_worker(
                str(_id_of(sibling)),
                user_id,
                {"from": result.get("from"), "to": result.get("to"), "typeGo": result.get("typeGo")},
                0,
            )

    def _open_history(self, user_id: str, result: Mapping[str, Any], worker: str) -> None:
        history = {
            "objectId": result.get("objectId"),
            "orderId": result.get("orderId"),
            "taskId": result.get("taskId"),
            "workerId": result.get("workerId"),
            "operationId": result.get("operationId"),
            "status": OPEN,
            "from": self.clock(),
            "oklad": _field(result.get("worker") or {}, "oklad"),
        }
        open_times = (
            self.services.work_time.find_work_time_populate(
                {"workerId": [worker], "status": OPEN}
            ).get("data")
            or []
        )
        if open_times:
            history["workTimeId"] = _id_of(open_times[0])
        try:
            self.services.work_history.create_work_history(user_id, history)
        except Exception:
            _log.warning("could not open work history for %s", worker, exc_info=True)

    def _close_history(self, user_id: str, result: Mapping[str, Any], worker: str) -> None:
        open_history = (
            self.services.work_history.find_work_history_populate(
                {"workerId": [worker], "taskId": [str(result["taskId"])], "status": OPEN}
            ).get("data")
            or []
        )
        if not open_history:
            return
        try:
            self.services.work_history.update_work_history(
                str(_id_of(open_history[0])), user_id, {"status": CLOSED, "to": self.clock()}
            )
        except Exception:
            _log.warning("could not close work history for %s", worker, exc_info=True)

    def delete_task_worker(self, worker_task_id, user_id, check_status):
        """Remove an assignment and tell the worker."""
        result = self.repo.delete_task_worker(worker_task_id)
        if check_status:
            self.check_status_task(user_id, result)
        self._announce("DELETE", user_id, result)
        self._notify(user_id, result, DELETE_TASK_WORKER_TITLE, DELETE_TASK_WORKER)
        return result

    def check_status_task(self, user_id, task_worker):
        """Set the task's status from the statuses of all its assignments."""
        if task_worker is None:
            raise LookupError("not found task")
        task_id = str(task_worker["taskId"])
        assignments = self.find_task_worker_populate({"taskId": [task_id]}).get("data") or []
        statuses = distinct_statuses(assignments)
        if not statuses:
            return task_worker

        active = 0 if task_worker.get("status") == FINISH else 1
        status, status_id, any_finished = resolve_task_status(
            statuses,
            task_worker.get("status"),
            _id_of(task_worker.get("taskStatus") or {}),
        )

        task = task_worker.get("task") or {}
        group = _field(_field(task, "operation") or {}, "group")
        if group == INSTALLATION and any_finished:
            status, status_id = FINISH, _id_of(statuses[FINISH] or {})
            self._autofinish(user_id, assignments)

        self.task_service.update_task(
            task_id, user_id, {"statusId": status_id, "status": status, "active": active}
        )
        return task_worker

    def _autofinish(self, user_id: str, assignments: list[Mapping[str, Any]]) -> None:
        found = (
            self.services.task_status.find_task_status({"filter": {"status": AUTOFINISH}}).get(
                "data"
            )
            or []
        )
        if not found or not _id_of(found[0]):
            return
        auto = found[0]
        for assignment in assignments:
            if needs_autofinish(assignment.get("status")):
                self.update_task_worker(
                    str(_id_of(assignment)),
                    user_id,
                    {"statusId": _id_of(auto), "status": _field(auto, "status")},
                    0,
                )