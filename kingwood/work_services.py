"""Services for operations, pay templates, task statuses, work history and objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from bson import ObjectId


def require_object_id(value: Any) -> ObjectId:
    """Parse a 24-character hex identifier, raising ValueError if it is not one."""
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or len(value) != 24 or not ObjectId.is_valid(value):
        raise ValueError(f"invalid object id: {value!r}")
    return ObjectId(value)


@dataclass
class OperationService:
    """Manages the kinds of work an order is split into."""

    repo: Any
    user_service: Any = None

    def find_operation(self, params):
        return self.repo.find_operation(params)

    def create_operation(self, user_id, data):
        require_object_id(user_id)
        return self.repo.create_operation(user_id, data)

    def update_operation(self, item_id, user_id, data):
        return self.repo.update_operation(item_id, user_id, data)

    def delete_operation(self, item_id):
        return self.repo.delete_operation(item_id)


@dataclass
class PayTemplateService:
    """Manages templates used to build pay records."""

    repo: Any
    i18n: Any = None

    def find_pay_template(self, params):
        return self.repo.find_pay_template(params)

    def create_pay_template(self, user_id, data):
        return self.repo.create_pay_template(user_id, data)

    def update_pay_template(self, item_id, user_id, data):
        return self.repo.update_pay_template(item_id, user_id, data)

    def delete_pay_template(self, item_id):
        return self.repo.delete_pay_template(item_id)


@dataclass
class TaskStatusService:
    """Manages the statuses a task can be in."""

    repo: Any
    i18n: Any = None

    def find_task_status(self, params):
        return self.repo.find_task_status(params)

    def create_task_status(self, user_id, data):
        return self.repo.create_task_status(user_id, data)

    def update_task_status(self, item_id, user_id, data):
        return self.repo.update_task_status(item_id, user_id, data)

    def delete_task_status(self, item_id):
        return self.repo.delete_task_status(item_id)


@dataclass
class WorkHistoryService:
    """Records the periods a worker spent on a task."""

    repo: Any
    hub: Any = None
    user_service: Any = None
    task_status: Any = None

    def find_work_history(self, query):
        return self.repo.find_work_history(query)

    def find_work_history_populate(self, query):
        return self.repo.find_work_history_populate(query)

    def create_work_history(self, user_id, data):
        require_object_id(user_id)
        return self.repo.create_work_history(user_id, data)

    def update_work_history(self, item_id, user_id, data):
        return self.repo.update_work_history(item_id, user_id, data)

    def delete_work_history(self, item_id):
        return self.repo.delete_work_history(item_id)


@dataclass
class ObjectService:
    """Manages the sites where orders are carried out."""

    repo: Any
    hub: Any = None
    user_service: Any = None

    def find_object(self, query):
        return self.repo.find_object(query)

    def create_object(self, user_id, data):
        require_object_id(user_id)
        return self.repo.create_object(user_id, data)

    def update_object(self, item_id, user_id, data):
        return self.repo.update_object(item_id, user_id, data)

    def delete_object(self, item_id):
        return self.repo.delete_object(item_id)