"""User accounts and removal of everything that belongs to a worker."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .hub import DEFAULT_ROOM, MessageSocket

_log = logging.getLogger(__name__)


def _hex(item: Any) -> str:
    if isinstance(item, Mapping):
        value = item.get("_id", item.get("id"))
    else:
        value = getattr(item, "id", None)
    if value is None:
        raise ValueError("item has no id")
    return str(value)


def _purge(found: Mapping[str, Any], delete: Callable[[str], Any]) -> None:
    """Delete every item in a find result, carrying on past individual failures."""
    items: Iterable[Any] = found.get("data") or ()
    for item in items:
        try:
            delete(_hex(item))
        except Exception:
            _log.warning("could not delete %r", item, exc_info=True)


@dataclass
class UserService:
    """Manages users; deleting one also removes the worker's dependent records."""

    repo: Any
    hub: Any = None
    services: Any = None

    def get_user(self, user_id):
        return self.repo.get_user(user_id)

    def find_user(self, query):
        return self.repo.find_user(query)

    def create_user(self, user_id, data):
        return self.repo.create_user(user_id, data)

    def delete_user(self, target_id, user_id):
        """Remove the user's images, assignments, time, history, pay and notices, then the user."""
        services = self.services
        _purge(
            services.image.find_image({"filter": {"serviceId": target_id}}),
            services.image.delete_image,
        )
        _purge(
            services.task_worker.find_task_worker_populate({"workerId": [target_id]}),
            lambda item_id: services.task_worker.delete_task_worker(item_id, user_id, False),
        )
        _purge(
            services.work_time.find_work_time_populate({"workerId": [target_id]}),
            services.work_time.delete_work_time,
        )
        _purge(
            services.work_history.find_work_history_populate({"workerId": [target_id]}),
            services.work_history.delete_work_history,
        )
        _purge(
            services.pay.find_pay({"workerId": [target_id]}),
            lambda item_id: services.pay.delete_pay(item_id, user_id),
        )
        _purge(
            services.notify.find_notify_populate({"userTo": [target_id]}),
            services.notify.delete_notify,
        )
        return self.repo.delete_user(target_id)

    def update_user(self, target_id, data):
        """Update a user and announce the change to every connected client."""
        result = self.repo.update_user(target_id, data)
        self.hub.handle_message(
            MessageSocket(
                type="message",
                method="PATCH",
                sender=target_id,
                recipient="",
                content=result,
                id=DEFAULT_ROOM,
                service="user",
            )
        )
        return result

    def iam(self, user_id):
        return self.repo.iam(user_id)