"""Orders: creation notices to managers, completion tracking and cascading removal."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from .hub import DEFAULT_ROOM, MessageSocket
from .work_services import require_object_id

_log = logging.getLogger(__name__)

COMPLETED = 1
STATUS_DONE = 100
STATUS_IN_WORK = 1
MANAGER_ROLES = ("admin", "boss")
COMPLETION_FLAGS = ("stolyarComplete", "malyarComplete", "montajComplete")

NEW_ORDER_TITLE = "New order"
NEW_ORDER = "Order {name} for object {object}"


def _hex(item: Any) -> str:
    value = item.get("_id", item.get("id")) if isinstance(item, Mapping) else getattr(item, "id", None)
    if value is None:
        raise ValueError("item has no id")
    return str(value)


def completion_status(order: Mapping[str, Any]) -> int:
    """100 when joinery, painting and installation are all complete, otherwise 1."""
    if all(order.get(flag) == COMPLETED for flag in COMPLETION_FLAGS):
        return STATUS_DONE
    return STATUS_IN_WORK


@dataclass
class OrderService:
    """Manages orders and the work that hangs off them."""

    repo: Any
    user_service: Any = None
    hub: Any = None
    operation_service: Any = None
    services: Any = None

    def find_order(self, query):
        return self.repo.find_order(query)

    def _announce(self, method: str, sender: str, content: Any) -> None:
        self.hub.handle_message(
            MessageSocket(
                type="message",
                method=method,
                sender=sender,
                recipient="",
                content=content,
                id=DEFAULT_ROOM,
                service="order",
            )
        )

    def create_order(self, user_id, data):
        """Create an order and notify every admin and boss."""
        require_object_id(user_id)
        result = self.repo.create_order(user_id, data)

        roles = self.services.role.find_role({"code": list(MANAGER_ROLES)}).get("data") or []
        role_ids = [_hex(role) for role in roles]
        users = []
        if role_ids:
            users = self.services.user.find_user({"roleId": role_ids}).get("data") or []

        site = result.get("object") or {}
        message = NEW_ORDER.format(name=result.get("name"), object=site.get("name"))
        for user in users:
            self.services.notify.create_notify(
                user_id, {"userTo": _hex(user), "title": NEW_ORDER_TITLE, "message": message}
            )
        _log.debug("order created, %d managers notified", len(users))
        return result

    def update_order(self, order_id, user_id, data):
        """Update an order; a change to a completion flag also recomputes its status."""
        result = self.repo.update_order(order_id, user_id, data)
        if any(data.get(flag) is not None for flag in COMPLETION_FLAGS):
            result = self.repo.update_order(
                order_id, user_id, {"status": completion_status(result)}
            )
        self._announce("PATCH", user_id, result)
        return result

    def delete_order(self, order_id, user_id):
        """Remove the order's images, assignments and tasks, then the order."""
        services = self.services
        self._purge(
            services.image.find_image({"filter": {"serviceId": order_id}}),
            services.image.delete_image,
        )
        self._purge(
            services.task_worker.find_task_worker_populate({"orderId": [order_id]}),
            lambda item_id: services.task_worker.delete_task_worker(item_id, user_id, False),
        )
        self._purge(
            services.task.find_task_populate({"orderId": [order_id]}),
            lambda item_id: services.task.delete_task(item_id, user_id, False),
        )
        result = self.repo.delete_order(order_id)
        self._announce("DELETE", user_id, result)
        return result

    @staticmethod
    def _purge(found: Mapping[str, Any], delete: Callable[[str], Any]) -> None:
        for item in found.get("data") or ():
            try:
                delete(_hex(item))
            except Exception:
                _log.warning("could not delete %r", item, exc_info=True)