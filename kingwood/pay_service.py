"""Worker pay records, with change history and notices to the worker."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .hub import DEFAULT_ROOM, MessageSocket

CREATE_PAY_TITLE = "Pay for {period}"
CREATE_PAY = "{name}: {total} for {period}"
PATCH_PAY_TITLE = "Pay for {period} changed"
PATCH_PAY = "{old_name}: {old_total} changed to {name}: {total} for {period}"


def period_label(year: int, month: int) -> str:
    """Label for a pay period whose month counts from zero."""
    return f"{year}-{month + 1}"


def _period(pay: Any) -> str:
    return period_label(pay.get("year", 0), pay.get("month", 0))


@dataclass
class PayService:
    """Manages pay records and tells the worker about each change."""

    repo: Any
    hub: Any = None
    services: Any = None
    clock: Callable[[], datetime] = field(default=datetime.now)

    def find_pay(self, query):
        return self.repo.find_pay(query)

    def _announce(self, method: str, sender: str, recipient: str, content: Any) -> None:
        self.hub.handle_message(
            MessageSocket(
                type="message",
                method=method,
                sender=sender,
                recipient=recipient,
                content=content,
                id=DEFAULT_ROOM,
                service="pay",
            )
        )

    def create_pay(self, user_id, data):
        """Create a pay record, then notify the worker it belongs to."""
        result = self.repo.create_pay(user_id, data)
        worker = str(result["workerId"])
        self._announce("CREATE", user_id, worker, result)
        period = _period(result)
        self.services.notify.create_notify(
            user_id,
            {
                "userTo": worker,
                "title": CREATE_PAY_TITLE.format(period=period),
                "message": CREATE_PAY.format(
                    name=result.get("name"), total=result.get("total"), period=period
                ),
            },
        )
        return result

    def update_pay(self, pay_id, user_id, data):
        """Update a pay record, keeping its previous state in its props; None if absent."""
        found = self.repo.find_pay({"id": [pay_id]}).get("data") or []
        if not found:
            return None
        previous = found[0]
        now = self.clock()
        props = dict(previous.get("props") or {})
        props[now.isoformat()] = {
            "userId": user_id,
            "item": {
                "userId": previous.get("userId"),
                "workerId": previous.get("workerId"),
                "month": previous.get("month"),
                "year": previous.get("year"),
                "name": previous.get("name"),
                "total": previous.get("total"),
                "createdAt": previous.get("createdAt"),
                "updatedAt": previous.get("updatedAt"),
            },
            "time": now,
        }
        result = self.repo.update_pay(pay_id, user_id, {**data, "props": props})
        worker = str(result["workerId"])
        self._announce("PATCH", user_id, worker, result)
        period = _period(result)
        self.services.notify.create_notify(
            user_id,
            {
                "userTo": worker,
                "title": PATCH_PAY_TITLE.format(period=period),
                "message": PATCH_PAY.format(
                    old_name=previous.get("name"),
                    old_total=previous.get("total"),
                    name=result.get("name"),
                    total=result.get("total"),
                    period=period,
                ),
            },
        )
        return result

    def delete_pay(self, pay_id, user_id):
        """Delete a pay record if it exists; None otherwise."""
        found = self.repo.find_pay({"id": [pay_id]}).get("data") or []
        if not found:
            return None
        result = self.repo.delete_pay(pay_id, user_id)
        self._announce("DELETE", user_id, "", result)
        return result