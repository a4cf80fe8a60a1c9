"""Working-time records, their wage totals and splitting of shifts across midnight."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Any

from .work_services import require_object_id

LOCAL_ZONE = timezone(timedelta(hours=3))


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def wage_total(start: datetime, end: datetime, oklad: Any) -> int:
    """Pay for the period at an hourly rate, rounded up to a whole unit."""
    if oklad is None:
        raise ValueError("work time has no hourly rate")
    minutes = (_as_utc(end) - _as_utc(start)).total_seconds() / 60
    return int(math.ceil(minutes * (float(oklad) / 60)))


def split_shift(start: datetime, end: datetime) -> tuple[datetime, datetime] | None:
    """Where a shift crosses local midnight, return (end of first day, start of next day).

    Returns None when start and end fall on the same local day.
    """
    local_start = _as_utc(start).astimezone(LOCAL_ZONE)
    local_end = _as_utc(end).astimezone(LOCAL_ZONE)
    if local_start.date() == local_end.date():
        return None
    first_end = datetime.combine(local_start.date(), time(23, 59, 59), LOCAL_ZONE)
    first_end = first_end.astimezone(timezone.utc)
    return first_end, first_end + timedelta(seconds=1)


@dataclass
class WorkTimeService:
    """Manages working-time records and keeps their totals up to date."""

    repo: Any
    hub: Any = None
    user_service: Any = None
    task_status: Any = None

    def find_work_time(self, query):
        return self.repo.find_work_time(query)

    def find_work_time_populate(self, query):
        return self.repo.find_work_time_populate(query)

    def create_work_time(self, user_id, data):
        require_object_id(user_id)
        return self.repo.create_work_time(user_id, data)

    def update_work_time(self, time_id, user_id, data):
        """Apply an update, recompute the total and split a shift that crosses midnight."""
        result = self.repo.update_work_time(time_id, user_id, data)

        start, end = result.get("from"), result.get("to")
        oklad = result.get("oklad")
        patch: dict[str, Any] = {}
        split = None
        if start is not None and end is not None:
            total = wage_total(start, end, oklad)
            if total > 0:
                patch["total"] = total
            split = split_shift(start, end)
            if split is not None:
                first_end, _ = split
                patch["to"] = first_end
                patch["total"] = wage_total(start, first_end, oklad)

        result = self.repo.update_work_time(time_id, user_id, patch)

        if split is not None:
            _, second_start = split
            oklad = result.get("oklad")
            result = self.repo.create_work_time(
                user_id,
                {
                    "userId": result.get("userId"),
                    "workerId": result.get("workerId"),
                    "status": result.get("status"),
                    "date": second_start,
                    "from": second_start,
                    "to": end,
                    "oklad": oklad,
                    "total": wage_total(second_start, end, oklad),
                },
            )
        return result

    def delete_work_time(self, time_id):
        return self.repo.delete_work_time(time_id)