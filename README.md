# kingwood

The business rules behind a joinery workshop's back office: orders, the tasks
that make them up, the workers assigned to each task, their work time and
work history, monthly pay, and notices sent to connected clients and phones.

The services do not talk to a database themselves. Each one is handed a
repository object and calls methods on it (for example `repo.find_pay(query)`
or `repo.update_task(task_id, user_id, data)`); records travel as plain
dictionaries. What lives here is what happens around a change: which order
flags flip when a task finishes, who is notified, how a night shift is split
over two days. Identifiers are checked as MongoDB object ids with the `bson`
module that ships with `pymongo`.

## Modules

- `kingwood.hub` — `MessageSocket`, `Client` and `Hub`.
  - A `Client` has a bounded outgoing buffer: `offer(message)` queues without
    blocking, `receive(timeout=None)` takes the next message, `close()` stops
    it accepting more.
  - The `Hub` keeps clients grouped by room. `handle_message` sends messages
    of type `"message"` or `"error"` to every client in the room named by the
    message's `id`, or only to the client whose `user_id` equals `recipient`;
    messages of type `"notification"` go to every client in the room named by
    `recipient`. A client whose buffer is full is closed and dropped.
  - `register`, `unregister` and `broadcast` queue events; `run()` processes
    them until `stop()` is called. `remove_client` marks the user offline
    through `client.services.user.update_user` and announces it.
- `kingwood.work_services` — `OperationService`, `PayTemplateService`,
  `TaskStatusService`, `WorkHistoryService` and `ObjectService`, plus
  `require_object_id(value)`, which raises `ValueError` for anything that is
  not a 24-digit hex object id.
- `kingwood.work_time_service` — `WorkTimeService` and two helpers:
  - `wage_total(start, end, oklad)`: pay for the period at an hourly rate,
    rounded up to a whole unit; `ValueError` when there is no rate.
  - `split_shift(start, end)`: when a shift crosses midnight in the
    workshop's zone (UTC+3), returns the end of the first day (23:59:59 local)
    and the start of the next, otherwise `None`.
  `update_work_time` recomputes the total after each update and, for a shift
  that crosses midnight, cuts the record at the end of the first day and
  creates a second record for the rest.
- `kingwood.user_service` — `UserService`. `delete_user` also removes the
  user's images, task assignments, work time, work history, pay records and
  notices; `update_user` announces the change over the hub.
- `kingwood.pay_service` — `PayService` and `period_label(year, month)`,
  which formats a period whose month counts from zero (`2024, 0` gives
  `"2024-1"`). Each update keeps the previous version under the record's
  `props`, keyed by time, and every create or update notifies the worker.
  `update_pay` and `delete_pay` return `None` when the record does not exist.
- `kingwood.order_service` — `OrderService` and `completion_status(order)`,
  which is `100` when `stolyarComplete`, `malyarComplete` and
  `montajComplete` are all `1`, otherwise `1`. Creating an order notifies
  every user whose role is `admin` or `boss`; changing a completion flag
  recomputes the order status; deleting an order removes its images,
  assignments and tasks first.
- `kingwood.order_progress` — `order_progress(tasks)` reduces an order's tasks
  to an `OrderProgress` with one `GroupProgress` each for joinery (operation
  group `"2"`), painting (`"3"`) and installation (`"5"`).
  `OrderProgress.as_update()` gives the order fields to write.
- `kingwood.task_worker_rules` — the pure rules for assignments:
  `find_operation`, `distinct_statuses`, `resolve_task_status` (process beats
  pause, which beats wait, which beats finish) and `needs_autofinish`.
- `kingwood.task_service` — `TaskService`. New tasks get the `wait` status
  when none is given; every change refreshes the order's progress; a new
  installation task is given to the workers already installing on the same
  site.
- `kingwood.task_worker_service` — `TaskWorkerService`. It notifies workers
  of their assignments, sets the task status from its assignments,
  auto-finishes open assignments once installation is finished, spreads an
  installer's times to their other assignments on the site, and opens or
  closes work-history entries as an assignment enters or leaves `process`.
- `kingwood.notify_service` — `NotifyService` and `PushMessage`. A notice is
  stored, sent to its recipient over the hub and, when the recipient has a
  push token and a push client is configured, passed to
  `push_client.publish(PushMessage(...))`. A token that is not of the form
  `ExponentPushToken[...]` or `ExpoPushToken[...]` raises `ValueError`.

## Wiring the services together

Services that reach other services do so through a `services` attribute that
exposes them by name (`services.notify`, `services.user`, `services.task`,
`services.task_worker`, `services.task_status`, `services.operation`,
`services.work_time`, `services.work_history`, `services.pay`,
`services.image`, `services.role`). Any object with those attributes will do:

```python
from types import SimpleNamespace

from kingwood.hub import Hub
from kingwood.notify_service import NotifyService
from kingwood.pay_service import PayService
from kingwood.user_service import UserService

hub = Hub()
services = SimpleNamespace()
services.user = UserService(user_repo, hub=hub, services=services)
services.notify = NotifyService(notify_repo, hub=hub, services=services)
services.pay = PayService(pay_repo, hub=hub, services=services)
```

Failures are raised as exceptions — an invalid object id, a missing
operation, or whatever the repository raises. No service returns an error
value.

## What this package does not do

- It has no storage: repositories are supplied by the caller.
- It has no HTTP server, routes or command-line program.
- It does not carry socket traffic itself: the hub queues messages on
  `Client` objects, and moving them over a network connection is up to the
  caller.
- It does not send push messages itself: it hands `PushMessage` objects to
  the push client it is given.
- It has no ready-made function that builds and connects all the services;
  they are put together as shown above.

## Tests

The tests use pytest, installed with the `test` extra:

```
pip install -e .[test]
pytest
```