"""In-process hub that routes socket messages to connected clients by room."""

from __future__ import annotations

import enum
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any

_log = logging.getLogger(__name__)

SEND_BUFFER = 256
DEFAULT_ROOM = "room1"


@dataclass
class MessageSocket:
    """A message travelling over the socket hub."""

    type: str = ""
    method: str = ""
    sender: str = ""
    recipient: str = ""
    content: Any = None
    id: str = ""
    service: str = ""


class Client:
    """A connected peer with a bounded outgoing message buffer."""

    def __init__(
        self,
        user_id: str,
        room_id: str,
        services: Any = None,
        buffer_size: int = SEND_BUFFER,
    ) -> None:
        self.user_id = user_id
        self.room_id = room_id
        self.services = services
        self._queue: queue.Queue[MessageSocket] = queue.Queue(maxsize=buffer_size)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def offer(self, message: MessageSocket) -> bool:
        """Queue a message without blocking; False if closed or the buffer is full."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(message)
        except queue.Full:
            return False
        return True

    def receive(self, timeout: float | None = None) -> MessageSocket | None:
        """Next queued message, or None once closed and drained or on timeout."""
        if timeout is not None:
            try:
                return self._queue.get(timeout=timeout)
            except queue.Empty:
                return None
        while True:
            try:
                return self._queue.get(timeout=0.1)
            except queue.Empty:
                if self.closed:
                    return None

    def close(self) -> None:
        """Stop accepting messages; the writer ends after draining the buffer."""
        self._closed.set()


class _Event(enum.Enum):
    REGISTER = enum.auto()
    UNREGISTER = enum.auto()
    BROADCAST = enum.auto()
    STOP = enum.auto()


class Hub:
    """Holds clients grouped by room and delivers messages to them."""

    def __init__(self) -> None:
        self._clients: dict[str, set[Client]] = {}
        self._events: queue.Queue[tuple[_Event, Any]] = queue.Queue()
        self._lock = threading.RLock()

    def clients_in(self, room_id: str) -> frozenset[Client]:
        with self._lock:
            return frozenset(self._clients.get(room_id, ()))

    def register(self, client: Client) -> None:
        self._events.put((_Event.REGISTER, client))

    def unregister(self, client: Client) -> None:
        self._events.put((_Event.UNREGISTER, client))

    def broadcast(self, message: MessageSocket) -> None:
        self._events.put((_Event.BROADCAST, message))

    def run(self) -> None:
        """Process queued register, unregister and broadcast events until stopped."""
        while True:
            kind, payload = self._events.get()
            if kind is _Event.STOP:
                return
            if kind is _Event.REGISTER:
                self.register_new_client(payload)
            elif kind is _Event.UNREGISTER:
                self.remove_client(payload)
            else:
                self.handle_message(payload)

    def stop(self) -> None:
        self._events.put((_Event.STOP, None))

    def register_new_client(self, client: Client) -> None:
        with self._lock:
            room = self._clients.setdefault(client.room_id, set())
            room.add(client)
            _log.debug("registered client, room %s has %d", client.room_id, len(room))

    def remove_client(self, client: Client) -> None:
        with self._lock:
            room = self._clients.get(client.room_id)
        if room is None:
            return
        try:
            user = client.services.user.update_user(client.user_id, {"online": False})
        except Exception:  # the client goes away whatever the user store says
            _log.debug("could not mark user %s offline", client.user_id, exc_info=True)
        else:
            self.handle_message(
                MessageSocket(
                    type="message",
                    sender=client.user_id,
                    recipient="",
                    content=user,
                    id=DEFAULT_ROOM,
                    service="user",
                )
            )
        with self._lock:
            room.discard(client)
        client.close()
        _log.debug("removed client %s", client.user_id)

    def _deliver(self, room_id: str, message: MessageSocket, targets: list[Client]) -> None:
        for client in targets:
            if not client.offer(message):
                client.close()
                with self._lock:
                    self._clients.get(room_id, set()).discard(client)

    def handle_message(self, message: MessageSocket) -> None:
        """Deliver a message according to its type."""
        if message.type in ("message", "error"):
            targets = [
                client
                for client in self.clients_in(message.id)
                if message.recipient in ("", client.user_id)
            ]
            self._deliver(message.id, message, targets)
        if message.type == "notification":
            _log.debug("notification: %r", message.content)
            self._deliver(message.recipient, message, list(self.clients_in(message.recipient)))