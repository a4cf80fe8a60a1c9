"""Notices to users, delivered over the socket hub and as mobile push messages."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .hub import DEFAULT_ROOM, MessageSocket

PUSH_TOKEN_PREFIXES = ("ExponentPushToken[", "ExpoPushToken[")
DEFAULT_PRIORITY = "default"
DEFAULT_SOUND = "default"


def _field(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def _validate_push_token(token: str) -> str:
    if not token.startswith(PUSH_TOKEN_PREFIXES) or not token.endswith("]"):
        raise ValueError(f"invalid push token: {token!r}")
    return token


@dataclass
class PushMessage:
    """A push notification addressed to one or more device tokens."""

    to: list[str]
    body: str = ""
    title: str = ""
    data: dict[str, str] = field(default_factory=lambda: {"withSome": "data"})
    sound: str = DEFAULT_SOUND
    priority: str = DEFAULT_PRIORITY


@dataclass
class NotifyService:
    """Stores notices and delivers them to their recipient.

    A notice goes to the recipient's socket connections and, when the
    recipient has a push token and a push client is configured, to the
    recipient's device through ``push_client.publish(PushMessage)``.
    """

    repo: Any
    hub: Any = None
    services: Any = None
    push_client: Any = None

    def find_notify_populate(self, query):
        return self.repo.find_notify_populate(query)

    def create_notify(self, user_id, data):
        """Store a notice, send it over the hub and push it to the recipient's device."""
        result = self.repo.create_notify(user_id, data)
        recipient = str(_field(result, "userTo"))
        self.hub.handle_message(
            MessageSocket(
                type="message",
                method="CREATE",
                sender=user_id,
                recipient=recipient,
                content=result,
                id=DEFAULT_ROOM,
                service="notify",
            )
        )

        user = self.services.user.get_user(recipient)
        push_token = _field(_field(user, "authPrivate") or {}, "pushToken") or ""
        if push_token:
            push_token = _validate_push_token(push_token)
            if self.push_client is not None:
                self.push_client.publish(
                    PushMessage(
                        to=[push_token],
                        body=_field(result, "message", ""),
                        title=_field(result, "title", ""),
                    )
                )
        return result

    def update_notify(self, item_id, user_id, data):
        return self.repo.update_notify(item_id, user_id, data)

    def delete_notify(self, item_id):
        return self.repo.delete_notify(item_id)