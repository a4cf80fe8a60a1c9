import threading

from kingwood.hub import Client, Hub, MessageSocket


class _Users:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def update_user(self, target_id, data):
        self.calls.append((target_id, data))
        if self.fail:
            raise RuntimeError("store down")
        return {"id": target_id, "online": data["online"]}


class _Services:
    def __init__(self, users):
        self.user = users


def _hub_with(*clients):
    hub = Hub()
    for client in clients:
        hub.register_new_client(client)
    return hub


def test_register_groups_by_room():
    a = Client("u1", "room1")
    b = Client("u2", "room2")
    hub = _hub_with(a, b)
    assert hub.clients_in("room1") == {a}
    assert hub.clients_in("room2") == {b}


def test_message_to_recipient_only():
    a = Client("u1", "room1")
    b = Client("u2", "room1")
    hub = _hub_with(a, b)
    msg = MessageSocket(type="message", recipient="u2", id="room1", content="hi")
    hub.handle_message(msg)
    assert b.receive(timeout=0.1) == msg
    assert a.receive(timeout=0.05) is None


def test_empty_recipient_reaches_whole_room_only():
    a = Client("u1", "room1")
    b = Client("u2", "room1")
    c = Client("u3", "other")
    hub = _hub_with(a, b, c)
    msg = MessageSocket(type="error", recipient="", id="room1", content="x")
    hub.handle_message(msg)
    assert a.receive(timeout=0.1) == msg
    assert b.receive(timeout=0.1) == msg
    assert c.receive(timeout=0.05) is None


def test_unknown_type_is_ignored():
    a = Client("u1", "room1")
    hub = _hub_with(a)
    hub.handle_message(MessageSocket(type="jwt", id="room1"))
    assert a.receive(timeout=0.05) is None


def test_notification_uses_recipient_as_room():
    a = Client("u1", "inbox")
    hub = _hub_with(a)
    msg = MessageSocket(type="notification", recipient="inbox", content="n")
    hub.handle_message(msg)
    assert a.receive(timeout=0.1) == msg


def test_full_buffer_drops_client():
    a = Client("u1", "room1", buffer_size=1)
    hub = _hub_with(a)
    hub.handle_message(MessageSocket(type="message", id="room1"))
    hub.handle_message(MessageSocket(type="message", id="room1"))
    assert a.closed
    assert hub.clients_in("room1") == frozenset()


def test_remove_client_marks_offline_and_broadcasts():
    users = _Users()
    a = Client("u1", "room1", services=_Services(users))
    b = Client("u2", "room1")
    hub = _hub_with(a, b)
    hub.remove_client(a)
    assert users.calls == [("u1", {"online": False})]
    got = b.receive(timeout=0.1)
    assert got.content == {"id": "u1", "online": False}
    assert got.sender == "u1"
    assert got.service == "user"
    assert a.closed
    assert hub.clients_in("room1") == {b}


def test_remove_client_failed_update_still_removes():
    a = Client("u1", "room1", services=_Services(_Users(fail=True)))
    b = Client("u2", "room1")
    hub = _hub_with(a, b)
    hub.remove_client(a)
    assert b.receive(timeout=0.05) is None
    assert a.closed
    assert hub.clients_in("room1") == {b}


def test_remove_client_in_unknown_room_is_noop():
    hub = Hub()
    a = Client("u1", "nowhere")
    hub.remove_client(a)
    assert not a.closed


def test_run_processes_events_until_stopped():
    hub = Hub()
    thread = threading.Thread(target=hub.run)
    thread.start()
    a = Client("u1", "room1")
    hub.register(a)
    msg = MessageSocket(type="message", id="room1", content="c")
    hub.broadcast(msg)
    assert a.receive(timeout=2) == msg
    hub.stop()
    thread.join(timeout=2)
    assert not thread.is_alive()


def test_receive_returns_none_after_close_and_drain():
    a = Client("u1", "room1")
    msg = MessageSocket(type="message")
    assert a.offer(msg)
    a.close()
    assert not a.offer(msg)
    assert a.receive() == msg
    assert a.receive() is None