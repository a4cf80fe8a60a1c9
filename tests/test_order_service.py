import pytest
from bson import ObjectId

from kingwood.hub import Client, Hub
from kingwood.order_service import NEW_ORDER_TITLE, OrderService, completion_status


class FakeRepo:
    def __init__(self, **responses):
        self.calls = []
        self.responses = responses

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)

        def method(*args):
            self.calls.append((name, args))
            response = self.responses.get(name)
            return response(*args) if callable(response) else response

        return method

    def called(self, name):
        return [args for called_name, args in self.calls if called_name == name]


class Services:
    pass


USER = str(ObjectId())


def _hub():
    hub = Hub()
    client = Client("watcher", "room1")
    hub.register_new_client(client)
    return hub, client


def test_completion_status():
    done = {"stolyarComplete": 1, "malyarComplete": 1, "montajComplete": 1}
    assert completion_status(done) == 100
    assert completion_status({**done, "montajComplete": 0}) == 1
    assert completion_status({"stolyarComplete": 1}) == 1


def test_create_order_rejects_bad_user_id():
    repo = FakeRepo()
    with pytest.raises(ValueError):
        OrderService(repo).create_order("nope", {})
    assert repo.called("create_order") == []


def test_create_order_notifies_managers():
    services = Services()
    services.role = FakeRepo(find_role={"data": [{"_id": "r1"}, {"_id": "r2"}]})
    services.user = FakeRepo(find_user={"data": [{"_id": "a"}, {"_id": "b"}]})
    services.notify = FakeRepo()
    order = {"_id": "o1", "name": "Kitchen", "object": {"name": "House"}}
    service = OrderService(FakeRepo(create_order=order), services=services)

    assert service.create_order(USER, {"name": "Kitchen"}) == order
    assert services.role.called("find_role") == [({"code": ["admin", "boss"]},)]
    assert services.user.called("find_user") == [({"roleId": ["r1", "r2"]},)]
    notices = services.notify.called("create_notify")
    assert [notice["userTo"] for _, notice in notices] == ["a", "b"]
    assert all(sender == USER and notice["title"] == NEW_ORDER_TITLE for sender, notice in notices)
    assert "Kitchen" in notices[0][1]["message"]


def test_create_order_without_roles_skips_users():
    services = Services()
    services.role = FakeRepo(find_role={"data": []})
    services.user = FakeRepo()
    services.notify = FakeRepo()
    service = OrderService(FakeRepo(create_order={"_id": "o1"}), services=services)

    assert service.create_order(USER, {}) == {"_id": "o1"}
    assert services.user.called("find_user") == []
    assert services.notify.called("create_notify") == []


def test_update_order_recomputes_status_on_completion_flags():
    hub, client = _hub()
    state = {"_id": "o1", "stolyarComplete": 1, "malyarComplete": 1, "montajComplete": 1}

    def update(order_id, user_id, data):
        state.update(data)
        return dict(state)

    repo = FakeRepo(update_order=update)
    result = OrderService(repo, hub=hub).update_order("o1", USER, {"montajComplete": 1})

    assert result["status"] == 100
    assert [args[2] for args in repo.called("update_order")] == [{"montajComplete": 1}, {"status": 100}]
    message = client.receive(timeout=0.5)
    assert (message.method, message.service, message.content) == ("PATCH", "order", result)


def test_update_order_without_flags_updates_once():
    hub, _ = _hub()
    repo = FakeRepo(update_order=lambda oid, uid, data: {"_id": oid, **data})
    result = OrderService(repo, hub=hub).update_order("o1", USER, {"name": "New"})
    assert result == {"_id": "o1", "name": "New"}
    assert len(repo.called("update_order")) == 1


def test_delete_order_cascades():
    hub, client = _hub()
    services = Services()
    services.image = FakeRepo(find_image={"data": [{"_id": "i1"}]})
    services.task_worker = FakeRepo(find_task_worker_populate={"data": [{"_id": "tw1"}, {"_id": "tw2"}]})

    def fail(*_):
        raise RuntimeError("gone")

    services.task = FakeRepo(find_task_populate={"data": [{"_id": "t1"}]}, delete_task=fail)
    repo = FakeRepo(delete_order={"_id": "o1"})

    result = OrderService(repo, hub=hub, services=services).delete_order("o1", USER)

    assert result == {"_id": "o1"}
    assert services.image.called("delete_image") == [("i1",)]
    assert services.task_worker.called("find_task_worker_populate") == [({"orderId": ["o1"]},)]
    assert services.task_worker.called("delete_task_worker") == [("tw1", USER, False), ("tw2", USER, False)]
    assert services.task.called("delete_task") == [("t1", USER, False)]
    assert repo.called("delete_order") == [("o1",)]
    assert client.receive(timeout=0.5).method == "DELETE"