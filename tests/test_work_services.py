import pytest
from bson import ObjectId

from kingwood.work_services import (
    ObjectService,
    OperationService,
    PayTemplateService,
    TaskStatusService,
    WorkHistoryService,
    require_object_id,
)

VALID_ID = "65a1b2c3d4e5f60718293a4b"


class Recorder:
    def __init__(self):
        self.calls = []

    def __getattr__(self, name):
        if name.startswith("__"):
            raise AttributeError(name)

        def method(*args):
            self.calls.append((name, args))
            return {"method": name, "args": args}

        return method


def test_require_object_id_parses_hex():
    oid = require_object_id(VALID_ID)
    assert isinstance(oid, ObjectId)
    assert str(oid) == VALID_ID


def test_require_object_id_passes_object_id_through():
    oid = ObjectId(VALID_ID)
    assert require_object_id(oid) is oid


@pytest.mark.parametrize("value", ["", "xyz", "65a1b2c3d4e5f60718293a4", "zz" * 12, None, 12])
def test_require_object_id_rejects_invalid(value):
    with pytest.raises(ValueError):
        require_object_id(value)


@pytest.mark.parametrize(
    "service_cls, method",
    [
        (OperationService, "create_operation"),
        (WorkHistoryService, "create_work_history"),
        (ObjectService, "create_object"),
    ],
)
def test_create_rejects_bad_user_id_without_touching_repo(service_cls, method):
    repo = Recorder()
    service = service_cls(repo)
    with pytest.raises(ValueError):
        getattr(service, method)("not-an-id", {"name": "x"})
    assert repo.calls == []


@pytest.mark.parametrize(
    "service_cls, method",
    [
        (OperationService, "create_operation"),
        (WorkHistoryService, "create_work_history"),
        (ObjectService, "create_object"),
        (PayTemplateService, "create_pay_template"),
        (TaskStatusService, "create_task_status"),
    ],
)
def test_create_delegates_to_repo(service_cls, method):
    repo = Recorder()
    service = service_cls(repo)
    data = {"name": "item"}
    result = getattr(service, method)(VALID_ID, data)
    assert result == {"method": method, "args": (VALID_ID, data)}
    assert repo.calls == [(method, (VALID_ID, data))]


@pytest.mark.parametrize(
    "service_cls, method, args",
    [
        (OperationService, "find_operation", ({"filter": {}},)),
        (OperationService, "update_operation", ("a", VALID_ID, {"name": "n"})),
        (OperationService, "delete_operation", ("a",)),
        (PayTemplateService, "find_pay_template", ({"filter": {}},)),
        (PayTemplateService, "update_pay_template", ("a", VALID_ID, {"name": "n"})),
        (PayTemplateService, "delete_pay_template", ("a",)),
        (TaskStatusService, "find_task_status", ({"filter": {}},)),
        (TaskStatusService, "update_task_status", ("a", VALID_ID, {"status": "wait"})),
        (TaskStatusService, "delete_task_status", ("a",)),
        (WorkHistoryService, "find_work_history", ({"status": 0},)),
        (WorkHistoryService, "find_work_history_populate", ({"status": 0},)),
        (WorkHistoryService, "update_work_history", ("a", VALID_ID, {"status": 1})),
        (WorkHistoryService, "delete_work_history", ("a",)),
        (ObjectService, "find_object", ({"name": "x"},)),
        (ObjectService, "update_object", ("a", VALID_ID, {"name": "n"})),
        (ObjectService, "delete_object", ("a",)),
    ],
)
def test_other_methods_delegate(service_cls, method, args):
    repo = Recorder()
    service = service_cls(repo)
    result = getattr(service, method)(*args)
    assert result == {"method": method, "args": args}
    assert repo.calls == [(method, args)]