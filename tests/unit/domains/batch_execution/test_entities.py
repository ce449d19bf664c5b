"""Tests for batch_execution entities."""
from nowmcp.domains.batch_execution.entities import (
    BatchResult,
    CreateOperation,
    OperationError,
    UpdateOperation,
)


class TestCreateOperation:
    def test_display_name(self):
        assert CreateOperation(0, "incident", {}).display_name == "create incident"
        assert CreateOperation(0, "incident", {}, save_as="inc").display_name == (
            "create incident as inc"
        )

    def test_to_dict(self):
        op = CreateOperation(1, "incident", {"short_description": "x"}, save_as="inc")
        assert op.to_dict() == {
            "index": 1,
            "table": "incident",
            "data": {"short_description": "x"},
            "saveAs": "inc",
        }

    def test_to_dict_without_save_as(self):
        assert "saveAs" not in CreateOperation(0, "incident", {}).to_dict()


class TestUpdateOperation:
    def test_display_name(self):
        assert UpdateOperation(0, "incident", "abc", {}).display_name == "update incident/abc"

    def test_to_dict(self):
        d = UpdateOperation(2, "incident", "abc", {"state": "2"}).to_dict()
        assert d == {"index": 2, "table": "incident", "sysId": "abc", "data": {"state": "2"}}


class TestOperationError:
    def test_to_dict_create(self):
        d = OperationError(1, "incident", "Invalid table").to_dict()
        assert d == {"operation_index": 1, "table": "incident", "error": "Invalid table"}

    def test_to_dict_update_includes_sys_id(self):
        d = OperationError(0, "incident", "Not found", record_id="abc").to_dict()
        assert d["sys_id"] == "abc"


class TestBatchResult:
    def test_create_to_dict(self):
        result = BatchResult(
            batch_id="batch_1",
            kind="create",
            success=False,
            count=1,
            total=3,
            generated_ids={"p": "sys1"},
            errors=(OperationError(1, "child", "boom"),),
            elapsed_ms=12,
        )
        d = result.to_dict()
        assert d["success"] is False
        assert d["created_count"] == 1
        assert d["total"] == 3
        assert d["sys_ids"] == {"p": "sys1"}
        assert d["errors"] == [{"operation_index": 1, "table": "child", "error": "boom"}]
        assert d["execution_time_ms"] == 12
        assert "updated_count" not in d

    def test_update_to_dict(self):
        d = BatchResult(batch_id="b", kind="update", success=True, count=2, total=2).to_dict()
        assert d["updated_count"] == 2
        assert "sys_ids" not in d
        assert d["errors"] == []

    def test_error_indexes(self):
        result = BatchResult(
            batch_id="b",
            kind="update",
            success=False,
            count=1,
            total=3,
            errors=(OperationError(0, "t", "x"), OperationError(2, "t", "y")),
        )
        assert result.error_indexes == [0, 2]
