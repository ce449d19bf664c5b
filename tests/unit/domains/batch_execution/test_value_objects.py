"""Tests for batch_execution value objects."""
import pytest

from nowmcp.domains.batch_execution.value_objects import (
    BatchId,
    BatchKind,
    FailurePolicy,
    Placeholder,
)


class TestBatchKind:
    def test_values(self):
        assert BatchKind.CREATE.value == "create"
        assert BatchKind.UPDATE.value == "update"


class TestFailurePolicy:
    def test_create_defaults_to_stop(self):
        assert FailurePolicy.for_create() == FailurePolicy.STOP

    def test_create_non_transactional_continues(self):
        assert FailurePolicy.for_create(transactional=False) == FailurePolicy.CONTINUE

    def test_update_defaults_to_continue(self):
        assert FailurePolicy.for_update() == FailurePolicy.CONTINUE

    def test_update_stop_on_error(self):
        assert FailurePolicy.for_update(stop_on_error=True) == FailurePolicy.STOP


class TestBatchId:
    def test_generate_format(self):
        bid = BatchId.generate()
        assert bid.value.startswith("batch_")
        assert len(bid.value) == len("batch_") + 12

    def test_generate_unique(self):
        assert BatchId.generate() != BatchId.generate()

    def test_empty_rejected(self):
        with pytest.raises(ValueError, match="empty"):
            BatchId("")


class TestPlaceholder:
    def test_find_all_in_order(self):
        refs = Placeholder.find_all("${parent}/${child}")
        assert [r.name for r in refs] == ["parent", "child"]
        assert [r.raw for r in refs] == ["${parent}", "${child}"]

    def test_find_none(self):
        assert Placeholder.find_all("plain text $parent {x}") == []

    def test_empty_braces_ignored(self):
        assert Placeholder.find_all("${}") == []

    def test_whitespace_trimmed_from_name(self):
        (ref,) = Placeholder.find_all("${ parent }")
        assert ref.name == "parent"
        assert ref.raw == "${ parent }"

    def test_blank_name_rejected(self):
        with pytest.raises(ValueError):
            Placeholder(name=" ", raw="${ }")
