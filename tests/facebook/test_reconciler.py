"""Tests for catalog_manager/facebook/reconciler.py"""

import json

import pytest

from catalog_manager.facebook.errors import BatchError
from catalog_manager.facebook.reconciler import partition, reconcile
from catalog_manager.models.batch import BatchSubResponse


def _ok(body):
    return BatchSubResponse.from_raw({"code": 200, "body": json.dumps(body)})


def _fail(message, code=100, status=400):
    body = {"error": {"message": message, "type": "OAuthException", "code": code}}
    return BatchSubResponse.from_raw({"code": status, "body": json.dumps(body)})


SKUS = ["100001", "100002", "100003", "100004", "100005"]


class TestReconcile:
    def test_all_successes_return_bodies_in_order(self):
        responses = [_ok({"id": str(i)}) for i in range(3)]
        assert reconcile(responses, ["a", "b", "c"], "add products") == [
            {"id": "0"}, {"id": "1"}, {"id": "2"},
        ]

    def test_reports_exactly_the_failed_positions(self):
        responses = [
            _ok({"id": "0"}),
            _fail("Invalid price"),
            _ok({"id": "2"}),
            _fail("Image could not be downloaded"),
            _ok({"id": "4"}),
        ]

        with pytest.raises(BatchError) as excinfo:
            reconcile(responses, SKUS, "add products")

        error = excinfo.value
        assert error.failed_identifiers == ["100002", "100004"]
        assert [f.index for f in error.failures] == [1, 3]
        assert error.total == 5
        assert error.succeeded == [("100001", {"id": "0"}), ("100003", {"id": "2"}), ("100005", {"id": "4"})]
        message = str(error)
        assert "2 of 5 sub-requests failed during add products" in message
        assert "Invalid price" in message and "Image could not be downloaded" in message
        for sku in ("100001", "100003", "100005"):
            assert sku not in message
        assert not error.is_auth_error

    def test_auth_failure_flagged_among_successes(self):
        responses = [_ok({}), _fail("Error validating access token", code=190, status=401), _ok({})]

        with pytest.raises(BatchError) as excinfo:
            reconcile(responses, ["a", "b", "c"], "delete products")

        assert excinfo.value.is_auth_error

    def test_malformed_element_attributed_to_its_input(self):
        responses = [_ok({}), BatchSubResponse.from_raw(None)]

        with pytest.raises(BatchError) as excinfo:
            reconcile(responses, ["set-1", "set-2"], "read set members")

        assert excinfo.value.failed_identifiers == ["set-2"]

    def test_identify_maps_inputs(self):
        with pytest.raises(BatchError) as excinfo:
            reconcile([_fail("nope")], [{"sku": "9"}], "add products", identify=lambda item: item["sku"])
        assert excinfo.value.failed_identifiers == ["9"]

    def test_length_mismatch_raises(self):
        with pytest.raises(ValueError):
            reconcile([_ok({})], ["a", "b"], "delete products")


class TestPartition:
    def test_splits_successes_and_failures(self):
        successes, failures = partition([_ok({"id": "1"}), _fail("gone")], ["1", "2"])
        assert successes == [("1", {"id": "1"})]
        assert [f.identifier for f in failures] == ["2"]
        assert failures[0].error.message == "gone"
