"""Tests for operation routing to collaborator services."""

from unittest.mock import AsyncMock

import pytest

from fiscalsync.core.errors import DispatchError, ErrorCategory, categorize_error
from fiscalsync.queue import (
    OfflineOperation,
    OperationType,
    QueueServices,
    execute_operation,
    resolve_route,
)


class TestResolveRoute:
    @pytest.mark.parametrize(
        ("op_type", "expected"),
        [
            (OperationType.E_INVOICE_GENERATE, ("einvoice", "generate_einvoice")),
            (OperationType.E_WAY_BILL_GENERATE, ("ewaybill", "generate_ewaybill")),
            (OperationType.TDS_CALCULATE, ("tds", "calculate_tds")),
            (OperationType.UPDATE_VEHICLE, ("ewaybill", "update_vehicle_details")),
        ],
    )
    def test_direct_routes(self, op_type, expected):
        op = OfflineOperation(type=op_type, target_id="v")
        assert resolve_route(op) == expected

    def test_cancel_routes_by_document_type(self):
        einv = OfflineOperation(type=OperationType.CANCEL_DOCUMENT, target_id="v",
                                payload={"documentType": "E_INVOICE"})
        ewb = OfflineOperation(type=OperationType.CANCEL_DOCUMENT, target_id="v",
                               payload={"documentType": "E_WAY_BILL"})
        assert resolve_route(einv) == ("einvoice", "cancel_einvoice")
        assert resolve_route(ewb) == ("ewaybill", "cancel_ewaybill")

    def test_cancel_without_document_type(self):
        op = OfflineOperation(type=OperationType.CANCEL_DOCUMENT, target_id="v", payload={})
        with pytest.raises(DispatchError, match="document type"):
            resolve_route(op)

    def test_unknown_type(self):
        op = OfflineOperation.model_construct(
            id="op-1", type="UNKNOWN_TYPE", payload={}, target_id="v", retry_count=0, max_retries=3
        )
        with pytest.raises(DispatchError, match="Unknown operation type: UNKNOWN_TYPE"):
            resolve_route(op)


@pytest.mark.asyncio
class TestExecuteOperation:
    async def test_passes_payload_and_returns_result(self):
        einvoice = AsyncMock()
        einvoice.generate_einvoice.return_value = {"status": "GENERATED"}
        op = OfflineOperation(type=OperationType.E_INVOICE_GENERATE, target_id="test-123",
                              payload={"voucherId": "test-123"})

        result = await execute_operation(op, QueueServices(einvoice=einvoice))

        assert result == {"status": "GENERATED"}
        einvoice.generate_einvoice.assert_awaited_once_with({"voucherId": "test-123"})

    async def test_missing_service(self):
        op = OfflineOperation(type=OperationType.E_INVOICE_GENERATE, target_id="test-123")
        with pytest.raises(DispatchError, match="einvoice service not provided"):
            await execute_operation(op, {})

    async def test_none_services(self):
        op = OfflineOperation(type=OperationType.TDS_CALCULATE, target_id="v")
        with pytest.raises(DispatchError):
            await execute_operation(op, None)

    async def test_service_errors_propagate_unchanged(self):
        error = RuntimeError("upstream exploded")
        tds = AsyncMock()
        tds.calculate_tds.side_effect = error
        op = OfflineOperation(type=OperationType.TDS_CALCULATE, target_id="v")

        with pytest.raises(RuntimeError) as exc_info:
            await execute_operation(op, {"tds": tds})
        assert exc_info.value is error

    async def test_unknown_service_key_rejected(self):
        op = OfflineOperation(type=OperationType.TDS_CALCULATE, target_id="v")
        with pytest.raises(DispatchError, match="Unknown service keys: gst"):
            await execute_operation(op, {"gst": AsyncMock()})


def test_dispatch_errors_are_not_retryable():
    assert categorize_error(DispatchError("x")) == ErrorCategory.VALIDATION
