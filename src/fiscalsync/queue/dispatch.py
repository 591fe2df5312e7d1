"""Routing of offline operations to the services that replay them.

Each operation type maps to one method on one collaborator; every method
receives the operation's payload. CANCEL_DOCUMENT picks the collaborator by
the payload's ``documentType``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from fiscalsync.core.errors import DispatchError
from fiscalsync.queue.operation import OfflineOperation, OperationType


class EInvoiceService(Protocol):
    async def generate_einvoice(self, payload: dict[str, Any]) -> Any: ...

    async def cancel_einvoice(self, payload: dict[str, Any]) -> Any: ...


class EWayBillService(Protocol):
    async def generate_ewaybill(self, payload: dict[str, Any]) -> Any: ...

    async def cancel_ewaybill(self, payload: dict[str, Any]) -> Any: ...

    async def update_vehicle_details(self, payload: dict[str, Any]) -> Any: ...


class TDSService(Protocol):
    async def calculate_tds(self, payload: dict[str, Any]) -> Any: ...


@dataclass
class QueueServices:
    """Collaborators used to replay queued operations.

    Any of them may be omitted; replaying an operation whose collaborator is
    missing fails with DispatchError.
    """

    einvoice: EInvoiceService | None = None
    ewaybill: EWayBillService | None = None
    tds: TDSService | None = None

    @classmethod
    def coerce(cls, services: QueueServices | Mapping[str, Any] | None) -> QueueServices:
        """Accept a QueueServices or a mapping keyed by field name.

        Raises:
            DispatchError: If the mapping has keys other than the field names.
        """
        if services is None:
            return cls()
        if isinstance(services, QueueServices):
            return services
        unknown = set(services) - {"einvoice", "ewaybill", "tds"}
        if unknown:
            raise DispatchError(f"Unknown service keys: {', '.join(sorted(unknown))}")
        return cls(**services)


# (service attribute, method name) per operation type
ROUTES: dict[OperationType, tuple[str, str]] = {
    OperationType.E_INVOICE_GENERATE: ("einvoice", "generate_einvoice"),
    OperationType.E_WAY_BILL_GENERATE: ("ewaybill", "generate_ewaybill"),
    OperationType.TDS_CALCULATE: ("tds", "calculate_tds"),
    OperationType.UPDATE_VEHICLE: ("ewaybill", "update_vehicle_details"),
}

CANCEL_ROUTES: dict[str, tuple[str, str]] = {
    "E_INVOICE": ("einvoice", "cancel_einvoice"),
    "E_WAY_BILL": ("ewaybill", "cancel_ewaybill"),
}


def resolve_route(operation: OfflineOperation) -> tuple[str, str]:
    """Return ``(service, method)`` for an operation.

    Raises:
        DispatchError: If the type (or cancelled document type) is unknown.
    """
    op_type = operation.type
    if op_type == OperationType.CANCEL_DOCUMENT:
        document_type = operation.payload.get("documentType")
        route = CANCEL_ROUTES.get(str(document_type))
        if route is None:
            raise DispatchError(f"Unknown document type for cancellation: {document_type}")
        return route

    try:
        return ROUTES[OperationType(op_type)]
    except (KeyError, ValueError):
        type_name = getattr(op_type, "value", op_type)
        raise DispatchError(f"Unknown operation type: {type_name}") from None


async def execute_operation(
    operation: OfflineOperation,
    services: QueueServices | Mapping[str, Any] | None,
) -> Any:
    """Replay one operation against its collaborator.

    Returns:
        Whatever the collaborator returns.

    Raises:
        DispatchError: If the operation cannot be routed.
        Exception: Any failure raised by the collaborator, unchanged.
    """
    service_name, method_name = resolve_route(operation)
    service = getattr(QueueServices.coerce(services), service_name)
    if service is None:
        raise DispatchError(f"{service_name} service not provided")
    method = getattr(service, method_name, None)
    if method is None:
        raise DispatchError(f"{service_name} service has no method {method_name}")
    return await method(operation.payload)
