"""Offline operation model and its persisted JSON form.

An OfflineOperation records one business action that could not complete
synchronously. It is persisted inside the queue's JSON array as:

    {
      "id": "6f1c...",
      "type": "E_INVOICE_GENERATE",
      "payload": {"voucherId": "v-123"},
      "voucherId": "v-123",
      "createdAt": "2024-01-01T00:00:00+00:00",
      "retryCount": 0,
      "maxRetries": 3
    }

``targetId`` is accepted in place of ``voucherId`` when reading.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)

from fiscalsync.core.constants import DEFAULT_OPERATION_MAX_RETRIES
from fiscalsync.utils.time import parse_timestamp, utc_now


class OperationType(str, Enum):
    """Business actions that can be deferred to the offline queue."""

    E_INVOICE_GENERATE = "E_INVOICE_GENERATE"
    E_WAY_BILL_GENERATE = "E_WAY_BILL_GENERATE"
    TDS_CALCULATE = "TDS_CALCULATE"
    CANCEL_DOCUMENT = "CANCEL_DOCUMENT"
    UPDATE_VEHICLE = "UPDATE_VEHICLE"


def _new_operation_id() -> str:
    return uuid.uuid4().hex


class OfflineOperation(BaseModel):
    """A deferred business action awaiting replay.

    Only the queue manager changes an operation after it has been enqueued,
    and only ``retry_count``.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: str = Field(default_factory=_new_operation_id, min_length=1)
    type: OperationType
    payload: dict[str, Any] = Field(default_factory=dict)
    target_id: str = Field(
        validation_alias=AliasChoices("target_id", "voucherId", "targetId", "voucher_id"),
        serialization_alias="voucherId",
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        validation_alias=AliasChoices("created_at", "createdAt"),
        serialization_alias="createdAt",
    )
    retry_count: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("retry_count", "retryCount"),
        serialization_alias="retryCount",
    )
    max_retries: int = Field(
        default=DEFAULT_OPERATION_MAX_RETRIES,
        ge=0,
        validation_alias=AliasChoices("max_retries", "maxRetries"),
        serialization_alias="maxRetries",
    )

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_created_at(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_timestamp(value)
        return value

    @field_serializer("created_at")
    def _serialize_created_at(self, value: datetime) -> str:
        return value.isoformat()

    @property
    def type_name(self) -> str:
        return str(getattr(self.type, "value", self.type))

    @property
    def can_retry(self) -> bool:
        """True while a failed replay may be retried."""
        return self.retry_count < self.max_retries

    def to_json(self) -> dict[str, Any]:
        """Serialize to the persisted record form."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> OfflineOperation:
        """Rebuild an operation from its persisted record.

        Raises:
            pydantic.ValidationError: If the record is malformed.
        """
        return cls.model_validate(data)
