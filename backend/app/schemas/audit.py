"""
Versioned audit payloads stored in `order_history.audit_data`.

Three eras of payload exist in stored history:

  current: {"schema": "order_snapshot.v2", "orderSnapshot": {...}}
  legacy:  {"orderData": {...}}
  direct:  {...}  (the snapshot itself)

Writers only ever produce the current shape. Readers go through
`parse_audit_payload`, which dispatches on the tag instead of guessing.
"""

import json
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from app.core.logging import get_logger
from app.domain.orders import DinnerMode

logger = get_logger(__name__)

CURRENT_SCHEMA = "order_snapshot.v2"


class OrderSnapshot(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[int] = None
    inhabitant_id: int
    dinner_event_id: int
    dinner_mode: Optional[DinnerMode] = None
    state: Optional[str] = None
    ticket_price_id: Optional[int] = None
    price_at_booking: Optional[int] = None
    is_guest_ticket: bool = False
    booked_by_user_id: Optional[int] = None


class CurrentAuditPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schema_version: Literal["order_snapshot.v2"] = Field(CURRENT_SCHEMA, alias="schema")
    order_snapshot: OrderSnapshot = Field(alias="orderSnapshot")
    changes: dict[str, Any] = Field(default_factory=dict)


class LegacyAuditPayload(BaseModel):
    order_data: OrderSnapshot = Field(alias="orderData")


def build_audit_payload(snapshot: OrderSnapshot, changes: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    payload = CurrentAuditPayload(orderSnapshot=snapshot, changes=changes or {})
    return payload.model_dump(mode="json", by_alias=True)


def parse_audit_payload(data: Union[str, dict, None]) -> Optional[OrderSnapshot]:
    """Snapshot from any payload era, or None when it cannot be read."""
    if data is None:
        return None
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError:
            logger.warning("audit_payload_not_json")
            return None
    if not isinstance(data, dict):
        return None

    try:
        if "orderSnapshot" in data:
            return CurrentAuditPayload.model_validate(data).order_snapshot
        if "orderData" in data:
            return LegacyAuditPayload.model_validate(data).order_data
        return OrderSnapshot.model_validate(data)
    except ValidationError as e:
        logger.warning("audit_payload_invalid", errors=e.error_count())
        return None
