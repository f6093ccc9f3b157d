"""Order fulfillment workflow: five coupled status fields.

Each status type maps to one Order attribute and its enum. Updates set
exactly that field, plus at most one dependent field taken from the
CASCADES table:

    paymentStatus      = PAID      ->  shippedToUsStatus         = PROCESSING
    shippedToBdStatus  = COMPLETE  ->  domesticFulfillmentStatus = PROCESSING

Validation happens before any attribute is touched, so a rejected update
leaves the order unmodified.
"""

import enum
from dataclasses import dataclass
from typing import Any, Optional

from libs.common.logging import get_logger
from services.shop_service.models import (
    DeliveredStatus,
    DomesticFulfillmentStatus,
    Order,
    PaymentStatus,
    ShippedToBdStatus,
    ShippedToUsStatus,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class StatusField:
    attribute: str
    enum_cls: type[enum.Enum]
    label: str


STATUS_FIELDS: dict[str, StatusField] = {
    "paymentStatus": StatusField("payment_status", PaymentStatus, "payment status"),
    "shippedToUsStatus": StatusField(
        "shipped_to_us_status", ShippedToUsStatus, "shipped to US status"
    ),
    "shippedToBdStatus": StatusField(
        "shipped_to_bd_status", ShippedToBdStatus, "shipped to BD status"
    ),
    "domesticFulfillmentStatus": StatusField(
        "domestic_fulfillment_status",
        DomesticFulfillmentStatus,
        "domestic fulfillment status",
    ),
    "deliveredStatus": StatusField("delivered_status", DeliveredStatus, "delivered status"),
}

# (statusType, value) -> (dependent statusType, value)
CASCADES: dict[tuple[str, enum.Enum], tuple[str, enum.Enum]] = {
    ("paymentStatus", PaymentStatus.PAID): (
        "shippedToUsStatus",
        ShippedToUsStatus.PROCESSING,
    ),
    ("shippedToBdStatus", ShippedToBdStatus.COMPLETE): (
        "domesticFulfillmentStatus",
        DomesticFulfillmentStatus.PROCESSING,
    ),
}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class WorkflowError(ValueError):
    """Base class for rejected workflow operations."""

    status_code = 400


class InvalidStatusTypeError(WorkflowError):
    def __init__(self, status_type: Any):
        self.status_type = status_type
        super().__init__(
            "Invalid statusType. Supported: " + ", ".join(STATUS_FIELDS)
        )


class InvalidStatusValueError(WorkflowError):
    def __init__(self, status_type: str, value: Any):
        self.status_type = status_type
        self.value = value
        valid = ", ".join(member.value for member in STATUS_FIELDS[status_type].enum_cls)
        super().__init__(f"Invalid {status_type} value: {value}. Valid values: {valid}")


class StatusMismatchError(WorkflowError):
    """An operation requires the order to be in a specific workflow state."""

    def __init__(self, action: str, status_type: str, required: list[str], current: str):
        self.action = action
        self.status_type = status_type
        self.required = required
        self.current = current
        label = STATUS_FIELDS[status_type].label
        super().__init__(
            f"{action} can only be sent when {label} is {' or '.join(required)}. "
            f"Current status: {current}"
        )


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def validate_status_update(status_type: Any, value: Any) -> enum.Enum:
    """Return the enum member for ``value`` or raise before anything is mutated."""
    field = STATUS_FIELDS.get(status_type) if isinstance(status_type, str) else None
    if field is None:
        raise InvalidStatusTypeError(status_type)
    try:
        return field.enum_cls(value)
    except ValueError:
        raise InvalidStatusValueError(status_type, value) from None


def plan_status_update(status_type: str, value: Any) -> dict[str, enum.Enum]:
    """
    Compute the field writes for an update without touching any order.

    Returns statusType -> new value: the requested field first, then the
    cascaded field when a rule applies.
    """
    member = validate_status_update(status_type, value)
    plan: dict[str, enum.Enum] = {status_type: member}
    cascade = CASCADES.get((status_type, member))
    if cascade is not None:
        dependent_type, dependent_value = cascade
        plan[dependent_type] = dependent_value
    return plan


def apply_status_update(order: Order, status_type: str, value: Any) -> dict[str, str]:
    """
    Apply a validated status update (and its cascade) to ``order``.

    Returns the written fields as {statusType: value}.
    """
    plan = plan_status_update(status_type, value)
    for planned_type, planned_value in plan.items():
        setattr(order, STATUS_FIELDS[planned_type].attribute, planned_value)

    logger.info(
        f"Order {order.id} workflow update: {status_type}={plan[status_type].value}",
        extra={"extra_fields": {"updated_fields": {k: v.value for k, v in plan.items()}}},
    )
    return {k: v.value for k, v in plan.items()}


def get_status(order: Order, status_type: str) -> Optional[str]:
    current = getattr(order, STATUS_FIELDS[status_type].attribute)
    return current.value if isinstance(current, enum.Enum) else current


def require_status(order: Order, status_type: str, required: list[Any], action: str) -> None:
    """Raise StatusMismatchError unless the order's field is one of ``required``."""
    allowed = [r.value if isinstance(r, enum.Enum) else str(r) for r in required]
    current = get_status(order, status_type)
    if current not in allowed:
        raise StatusMismatchError(action, status_type, allowed, str(current))


def workflow_snapshot(order: Order) -> dict[str, Optional[str]]:
    return {status_type: get_status(order, status_type) for status_type in STATUS_FIELDS}
