# services/parser.py
import logging
from typing import Any

from pydantic import ValidationError

from marcha.models.payment_model import PaymentEvent
from marcha.services.errors import MalformedPayload

logger = logging.getLogger("marcha.reconcile")


def _describe(error: ValidationError) -> str:
    fields = []
    for err in error.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "payload"
        fields.append(f"{loc}: {err['msg']}")
    return "; ".join(fields)


def parse_notification(payload: Any) -> PaymentEvent:
    """
    Validate a decoded notification body and normalize it into a PaymentEvent.
    Raises MalformedPayload when a required field is missing or has the wrong shape.
    """
    if not isinstance(payload, dict):
        raise MalformedPayload(f"Notification body must be a JSON object, got {type(payload).__name__}")

    try:
        return PaymentEvent.model_validate({**payload, "raw": payload})
    except ValidationError as e:
        order_id = payload.get("order_id") if isinstance(payload.get("order_id"), str) else None
        raise MalformedPayload(f"Invalid notification: {_describe(e)}", order_id=order_id) from e
