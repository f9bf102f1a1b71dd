"""Validation of form payloads before they are posted to the backend.

Field rules live in models/schema.yaml as JSON Schema documents and are checked with
jsonschema. Rules that a schema cannot express (matching passwords, serial
numbers per received line) are checked here. Every validator returns a list of
messages for the user; an empty list means the payload is valid.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml
from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError as SchemaError

from api.errors import ValidationError

from .purchase_order import ReceivingLine
from .retread import RetreadReceipt

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.yaml"


@lru_cache(maxsize=None)
def load_schema(path: Path = SCHEMA_PATH) -> Dict[str, dict]:
    """Load the form schemas from schema.yaml."""
    with open(path) as f:
        return yaml.safe_load(f)


def _lookup(schema: dict, keyword: str) -> Optional[str]:
    message = schema.get("message")
    if isinstance(message, dict):
        return message.get(keyword)
    return message


def _row_number(error: SchemaError) -> Optional[int]:
    for part in error.absolute_path:
        if isinstance(part, int):
            return part + 1
    return None


def _messages(error: SchemaError) -> List[str]:
    if error.validator == "required":
        props = error.schema.get("properties", {})
        messages = []
        for name in error.validator_value:
            if isinstance(error.instance, dict) and name not in error.instance:
                messages.append(
                    _lookup(props.get(name, {}), "required")
                    or _lookup(error.schema, "required")
                    or f"{name.replace('_', ' ').capitalize()} is required"
                )
    else:
        messages = [_lookup(error.schema, error.validator) or error.message]

    row = _row_number(error)
    if row is not None:
        messages = [m.replace("{n}", str(row)) for m in messages]
    return messages


def _unique(messages: Iterable[str]) -> List[str]:
    seen = []
    for message in messages:
        if message not in seen:
            seen.append(message)
    return seen


def schema_errors(form: str, data: Any) -> List[str]:
    """Messages for every schema violation of a form payload."""
    validator = Draft7Validator(load_schema()[form])
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    return _unique(m for error in errors for m in _messages(error))


def require_valid(errors: List[str]) -> None:
    """Raise ValidationError when a validator reported any message."""
    if errors:
        raise ValidationError(errors)


# =============================================================================
# Forms
# =============================================================================


def validate_user_form(
    payload: Dict[str, Any], is_new: bool, confirm_password: Optional[str] = None
) -> List[str]:
    errors = schema_errors("user", payload)
    if is_new:
        password = payload.get("password") or ""
        if not password:
            errors.append("Password is required for new users")
        else:
            errors.extend(schema_errors("new_user_password", payload))
            if password != confirm_password:
                errors.append("Passwords do not match")
    return errors


def validate_role_form(payload: Dict[str, Any]) -> List[str]:
    return schema_errors("role", payload)


def validate_purchase_order(payload: Dict[str, Any]) -> List[str]:
    return schema_errors("purchase_order", payload)


def validate_receiving(lines: List[ReceivingLine], receipt_date: Optional[str]) -> List[str]:
    """
    Check a goods receipt before it is posted.

    Only lines with a quantity to receive are checked; each needs a brand of at
    least two characters and exactly one unique serial number per tire.
    """
    receiving = [line for line in lines if line.current_receive > 0]
    errors = schema_errors(
        "goods_receipt",
        {
            "receipt_date": receipt_date or "",
            "items": [line.to_payload() for line in receiving],
        },
    )

    if any(line.current_receive < 0 for line in lines):
        errors.append("Cannot receive a negative quantity")
    if any(line.current_receive > line.remaining_quantity for line in lines):
        errors.append("Cannot receive more than remaining quantity")

    for line in receiving:
        brand = line.brand.strip()
        if not brand:
            errors.append(f"Please enter brand for {line.size} tires")
            continue
        if len(brand) < 2:
            errors.append(f"Brand name for {line.size} must be at least 2 characters")
            continue

        serials = line.entered_serials
        if len(serials) != line.current_receive:
            errors.append(
                f"Please enter all {line.current_receive} serial numbers for {line.size} {brand}"
            )
        elif len(set(serials)) != len(serials):
            errors.append(f"Duplicate serial numbers found for {line.size} {brand}")

    return errors


def validate_payment(payload: Dict[str, Any]) -> List[str]:
    return schema_errors("payment", payload)


def validate_retirement(payload: Dict[str, Any]) -> List[str]:
    return schema_errors("retirement", payload)


def validate_supplier(payload: Dict[str, Any]) -> List[str]:
    return schema_errors("supplier", payload)


def validate_vehicle(payload: Dict[str, Any]) -> List[str]:
    return schema_errors("vehicle", payload)


def validate_retread_send(payload: Dict[str, Any]) -> List[str]:
    return schema_errors("retread_send", payload)


def validate_retread_return(payload: Dict[str, Any]) -> List[str]:
    return schema_errors("retread_return", payload)


def validate_profile(payload: Dict[str, Any]) -> List[str]:
    return schema_errors("profile", payload)


def validate_password_change(
    current_password: str, new_password: str, confirm_password: str
) -> List[str]:
    errors = schema_errors(
        "password_change",
        {"current_password": current_password, "new_password": new_password},
    )
    if new_password and len(new_password) < 8:
        errors.append("Password must be at least 8 characters long")
    if new_password != confirm_password:
        errors.append("New passwords do not match")
    return errors


def validate_password_reset(new_password: str, confirm_password: str) -> List[str]:
    """An administrator setting another user's password."""
    errors = schema_errors("new_user_password", {"password": new_password})
    if new_password != confirm_password:
        errors.append("Passwords do not match")
    return errors


def validate_retread_receipt(receipt: RetreadReceipt, received_date: Optional[str]) -> List[str]:
    """
    Check a retread receipt before it is posted.

    Every casing has to be marked received or rejected; received ones need
    a positive depth and cost.
    """
    errors = schema_errors(
        "retread_receipt",
        {
            "received_date": received_date or "",
            "tires": [line.to_receive_payload() for line in receipt.lines],
        },
    )
    pending = receipt.pending_count
    if pending:
        errors.append(f"Please mark all tires as received or rejected ({pending} pending)")
        return errors
    received = receipt.received
    if any(not line.received_depth or line.received_depth <= 0 for line in received):
        errors.append("Please enter valid received depth for all received tires")
    elif any(not line.cost or line.cost <= 0 for line in received):
        errors.append("Please enter valid cost for all received tires")
    return errors
