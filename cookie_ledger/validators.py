"""
Shape validators for source payloads.

Structural checks only: does the payload look like the source it claims
to be? A failed check means the importer reports "format not recognized"
and imports nothing from that file. Field-level oddities are the
importers' business, not ours.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError


class SCOrderPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    order_number: Union[str, int]


class SCOrdersPayload(BaseModel):
    """Response of the SC /orders/search endpoint."""
    model_config = ConfigDict(extra="allow")

    orders: list[SCOrderPayload]


class PaymentEntry(BaseModel):
    """One row of the manual payments ledger."""
    model_config = ConfigDict(extra="ignore")

    scout: str
    date: str = ""
    amount: Union[str, int, float]
    method: str = "cash"
    reference: str = ""


DC_REQUIRED_COLUMNS = ("Order Number", "Girl First Name")
SC_TRANSFER_REQUIRED_COLUMNS = ("TYPE", "ORDER #", "TO", "FROM")
SC_REPORT_REQUIRED_COLUMNS = ("GirlName",)


def _issues(error: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
        for err in error.errors()
    ]


def validate_sc_orders(data: Any) -> list[str]:
    """Return shape problems with an SC orders payload (empty list = valid)."""
    try:
        SCOrdersPayload.model_validate(data)
    except ValidationError as e:
        return _issues(e)
    return []


def validate_payment_entry(data: Any) -> tuple[Optional[PaymentEntry], list[str]]:
    try:
        return PaymentEntry.model_validate(data), []
    except ValidationError as e:
        return None, _issues(e)


def missing_columns(rows: list[dict], required: tuple[str, ...]) -> list[str]:
    """
    Header check on parsed rows.

    Returns:
        Required column names absent from the first row (all of them when
        there are no rows)
    """
    if not rows:
        return list(required)
    headers = set(rows[0].keys())
    return [col for col in required if col not in headers]
