"""Request/response models exchanged with the order server."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class FieldCheckRequest(BaseModel):
    """Per-field server validation request."""

    field: str = Field(..., description="Field key being checked")
    value: Any = Field(default=None, description="Candidate value")
    order_type: Optional[str] = Field(default=None, description="Current order type")
    currency_pair: Optional[str] = Field(default=None, description="Current currency pair")
    account: Optional[int] = Field(default=None, description="Current account id")
    liquidity_pool: Optional[str] = Field(default=None, description="Current pool id")

    model_config = {"frozen": True}


class FieldCheckResult(BaseModel):
    """Outcome of a server field check.

    ``HARD`` failures block submission, ``SOFT`` failures are advisories.
    """

    field: str = Field(..., description="Field key that was checked")
    ok: bool = Field(..., description="Whether the value passed")
    type: Optional[Literal["SOFT", "HARD"]] = Field(default=None, description="Failure severity")
    message: Optional[str] = Field(default=None, description="Failure message")

    model_config = {"frozen": True}


class MutationResponse(BaseModel):
    """Server response to a create or amend request."""

    order_id: Optional[str] = Field(default=None, description="Order id")
    result: str = Field(..., description="SUCCESS or a failure code")
    failure_reason: Optional[str] = Field(default=None, description="Rejection reason")

    model_config = {"frozen": True}

    @property
    def succeeded(self) -> bool:
        return self.result == "SUCCESS"


class Toast(BaseModel):
    """User-facing notification raised by the ticket."""

    type: Literal["success", "error", "info", "warning"] = Field(..., description="Severity")
    text: str = Field(..., description="Message text")

    model_config = {"frozen": True}
