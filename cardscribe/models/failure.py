"""
Failure envelope for the HTTP surface.

The lookup core never raises for data problems (it logs and degrades to
"no data"). Only the service layer turns a missing card or an unloaded index
into a classified, explainable failure.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    NOT_FOUND = "not_found"
    SERVICE_UNAVAILABLE = "service_unavailable"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_detail(self) -> FailureDetail:
        return FailureDetail(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )

    def to_payload(self) -> dict[str, Any]:
        return {"failure": self.to_detail().model_dump(mode="json")}


class CardNotFoundError(KnownError):
    """Raised by the service layer when a name is not in the card index."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"No card named '{name}'.",
            suggestion="Card names are English names as printed on Magic Online.",
            status_code=404,
        )


class IndexNotLoadedError(KnownError):
    """Raised when a request arrives before the card index is available."""

    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.SERVICE_UNAVAILABLE,
            message="Card data is not loaded yet.",
            detail="card_index=None",
            suggestion="Build the index with `python -m cardscribe.jobs.build_index`.",
            status_code=503,
        )
