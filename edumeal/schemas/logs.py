"""
Audit log shapes.

Every row in `logs` carries a `type` tag and a JSON `details` payload. The
payloads we write ourselves are modelled here, one class per `kind`; anything
else (older rows, hand-written entries) is read back as `OpaqueDetails`.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, ClassVar, Literal, Optional, Union

from pydantic import ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from edumeal.schemas.common import CamelModel


class _Details(CamelModel):
    log_type: ClassVar[str] = "system"

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ScanOutcomeDetails(_Details):
    log_type: ClassVar[str] = "scan"

    kind: Literal["scan_outcome"] = "scan_outcome"
    ticket_id: str
    result: str  # invalid_ticket / duplicate_used / invalid_status / wrong_date / success
    student_id: Optional[int] = None
    expected: Optional[str] = None
    actual: Optional[str] = None
    offline: Optional[bool] = None


class OverrideDetails(_Details):
    log_type: ClassVar[str] = "override"

    kind: Literal["override"] = "override"
    student_id: int
    reason: str
    result: str
    meals_remaining: Optional[int] = None


class WebhookAttemptDetails(_Details):
    log_type: ClassVar[str] = "webhook_attempt"

    kind: Literal["webhook_attempt"] = "webhook_attempt"
    source: str
    payload: dict[str, Any] = Field(default_factory=dict)


class WebhookResultDetails(_Details):
    log_type: ClassVar[str] = "webhook"

    kind: Literal["webhook_result"] = "webhook_result"
    success: bool = True
    student_id: str
    meals_added: Optional[int] = None
    transaction_id: Optional[str] = None
    auto_provisioned: Optional[bool] = None


class WebhookErrorDetails(_Details):
    log_type: ClassVar[str] = "webhook"

    kind: Literal["webhook_error"] = "webhook_error"
    success: bool = False
    error: str  # missing_fields / bad_signature / creation_failed / unhandled
    student_id: Optional[str] = None
    message: Optional[str] = None
    payload: Optional[dict[str, Any]] = None


class IntegrationUpdateDetails(_Details):
    log_type: ClassVar[str] = "sync"

    kind: Literal["integration_update"] = "integration_update"
    name: str
    status: Optional[str] = None
    settings_changed: bool = False


class OpaqueDetails(_Details):
    model_config = ConfigDict(extra="allow")

    kind: Any = "opaque"

    def to_json(self) -> dict:
        # written back exactly as stored
        data = dict(self.model_extra or {})
        if "kind" in self.model_fields_set:
            data["kind"] = self.kind
        return data


KnownDetails = Union[
    ScanOutcomeDetails,
    OverrideDetails,
    WebhookAttemptDetails,
    WebhookResultDetails,
    WebhookErrorDetails,
    IntegrationUpdateDetails,
]

LogDetails = Union[KnownDetails, OpaqueDetails]

_known_adapter: TypeAdapter = TypeAdapter(Annotated[KnownDetails, Field(discriminator="kind")])
_KNOWN_KINDS = {
    "scan_outcome",
    "override",
    "webhook_attempt",
    "webhook_result",
    "webhook_error",
    "integration_update",
}


def parse_log_details(raw: Any) -> LogDetails:
    if not isinstance(raw, dict):
        return OpaqueDetails(value=raw)
    if raw.get("kind") in _KNOWN_KINDS:
        try:
            return _known_adapter.validate_python(raw)
        except ValidationError:
            pass
    return OpaqueDetails(**raw)


class LogOut(CamelModel):
    id: int
    type: str
    details: dict[str, Any] = Field(default_factory=dict)
    actor_id: Optional[str] = None
    created_at: datetime

    @field_validator("details", mode="before")
    @classmethod
    def _normalize_details(cls, v: Any) -> dict:
        return parse_log_details(v if v is not None else {}).to_json()
