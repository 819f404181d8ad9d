"""Entry schemas - canonical log and audit records.

Entries are frozen once built. Their payloads are masked copies owned by
the entry, so nothing downstream of the builder can alter a queued record.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import to_jsonable_python

from govaudit.common.constants import LogConstants
from govaudit.context.store import EMPTY_CONTEXT, ContextSnapshot


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def _jsonable(value: Any) -> Any:
    return to_jsonable_python(value, fallback=str)


class EntryLevel(str, Enum):
    """Record levels. AUDIT is only carried by AuditEntry."""
    INFO = "info"
    ERROR = "error"
    DEBUG = "debug"
    AUDIT = "audit"


class _EntryModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        arbitrary_types_allowed=True,
    )


class ErrorDetail(_EntryModel):
    """Name, message and stack extracted from an error-shaped value."""
    name: Optional[str] = Field(
        default=None,
        description="Error class or kind"
    )
    message: Optional[str] = Field(
        default=None,
        description="Error message"
    )
    stack: Optional[str] = Field(
        default=None,
        description="Formatted stack trace"
    )


class LogEntry(_EntryModel):
    """An info, error or debug record."""
    level: EntryLevel = Field(
        ...,
        description="One of info, error, debug"
    )
    message: str = Field(
        ...,
        description="Human-readable message"
    )
    context: ContextSnapshot = Field(
        default=EMPTY_CONTEXT,
        description="Ambient context captured at construction"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the entry was built"
    )
    payload: Optional[Any] = Field(
        default=None,
        description="Masked structured payload"
    )
    error_detail: Optional[ErrorDetail] = Field(
        default=None,
        description="Extracted error name/message/stack"
    )

    @field_validator("level")
    @classmethod
    def _reject_audit_level(cls, value: EntryLevel) -> EntryLevel:
        if value == EntryLevel.AUDIT:
            raise ValueError("audit records must be built as AuditEntry")
        return value

    def to_record(self) -> Dict[str, Any]:
        """Wire representation sent to the controller or observers."""
        record: Dict[str, Any] = {
            "level": self.level.value,
            "message": self.message,
            "context": self.context.to_wire(),
            "timestamp": _isoformat(self.timestamp),
        }
        if self.payload is not None:
            record["payload"] = _jsonable(self.payload)
        if self.error_detail is not None:
            record["errorDetail"] = self.error_detail.model_dump(by_alias=True, exclude_none=True)
        return record


class AuditEntry(_EntryModel):
    """An audit-trail record of an action on a resource."""
    action: str = Field(
        ...,
        description="Action performed, e.g. 'user.created'"
    )
    resource_type: str = Field(
        ...,
        description="Type of the affected resource"
    )
    entity_id: str = Field(
        default=LogConstants.UNKNOWN_ENTITY,
        description="Affected entity, 'unknown' when there is no concrete subject"
    )
    old_values: Optional[Any] = Field(
        default=None,
        description="Masked state before the action"
    )
    new_values: Optional[Any] = Field(
        default=None,
        description="Masked state after the action"
    )
    actor_context: ContextSnapshot = Field(
        default=EMPTY_CONTEXT,
        description="Ambient context of the actor"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the entry was built"
    )

    @property
    def level(self) -> EntryLevel:
        return EntryLevel.AUDIT

    @property
    def message(self) -> str:
        return f"Audit: {self.action} on {self.resource_type}"

    def to_record(self) -> Dict[str, Any]:
        """Wire representation sent to the controller or observers."""
        record: Dict[str, Any] = {
            "level": self.level.value,
            "message": self.message,
            "action": self.action,
            "resourceType": self.resource_type,
            "entityId": self.entity_id,
            "context": self.actor_context.to_wire(),
            "timestamp": _isoformat(self.timestamp),
        }
        if self.old_values is not None:
            record["oldValues"] = _jsonable(self.old_values)
        if self.new_values is not None:
            record["newValues"] = _jsonable(self.new_values)
        return record


Entry = Union[LogEntry, AuditEntry]
