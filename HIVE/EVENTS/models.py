# file: HIVE/EVENTS/models.py
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator


# ---------------------------
# Lifecycle enums
# ---------------------------
class EventLifecycleState(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    LIVE = "live"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    @classmethod
    def values(cls) -> Tuple[str, ...]:
        return tuple(s.value for s in cls)


class TransitionType(str, Enum):
    CREATION = "creation"
    AUTOMATIC = "automatic"
    MANUAL = "manual"


# ---------------------------
# State history (append-only log)
# ---------------------------
class StateHistoryEntry(BaseModel):
    # Legacy documents may carry states outside the current enum
    state: Union[EventLifecycleState, str] = Field(union_mode="left_to_right")
    # Firestore timestamp normally; strings or epoch millis on unfixed legacy data
    timestamp: Any = None
    transition_type: Optional[Union[TransitionType, str]] = Field(
        None, alias="transitionType", union_mode="left_to_right"
    )
    updated_by: Optional[str] = Field(None, alias="updatedBy")

    model_config = {"frozen": True, "populate_by_name": True, "extra": "allow"}

    def to_firestore(self) -> dict:
        data = {
            "state": _plain(self.state),
            "timestamp": self.timestamp,
            "transitionType": _plain(self.transition_type),
        }
        if self.updated_by is not None:
            data["updatedBy"] = self.updated_by
        return data


class StateHistory(BaseModel):
    """
    Ordered, immutable record of every state an event has held.

    ``append`` returns a new log; existing entries are never rewritten,
    reordered or dropped.
    """
    entries: Tuple[StateHistoryEntry, ...] = ()

    model_config = {"frozen": True}

    def append(self, entry: StateHistoryEntry) -> "StateHistory":
        return StateHistory(entries=self.entries + (entry,))

    @property
    def latest(self) -> Optional[StateHistoryEntry]:
        return self.entries[-1] if self.entries else None

    def __len__(self) -> int:
        return len(self.entries)

    def to_firestore(self) -> list:
        return [entry.to_firestore() for entry in self.entries]


# ---------------------------
# Event record (read view for permission checks)
# ---------------------------
class EventRecord(BaseModel):
    """
    The fields of an event document a manual transition reads.

    Everything else, ``stateHistory`` included, is ignored, so legacy
    documents never fail to load here.  ``start_date`` is only kept when it is
    a real timestamp; any other stored shape reads as unknown.
    """
    id: str
    state: Any = None
    created_by: Any = Field(None, alias="createdBy")
    start_date: Optional[datetime] = Field(None, alias="startDate")

    model_config = {"frozen": True, "populate_by_name": True, "extra": "ignore"}

    @field_validator("start_date", mode="before")
    @classmethod
    def _timestamp_only(cls, value: Any):
        if not isinstance(value, datetime):
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def from_snapshot(cls, snapshot) -> "EventRecord":
        data = snapshot.to_dict() or {}
        return cls.model_validate({**data, "id": snapshot.id})


# ---------------------------
# Manual transition request / response
# ---------------------------
class TransitionRequest(BaseModel):
    # Types are checked by the transition itself, after authentication
    eventId: Any = None
    targetState: Any = None

    model_config = {"extra": "ignore"}


class TransitionResponse(BaseModel):
    success: bool = True
    message: str


def _plain(value):
    return value.value if isinstance(value, Enum) else value
