"""Audit trail models for lifecycle transitions."""
import copy
import hashlib
import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class AuditEntry(BaseModel):
    """An immutable record of an accepted transition."""
    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=lambda: str(uuid4()))
    entity_id: str = Field(..., description="Authorization, claim or denial this entry belongs to")
    from_state: str = Field(..., description="State before the transition")
    to_state: str = Field(..., description="State after the transition")
    timestamp: datetime = Field(..., description="Caller-supplied time of the transition")
    triggering_event: str = Field(..., description="Event that caused the transition")
    actor: str = Field(default="system", description="Who/what triggered the transition")
    note: Optional[str] = Field(default=None, description="Free-form detail, e.g. denial reason")

    # Hash chain for tamper evidence
    previous_signature: Optional[str] = Field(default=None)
    signature: str = Field(default="", description="SHA-256 over this entry and the previous signature")

    def compute_signature(self) -> str:
        """Compute the chained signature for this entry."""
        data_to_sign = {
            "entry_id": self.entry_id,
            "entity_id": self.entity_id,
            "from_state": self.from_state,
            "to_state": self.to_state,
            "timestamp": self.timestamp.isoformat(),
            "triggering_event": self.triggering_event,
            "actor": self.actor,
            "note": self.note or "",
            "previous_signature": self.previous_signature or "",
        }
        json_str = json.dumps(data_to_sign, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()

    @classmethod
    def create(
        cls,
        entity_id: str,
        from_state: str,
        to_state: str,
        timestamp: datetime,
        triggering_event: str,
        previous: Optional["AuditEntry"] = None,
        actor: str = "system",
        note: Optional[str] = None,
    ) -> "AuditEntry":
        """Build a signed entry chained onto ``previous``."""
        unsigned = cls(
            entity_id=entity_id,
            from_state=from_state,
            to_state=to_state,
            timestamp=timestamp,
            triggering_event=triggering_event,
            actor=actor,
            note=note,
            previous_signature=previous.signature if previous else None,
        )
        return unsigned.model_copy(update={"signature": unsigned.compute_signature()})


def verify_history(entries: Sequence[AuditEntry]) -> bool:
    """Verify that a history is an unbroken, untampered signature chain."""
    previous_signature = None
    for entry in entries:
        if entry.previous_signature != previous_signature:
            return False
        if entry.signature != entry.compute_signature():
            return False
        previous_signature = entry.signature
    return True


class VersionedEntity:
    """
    Shared behaviour for lifecycle entities.

    Entities are never mutated in place by the engine: every change
    produces a new version carrying the full history of the old one.
    Subclasses are dataclasses with ``id``, ``status``, ``version``,
    ``last_updated`` and ``history`` fields.
    """

    def next_version(self):
        """Create a new version of the entity."""
        new_entity = copy.deepcopy(self)
        new_entity.version = self.version + 1
        return new_entity

    def record_transition(
        self,
        new_status,
        timestamp: datetime,
        triggering_event: str,
        actor: str = "system",
        note: Optional[str] = None,
    ):
        """Return a new version in ``new_status`` with an audit entry appended."""
        new_entity = self.next_version()
        entry = AuditEntry.create(
            entity_id=self.id,
            from_state=self.status.value,
            to_state=new_status.value,
            timestamp=timestamp,
            triggering_event=triggering_event,
            previous=self.history[-1] if self.history else None,
            actor=actor,
            note=note,
        )
        new_entity.status = new_status
        new_entity.last_updated = timestamp
        new_entity.history = list(self.history) + [entry]
        return new_entity

    @property
    def audit_chain_valid(self) -> bool:
        return verify_history(self.history)

    @staticmethod
    def _value_to_primitive(value):
        """Convert a field value into something JSON-friendly."""
        if isinstance(value, datetime):
            return value.isoformat()
        if hasattr(value, "isoformat"):  # date
            return value.isoformat()
        if hasattr(value, "value"):  # Enum
            return value.value
        if isinstance(value, (set, frozenset)):
            return sorted(value)
        if isinstance(value, BaseModel):
            return value.model_dump(mode="json")
        if isinstance(value, list):
            return [VersionedEntity._value_to_primitive(v) for v in value]
        if hasattr(value, "__dataclass_fields__"):
            return {
                k: VersionedEntity._value_to_primitive(v)
                for k, v in value.__dict__.items()
            }
        if isinstance(value, Decimal):
            return str(value)
        return value


def utc_now() -> datetime:
    """Current UTC time, for callers that do not supply their own clock."""
    return datetime.now(timezone.utc)
