"""Source record snapshot models.

A ``SourceRecord`` is a read-only, field-projected view of one business record
as returned by the record store. Only the attributes an evaluator asked for are
populated; everything else stays ``None``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel


class ObjectType(StrEnum):
    ACCOUNT = "Account"
    CONTACT = "Contact"
    LEAD = "Lead"
    OPPORTUNITY = "Opportunity"
    CASE = "Case"


class RecordField(StrEnum):
    """Attribute names a rule may request from the record store."""

    ID = "id"
    OWNER = "owner"
    NAME = "name"
    PHONE = "phone"
    WEBSITE = "website"
    EMAIL = "email"
    PARENT_ID = "parent_id"


class SourceRecord(BaseModel):
    """Single record in a scan snapshot."""

    id: str
    object_type: ObjectType
    owner: str = ""

    # --- Account ---
    name: Optional[str] = None
    website: Optional[str] = None

    # --- Account / Contact / Lead ---
    phone: Optional[str] = None

    # --- Contact / Lead ---
    email: Optional[str] = None

    # --- Contact / Opportunity / Case (AccountId) ---
    parent_id: Optional[str] = None

    model_config = {"frozen": True, "str_strip_whitespace": True}


class FieldRequest(BaseModel):
    """One projected fetch an evaluator needs before it can run."""

    object_type: ObjectType
    fields: tuple[RecordField, ...]

    model_config = {"frozen": True}


# Object type -> records of that type, as fetched for one evaluator.
Snapshot = dict[ObjectType, list[SourceRecord]]
