"""API request/response schemas."""

from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field


# === Request Schemas ===


class ObservationPayload(BaseModel):
    """One parsed item, as returned by preview and accepted back by ingest."""

    id: Optional[str] = Field(None, description="Observation id (generated when missing)")
    name: str = ""
    keywords: str = ""
    item_type: str = ""
    stats: dict[str, Any] = Field(default_factory=dict)
    flags: Optional[list[str]] = Field(
        None, description="None: no flags line seen. []: the item has no flags"
    )
    ego: Optional[str] = None
    is_artifact: bool = False
    raw: list[str] = []
    name_missing: bool = False
    dropped_by: Optional[str] = None
    worn: list[str] = []
    flagged_for_review: bool = False
    duplicate_of: Optional[str] = None


class OverridePayload(BaseModel):
    """Reviewer edits for one observation"""

    name: Optional[str] = None
    ego: Optional[str] = None
    dropped_by: Optional[str] = None
    worn: Union[list[str], str, None] = None
    is_artifact: Optional[bool] = None


class IngestRequest(BaseModel):
    """Either `raw` dump text or pre-parsed `items`."""

    raw: Optional[str] = None
    items: list[ObservationPayload] = []
    submitted_by: Optional[str] = Field(None, max_length=100)
    user_id: Optional[str] = None
    overrides: dict[str, OverridePayload] = Field(
        default_factory=dict,
        description="Keyed by observation id, or by block position for raw text",
    )


class ConfirmRequest(BaseModel):
    decision: Literal["proceed", "cancel"]
    pending: list[ObservationPayload] = []
    submitted_by: Optional[str] = Field(None, max_length=100)
    user_id: Optional[str] = None


class PreviewRequest(BaseModel):
    raw: str = ""


class SuggestionRequest(BaseModel):
    item_id: Optional[str] = None
    note: Optional[str] = None
    proposer: Optional[str] = None
    reason: Optional[str] = None


# === Response Schemas ===


class ItemInfo(BaseModel):
    """Catalog record"""

    item_id: str
    name: str
    keywords: str
    item_type: str
    stats: dict[str, Any]
    flags: list[str] = []
    ego: Optional[str] = None
    is_artifact: bool = False
    raw: list[str] = []
    submitted_by: Optional[str] = None
    dropped_by: Optional[str] = None
    worn: list[str] = []
    flagged_for_review: bool = False
    duplicate_of: Optional[str] = None
    submission_count: int = 0
    contributors: list[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ItemListResponse(BaseModel):
    items: list[ItemInfo]
    count: int


class OutcomeInfo(BaseModel):
    """What happened to one observation"""

    observation_id: str
    status: str
    identity: Optional[str] = None
    item: Optional[ItemInfo] = None
    reason: Optional[str] = None
    duplicate_of: Optional[str] = None
    suggested_slot: Optional[str] = None


class IngestResponse(BaseModel):
    success: bool
    needs_confirmation: bool = False
    outcomes: list[OutcomeInfo] = []
    pending: list[ObservationPayload] = []
    counts: dict[str, int] = {}


class PreviewResponse(BaseModel):
    items: list[ObservationPayload]
    count: int


class ContributorInfo(BaseModel):
    item_id: str
    contributors: list[str] = []
    submission_count: int = 0


class ContributorsResponse(BaseModel):
    contributors: dict[str, ContributorInfo]


class SubmitterInfo(BaseModel):
    submitter_key: str
    display_name: Optional[str] = None
    submission_count: int = 0
    item_ids: list[str] = []


class DeleteResponse(BaseModel):
    deleted: bool
    id: Optional[str] = None
    all: bool = False
    count: int = 0


class SuggestionResponse(BaseModel):
    ok: bool
    suggestion_id: str


class ErrorResponse(BaseModel):
    """Error response"""

    detail: str
