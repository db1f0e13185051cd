"""Catalog Core: parsing, identity, range merge, provenance. No DB access."""

from .enchantment import is_enchanted, strip_enchantment
from .errors import (
    CatalogError,
    IdentityMismatchError,
    ObservationRejected,
    StoreConflictError,
    TransientIngestError,
    ValidationFailed,
)
from .identity import content_signature, find_match, identity_key, resolve_identity
from .merge import (
    MERGE_POLICIES,
    MergePolicy,
    merge_affects,
    merge_record,
    prime_ranges,
    record_from_observation,
    widen,
)
from .models import (
    Affect,
    AffectKind,
    CatalogRecord,
    ContributorSummary,
    IdentityKey,
    IdentityMatch,
    ItemObservation,
    Resolution,
    SpellAffect,
    StatAffect,
    StatBlock,
    SubmissionEvent,
)
from .parser import parse_identify_dump
from .provenance import build_submission_event, submitter_key, summarize_contributors
from .slots import guess_slot

__all__ = [
    "Affect",
    "AffectKind",
    "CatalogError",
    "CatalogRecord",
    "ContributorSummary",
    "IdentityKey",
    "IdentityMatch",
    "IdentityMismatchError",
    "ItemObservation",
    "MERGE_POLICIES",
    "MergePolicy",
    "ObservationRejected",
    "Resolution",
    "SpellAffect",
    "StatAffect",
    "StatBlock",
    "StoreConflictError",
    "SubmissionEvent",
    "TransientIngestError",
    "ValidationFailed",
    "build_submission_event",
    "content_signature",
    "find_match",
    "guess_slot",
    "identity_key",
    "is_enchanted",
    "merge_affects",
    "merge_record",
    "parse_identify_dump",
    "prime_ranges",
    "record_from_observation",
    "resolve_identity",
    "strip_enchantment",
    "submitter_key",
    "summarize_contributors",
    "widen",
]
