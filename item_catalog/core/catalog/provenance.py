"""Provenance ledger (pure part): submitter keys, events, contributor read-back"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

from .models import (
    CatalogRecord,
    ContributorSummary,
    ItemObservation,
    SubmissionEvent,
    normalize_text,
)


def submitter_key(name: Optional[str], user_id: Optional[str] = None) -> Optional[str]:
    """Ledger key for a submitter: lowercase-trimmed name, else the user id.

    None when the submission is anonymous.
    """
    normalized = normalize_text(name)
    if normalized:
        return normalized
    if user_id and user_id.strip():
        return f"user:{user_id.strip()}"
    return None


def build_submission_event(
    record: CatalogRecord,
    observation: ItemObservation,
    ip_hash: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Optional[SubmissionEvent]:
    """Event for one accepted observation, or None if nobody is attributed."""
    key = submitter_key(observation.submitted_by, observation.user_id)
    if key is None:
        return None
    name = (observation.submitted_by or "").strip() or None
    return SubmissionEvent(
        event_id=str(uuid.uuid4()),
        item_id=record.item_id,
        identity=record.identity,
        submitter_key=key,
        submitter_name=name,
        user_id=observation.user_id,
        created_at=now or datetime.now(timezone.utc),
        ip_hash=ip_hash,
        raw=tuple(observation.raw),
    )


def summarize_contributors(
    events: Iterable[SubmissionEvent], item_ids: Iterable[str]
) -> dict[str, ContributorSummary]:
    """Distinct contributor names and submission totals per item.

    Names are listed in first-submission order, using the casing of each
    submitter's first event. Every requested id gets an entry.
    """
    summaries = {item_id: ContributorSummary(item_id=item_id) for item_id in item_ids}
    seen: dict[str, set[str]] = {item_id: set() for item_id in summaries}

    for event in sorted(events, key=lambda e: e.created_at):
        summary = summaries.get(event.item_id)
        if summary is None:
            continue
        summary.submission_count += 1
        if event.submitter_name and event.submitter_key not in seen[event.item_id]:
            seen[event.item_id].add(event.submitter_key)
            summary.contributors.append(event.submitter_name)
    return summaries
