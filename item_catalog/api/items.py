"""Catalog API endpoints."""

import hmac
import uuid
from dataclasses import replace
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response

from item_catalog.api.deps import (
    get_catalog_service,
    get_ingest_service,
    get_provenance_service,
    get_read_cache,
)
from item_catalog.api.schemas import (
    ConfirmRequest,
    ContributorInfo,
    ContributorsResponse,
    DeleteResponse,
    ErrorResponse,
    IngestRequest,
    IngestResponse,
    ItemInfo,
    ItemListResponse,
    ObservationPayload,
    OutcomeInfo,
    OverridePayload,
    PreviewRequest,
    PreviewResponse,
    SubmitterInfo,
)
from item_catalog.config import settings
from item_catalog.core.cache import ReadCache, cache_key
from item_catalog.core.catalog.enchantment import strip_enchantment
from item_catalog.core.catalog.errors import TransientIngestError
from item_catalog.core.catalog.models import CatalogRecord, ItemObservation, StatBlock
from item_catalog.core.catalog.parser import parse_identify_dump
from item_catalog.core.ip_hash import hash_ip
from item_catalog.core.logging import get_logger
from item_catalog.services.catalog_service import CatalogService
from item_catalog.services.ingest_service import (
    IngestResult,
    IngestService,
    IngestStatus,
    ObservationOverride,
    Submitter,
)
from item_catalog.services.provenance_service import ProvenanceService

logger = get_logger(__name__)

router = APIRouter(prefix="/items", tags=["items"])


def require_admin(authorization: Optional[str] = Header(None)) -> None:
    """Bearer ADMIN_TOKEN. An unset token disables destructive endpoints."""
    token = authorization[7:] if authorization and authorization.startswith("Bearer ") else None
    secret = settings.ADMIN_TOKEN
    if not secret or not token or not hmac.compare_digest(token, secret):
        raise HTTPException(status_code=401, detail="Unauthorized")


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


def _submitter(request: Request, name: Optional[str], user_id: Optional[str]) -> Submitter:
    return Submitter(
        name=name,
        user_id=user_id,
        ip_hash=hash_ip(_client_ip(request), settings.IP_HASH_SALT),
    )


def _build_item_info(record: CatalogRecord) -> ItemInfo:
    """CatalogRecord → response model"""
    return ItemInfo(
        item_id=record.item_id,
        name=record.name,
        keywords=record.keywords,
        item_type=record.item_type,
        stats=record.stats.to_dict(),
        flags=list(record.flags),
        ego=record.ego,
        is_artifact=record.is_artifact,
        raw=list(record.raw),
        submitted_by=record.submitted_by,
        dropped_by=record.dropped_by,
        worn=list(record.worn),
        flagged_for_review=record.flagged_for_review,
        duplicate_of=record.duplicate_of,
        submission_count=record.submission_count,
        contributors=list(record.contributors),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _build_payload(observation: ItemObservation) -> ObservationPayload:
    return ObservationPayload(
        id=observation.observation_id,
        name=observation.name,
        keywords=observation.keywords,
        item_type=observation.item_type,
        stats=observation.stats.to_dict(),
        flags=list(observation.flags) if observation.flags is not None else None,
        ego=observation.ego,
        is_artifact=observation.is_artifact,
        raw=list(observation.raw),
        name_missing=observation.name_missing,
        dropped_by=observation.dropped_by,
        worn=list(observation.worn),
        flagged_for_review=observation.flagged_for_review,
        duplicate_of=observation.duplicate_of,
    )


def _observation_from_payload(payload: ObservationPayload) -> ItemObservation:
    # An observation is a single reading; ranges only exist on catalog records.
    stats = replace(
        StatBlock.from_dict(payload.stats),
        weight_min=None,
        weight_max=None,
        ac_min=None,
        ac_max=None,
    )
    stats.affects = [
        a.with_reading(a.reading, None, None) for a in strip_enchantment(stats.affects)
    ]
    return ItemObservation(
        observation_id=payload.id or str(uuid.uuid4()),
        name=payload.name.strip(),
        keywords=payload.keywords.strip(),
        item_type=payload.item_type.strip(),
        stats=stats,
        flags=tuple(payload.flags) if payload.flags is not None else None,
        ego=(payload.ego or "").strip() or None,
        is_artifact=payload.is_artifact,
        raw=tuple(payload.raw),
        name_missing=payload.name_missing,
        dropped_by=(payload.dropped_by or "").strip() or None,
        worn=tuple(payload.worn),
        flagged_for_review=payload.flagged_for_review,
        duplicate_of=payload.duplicate_of,
    )


def _override_from_payload(payload: OverridePayload) -> ObservationOverride:
    worn = [payload.worn] if isinstance(payload.worn, str) else payload.worn or []
    return ObservationOverride(
        name=payload.name,
        ego=payload.ego,
        dropped_by=payload.dropped_by,
        worn=tuple(worn),
        is_artifact=payload.is_artifact,
    )


def _build_ingest_response(result: IngestResult) -> IngestResponse:
    outcomes = [
        OutcomeInfo(
            observation_id=o.observation_id,
            status=o.status.value,
            identity=str(o.identity) if o.identity else None,
            item=_build_item_info(o.record) if o.record else None,
            reason=o.reason,
            duplicate_of=o.duplicate_of,
            suggested_slot=o.suggested_slot,
        )
        for o in result.outcomes
    ]
    counts = {s.value: result.count(s) for s in IngestStatus if result.count(s)}
    return IngestResponse(
        success=result.count(IngestStatus.REJECTED) == 0,
        needs_confirmation=result.needs_confirmation,
        outcomes=outcomes,
        pending=[_build_payload(o) for o in result.pending],
        counts=counts,
    )


@router.get("", response_model=ItemListResponse)
def list_items(
    response: Response,
    q: Optional[str] = None,
    type: Optional[str] = None,
    flagged: Optional[bool] = None,
    id: Optional[str] = None,
    user_id: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1),
    offset: Optional[int] = Query(None, ge=0),
    cache: ReadCache = Depends(get_read_cache),
    service: CatalogService = Depends(get_catalog_service),
) -> ItemListResponse:
    """
    Search the catalog

    Results are cached per parameter set until the next catalog write.
    """
    key = cache_key(q=q, type=type, flagged=flagged, id=id, user_id=user_id, limit=limit, offset=offset)
    response.headers["Cache-Control"] = f"public, max-age={settings.READ_CACHE_TTL_SECONDS}"

    cached = cache.get(key)
    if cached is not None:
        response.headers["X-Cache"] = "HIT"
        return cached

    records = service.search(
        q=q,
        item_type=type,
        flagged=flagged,
        item_id=id,
        user_id=user_id,
        limit=limit,
        offset=offset,
    )
    payload = ItemListResponse(items=[_build_item_info(r) for r in records], count=len(records))
    cache.set(key, payload)
    response.headers["X-Cache"] = "MISS"
    return payload


@router.post(
    "",
    response_model=IngestResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def ingest_items(
    body: IngestRequest,
    request: Request,
    service: IngestService = Depends(get_ingest_service),
) -> IngestResponse:
    """
    Submit a raw identify dump or pre-parsed items

    A possible duplicate halts the batch; the held observations come back in
    `pending` and are resolved through POST /items/confirm.
    """
    submitter = _submitter(request, body.submitted_by, body.user_id)
    overrides = {k: _override_from_payload(v) for k, v in body.overrides.items()}

    try:
        if body.items:
            observations = [_observation_from_payload(p) for p in body.items]
            result = service.ingest_observations(observations, submitter, overrides)
        elif body.raw and body.raw.strip():
            result = service.ingest_raw(body.raw, submitter, overrides)
        else:
            raise HTTPException(status_code=400, detail="raw or items is required")
    except TransientIngestError as e:
        logger.warning("Ingest conflict: %s", e)
        raise HTTPException(status_code=409, detail=str(e))

    return _build_ingest_response(result)


@router.post(
    "/confirm",
    response_model=IngestResponse,
    responses={409: {"model": ErrorResponse}},
)
def confirm_items(
    body: ConfirmRequest,
    request: Request,
    service: IngestService = Depends(get_ingest_service),
) -> IngestResponse:
    """Proceed with or cancel a batch held for duplicate confirmation."""
    submitter = _submitter(request, body.submitted_by, body.user_id)
    pending = [_observation_from_payload(p) for p in body.pending]
    try:
        result = service.confirm_duplicates(pending, body.decision, submitter)
    except TransientIngestError as e:
        logger.warning("Confirm conflict: %s", e)
        raise HTTPException(status_code=409, detail=str(e))
    return _build_ingest_response(result)


@router.post("/preview", response_model=PreviewResponse)
def preview_items(body: PreviewRequest) -> PreviewResponse:
    """Parse only. Nothing is written."""
    observations = parse_identify_dump(body.raw)
    return PreviewResponse(
        items=[_build_payload(o) for o in observations],
        count=len(observations),
    )


@router.get("/contributors", response_model=ContributorsResponse)
def get_contributors(
    ids: str = Query(..., description="Comma-separated item ids"),
    provenance: ProvenanceService = Depends(get_provenance_service),
) -> ContributorsResponse:
    item_ids = [i.strip() for i in ids.split(",") if i.strip()]
    summaries = provenance.contributors_for(item_ids)
    return ContributorsResponse(
        contributors={
            item_id: ContributorInfo(
                item_id=s.item_id,
                contributors=s.contributors,
                submission_count=s.submission_count,
            )
            for item_id, s in summaries.items()
        }
    )


@router.get(
    "/submitter",
    response_model=SubmitterInfo,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def get_submitter(
    name: Optional[str] = None,
    user_id: Optional[str] = None,
    provenance: ProvenanceService = Depends(get_provenance_service),
) -> SubmitterInfo:
    """Running totals for one submitter."""
    if not (name and name.strip()) and not (user_id and user_id.strip()):
        raise HTTPException(status_code=400, detail="name or user_id is required")
    stats = provenance.submitter_stats(name, user_id)
    if stats is None:
        raise HTTPException(status_code=404, detail="Submitter not found")
    return SubmitterInfo(
        submitter_key=stats.submitter_key,
        display_name=stats.display_name,
        submission_count=stats.submission_count,
        item_ids=stats.item_ids,
    )


@router.get(
    "/{item_id}",
    response_model=ItemInfo,
    responses={404: {"model": ErrorResponse}},
)
def get_item(
    item_id: str,
    service: CatalogService = Depends(get_catalog_service),
) -> ItemInfo:
    record = service.get(item_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Item not found: {item_id}")
    return _build_item_info(record)


@router.delete(
    "",
    response_model=DeleteResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
    dependencies=[Depends(require_admin)],
)
def delete_items(
    id: Optional[str] = None,
    all: bool = False,
    service: CatalogService = Depends(get_catalog_service),
) -> DeleteResponse:
    """Delete one item by id, or wipe the catalog with all=true."""
    if id and id.strip():
        deleted = service.delete(id.strip())
        return DeleteResponse(deleted=deleted, id=id.strip(), count=int(deleted))
    if all:
        count = service.delete_all()
        return DeleteResponse(deleted=True, all=True, count=count)
    raise HTTPException(
        status_code=400,
        detail="id is required to delete an item (or set all=true to wipe)",
    )


@router.post("/invalidate")
def invalidate_cache(
    cache: ReadCache = Depends(get_read_cache),
    _: None = Depends(require_admin),
) -> dict[str, bool]:
    """Drop every cached list response."""
    cache.clear()
    logger.info("Read cache invalidated manually")
    return {"cleared": True}
