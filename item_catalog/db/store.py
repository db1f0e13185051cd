"""CatalogStore: the storage collaborator for the catalog core

Core ↔ ORM conversion lives here; services never touch ORM rows.

Concurrency contract:
- inserts race on the unique (name_key, keywords_key, type_key) index
- updates race on the row version (SQLAlchemy `version_id_col`)
Both surface as StoreConflictError after the session is rolled back.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from item_catalog.core.catalog.errors import StoreConflictError
from item_catalog.core.catalog.models import (
    CatalogRecord,
    IdentityKey,
    StatBlock,
    SubmissionEvent,
    SubmitterStats,
    Suggestion,
)
from item_catalog.core.logging import get_logger
from item_catalog.db.models import (
    Base,
    CatalogItemModel,
    ContributionModel,
    ContributorModel,
    SubmissionModel,
    SuggestionModel,
)

logger = get_logger(__name__)


def _utcnow() -> datetime:
    # Stored naive, always UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _naive(value: datetime) -> datetime:
    return value.astimezone(timezone.utc).replace(tzinfo=None) if value.tzinfo else value


class CatalogStore:
    """Fetch-by-identity, fetch-by-id, upsert, list-with-filters, ledger I/O."""

    def __init__(self, db: Session):
        self._db = db
        self._ready = False

    def ensure_ready(self) -> None:
        """Create tables and indexes once per store lifetime."""
        if self._ready:
            return
        Base.metadata.create_all(bind=self._db.get_bind())
        self._ready = True
        logger.info("Catalog schema ready")

    # === Catalog records ===

    def find_by_identity(
        self, name: Optional[str], keywords: Optional[str], item_type: Optional[str]
    ) -> Optional[CatalogRecord]:
        row = self._row_by_identity(IdentityKey.of(name, keywords, item_type))
        return self._record_to_core(row) if row else None

    def find_by_id(self, item_id: str) -> Optional[CatalogRecord]:
        row = self._db.get(CatalogItemModel, item_id, populate_existing=True)
        return self._record_to_core(row) if row else None

    def upsert(self, record: CatalogRecord, must_insert: bool = False) -> CatalogRecord:
        """Insert, or update in place the row holding the same identity.

        The caller does not need to know the stored id. When `record.version`
        is set, the stored row must still be at that version; with
        `must_insert`, any existing row for the identity is a conflict.
        """
        key = record.identity
        now = _utcnow()
        try:
            row = self._row_by_identity(key)
            if row is None:
                row = CatalogItemModel(item_id=record.item_id, created_at=now)
                self._db.add(row)
            elif must_insert:
                raise StoreConflictError(f"{key} was inserted concurrently")
            elif record.version is not None and row.version != record.version:
                raise StoreConflictError(
                    f"{key} changed since it was read "
                    f"(v{record.version} → v{row.version})"
                )
            self._apply_record(row, record, key, now)
            self._db.commit()
        except (IntegrityError, StaleDataError) as e:
            self._db.rollback()
            raise StoreConflictError(f"Write conflict on {key}: {e}") from e
        except StoreConflictError:
            self._db.rollback()
            raise

        self._db.refresh(row)
        return self._record_to_core(row)

    def list_items(
        self,
        q: Optional[str] = None,
        item_type: Optional[str] = None,
        flagged: Optional[bool] = None,
        item_id: Optional[str] = None,
        submitted_by_user_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[CatalogRecord]:
        stmt = select(CatalogItemModel)
        if item_id:
            stmt = stmt.where(CatalogItemModel.item_id == item_id)
        if q and q.strip():
            pattern = f"%{q.strip()}%"
            stmt = stmt.where(
                or_(
                    CatalogItemModel.name.ilike(pattern),
                    CatalogItemModel.keywords.ilike(pattern),
                )
            )
        if item_type and item_type.strip():
            stmt = stmt.where(CatalogItemModel.type_key == item_type.strip().lower())
        if flagged is not None:
            stmt = stmt.where(CatalogItemModel.flagged_for_review == flagged)
        if submitted_by_user_id:
            submitted = select(SubmissionModel.item_id).where(
                SubmissionModel.user_id == submitted_by_user_id
            )
            stmt = stmt.where(CatalogItemModel.item_id.in_(submitted))

        stmt = stmt.order_by(func.lower(CatalogItemModel.name), CatalogItemModel.item_id)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        rows = self._db.scalars(stmt.execution_options(populate_existing=True)).all()
        return [self._record_to_core(r) for r in rows]

    def delete_item(self, item_id: str) -> bool:
        result = self._db.execute(
            delete(CatalogItemModel).where(CatalogItemModel.item_id == item_id)
        )
        self._db.commit()
        return result.rowcount > 0

    def delete_all(self) -> int:
        result = self._db.execute(delete(CatalogItemModel))
        self._db.commit()
        return result.rowcount

    # === Provenance ===

    def append_submission(self, event: SubmissionEvent) -> None:
        """Store the event and bump the submitter's running totals.

        A concurrent first submission by the same submitter can collide on
        the contributor row; that is retried once as an update.
        """
        for attempt in (1, 2):
            try:
                self._write_submission(event)
                self._db.commit()
                return
            except IntegrityError:
                self._db.rollback()
                if attempt == 2:
                    raise
                logger.warning(
                    "Contributor row race for %s, retrying", event.submitter_key
                )

    def list_submissions_for_items(self, item_ids: Iterable[str]) -> list[SubmissionEvent]:
        ids = list(set(item_ids))
        if not ids:
            return []
        rows = self._db.scalars(
            select(SubmissionModel)
            .where(SubmissionModel.item_id.in_(ids))
            .order_by(SubmissionModel.created_at)
        ).all()
        return [self._event_to_core(r) for r in rows]

    def get_submitter(self, key: str) -> Optional[SubmitterStats]:
        row = self._db.get(ContributorModel, key, populate_existing=True)
        if row is None:
            return None
        item_ids = self._db.scalars(
            select(ContributionModel.item_id)
            .where(ContributionModel.submitter_key == key)
            .order_by(ContributionModel.id)
        ).all()
        return SubmitterStats(
            submitter_key=row.submitter_key,
            display_name=row.display_name,
            submission_count=row.submission_count,
            item_ids=list(item_ids),
        )

    # === Suggestions ===

    def add_suggestion(self, suggestion: Suggestion) -> None:
        self._db.add(
            SuggestionModel(
                suggestion_id=suggestion.suggestion_id,
                item_id=suggestion.item_id,
                proposer=suggestion.proposer,
                note=suggestion.note,
                status=suggestion.status,
                created_at=_naive(suggestion.created_at) if suggestion.created_at else _utcnow(),
            )
        )
        self._db.commit()

    def list_suggestions(self, item_id: str) -> list[Suggestion]:
        rows = self._db.scalars(
            select(SuggestionModel)
            .where(SuggestionModel.item_id == item_id)
            .order_by(SuggestionModel.created_at)
        ).all()
        return [
            Suggestion(
                suggestion_id=r.suggestion_id,
                item_id=r.item_id,
                note=r.note,
                proposer=r.proposer,
                status=r.status,
                created_at=r.created_at,
            )
            for r in rows
        ]

    # === helpers ===

    def _row_by_identity(self, key: IdentityKey) -> Optional[CatalogItemModel]:
        stmt = (
            select(CatalogItemModel)
            .where(
                CatalogItemModel.name_key == key.name,
                CatalogItemModel.keywords_key == key.keywords,
                CatalogItemModel.type_key == key.item_type,
            )
            .execution_options(populate_existing=True)
        )
        return self._db.scalars(stmt).first()

    def _write_submission(self, event: SubmissionEvent) -> None:
        created_at = _naive(event.created_at)
        self._db.add(
            SubmissionModel(
                event_id=event.event_id,
                item_id=event.item_id,
                name_key=event.identity.name,
                keywords_key=event.identity.keywords,
                type_key=event.identity.item_type,
                submitter_key=event.submitter_key,
                submitter_name=event.submitter_name,
                user_id=event.user_id,
                ip_hash=event.ip_hash,
                raw=list(event.raw),
                created_at=created_at,
            )
        )

        contributor = self._db.get(ContributorModel, event.submitter_key, populate_existing=True)
        if contributor is None:
            contributor = ContributorModel(
                submitter_key=event.submitter_key,
                display_name=event.submitter_name,
                user_id=event.user_id,
                submission_count=0,
                first_seen_at=created_at,
                last_seen_at=created_at,
            )
            self._db.add(contributor)
            self._db.flush()
        contributor.submission_count = (contributor.submission_count or 0) + 1
        contributor.last_seen_at = created_at
        if event.submitter_name:
            contributor.display_name = event.submitter_name
        if event.user_id:
            contributor.user_id = event.user_id

        already = self._db.scalars(
            select(ContributionModel.id).where(
                ContributionModel.submitter_key == event.submitter_key,
                ContributionModel.item_id == event.item_id,
            )
        ).first()
        if already is None:
            self._db.add(
                ContributionModel(submitter_key=event.submitter_key, item_id=event.item_id)
            )

    @staticmethod
    def _apply_record(
        row: CatalogItemModel, record: CatalogRecord, key: IdentityKey, now: datetime
    ) -> None:
        """Core → ORM"""
        row.name = record.name
        row.keywords = record.keywords
        row.item_type = record.item_type
        row.name_key = key.name
        row.keywords_key = key.keywords
        row.type_key = key.item_type
        row.flags = list(record.flags)
        row.stats = record.stats.to_dict()
        row.ego = record.ego
        row.is_artifact = bool(record.is_artifact)
        row.raw = list(record.raw)
        row.submitted_by = record.submitted_by
        row.dropped_by = record.dropped_by
        row.worn = list(record.worn)
        row.flagged_for_review = bool(record.flagged_for_review)
        row.duplicate_of = record.duplicate_of
        row.updated_at = now

    @staticmethod
    def _record_to_core(row: CatalogItemModel) -> CatalogRecord:
        """ORM → Core"""
        return CatalogRecord(
            item_id=row.item_id,
            name=row.name,
            keywords=row.keywords,
            item_type=row.item_type,
            stats=StatBlock.from_dict(row.stats),
            flags=list(row.flags or []),
            ego=row.ego,
            is_artifact=bool(row.is_artifact),
            raw=list(row.raw or []),
            submitted_by=row.submitted_by,
            dropped_by=row.dropped_by,
            worn=list(row.worn or []),
            flagged_for_review=bool(row.flagged_for_review),
            duplicate_of=row.duplicate_of,
            created_at=row.created_at,
            updated_at=row.updated_at,
            version=row.version,
        )

    @staticmethod
    def _event_to_core(row: SubmissionModel) -> SubmissionEvent:
        return SubmissionEvent(
            event_id=row.event_id,
            item_id=row.item_id,
            identity=IdentityKey(row.name_key, row.keywords_key, row.type_key),
            submitter_key=row.submitter_key,
            submitter_name=row.submitter_name,
            user_id=row.user_id,
            created_at=row.created_at,
            ip_hash=row.ip_hash,
            raw=tuple(row.raw or []),
        )
