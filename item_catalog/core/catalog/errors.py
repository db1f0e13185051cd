"""Catalog exceptions"""


class CatalogError(Exception):
    """Base class for catalog errors."""


class IdentityMismatchError(CatalogError, ValueError):
    """Merge was asked to combine two different identities.

    This is a caller defect, not a runtime condition: the ingestion flow only
    merges after the resolver matched the identity key.
    """

    def __init__(self, existing: str, incoming: str):
        super().__init__(f"Cannot merge {incoming!r} into {existing!r}: identity differs")
        self.existing = existing
        self.incoming = incoming


class ValidationFailed(CatalogError):
    """Input is missing required fields. `reason` is shown to the user."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ObservationRejected(ValidationFailed):
    """One observation failed validation. The rest of the batch continues."""

    def __init__(self, reason: str, observation_id: str | None = None):
        super().__init__(reason)
        self.observation_id = observation_id


class StoreConflictError(CatalogError):
    """Lost a write race on the identity index or the record version."""


class TransientIngestError(CatalogError):
    """A write conflict recurred after the retry; the caller may resend."""
