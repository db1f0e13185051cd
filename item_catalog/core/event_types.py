"""Event type constants"""


class EventTypes:
    """Event type strings"""

    # catalog writes
    ITEM_CREATED = "item_created"
    ITEM_MERGED = "item_merged"
    ITEM_DELETED = "item_deleted"
    CATALOG_CLEARED = "catalog_cleared"

    # ingestion
    DUPLICATE_HELD = "duplicate_held"

    # provenance
    SUBMISSION_RECORDED = "submission_recorded"

    # suggestions
    SUGGESTION_ADDED = "suggestion_added"

    # Everything that changes what GET /items returns
    CATALOG_CHANGES = (ITEM_CREATED, ITEM_MERGED, ITEM_DELETED, CATALOG_CLEARED)
