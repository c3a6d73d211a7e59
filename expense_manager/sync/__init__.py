"""
Remote Sync

Bridges the entity stores and a remote store: snapshot merge inbound,
create-or-update pushes and best-effort deletes outbound.
"""

from expense_manager.sync.bridge import (
    COLLECTIONS,
    SubscriptionState,
    SyncBridge,
    SyncNotReadyError,
)
from expense_manager.sync.merge import (
    dedupe_by_id,
    merge_categories,
    parse_records,
    same_content,
    sorted_by_id,
)

__all__ = [
    "COLLECTIONS",
    "SubscriptionState",
    "SyncBridge",
    "SyncNotReadyError",
    "dedupe_by_id",
    "merge_categories",
    "parse_records",
    "same_content",
    "sorted_by_id",
]
