"""
Snapshot Merge Helpers

Pure functions used by the sync bridge to turn remote snapshots into
store contents and to decide whether a snapshot changes anything.
"""

from typing import Any, Iterable, Sequence, TypeVar

from pydantic import ValidationError

from expense_manager.audit import get_logger
from expense_manager.models import Category
from expense_manager.models.entities import RecordModel


logger = get_logger(__name__)

M = TypeVar("M", bound=RecordModel)


def parse_records(model: type[M], records: Iterable[dict[str, Any]]) -> list[M]:
    """
    Parse raw remote records, skipping invalid ones.

    Duplicate ids collapse to one entry: the position of the first
    occurrence with the content of the last.
    """
    parsed = []
    for record in records:
        try:
            parsed.append(model.model_validate(record))
        except ValidationError as e:
            logger.warning(
                "remote_record_skipped",
                model=model.__name__,
                record_id=record.get("id") if isinstance(record, dict) else None,
                error_count=e.error_count(),
            )
    return dedupe_by_id(parsed)


def dedupe_by_id(items: Iterable[M]) -> list[M]:
    by_id: dict[str, M] = {}
    for item in items:
        by_id[item.id] = item
    return list(by_id.values())


def merge_categories(
    seed: Sequence[Category],
    remote: Sequence[Category],
) -> list[Category]:
    """
    Merge remote categories over the defaults.

    1. start from the defaults, in seed order
    2. replace each default the remote side also holds
    3. append the remote categories that are not defaults
    """
    remote_by_id = {cat.id: cat for cat in remote}
    seed_ids = {cat.id for cat in seed}

    merged = [remote_by_id.get(cat.id, cat) for cat in seed]
    merged.extend(cat for cat in remote if cat.id not in seed_ids)
    return merged


def sorted_by_id(items: Iterable[M]) -> list[M]:
    return sorted(items, key=lambda item: item.id)


def same_content(current: Sequence[RecordModel], incoming: Sequence[RecordModel]) -> bool:
    """True when both collections hold the same records in the same order."""
    if len(current) != len(incoming):
        return False
    return [item.to_record() for item in current] == [item.to_record() for item in incoming]
