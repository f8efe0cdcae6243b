"""
Collection backup and restore.

A backup is a JSON document:

    {
        "version": "1.0",
        "created_at": "2024-05-01T12:00:00+00:00",
        "collection": [{"card_id": ..., "card_name": ..., "quantity": ...}, ...],
        "metadata": {"card_count": 120, "total_value": 431.5}
    }

Restore replaces the user's collection. Rows are inserted in batches of
`settings.bulk_batch_size`, each committed before the next starts. If a
batch fails the restore stops there; batches already committed stay.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from manavault.config import settings
from manavault.db import operations as ops
from manavault.models.collection import Collection, CollectionEntry, Condition

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"


class BackupFormatError(ValueError):
    """Raised when a backup document is missing fields or malformed."""


class RestoreError(Exception):
    """A restore batch failed; `restored` rows were committed before it."""

    def __init__(self, restored: int, batch: int, reason: str):
        self.restored = restored
        self.batch = batch
        super().__init__(f"Restore failed at batch {batch} after {restored} rows: {reason}")


class BackupEntry(BaseModel):
    card_id: str = Field(min_length=1)
    card_name: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=0)
    foil: int = Field(default=0, ge=0)
    condition: Condition = Condition.NEAR_MINT
    set_code: str = ""
    collector_number: str = ""
    language: str = "en"
    price_usd: float | None = None
    price_usd_foil: float | None = None
    purchase_price: float | None = None
    tags: list[str] = Field(default_factory=list)
    notes: str | None = None


class BackupMetadata(BaseModel):
    card_count: int = 0
    total_value: float = 0.0


class BackupDocument(BaseModel):
    version: str = Field(min_length=1)
    created_at: datetime | None = None
    collection: list[BackupEntry]
    metadata: BackupMetadata = Field(default_factory=BackupMetadata)


@dataclass(frozen=True)
class RestoreResult:
    restored: int
    batches: int


def _to_backup_entry(entry: CollectionEntry) -> BackupEntry:
    return BackupEntry(
        card_id=entry.card_id,
        card_name=entry.card_name,
        quantity=entry.quantity,
        foil=entry.foil,
        condition=entry.condition,
        set_code=entry.set_code,
        collector_number=entry.collector_number,
        language=entry.language,
        price_usd=entry.price_usd,
        price_usd_foil=entry.price_usd_foil,
        purchase_price=entry.purchase_price,
        tags=list(entry.tags),
        notes=entry.notes,
    )


def _to_entry(item: BackupEntry) -> CollectionEntry:
    return CollectionEntry(**item.model_dump())


def create_backup(collection: Collection, created_at: datetime | None = None) -> dict[str, Any]:
    """Build a JSON-ready backup document for a collection."""
    entries = sorted(collection.entries.values(), key=lambda e: e.card_name)
    document = BackupDocument(
        version=BACKUP_VERSION,
        created_at=created_at or datetime.now(UTC),
        collection=[_to_backup_entry(entry) for entry in entries],
        metadata=BackupMetadata(
            card_count=len(entries),
            total_value=round(collection.total_value(), 2),
        ),
    )
    return document.model_dump(mode="json")


def parse_backup(data: Any) -> list[CollectionEntry]:
    """
    Validate a backup document and return its entries.

    Raises:
        BackupFormatError: If the document isn't a valid backup
    """
    if not isinstance(data, dict):
        raise BackupFormatError("Backup must be a JSON object")

    try:
        document = BackupDocument.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise BackupFormatError(f"Invalid backup file format: {location}: {first['msg']}") from e

    return [_to_entry(item) for item in document.collection]


async def restore_backup(
    session_factory: Callable[[], AsyncSession],
    user_id: str,
    data: Any,
    batch_size: int | None = None,
) -> RestoreResult:
    """
    Replace a user's collection with the contents of a backup.

    The document is validated before anything is deleted.

    Raises:
        BackupFormatError: If the document is invalid (nothing is changed)
        RestoreError: If a batch fails (earlier batches remain committed)
    """
    entries = parse_backup(data)
    size = batch_size or settings.bulk_batch_size
    restored = 0
    batch_number = 0

    async with session_factory() as session:
        removed = await ops.delete_collection(session, user_id)
        await session.commit()
        logger.info("Restore for %s: cleared %d existing entries", user_id, removed)

        for start in range(0, len(entries), size):
            batch_number += 1
            batch = entries[start : start + size]
            try:
                await ops.insert_collection_entries(session, user_id, batch)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    "Restore for %s: batch %d failed after %d rows: %s",
                    user_id,
                    batch_number,
                    restored,
                    e,
                )
                raise RestoreError(restored, batch_number, str(e)) from e

            restored += len(batch)
            logger.info(
                "Restore for %s: batch %d committed (%d/%d rows)",
                user_id,
                batch_number,
                restored,
                len(entries),
            )

    return RestoreResult(restored=restored, batches=batch_number)
