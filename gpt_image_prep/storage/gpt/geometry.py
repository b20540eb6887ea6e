"""Shrink planning for GPT images.

The new image size keeps every sector up to the highest partition end sector
and leaves 34 sectors after it, the space a secondary GPT (1 header sector
plus 32 sectors of partition entries) occupies. The truncated image has no
valid secondary GPT until it is regenerated with ``sgdisk -e``.
"""

from __future__ import annotations

from typing import Iterable

from gpt_image_prep.domain.models import (
    PartitionRecord,
    PartitionTableSnapshot,
    ShrinkTarget,
    parse_u64,
)
from gpt_image_prep.storage.exceptions import (
    MalformedNumberError,
    NoPartitionsFoundError,
    describe_operation,
)

GPT_BACKUP_SECTORS = 34


def max_end_sector(records: Iterable[PartitionRecord], image_path=None) -> int:
    """Highest end sector across ``records``, independent of order and numbering.

    Raises:
        NoPartitionsFoundError: If ``records`` is empty
    """
    end_sectors = [record.end_sector for record in records]
    if not end_sectors:
        raise NoPartitionsFoundError(image_path)
    return max(end_sectors)


def new_disk_size_bytes(sector_size: int, last_sector: int) -> int:
    return sector_size * last_sector + GPT_BACKUP_SECTORS * sector_size


def plan_shrink(
    sector_size: int, records: Iterable[PartitionRecord], image_path=None
) -> ShrinkTarget:
    """Compute the smallest image size that keeps all partitions intact.

    Raises:
        NoPartitionsFoundError: If ``records`` is empty; an image with no
            partitions means inspection went wrong, not that zero bytes suffice
        MalformedNumberError: If ``sector_size`` is not positive
    """
    if sector_size <= 0:
        raise MalformedNumberError(
            str(sector_size),
            "sector size",
            message=f"Sector size must be positive, got {sector_size}",
        )
    last_sector = max_end_sector(records, image_path=image_path)
    return ShrinkTarget(
        sector_size=sector_size,
        last_sector=last_sector,
        new_disk_size_bytes=new_disk_size_bytes(sector_size, last_sector),
    )


def plan_snapshot_shrink(snapshot: PartitionTableSnapshot) -> ShrinkTarget:
    return plan_shrink(
        snapshot.sector_size, snapshot.records, image_path=snapshot.image_path
    )


def compute_shrink_target(sector_size: str, last_sector: str) -> ShrinkTarget:
    """Build a ShrinkTarget from the decimal strings read out of ``sgdisk``."""
    with describe_operation("parsing sector size as u64"):
        sector_size_value = parse_u64(sector_size, "sector size")
    with describe_operation("parsing last sector number as u64"):
        last_sector_value = parse_u64(last_sector, "last sector")
    if sector_size_value == 0:
        raise MalformedNumberError(
            sector_size, "sector size", message="Sector size must be positive, got 0"
        )
    return ShrinkTarget(
        sector_size=sector_size_value,
        last_sector=last_sector_value,
        new_disk_size_bytes=new_disk_size_bytes(sector_size_value, last_sector_value),
    )


def shrink_limit_bytes(snapshot: PartitionTableSnapshot) -> int:
    """Largest file size a correctly shrunk image may have."""
    return new_disk_size_bytes(snapshot.sector_size, snapshot.max_end_sector)
