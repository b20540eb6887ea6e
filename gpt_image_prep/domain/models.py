"""Domain model for GPT image inspection and shrinking.

Every object here is built fresh from tool output for a single shrink run and
is never persisted. Values that come straight from ``sgdisk`` keep their
decimal string form until they are needed for arithmetic.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from gpt_image_prep.storage.exceptions import (
    MalformedNumberError,
    NoPartitionsFoundError,
)

U64_MAX = 2**64 - 1

_DECIMAL_PATTERN = re.compile(r"[0-9]+")


def parse_u64(value: str, what: str = "value") -> int:
    """Parse a decimal string as an unsigned 64-bit integer.

    ``int()`` alone is too lenient here (it accepts signs, underscores and
    non-ASCII digits), so the text is matched against plain ASCII digits.

    Raises:
        MalformedNumberError: If ``value`` is not a decimal number in u64 range
    """
    text = value.strip() if isinstance(value, str) else str(value)
    if not _DECIMAL_PATTERN.fullmatch(text):
        raise MalformedNumberError(value, what)
    number = int(text)
    if number > U64_MAX:
        raise MalformedNumberError(value, what)
    return number


# ==============================================================================
# Partition Table Domain
# ==============================================================================


@dataclass(frozen=True)
class PartitionRecord:
    """One partition row from ``sgdisk -p``."""

    index: int  # partition number, e.g. 4
    start_sector: int
    end_sector: int  # inclusive

    def __post_init__(self) -> None:
        if self.end_sector < self.start_sector:
            raise MalformedNumberError(
                str(self.end_sector),
                "end sector",
                message=(
                    f"Partition {self.index} ends at sector {self.end_sector} "
                    f"before its start sector {self.start_sector}"
                ),
            )

    @property
    def sector_count(self) -> int:
        return self.end_sector - self.start_sector + 1


@dataclass(frozen=True)
class PartitionTableSnapshot:
    """Sector size plus every partition found in one ``sgdisk -p`` listing."""

    sector_size: int
    records: tuple[PartitionRecord, ...]
    image_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.sector_size <= 0:
            raise MalformedNumberError(
                str(self.sector_size),
                "sector size",
                message=f"Sector size must be positive, got {self.sector_size}",
            )
        if not self.records:
            raise NoPartitionsFoundError(self.image_path)

    @property
    def max_end_sector(self) -> int:
        """Highest end sector across all partitions, whatever their numbering."""
        return max(record.end_sector for record in self.records)

    @property
    def last_partition(self) -> PartitionRecord:
        """The partition that ends furthest into the disk."""
        return max(self.records, key=lambda record: record.end_sector)

    @property
    def partition_count(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class GptPartitionInformation:
    """Geometry of a single partition looked up by explicit id.

    All fields are the decimal strings printed by ``sgdisk``.
    """

    sector_size: str
    first_sector: str
    last_sector: str
    partition_sectors: str

    @property
    def offset_bytes(self) -> int:
        """Byte offset of the partition inside the image (e.g. for losetup -o)."""
        return parse_u64(self.first_sector, "first sector") * parse_u64(
            self.sector_size, "sector size"
        )

    @property
    def size_bytes(self) -> int:
        return parse_u64(self.partition_sectors, "partition size") * parse_u64(
            self.sector_size, "sector size"
        )


# ==============================================================================
# Shrink Domain
# ==============================================================================


@dataclass(frozen=True)
class ShrinkTarget:
    """Computed resize target, consumed immediately by the shrink executor."""

    sector_size: int
    last_sector: int
    new_disk_size_bytes: int

    @property
    def size_argument(self) -> str:
        """Exact byte count as passed to ``qemu-img resize``."""
        return str(self.new_disk_size_bytes)


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of the post-shrink checks on an image."""

    image_path: Path
    gpt_valid: bool
    gpt_output: str
    image_size_bytes: int
    size_limit_bytes: int

    @property
    def size_within_limit(self) -> bool:
        return self.image_size_bytes <= self.size_limit_bytes

    @property
    def ok(self) -> bool:
        return self.gpt_valid and self.size_within_limit

    def failures(self) -> list[str]:
        """Human-readable descriptions of every failed check."""
        problems = []
        if not self.gpt_valid:
            problems.append("GPT verification failed (sgdisk -v reported errors)")
        if not self.size_within_limit:
            problems.append(
                f"Image size {self.image_size_bytes} bytes exceeds shrink limit "
                f"{self.size_limit_bytes} bytes"
            )
        return problems
