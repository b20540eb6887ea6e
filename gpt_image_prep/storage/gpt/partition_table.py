"""Partition table inspection using sgdisk.

This module handles reading GPT geometry out of an image:
- Scanning the ``sgdisk -p`` listing into PartitionRecords, however many
  partitions the installer created and whatever their numbering
- Reading the sector size
- Looking up one partition's first/last sector and size with ``sgdisk -i``

Example ``sgdisk -p`` output for an installed image::

    Disk out.raw: 62914560 sectors, 30.0 GiB
    Sector size (logical): 512 bytes
    ...
    Number  Start (sector)    End (sector)  Size       Code  Name
       1            2048          206847   100.0 MiB   EF00  EFI system partition
       2          206848          239615   16.0 MiB    0C01  Microsoft reserved ...
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from gpt_image_prep.config.settings import DEFAULT_SGDISK_PATH, get_setting
from gpt_image_prep.domain.models import (
    GptPartitionInformation,
    PartitionRecord,
    PartitionTableSnapshot,
    parse_u64,
)
from gpt_image_prep.storage.command_runners import CommandRunner, run_checked_command
from gpt_image_prep.storage.exceptions import (
    MalformedNumberError,
    MalformedRowError,
    NoPartitionsFoundError,
    RowNotFoundError,
    describe_operation,
)
from gpt_image_prep.storage.gpt.tabular import locate

PathLike = Union[str, Path]

# Column holding the sector size in "Sector size (logical): 512 bytes".
SECTOR_SIZE_COLUMN = 3
# Column holding the value in "First sector: 2048 (at 1024.0 KiB)" and friends.
DETAIL_VALUE_COLUMN = 2


def sgdisk_command(*args) -> list[str]:
    tool = get_setting("sgdisk_path", DEFAULT_SGDISK_PATH)
    return [tool, *[str(arg) for arg in args]]


def is_partition_row(line: str) -> bool:
    """Partition rows are the only lines that start with a digit."""
    text = line.lstrip()
    return bool(text) and text[0].isdigit()


def parse_partition_row(line: str) -> PartitionRecord:
    """Parse ``<index> <start> <end> ...`` into a PartitionRecord.

    Raises:
        MalformedRowError: If the row has fewer than three columns, a
            non-numeric value in them, or ends before it starts
    """
    columns = line.split()
    if len(columns) < 3:
        raise MalformedRowError(
            line, "expected partition number, start and end sector"
        )
    try:
        index = parse_u64(columns[0], "partition number")
        start_sector = parse_u64(columns[1], "start sector")
        end_sector = parse_u64(columns[2], "end sector")
    except MalformedNumberError as error:
        raise MalformedRowError(
            line, f"{error.what} '{error.value}' is not numeric"
        ) from error
    if end_sector < start_sector:
        raise MalformedRowError(
            line, f"end sector {end_sector} is before start sector {start_sector}"
        )
    return PartitionRecord(
        index=index, start_sector=start_sector, end_sector=end_sector
    )


def scan(output: str) -> list[PartitionRecord]:
    """Parse every partition row of an ``sgdisk -p`` listing, in output order.

    Returns an empty list when there are no partition rows; deciding whether
    that is acceptable is up to the caller.
    """
    return [
        parse_partition_row(line)
        for line in output.splitlines()
        if is_partition_row(line)
    ]


def read_sector_size(output: str) -> str:
    """Return the logical sector size from ``sgdisk -p`` output as a string.

    Block devices report ``Sector size (logical/physical): 512/4096 bytes``;
    only the logical part is kept. Old gdisk releases print
    ``Logical sector size: 512 bytes`` instead.
    """
    try:
        value = locate(output, "Sector size", SECTOR_SIZE_COLUMN)
    except RowNotFoundError:
        value = locate(output, "Logical sector size", SECTOR_SIZE_COLUMN)
    return value.split("/", 1)[0]


def read_partition_listing(
    image_path: PathLike, runner: Optional[CommandRunner] = None
) -> str:
    with describe_operation("running 'sgdisk -p' to list partitions"):
        return run_checked_command(sgdisk_command("-p", image_path), runner=runner)


def read_partition_table(
    image_path: PathLike, runner: Optional[CommandRunner] = None
) -> PartitionTableSnapshot:
    """Read the sector size and all partitions of ``image_path``.

    Raises:
        NoPartitionsFoundError: If the listing has no partition rows
    """
    output = read_partition_listing(image_path, runner=runner)
    with describe_operation("running 'sgdisk -p' to get sector size"):
        sector_size = parse_u64(read_sector_size(output), "sector size")
        if sector_size == 0:
            raise MalformedNumberError(
                "0", "sector size", message="Sector size must be positive, got 0"
            )
    with describe_operation("running 'sgdisk -p' to list partitions"):
        records = scan(output)
        if not records:
            raise NoPartitionsFoundError(image_path)
    return PartitionTableSnapshot(
        sector_size=sector_size,
        records=tuple(records),
        image_path=Path(image_path),
    )


def get_output_image_partition_size(
    image_path: PathLike, runner: Optional[CommandRunner] = None
) -> tuple[str, str]:
    """Return ``(sector size, last sector)`` of an installed image as strings.

    The last sector is the highest end sector across all partitions rather
    than the end of a fixed partition number: installers differ in how many
    partitions they create (4 on older Windows Server releases, 5 on newer
    ones with a trailing recovery partition).
    """
    snapshot = read_partition_table(image_path, runner=runner)
    return str(snapshot.sector_size), str(snapshot.max_end_sector)


def get_gpt_partition_information(
    image_path: PathLike,
    partition_id: int,
    runner: Optional[CommandRunner] = None,
) -> GptPartitionInformation:
    """Get sector size, first/last sector and size in sectors of one partition."""
    with describe_operation("running 'sgdisk -p' to get sector size"):
        listing = run_checked_command(sgdisk_command("-p", image_path), runner=runner)
        sector_size = read_sector_size(listing)

    with describe_operation(f"running 'sgdisk -i {partition_id}'"):
        details = run_checked_command(
            sgdisk_command("-i", partition_id, image_path), runner=runner
        )

    with describe_operation("getting first sector offset from 'sgdisk -i'"):
        first_sector = locate(details, "First sector", DETAIL_VALUE_COLUMN)

    with describe_operation("getting last sector offset from 'sgdisk -i'"):
        last_sector = locate(details, "Last sector", DETAIL_VALUE_COLUMN)

    with describe_operation("getting partition sector count from 'sgdisk -i'"):
        partition_sectors = locate(details, "Partition size", DETAIL_VALUE_COLUMN)

    return GptPartitionInformation(
        sector_size=sector_size,
        first_sector=first_sector,
        last_sector=last_sector,
        partition_sectors=partition_sectors,
    )
