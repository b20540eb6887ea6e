"""Output image operations: create, shrink, repair and validate.

This module drives the external tools that change an image on disk:

Operations:
    - create_output_image(): Allocate a blank raw image with ``qemu-img create``
    - shrink_output_image(): Resize to a ShrinkTarget with ``qemu-img resize``
    - repair_secondary_gpt(): Rebuild the backup GPT with ``sgdisk -e``
    - validate_image(): ``sgdisk -v`` plus a file size check
    - prepare_image(): inspect -> plan -> shrink -> repair -> validate

Implementation Details:
    - Every step runs synchronously; callers must not process the same image
      from two places at once
    - Shrinking is not undoable; the image file is truncated in place
    - ``qemu-img`` 5.1 and later refuse to shrink without ``--shrink``, while
      builds older than 2.11 reject the flag. The resize is tried with the flag
      first and repeated once without it.

Example:
    >>> from gpt_image_prep.storage.image import prepare_image
    >>> target = prepare_image("/var/tmp/windows-2025.raw")
    >>> target.new_disk_size_bytes
    32212271616
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional, Union

from gpt_image_prep.config.settings import (
    DEFAULT_IMAGE_FORMAT,
    DEFAULT_IMAGE_SIZE,
    DEFAULT_QEMU_IMG_PATH,
    get_bool,
    get_setting,
)
from gpt_image_prep.domain.models import ShrinkTarget, ValidationReport
from gpt_image_prep.logging import LoggerFactory
from gpt_image_prep.storage.command_runners import (
    CommandRunner,
    run_checked_command,
    run_command,
)
from gpt_image_prep.storage.exceptions import (
    CommandFailedError,
    ImageValidationError,
    ShrinkFailedError,
    describe_operation,
)
from gpt_image_prep.storage.gpt.geometry import (
    compute_shrink_target,
    plan_snapshot_shrink,
    shrink_limit_bytes,
)
from gpt_image_prep.storage.gpt.partition_table import (
    read_partition_table,
    sgdisk_command,
)

PathLike = Union[str, Path]

SHRINK_FLAG = "--shrink"

_PROBLEMS_PATTERN = re.compile(r"Identified \d+ problems?")

log = LoggerFactory.for_image()


def qemu_img_command(*args) -> list[str]:
    tool = get_setting("qemu_img_path", DEFAULT_QEMU_IMG_PATH)
    return [tool, *[str(arg) for arg in args]]


def create_output_image(
    image_path: PathLike,
    size: Optional[str] = None,
    runner: Optional[CommandRunner] = None,
) -> None:
    """Create a blank image (raw unless configured otherwise) for the installer."""
    size = size or get_setting("default_image_size", DEFAULT_IMAGE_SIZE)
    image_format = get_setting("image_format", DEFAULT_IMAGE_FORMAT)
    log.info(f"Creating {size} output image at {image_path}")
    with describe_operation(f"creating output image {image_path}"):
        run_checked_command(
            qemu_img_command("create", "-f", image_format, image_path, size),
            runner=runner,
        )


def build_resize_command(
    image_path: PathLike, target: ShrinkTarget, shrink_flag: bool = True
) -> list[str]:
    """``qemu-img resize [--shrink] -f <format> <image> <bytes>``."""
    image_format = get_setting("image_format", DEFAULT_IMAGE_FORMAT)
    args = ["resize"]
    if shrink_flag:
        args.append(SHRINK_FLAG)
    args.extend(["-f", image_format, image_path, target.size_argument])
    return qemu_img_command(*args)


def shrink_output_image(
    image_path: PathLike,
    target: ShrinkTarget,
    runner: Optional[CommandRunner] = None,
) -> None:
    """Truncate ``image_path`` to ``target.new_disk_size_bytes``.

    The secondary GPT does not survive this; call repair_secondary_gpt()
    afterwards. Resizing an image that already has the target size succeeds
    without changing it.

    Raises:
        ShrinkFailedError: If the resize fails both with and without --shrink
    """
    log.info(
        f"Shrinking {image_path} to {target.new_disk_size_bytes} bytes "
        f"(last sector {target.last_sector}, sector size {target.sector_size})"
    )
    try:
        run_checked_command(build_resize_command(image_path, target), runner=runner)
        return
    except CommandFailedError as error:
        log.warning(
            f"qemu-img resize with {SHRINK_FLAG} failed, retrying without it: {error}"
        )

    # A second failure is almost certainly not about the flag, so there is no
    # third variant to try.
    try:
        run_checked_command(
            build_resize_command(image_path, target, shrink_flag=False), runner=runner
        )
    except CommandFailedError as error:
        raise ShrinkFailedError(
            image_path, target.new_disk_size_bytes, cause=error
        ) from error


def shrink_to_last_sector(
    image_path: PathLike,
    sector_size: str,
    last_sector: str,
    runner: Optional[CommandRunner] = None,
) -> ShrinkTarget:
    """Shrink using the sector size and last sector strings read from sgdisk."""
    target = compute_shrink_target(sector_size, last_sector)
    shrink_output_image(image_path, target, runner=runner)
    return target


def repair_secondary_gpt(
    image_path: PathLike, runner: Optional[CommandRunner] = None
) -> None:
    """Move the backup GPT structures to the new end of the image."""
    log.info(f"Repairing secondary GPT of {image_path}")
    run_checked_command(sgdisk_command("-e", image_path), runner=runner)


def verify_gpt(
    image_path: PathLike, runner: Optional[CommandRunner] = None
) -> tuple[bool, str]:
    """Run ``sgdisk -v``; returns (valid, captured output)."""
    runner = runner or run_command
    result = runner(sgdisk_command("-v", image_path))
    output = (result.stdout or "") + (result.stderr or "")
    valid = result.returncode == 0 and not _PROBLEMS_PATTERN.search(output)
    return valid, output


def validate_image(
    image_path: PathLike, runner: Optional[CommandRunner] = None
) -> ValidationReport:
    """Check GPT integrity and that no trailing space is left in the image."""
    gpt_valid, gpt_output = verify_gpt(image_path, runner=runner)
    snapshot = read_partition_table(image_path, runner=runner)
    image_size = Path(image_path).stat().st_size
    report = ValidationReport(
        image_path=Path(image_path),
        gpt_valid=gpt_valid,
        gpt_output=gpt_output,
        image_size_bytes=image_size,
        size_limit_bytes=shrink_limit_bytes(snapshot),
    )
    for failure in report.failures():
        log.warning(failure)
    return report


def prepare_image(
    image_path: PathLike,
    runner: Optional[CommandRunner] = None,
    *,
    repair: bool = True,
    validate: Optional[bool] = None,
) -> ShrinkTarget:
    """Shrink an installed image and rebuild its secondary GPT.

    Raises:
        ImageValidationError: If validation is enabled and a check fails
    """
    snapshot = read_partition_table(image_path, runner=runner)
    log.debug(
        f"Found {snapshot.partition_count} partitions, last is "
        f"{snapshot.last_partition.index} ending at sector {snapshot.max_end_sector}"
    )
    target = plan_snapshot_shrink(snapshot)
    shrink_output_image(image_path, target, runner=runner)
    if not repair:
        return target

    repair_secondary_gpt(image_path, runner=runner)

    if validate is None:
        validate = get_bool("verify_after_repair", True)
    if validate:
        report = validate_image(image_path, runner=runner)
        if not report.ok:
            raise ImageValidationError(image_path, report.failures())
    return target
