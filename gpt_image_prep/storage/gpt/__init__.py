"""GPT partition table inspection and shrink planning.

Main Functions:
    - locate(): Pull one column out of a labelled row of tool output
    - scan(): Parse every partition row of an ``sgdisk -p`` listing
    - read_partition_table(): Sector size plus all partitions of an image
    - get_gpt_partition_information(): Geometry of one partition by id
    - plan_shrink(): Minimal image size that keeps all partitions intact
"""

from .geometry import (
    GPT_BACKUP_SECTORS,
    compute_shrink_target,
    max_end_sector,
    plan_shrink,
    plan_snapshot_shrink,
    shrink_limit_bytes,
)
from .partition_table import (
    get_gpt_partition_information,
    get_output_image_partition_size,
    read_partition_table,
    read_sector_size,
    scan,
)
from .tabular import grep_command_for_row_and_column, locate

__all__ = [
    "GPT_BACKUP_SECTORS",
    "compute_shrink_target",
    "get_gpt_partition_information",
    "get_output_image_partition_size",
    "grep_command_for_row_and_column",
    "locate",
    "max_end_sector",
    "plan_shrink",
    "plan_snapshot_shrink",
    "read_partition_table",
    "read_sector_size",
    "scan",
    "shrink_limit_bytes",
]
