"""Domain objects for GPT image inspection and shrinking."""

from __future__ import annotations

from .models import (
    GptPartitionInformation,
    PartitionRecord,
    PartitionTableSnapshot,
    ShrinkTarget,
    ValidationReport,
    parse_u64,
)


__all__ = [
    "GptPartitionInformation",
    "PartitionRecord",
    "PartitionTableSnapshot",
    "ShrinkTarget",
    "ValidationReport",
    "parse_u64",
]
