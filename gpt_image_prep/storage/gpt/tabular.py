"""Single-value lookups in labelled, whitespace-columned tool output.

``sgdisk`` prints most of its facts as ``Label: value ...`` lines, e.g.::

    Sector size (logical): 512 bytes
    First sector: 2048 (at 1024.0 KiB)
    Partition size: 2097152 sectors (1.0 GiB)

A row is found by its label and a value is taken from a whitespace-delimited
column of that row, counting from 0 over the whole line (label words
included). Values are returned verbatim as strings.
"""

from __future__ import annotations

from typing import Optional, Sequence

from gpt_image_prep.storage.command_runners import CommandRunner, run_checked_command
from gpt_image_prep.storage.exceptions import (
    ColumnOutOfRangeError,
    RowNotFoundError,
)


def _has_label(line: str, label: str) -> bool:
    """True if ``line`` starts with ``label`` as a whole word sequence.

    ``"3"`` matches ``" 3  2048 ..."`` but not ``" 30  2048 ..."``, and
    ``"First sector"`` matches ``"First sector: 2048"``.
    """
    text = line.lstrip()
    if not text.startswith(label):
        return False
    rest = text[len(label):]
    return not rest or not rest[0].isalnum()


def locate(text: str, row_label: str, column_index: int) -> str:
    """Return column ``column_index`` of the first row labelled ``row_label``.

    Raises:
        RowNotFoundError: If no line carries the label
        ColumnOutOfRangeError: If the matched line has too few columns
    """
    for line in text.splitlines():
        if not _has_label(line, row_label):
            continue
        columns = line.split()
        if column_index < 0 or column_index >= len(columns):
            raise ColumnOutOfRangeError(row_label, column_index, len(columns), line)
        return columns[column_index]
    raise RowNotFoundError(row_label)


def grep_command_for_row_and_column(
    command: Sequence[str],
    row_label: str,
    column_index: int,
    runner: Optional[CommandRunner] = None,
) -> str:
    """Run ``command`` and :func:`locate` a value in its stdout."""
    output = run_checked_command(command, runner=runner)
    return locate(output, row_label, column_index)
