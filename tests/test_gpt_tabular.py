"""Tests for labelled-row column lookups in sgdisk output."""

import pytest

from gpt_image_prep.storage.exceptions import (
    ColumnOutOfRangeError,
    CommandFailedError,
    RowNotFoundError,
)
from gpt_image_prep.storage.gpt.tabular import grep_command_for_row_and_column, locate


class TestLocate:
    def test_sector_size_from_print_output(self, sgdisk_print_four_partitions):
        assert locate(sgdisk_print_four_partitions, "Sector size", 3) == "512"

    def test_values_from_info_output(self, sgdisk_info_output):
        assert locate(sgdisk_info_output, "First sector", 2) == "1323008"
        assert locate(sgdisk_info_output, "Last sector", 2) == "61865983"
        assert locate(sgdisk_info_output, "Partition size", 2) == "60542976"

    def test_columns_are_zero_indexed_over_whole_line(self):
        text = "Number  Start  End\n 3  1048576  2097151  524288   8300  Basic data\n"

        assert locate(text, "3", 0) == "3"
        assert locate(text, "3", 1) == "1048576"
        assert locate(text, "3", 2) == "2097151"

    def test_label_must_be_whole_word(self):
        text = " 30  4096  8191\n 3  1048576  2097151\n"

        assert locate(text, "3", 2) == "2097151"

    def test_label_must_start_the_row(self):
        text = "Maximum Partition size: 9 sectors\nPartition size: 2048 sectors\n"

        assert locate(text, "Partition size", 2) == "2048"

    def test_label_in_middle_of_line_is_not_a_match(self):
        text = "Maximum Partition size: 9 sectors\n"

        with pytest.raises(RowNotFoundError):
            locate(text, "Partition size", 2)

    def test_first_matching_row_wins(self):
        text = "First sector: 2048 (at 1024.0 KiB)\nFirst sector: 4096 (at 2.0 MiB)\n"

        assert locate(text, "First sector", 2) == "2048"

    def test_value_returned_verbatim(self):
        text = "Sector size (logical/physical): 512/4096 bytes\n"

        assert locate(text, "Sector size", 3) == "512/4096"

    def test_missing_row(self, sgdisk_info_output):
        with pytest.raises(RowNotFoundError) as exc_info:
            locate(sgdisk_info_output, "Sector size", 3)

        assert exc_info.value.label == "Sector size"

    def test_column_out_of_range(self):
        text = "Last sector: 61865983\n"

        with pytest.raises(ColumnOutOfRangeError) as exc_info:
            locate(text, "Last sector", 3)

        assert exc_info.value.available == 3
        assert exc_info.value.column == 3

    def test_empty_text(self):
        with pytest.raises(RowNotFoundError):
            locate("", "Sector size", 3)


class TestGrepCommandForRowAndColumn:
    def test_runs_command_and_locates(self, fake_runner, sgdisk_info_output):
        fake_runner.on("-i", "4", stdout=sgdisk_info_output)

        value = grep_command_for_row_and_column(
            ["sgdisk", "-i", "4", "out.raw"], "First sector", 2, runner=fake_runner
        )

        assert value == "1323008"
        assert fake_runner.calls == [["sgdisk", "-i", "4", "out.raw"]]

    def test_command_failure_is_not_a_lookup_failure(self, fake_runner):
        fake_runner.on("-i", returncode=2, stderr="Problem opening out.raw")

        with pytest.raises(CommandFailedError):
            grep_command_for_row_and_column(
                ["sgdisk", "-i", "4", "out.raw"], "First sector", 2, runner=fake_runner
            )
