"""Tests for sl_common.id_generator and sl_common.datetime_utils."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest

from src.sl_common.datetime_utils import seconds_between, utc_now
from src.sl_common.id_generator import SnowflakeIdGenerator, generate_id


class TestSnowflakeIdGenerator:
    def test_returns_str(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        assert isinstance(gen.next_id(), str)

    def test_unique_ids(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        ids = {gen.next_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_monotonically_increasing(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        prev = int(gen.next_id())
        for _ in range(100):
            current = int(gen.next_id())
            assert current > prev
            prev = current

    def test_clock_step_back_does_not_go_backwards(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        with patch("src.sl_common.id_generator.time.time", return_value=1_800_000_000.0):
            first = int(gen.next_id())
        with patch("src.sl_common.id_generator.time.time", return_value=1_799_999_999.0):
            second = int(gen.next_id())
        assert second > first

    def test_machine_id_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="machine_id"):
            SnowflakeIdGenerator(machine_id=1024)

    def test_module_level_generate_id(self) -> None:
        assert generate_id() != generate_id()


class TestUtcNow:
    def test_returns_aware_datetime(self) -> None:
        now = utc_now()
        assert isinstance(now, datetime)
        assert now.utcoffset() == timedelta(0)


class TestSecondsBetween:
    def test_positive_interval(self) -> None:
        start = datetime(2026, 1, 1, tzinfo=UTC)
        assert seconds_between(start, start + timedelta(seconds=90)) == 90.0

    def test_clock_skew_reads_as_zero(self) -> None:
        start = datetime(2026, 1, 1, tzinfo=UTC)
        assert seconds_between(start, start - timedelta(seconds=5)) == 0.0
