"""Unit tests for repurposer/utils/timing.py."""

from __future__ import annotations

import time
from unittest.mock import patch

import pytest

from repurposer.utils.timing import timed


@pytest.mark.unit
class TestTimedContextManager:
    def test_elapsed_starts_at_zero_inside_block(self) -> None:
        with timed("test_operation") as t:
            in_block_value = t["elapsed_ms"]
        assert in_block_value == 0.0

    def test_elapsed_is_positive_after_block(self) -> None:
        with timed("some_work") as t:
            time.sleep(0.01)
        assert t["elapsed"] > 0.0
        assert t["elapsed_ms"] >= 5

    def test_elapsed_updated_after_exception(self) -> None:
        """Elapsed must be populated even when the body raises."""
        with pytest.raises(ValueError), timed("failing_op") as t:
            raise ValueError("boom")
        assert t["elapsed"] >= 0.0

    def test_milliseconds_are_rounded(self) -> None:
        with patch("repurposer.utils.timing.time") as mock_time:
            mock_time.monotonic.side_effect = [100.0, 100.2504]
            with timed("mono_test") as t:
                pass
        assert t["elapsed"] == pytest.approx(0.2504)
        assert t["elapsed_ms"] == 250.0

    def test_label_forwarded_to_logger(self) -> None:
        with patch("repurposer.utils.timing.logger") as mock_logger:
            with timed("generate_slot"):
                pass
            mock_logger.debug.assert_called_once()
            call_kwargs = mock_logger.debug.call_args
            assert call_kwargs[0][0] == "timed"
            assert call_kwargs[1]["label"] == "generate_slot"
