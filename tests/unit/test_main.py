"""Tests for worker startup."""

from unittest.mock import patch

import pytest

from chorecycle import main


@pytest.mark.unit
class TestStartWorker:
    """Tests for start_worker."""

    async def test_catches_up_and_schedules_when_enabled(self):
        """Test an enabled rollover runs once at startup and then gets scheduled."""
        with (
            patch.object(main.settings, "enable_rollover_job", True),
            patch.object(main, "configure_logfire"),
            patch.object(main, "init_db") as mock_init_db,
            patch.object(main, "run_rollover_job") as mock_rollover,
            patch.object(main, "start_scheduler") as mock_start,
        ):
            await main.start_worker()

        mock_init_db.assert_awaited_once()
        mock_rollover.assert_awaited_once()
        mock_start.assert_called_once()

    async def test_disabled_rollover_skips_catch_up(self):
        """Test a disabled rollover neither runs at startup nor gets scheduled."""
        with (
            patch.object(main.settings, "enable_rollover_job", False),
            patch.object(main, "configure_logfire"),
            patch.object(main, "init_db") as mock_init_db,
            patch.object(main, "run_rollover_job") as mock_rollover,
            patch.object(main, "start_scheduler") as mock_start,
        ):
            await main.start_worker()

        mock_init_db.assert_awaited_once()
        mock_rollover.assert_not_called()
        mock_start.assert_not_called()
