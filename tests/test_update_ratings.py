"""Tests for the rating refresh command line."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from scripts import update_ratings
from src.services.rating_refresh import RefreshStats


def _patched_driver():
    repo = MagicMock()
    repo.init_db = AsyncMock()
    driver = MagicMock()
    driver.run = AsyncMock(return_value=RefreshStats(selected=2, refreshed=2))
    driver.run_forever = AsyncMock()
    return repo, driver


class TestParseArgs:
    """Argument parsing for the refresh command."""

    def test_defaults(self):
        args = update_ratings._parse_args([])
        assert args.limit is None
        assert args.force is False
        assert args.loop is False

    def test_loop_and_force_together(self):
        args = update_ratings._parse_args(["--loop", "--force", "--limit", "3"])
        assert args.loop is True
        assert args.force is True
        assert args.limit == 3


class TestMain:
    """The entry point wires arguments through to the refresh driver."""

    @pytest.mark.asyncio
    async def test_loop_passes_force_through(self):
        repo, driver = _patched_driver()
        with (
            patch.object(update_ratings, "get_school_repository", return_value=repo),
            patch.object(update_ratings, "RatingRefreshDriver", return_value=driver),
        ):
            status = await update_ratings.main(["--loop", "--force"])

        assert status == 0
        driver.run_forever.assert_awaited_once()
        assert driver.run_forever.await_args.kwargs["force"] is True
        driver.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_single_run_exit_status(self, capsys):
        repo, driver = _patched_driver()
        driver.run.return_value = RefreshStats(selected=2, refreshed=1, failed=1, failed_urns=["100002"])
        with (
            patch.object(update_ratings, "get_school_repository", return_value=repo),
            patch.object(update_ratings, "RatingRefreshDriver", return_value=driver),
        ):
            status = await update_ratings.main(["--force", "--limit", "2"])

        assert status == 1
        driver.run.assert_awaited_once_with(limit=2, force=True)
        assert "Failed URNs:        100002" in capsys.readouterr().out
