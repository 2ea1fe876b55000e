from __future__ import annotations

from unittest.mock import Mock, patch

from coursecat_import.services.progress import ProgressTracker, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch('sys.stdout.isatty', return_value=True):
        assert is_tty_enabled() is True
    with patch('sys.stdout.isatty', return_value=False):
        assert is_tty_enabled() is False


class TestProgressTracker:
    def test_init_with_tty_enabled(self):
        with patch('coursecat_import.services.progress.is_tty_enabled', return_value=True), \
             patch('coursecat_import.services.progress.tqdm') as mock_tqdm:
            tracker = ProgressTracker(5, description="Rows")
            assert tracker.enabled is True
            mock_tqdm.assert_called_once_with(
                total=5,
                desc="Rows",
                unit="row",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    def test_init_with_tty_disabled(self):
        with patch('coursecat_import.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(5)
            assert tracker.enabled is False
            assert tracker.pbar is None
            tracker.advance()
            tracker.set_postfix(created=1)
            tracker.close()
            assert tracker.current_row == 1

    def test_advance_and_postfix(self):
        mock_pbar = Mock()
        with patch('coursecat_import.services.progress.is_tty_enabled', return_value=True), \
             patch('coursecat_import.services.progress.tqdm', return_value=mock_pbar):
            with ProgressTracker(3) as tracker:
                tracker.advance()
                tracker.set_postfix(created=1, errors=0)
            mock_pbar.update.assert_called_once_with(1)
            mock_pbar.set_postfix.assert_called_once_with(created=1, errors=0)
            mock_pbar.close.assert_called_once()
            assert tracker.pbar is None
