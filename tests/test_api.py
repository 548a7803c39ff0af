"""Tests for the puzzle service client."""

import datetime
from unittest.mock import MagicMock, patch

import pytest
import requests

from api import get_todays_puzzle, puzzle_date
from errors import UpstreamUnavailable

PAYLOAD = {
    "id": 1234,
    "solution": "crane",
    "print_date": "2026-10-18",
    "days_since_launch": 1582,
    "editor": "Tracy Bennett",
}


def ok_response(payload=PAYLOAD):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class TestPuzzleDate:
    def test_uses_eastern_calendar_date(self):
        # 02:00 UTC is still the previous evening in New York
        now = datetime.datetime(2026, 10, 19, 2, 0, tzinfo=datetime.timezone.utc)

        assert puzzle_date(now) == "2026-10-18"

    def test_same_day_in_the_afternoon(self):
        now = datetime.datetime(2026, 10, 19, 18, 0, tzinfo=datetime.timezone.utc)

        assert puzzle_date(now) == "2026-10-19"


class TestGetTodaysPuzzle:
    NOW = datetime.datetime(2026, 10, 19, 2, 0, tzinfo=datetime.timezone.utc)

    @patch("api.requests.get")
    def test_returns_sequence_number_and_date(self, mock_get):
        mock_get.return_value = ok_response()

        puzzle = get_todays_puzzle(now=self.NOW)

        assert puzzle.number == 1582
        assert puzzle.print_date == "2026-10-18"
        url = mock_get.call_args.args[0]
        assert url.endswith("/2026-10-18.json")
        assert mock_get.call_args.kwargs["timeout"] > 0

    @patch("api.time.sleep")
    @patch("api.requests.get")
    def test_retries_transient_failures(self, mock_get, mock_sleep):
        mock_get.side_effect = [requests.ConnectionError("boom"), ok_response()]

        puzzle = get_todays_puzzle(now=self.NOW, retries=3, backoff=1.0)

        assert puzzle.number == 1582
        assert mock_get.call_count == 2
        mock_sleep.assert_called_once_with(1.0)

    @patch("api.time.sleep")
    @patch("api.requests.get")
    def test_backoff_doubles(self, mock_get, mock_sleep):
        mock_get.side_effect = requests.Timeout("slow")

        with pytest.raises(UpstreamUnavailable):
            get_todays_puzzle(now=self.NOW, retries=3, backoff=0.5)

        assert mock_get.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0]

    @patch("api.time.sleep")
    @patch("api.requests.get")
    def test_http_error_is_upstream_unavailable(self, mock_get, mock_sleep):
        response = ok_response()
        response.raise_for_status.side_effect = requests.HTTPError("503")
        mock_get.return_value = response

        with pytest.raises(UpstreamUnavailable):
            get_todays_puzzle(now=self.NOW, retries=2, backoff=0)

    @patch("api.time.sleep")
    @patch("api.requests.get")
    def test_payload_without_sequence_number_is_rejected(self, mock_get, mock_sleep):
        mock_get.return_value = ok_response({"print_date": "2026-10-18"})

        with pytest.raises(UpstreamUnavailable):
            get_todays_puzzle(now=self.NOW, retries=1)
