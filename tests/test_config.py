import pytest

from itinerary.config import enrichment_enabled, get_day_workers, parse_flag


@pytest.mark.parametrize(
    "value, expected",
    [(None, None), (True, True), (False, False), ("true", True), (" YES ", True), ("1", True), (1, True),
     ("false", False), ("0", False), (0, False), ("", False)],
)
def test_parse_flag(value, expected):
    assert parse_flag(value) is expected


def test_enrichment_enabled_reads_environment(monkeypatch):
    monkeypatch.delenv("TRIP_PLANNER_ENRICH", raising=False)
    assert enrichment_enabled() is False

    monkeypatch.setenv("TRIP_PLANNER_ENRICH", "True")
    assert enrichment_enabled() is True


def test_day_workers_fall_back_to_sequential(monkeypatch):
    monkeypatch.setenv("TRIP_PLANNER_DAY_WORKERS", "lots")
    assert get_day_workers() == 1

    monkeypatch.setenv("TRIP_PLANNER_DAY_WORKERS", "4")
    assert get_day_workers() == 4
