from datetime import timedelta

import pytest

from fivem_monitor.services.fetcher import Snapshot
from fivem_monitor.services.history import Period
from fivem_monitor.services.query import QueryService
from fivem_monitor.services.state import MonitorState

from conftest import T0


@pytest.fixture
def state(settings):
    state = MonitorState.from_settings(settings)
    state.apply(Snapshot(players=[
        {"id": 7, "name": "Abby"},
        {"id": 12, "name": "Zed"},
        {"id": 71, "name": "Rob"},
    ]), T0)
    return state


@pytest.fixture
def svc(state, settings):
    return QueryService(state, settings)


def test_search_by_name_case_insensitive(svc):
    outcome = svc.search("ab")
    assert outcome.ok
    assert [p.id for p in outcome.results] == [7]
    assert outcome.total == 3


def test_search_by_partial_id(svc):
    assert [p.id for p in svc.search("71").results] == [71]
    assert [p.id for p in svc.search(" ZE ").results] == [12]


def test_search_too_short_is_a_validation_failure(svc):
    outcome = svc.search("a")
    assert not outcome.ok
    assert outcome.error
    assert outcome.results == []
    assert not svc.search("  a  ").ok


def test_status_online_window(svc):
    assert svc.status(T0 + timedelta(seconds=119)).online
    assert not svc.status(T0 + timedelta(seconds=120)).online


def test_status_offline_before_first_poll(settings):
    svc = QueryService(MonitorState.from_settings(settings), settings)
    status = svc.status(T0)
    assert not status.online
    assert status.last_update is None
    assert status.players == 0


def test_status_fields(svc, settings):
    status = svc.status(T0)
    assert status.server_address == settings.fivem_server
    assert status.players == 3
    assert status.max_players == 48
    assert status.version == "2.0.0"


def test_history_synthetic_uses_live_count(settings):
    state = MonitorState.from_settings(settings)
    state.players = []
    svc = QueryService(state, settings)

    window = svc.history(Period.DAY, T0)
    assert not window.is_real
    assert len(window.samples) == 24
    assert {s.player_count for s in window.samples} == {0}


def test_history_real(svc):
    window = svc.history(Period.WEEK, T0 + timedelta(minutes=1))
    assert window.is_real
    assert [s.player_count for s in window.samples] == [3]


def test_server_info_recent_history(svc, state):
    for i in range(1, 60):
        state.apply(Snapshot(dynamic={}), T0 + timedelta(seconds=30 * i))
    overview = svc.server_info(T0 + timedelta(minutes=30))
    assert len(overview.recent_history) == 48
    assert overview.online
