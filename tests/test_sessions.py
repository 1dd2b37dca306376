from datetime import timedelta

from fivem_monitor.services.sessions import SessionTracker

from conftest import T0


def _player(pid, name="Abby", identifiers=None):
    return {"id": pid, "name": name, "ping": 42, "identifiers": identifiers or [f"license:{pid}"], "endpoint": "1.2.3.4"}


def test_new_player_starts_at_zero():
    tracker = SessionTracker()
    [record] = tracker.reconcile([_player(7)], T0)

    assert record.id == 7
    assert record.session_duration == 0
    assert record.total_time == 0
    assert tracker.sessions[7].join_time == T0


def test_continuous_player_duration_is_elapsed_minutes():
    tracker = SessionTracker()
    for step in range(0, 11):
        [record] = tracker.reconcile([_player(7)], T0 + timedelta(seconds=30 * step))

    # 10 polls * 30s = 5 minutes since first seen
    assert record.session_duration == 5
    assert record.total_time == 5


def test_duration_is_floored():
    tracker = SessionTracker()
    tracker.reconcile([_player(1)], T0)
    [record] = tracker.reconcile([_player(1)], T0 + timedelta(seconds=119))
    assert record.session_duration == 1


def test_reconnect_keeps_cumulative_total_time():
    tracker = SessionTracker()
    tracker.reconcile([_player(7)], T0)
    tracker.reconcile([_player(7)], T0 + timedelta(minutes=20))

    # disconnected at +25 min: 25 minutes folded into the total
    tracker.reconcile([], T0 + timedelta(minutes=25))
    assert tracker.sessions[7].total_time == 25
    assert tracker.sessions[7].join_time == T0 + timedelta(minutes=25)

    # back online an hour later; the gap itself is not counted
    tracker.reconcile([], T0 + timedelta(minutes=85))
    [record] = tracker.reconcile([_player(7)], T0 + timedelta(minutes=85))
    assert record.session_duration == 0
    assert record.total_time == 25

    [record] = tracker.reconcile([_player(7)], T0 + timedelta(minutes=95))
    assert record.session_duration == 10
    assert record.total_time == 35


def test_missing_fields_get_defaults():
    tracker = SessionTracker()
    records = tracker.reconcile([{}, {"name": "Zed"}], T0)

    assert [r.id for r in records] == [1, 2]
    assert records[0].name == "Player 1"
    assert records[0].ping == 0
    assert records[0].identifiers == []
    assert records[0].endpoint == "Unknown"
    assert tracker.unique_players == {"player_1", "player_2"}


def test_unique_players_only_grow():
    tracker = SessionTracker()
    tracker.reconcile([_player(1), _player(2)], T0)
    assert tracker.unique_count == 2

    tracker.reconcile([], T0 + timedelta(minutes=1))
    assert tracker.unique_count == 2

    # same license on a new server id is the same person
    tracker.reconcile([_player(9, identifiers=["license:1"])], T0 + timedelta(minutes=2))
    assert tracker.unique_count == 2


def test_evict_idle_drops_only_stale_sessions():
    tracker = SessionTracker()
    tracker.reconcile([_player(1), _player(2)], T0)
    later = T0 + timedelta(days=31)
    tracker.reconcile([_player(2)], later)

    evicted = tracker.evict_idle(later, timedelta(days=30))

    assert evicted == 1
    assert set(tracker.sessions) == {2}
    assert tracker.unique_count == 2


def test_time_offline_is_not_counted():
    tracker = SessionTracker()
    tracker.reconcile([_player(3)], T0)
    tracker.reconcile([], T0 + timedelta(minutes=10))
    for hours in range(1, 6):
        tracker.reconcile([], T0 + timedelta(minutes=10, hours=hours))

    assert tracker.sessions[3].total_time == 10
    assert not tracker.sessions[3].connected
