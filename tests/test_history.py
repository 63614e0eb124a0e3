from dashboard_core.history import HistoryManager
from dashboard_core.models import DashboardDocument
from dashboard_core.store import DashboardStore


def test_undo_redo_on_empty_history():
    history = HistoryManager()
    doc = DashboardDocument()
    assert history.undo(doc) is None
    assert history.redo(doc) is None


def test_record_clears_redo_branch():
    history = HistoryManager()
    a, b, c = DashboardDocument(name="a"), DashboardDocument(name="b"), DashboardDocument(name="c")
    history.record(a)
    assert history.undo(b) is a
    assert history.can_redo
    history.record(a)
    assert not history.can_redo
    assert history.redo(c) is None


def test_history_is_bounded():
    history = HistoryManager(limit=3)
    for i in range(5):
        history.record(DashboardDocument(name=str(i)))
    assert history.undo_depth == 3
    restored = [history.undo(DashboardDocument()).name for _ in range(3)]
    assert restored == ["4", "3", "2"]
    assert history.undo(DashboardDocument()) is None


def test_fifty_step_round_trip(registry):
    store = DashboardStore(registry)
    states = [store.spec]
    for i in range(50):
        store.set_name(f"name {i}")
        states.append(store.spec)

    for expected in reversed(states[:-1]):
        assert store.undo()
        assert store.spec == expected
    assert not store.undo()

    for expected in states[1:]:
        assert store.redo()
        assert store.spec == expected
    assert not store.redo()


def test_oldest_snapshot_dropped_past_limit(registry):
    store = DashboardStore(registry, history_limit=50)
    for i in range(51):
        store.set_name(f"name {i}")
    undone = 0
    while store.undo():
        undone += 1
    assert undone == 50
    assert store.spec.name == "name 0"
