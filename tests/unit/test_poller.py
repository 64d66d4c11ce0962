"""
Unit tests for the named poll task registry and tick loop.

A fake clock stands in for time so no test actually sleeps.
"""

import pytest
from forkline.layers.action.poller import CancellationToken, Poller, PollTask, TaskRegistry, TaskState


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def make_poller():
    clock = FakeClock()
    return Poller(clock=clock, sleep=clock.sleep), clock


def ready_after(n, value="done"):
    calls = {"n": 0}

    def probe():
        calls["n"] += 1
        return value if calls["n"] >= n else None
    return probe


def test_delivers_once_when_probe_succeeds():
    poller, clock = make_poller()
    delivered = []
    task = poller.start("t", ready_after(3), 500, on_ready=delivered.append)

    assert poller.run_until_idle() is True
    assert delivered == ["done"]
    assert task.state == TaskState.DELIVERED
    assert task.attempts == 3
    assert "t" not in poller.registry
    # Two waits of one interval between the three ticks
    assert clock.sleeps == [0.5, 0.5]


def test_tick_after_delivery_does_nothing():
    poller, _ = make_poller()
    delivered = []
    task = poller.start("t", lambda: 1, 100, on_ready=delivered.append)
    assert poller.tick(task) is True
    assert poller.tick(task) is False
    assert delivered == [1]


def test_same_name_cancels_previous_task():
    poller, _ = make_poller()
    delivered = []
    first = poller.start("get_items", lambda: "first", 1000, on_ready=delivered.append)
    second = poller.start("get_items", lambda: "second", 1000, on_ready=delivered.append)

    poller.run_until_idle()

    assert delivered == ["second"]
    assert first.state == TaskState.CANCELLED
    assert first.token.cancelled
    assert second.state == TaskState.DELIVERED


def test_cancelled_task_never_ticks():
    poller, _ = make_poller()
    delivered = []
    task = poller.start("t", lambda: "x", 100, on_ready=delivered.append)
    assert poller.registry.cancel("t") is True
    assert poller.tick(task) is False
    assert delivered == []
    assert poller.registry.cancel("t") is False


def test_max_attempts_moves_to_failed():
    poller, _ = make_poller()
    delivered, failed = [], []
    task = poller.start(
        "t", lambda: None, 100,
        on_ready=delivered.append, on_failed=failed.append, max_attempts=4,
    )
    poller.run_until_idle()

    assert task.state == TaskState.FAILED
    assert task.attempts == 4
    assert failed == [task]
    assert delivered == []


def test_deadline_moves_to_failed():
    poller, clock = make_poller()
    failed = []
    task = poller.start("t", lambda: None, 1000, on_ready=lambda r: None,
                        on_failed=failed.append, deadline_s=3.5)
    poller.run_until_idle()
    assert task.state == TaskState.FAILED
    assert failed == [task]
    assert clock.now >= 3.5


def test_unbounded_task_stops_on_timeout():
    poller, _ = make_poller()
    task = poller.start("t", lambda: None, 1000, on_ready=lambda r: None)
    assert poller.run_until_idle(timeout=10) is False
    assert task.state == TaskState.POLLING
    assert task.attempts >= 10


def test_probe_errors_count_as_not_ready():
    poller, _ = make_poller()
    calls = {"n": 0}

    def flaky():
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("stale element")
        return "ok"

    delivered = []
    task = poller.start("t", flaky, 100, on_ready=delivered.append)
    poller.run_until_idle()
    assert delivered == ["ok"]
    assert task.last_error == "stale element"


def test_on_ready_errors_propagate():
    poller, _ = make_poller()

    def boom(result):
        raise KeyError("consumer bug")

    task = poller.start("t", lambda: 1, 100, on_ready=boom)
    with pytest.raises(KeyError):
        poller.tick(task)


def test_run_pending_only_ticks_due_tasks():
    poller, clock = make_poller()
    slow = poller.start("slow", lambda: None, 5000, on_ready=lambda r: None)
    fast = poller.start("fast", lambda: None, 1000, on_ready=lambda r: None)
    poller.run_pending()
    clock.now = 1.0
    poller.run_pending()
    assert fast.attempts == 2
    assert slow.attempts == 1


def test_independent_names_coexist():
    poller, _ = make_poller()
    delivered = []
    poller.start("a", lambda: "A", 100, on_ready=delivered.append)
    poller.start("b", lambda: "B", 100, on_ready=delivered.append)
    poller.run_until_idle()
    assert sorted(delivered) == ["A", "B"]


def test_registry_clear_cancels_everything():
    registry = TaskRegistry()
    tasks = [
        registry.start(PollTask(name=n, probe=lambda: None, interval_s=1, on_ready=lambda r: None))
        for n in ("a", "b")
    ]
    registry.clear()
    assert len(registry) == 0
    assert all(t.state == TaskState.CANCELLED for t in tasks)


def test_rejects_non_positive_interval():
    poller, _ = make_poller()
    with pytest.raises(ValueError):
        poller.start("t", lambda: 1, 0, on_ready=lambda r: None)


def test_cancellation_token():
    token = CancellationToken()
    assert not token.cancelled
    token.cancel()
    assert token.cancelled
