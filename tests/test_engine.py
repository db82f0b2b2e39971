# ==============================================================================
# Tests for SessionEngine - engine.py
# ==============================================================================
"""
Tests for the scatter/gather engine.

Tests cover:
- End-to-end worked examples and report totals
- Every executor (serial, thread, process) gives the same report
- Partial-failure isolation and strict mode
- Per-client independence
- Empty input gives an undefined average, not an error
- Batch timeout
- Building the engine from settings
"""

import random
import time

import pytest

from weblog.core.errors import BatchTimeoutError, EmptyInputError, InvalidEventError
from weblog.core.models import Event
from weblog.engine import SessionEngine, coerce_event, process_group
from weblog.utils.config import get_settings

# ==============================================================================
# Helpers
# ==============================================================================


def _worked_example(make_events) -> list[Event]:
    """A=[0,5,21,22], B=[100], C=[0,34] -> durations 5, 1, 0, 34."""
    return (
        make_events("A", [0, 5, 21, 22])
        + make_events("B", [100])
        + make_events("C", [0, 10, 20, 34])
    )


# ==============================================================================
# coerce_event
# ==============================================================================


class TestCoerceEvent:
    """Tests for boundary validation."""

    def test_event_passes_through(self):
        event = Event(client_id="A", timestamp=1, url="/")
        assert coerce_event(event) is event

    def test_mapping_is_validated(self):
        event = coerce_event({"client_id": "A", "timestamp": 7, "url": "/x"})
        assert event == Event(client_id="A", timestamp=7, url="/x")

    def test_negative_timestamp_names_client(self):
        with pytest.raises(InvalidEventError) as exc_info:
            coerce_event({"client_id": "A", "timestamp": -1, "url": "/"})
        assert exc_info.value.client_id == "A"

    def test_missing_client(self):
        with pytest.raises(InvalidEventError) as exc_info:
            coerce_event({"client_id": "", "timestamp": 1, "url": "/"})
        assert exc_info.value.client_id is None

    def test_unvalidated_event_rechecked(self):
        bad = Event.model_construct(client_id="A", timestamp=-5, url="/")
        with pytest.raises(InvalidEventError) as exc_info:
            coerce_event(bad)
        assert exc_info.value.client_id == "A"

    def test_unsupported_type(self):
        with pytest.raises(InvalidEventError, match="Unsupported record type"):
            coerce_event(42)


# ==============================================================================
# End to end
# ==============================================================================


class TestRun:
    """Tests for SessionEngine.run."""

    def test_worked_example(self, make_events):
        report = SessionEngine(executor="serial").run(_worked_example(make_events))

        assert report.total_events == 9
        assert report.total_sessions == 4
        assert report.total_clients == 3
        assert sorted(s.duration for s in report.sessions) == [0, 1, 5, 34]
        assert report.average_duration == pytest.approx(10.0)
        assert [c.client_id for c in report.most_engaged] == ["C", "A", "B"]
        assert [c.max_duration for c in report.most_engaged] == [34, 5, 0]
        assert report.failures == []

    def test_sessions_sorted_by_client_and_id(self, make_events):
        report = SessionEngine(executor="thread").run(_worked_example(make_events))
        keys = [(s.client_id, s.session_id) for s in report.sessions]
        assert keys == [("A", 0), ("A", 1), ("B", 0), ("C", 0)]

    def test_top_k(self, make_events):
        report = SessionEngine(executor="serial", top_k=1).run(_worked_example(make_events))
        assert [c.client_id for c in report.most_engaged] == ["C"]
        assert len(report.clients) == 3

    def test_top_k_passed_to_ranker(self, make_events, monkeypatch):
        import weblog.engine as engine_module

        real_rank = engine_module.rank_clients
        seen = []

        def recording_rank(metrics, top_k=None):
            seen.append(top_k)
            return real_rank(metrics, top_k)

        monkeypatch.setattr(engine_module, "rank_clients", recording_rank)
        report = SessionEngine(executor="serial", top_k=2).run(_worked_example(make_events))

        assert 2 in seen
        assert [c.client_id for c in report.most_engaged] == ["C", "A"]
        assert [c.client_id for c in report.clients] == ["C", "A", "B"]

    def test_top_k_none_keeps_all(self, make_events):
        report = SessionEngine(executor="serial", top_k=None).run(_worked_example(make_events))
        assert len(report.most_engaged) == 3

    def test_boundary_is_inclusive(self, make_events):
        report = SessionEngine(executor="serial").run(make_events("A", [0, 15]))
        assert report.total_sessions == 2

    def test_custom_gap(self, make_events):
        report = SessionEngine(gap_threshold=20, executor="serial").run(make_events("A", [0, 15]))
        assert report.total_sessions == 1

    def test_accepts_mappings(self):
        records = [
            {"client_id": "A", "timestamp": 0, "url": "/"},
            {"client_id": "A", "timestamp": 3, "url": "/b"},
        ]
        report = SessionEngine(executor="serial").run(iter(records))
        assert report.total_sessions == 1
        assert report.sessions[0].distinct_url_count == 2

    @pytest.mark.parametrize("executor", ["serial", "thread", "process"])
    def test_executors_agree(self, executor):
        rng = random.Random(7)
        events = [
            Event(
                client_id=f"10.0.0.{rng.randint(1, 20)}",
                timestamp=rng.randint(0, 600),
                url=f"/p{rng.randint(0, 15)}",
            )
            for _ in range(1000)
        ]
        baseline = SessionEngine(executor="serial").run(events)
        report = SessionEngine(executor=executor, max_workers=2).run(events)

        assert report == baseline
        assert report.total_events == 1000

    def test_input_order_does_not_matter(self, make_events):
        events = _worked_example(make_events)
        shuffled = events[:]
        random.Random(3).shuffle(shuffled)

        engine = SessionEngine(executor="thread")
        assert engine.run(events) == engine.run(shuffled)


# ==============================================================================
# Empty input
# ==============================================================================


class TestEmptyInput:
    """No sessions at all is reported, not raised."""

    def test_empty_input(self):
        report = SessionEngine(executor="thread").run([])

        assert report.total_events == 0
        assert report.total_sessions == 0
        assert report.average_duration is None
        assert report.most_engaged == []

    def test_only_invalid_records(self):
        report = SessionEngine(executor="serial").run(
            [{"client_id": "A", "timestamp": -1, "url": "/"}]
        )
        assert report.average_duration is None
        assert [f.client_id for f in report.failures] == ["A"]

    def test_empty_group_is_isolated(self, make_events, monkeypatch):
        import weblog.engine as engine_module

        real_group = engine_module.group_by_client

        def group_with_empty(events):
            groups = real_group(events)
            groups["ghost"] = []
            return groups

        monkeypatch.setattr(engine_module, "group_by_client", group_with_empty)
        report = SessionEngine(executor="serial").run(make_events("A", [0]))

        assert report.total_sessions == 1
        assert [(f.client_id, f.error) for f in report.failures] == [("ghost", "EmptyInputError")]


# ==============================================================================
# Failure isolation
# ==============================================================================


class TestFailureIsolation:
    """Invalid clients are skipped; others proceed unless strict."""

    def _records(self, make_events):
        return [
            *make_events("A", [0, 5, 21, 22]),
            {"client_id": "bad", "timestamp": 10, "url": "/ok"},
            {"client_id": "bad", "timestamp": -4, "url": "/broken"},
            {"client_id": "", "timestamp": 1, "url": "/anon"},
            *make_events("B", [100]),
        ]

    def test_invalid_client_skipped(self, make_events):
        report = SessionEngine(executor="serial").run(self._records(make_events))

        assert [f.client_id for f in report.failures] == ["bad"]
        assert report.failures[0].error == "InvalidEventError"
        assert report.rejected_records == 1
        assert {c.client_id for c in report.clients} == {"A", "B"}
        assert report.total_events == 5

    def test_failed_client_has_no_sessions(self, make_events):
        report = SessionEngine(executor="thread").run(self._records(make_events))
        assert report.sessions_for("bad") == []

    def test_strict_mode_aborts(self, make_events):
        with pytest.raises(InvalidEventError):
            SessionEngine(executor="serial", strict=True).run(self._records(make_events))

    @pytest.mark.parametrize("executor", ["serial", "thread"])
    def test_strict_mode_aborts_on_group_error(self, make_events, monkeypatch, executor):
        import weblog.engine as engine_module

        real_group = engine_module.group_by_client

        def group_with_empty(events):
            groups = real_group(events)
            groups["ghost"] = []
            return groups

        monkeypatch.setattr(engine_module, "group_by_client", group_with_empty)
        with pytest.raises(EmptyInputError):
            SessionEngine(executor=executor, strict=True).run(make_events("A", [0]))

    def test_group_error_isolated_in_thread_pool(self, make_events):
        bad = Event.model_construct(client_id="bad", timestamp=-1, url="/")
        engine = SessionEngine(executor="thread")
        results, failures = engine._scatter(
            {"A": make_events("A", [0, 1]), "bad": [bad]}, deadline=None
        )
        assert set(results) == {"A"}
        assert failures["bad"].error == "InvalidEventError"


# ==============================================================================
# Per-client independence
# ==============================================================================


class TestIndependence:
    """Other clients never change a client's sessions or metrics."""

    def test_removing_other_clients(self, make_events):
        a_events = make_events("A", [0, 5, 21, 22, 80])
        others = make_events("B", [1, 2, 40]) + make_events("C", [3, 99])

        alone = SessionEngine(executor="serial").run(a_events)
        mixed = SessionEngine(executor="thread").run(others + a_events)

        assert mixed.sessions_for("A") == alone.sessions_for("A")
        assert [c for c in mixed.clients if c.client_id == "A"] == alone.clients

    def test_process_group_is_self_contained(self, make_events):
        session_metrics, client_metrics = process_group("A", make_events("A", [0, 5, 21, 22]), 15)
        assert [m.duration for m in session_metrics] == [5, 1]
        assert client_metrics.max_duration == 5
        assert client_metrics.session_count == 2


# ==============================================================================
# Timeout
# ==============================================================================


class TestBatchTimeout:
    """The timeout applies to the whole batch."""

    @pytest.mark.parametrize("executor", ["serial", "thread"])
    def test_timeout_raises(self, make_events, monkeypatch, executor):
        import weblog.engine as engine_module

        real_process = engine_module.process_group

        def slow_process(client_id, events, gap_threshold):
            time.sleep(0.2)
            return real_process(client_id, events, gap_threshold)

        monkeypatch.setattr(engine_module, "process_group", slow_process)
        events = make_events("A", [0]) + make_events("B", [0]) + make_events("C", [0])
        engine = SessionEngine(executor=executor, max_workers=1, batch_timeout_seconds=0.05)

        with pytest.raises(BatchTimeoutError, match="did not finish"):
            engine.run(events)

    def test_generous_timeout_passes(self, make_events):
        engine = SessionEngine(executor="thread", batch_timeout_seconds=30)
        assert engine.run(make_events("A", [0, 1])).total_sessions == 1


# ==============================================================================
# Construction
# ==============================================================================


class TestConstruction:
    """Tests for SessionEngine initialization."""

    def test_unknown_executor(self):
        with pytest.raises(ValueError, match="executor must be one of"):
            SessionEngine(executor="cluster")

    def test_bad_gap(self):
        with pytest.raises(ValueError, match="gap_threshold must be positive"):
            SessionEngine(gap_threshold=0)

    def test_negative_top_k(self):
        with pytest.raises(ValueError, match="top_k must be non-negative"):
            SessionEngine(top_k=-1)

    def test_from_settings_defaults(self):
        engine = SessionEngine.from_settings()
        assert engine.gap_threshold == 15
        assert engine.executor == "thread"
        assert engine.strict is False
        assert engine.top_k == 10

    def test_from_settings_env(self, monkeypatch):
        monkeypatch.setenv("SESSION_GAP_THRESHOLD", "30")
        monkeypatch.setenv("ENGINE_EXECUTOR", "serial")
        monkeypatch.setenv("ENGINE_STRICT", "true")
        get_settings.cache_clear()

        engine = SessionEngine.from_settings()
        assert engine.gap_threshold == 30
        assert engine.executor == "serial"
        assert engine.strict is True

    def test_overrides_ignore_none(self):
        engine = SessionEngine.from_settings(gap_threshold=None, top_k=3)
        assert engine.gap_threshold == 15
        assert engine.top_k == 3
