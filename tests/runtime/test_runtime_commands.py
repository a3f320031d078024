import datetime as dt
import logging
import unittest
from typing import Any

from focus import (
    MODE_POMODORO,
    MODE_STOPWATCH,
    Container,
    Entity,
    FocusSettings,
    FocusTimer,
    InMemoryDocumentStore,
)
from runtime import (
    RuntimeBootstrap,
    RuntimeCommandDispatcher,
    RuntimeEngine,
    RuntimeHooks,
    RuntimeUIPublisher,
    ServerNotifier,
    ServerStopReasonCollector,
    TimerEventRelay,
)

MINUTE = 60_000
BASE_MS = int(dt.datetime(2024, 1, 1, 9, 0).timestamp() * 1000)


class FakeUIServer:
    def __init__(self):
        self.events: list[tuple[str, dict[str, Any]]] = []
        self.cleared: list[str] = []

    def publish(self, event_type: str, **payload: Any) -> None:
        self.events.append((event_type, payload))

    def clear_sticky(self, event_type: str) -> None:
        self.cleared.append(event_type)

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [payload for kind, payload in self.events if kind == event_type]


class FakeClock:
    def __init__(self):
        self.now = BASE_MS

    def __call__(self) -> int:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += int(minutes * MINUTE)


def _store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(
        [
            Container(
                id="work.md",
                name="work",
                children=(
                    Entity(
                        id="lane",
                        text="Doing",
                        children=(Entity(id="a", text="Card A"),),
                    ),
                ),
            )
        ]
    )


class RuntimeFixture:
    def __init__(self, *, with_collector: bool = True, settings: FocusSettings | None = None):
        self.server = FakeUIServer()
        self.ui = RuntimeUIPublisher(self.server)
        self.clock = FakeClock()
        self.store = _store()
        self.collector = ServerStopReasonCollector(self.ui) if with_collector else None
        self.timer = FocusTimer(
            self.store,
            settings=settings,
            reason_collector=self.collector,
            notifier=ServerNotifier(self.ui),
            clock=self.clock,
        )
        self.reloads = 0
        self.dispatcher = RuntimeCommandDispatcher(
            timer=self.timer,
            ui=self.ui,
            reason_collector=self.collector,
            reload_documents=self._reload,
            documents=self.store,
            today_fn=lambda: dt.date(2024, 1, 1),
        )

    def _reload(self) -> None:
        self.reloads += 1


class RuntimeCommandDispatcherTests(unittest.TestCase):
    def test_start_publishes_accepted_timer_update(self) -> None:
        fixture = RuntimeFixture()

        fixture.dispatcher.handle_command({"type": "start", "mode": "pomodoro", "target_id": "a"})

        update = fixture.server.of_type("timer")[-1]
        self.assertEqual("start", update["action"])
        self.assertTrue(update["accepted"])
        self.assertEqual(MODE_POMODORO, update["mode"])
        self.assertEqual(25 * MINUTE, update["remaining_ms"])
        self.assertTrue(fixture.timer.is_running(MODE_POMODORO, "a"))

    def test_start_without_target_is_rejected_with_notice(self) -> None:
        fixture = RuntimeFixture()

        fixture.dispatcher.handle_command({"type": "start"})

        self.assertEqual([{"message": "No card selected"}], fixture.server.of_type("notice"))
        update = fixture.server.of_type("timer")[-1]
        self.assertFalse(update["accepted"])
        self.assertEqual("no_target", update["reason"])

    def test_stop_reason_round_trip_logs_session(self) -> None:
        fixture = RuntimeFixture()
        fixture.dispatcher.handle_command({"type": "start", "target_id": "a"})
        fixture.clock.advance(12)

        fixture.dispatcher.handle_command({"type": "stop"})

        self.assertTrue(fixture.collector.pending)
        request = fixture.server.of_type("stop_reason_request")[-1]
        self.assertEqual(["Finished", "Interrupted", "Break", "Other"], request["reasons"])
        self.assertEqual("work.md", request["container_id"])

        fixture.dispatcher.handle_command({"type": "stop_reason", "reason": " Finished "})

        self.assertFalse(fixture.collector.pending)
        self.assertEqual(["stop_reason_request"], fixture.server.cleared)
        self.assertEqual({"message": "Finished"}, fixture.server.of_type("notice")[-1])
        self.assertEqual(12 * MINUTE, fixture.timer.total_focused_ms("a"))
        card_text = fixture.store.containers()[0].children[0].children[0].text
        self.assertTrue(card_text.endswith("(12 m)"))

    def test_cancelled_stop_reason_resumes_timer(self) -> None:
        fixture = RuntimeFixture()
        fixture.dispatcher.handle_command({"type": "start", "target_id": "a"})
        fixture.clock.advance(3)
        fixture.dispatcher.handle_command({"type": "stop"})

        fixture.dispatcher.handle_command({"type": "stop_reason", "cancelled": True})

        self.assertTrue(fixture.timer.is_running(MODE_STOPWATCH, "a"))
        self.assertEqual(3 * MINUTE, fixture.timer.elapsed_ms())
        self.assertEqual((), fixture.timer.sessions)

    def test_stop_reason_without_collector_uses_timer_pending_stop(self) -> None:
        fixture = RuntimeFixture(with_collector=False)
        fixture.dispatcher.handle_command({"type": "start", "target_id": "a"})
        fixture.clock.advance(4)

        fixture.dispatcher.handle_command({"type": "stop"})
        fixture.dispatcher.handle_command({"type": "stop_reason", "reason": "Done"})

        self.assertEqual(1, len(fixture.timer.sessions))
        update = fixture.server.of_type("timer")[-1]
        self.assertEqual("resolve", update["action"])
        self.assertFalse(update["accepted"])
        self.assertEqual("no_pending_stop", update["reason"])

    def test_reset_discards_pending_request(self) -> None:
        fixture = RuntimeFixture()
        fixture.dispatcher.handle_command({"type": "start", "target_id": "a"})
        fixture.clock.advance(2)
        fixture.dispatcher.handle_command({"type": "stop"})

        fixture.dispatcher.handle_command({"type": "reset", "mode": "pomodoro", "target_id": "a"})

        self.assertFalse(fixture.collector.pending)
        self.assertIsNone(fixture.timer.pending_stop)
        self.assertEqual(25 * MINUTE, fixture.timer.remaining_ms())
        self.assertEqual((), fixture.timer.sessions)

    def test_invalid_arguments_publish_errors(self) -> None:
        fixture = RuntimeFixture()
        with self.assertLogs("runtime", level="WARNING"):
            for command in (
                {"type": "start", "mode": "sprint", "target_id": "a"},
                {"type": "start", "mode": ["pomodoro"], "target_id": "a"},
                {"type": "stop", "ask_reason": "no"},
                {"type": "stop_reason", "reason": " "},
                {"type": "totals"},
                {"type": "day", "date": "yesterday"},
                {"type": "dance"},
            ):
                fixture.dispatcher.handle_command(command)

        self.assertEqual(7, len(fixture.server.of_type("error")))
        self.assertFalse(fixture.timer.is_running())

    def test_queries_publish_results(self) -> None:
        fixture = RuntimeFixture()
        fixture.dispatcher.handle_command({"type": "start", "target_id": "a"})
        fixture.clock.advance(30)
        fixture.dispatcher.handle_command({"type": "stop", "ask_reason": False})

        fixture.dispatcher.handle_command({"type": "totals", "target_id": "a"})
        fixture.dispatcher.handle_command({"type": "day"})
        fixture.dispatcher.handle_command({"type": "day", "date": "2024-01-02"})
        fixture.dispatcher.handle_command({"type": "reparse"})

        totals, today, other_day, reparse = fixture.server.of_type("query_result")
        self.assertEqual(
            {"query": "totals", "target_id": "a", "total_ms": 30 * MINUTE, "total_minutes": 30},
            totals,
        )
        self.assertEqual("2024-01-01", today["date"])
        self.assertEqual(30 * MINUTE, today["total_ms"])
        self.assertEqual("Card A", today["sessions"][0]["entity_title"])
        self.assertEqual("2024-01-01T09:00", today["sessions"][0]["start"])
        self.assertEqual([], other_day["sessions"])
        self.assertEqual({"query": "reparse", "added": 0, "total_sessions": 1}, reparse)
        self.assertEqual(1, fixture.reloads)

    def test_cards_query_lists_every_selectable_entity(self) -> None:
        fixture = RuntimeFixture()

        fixture.dispatcher.handle_command({"type": "cards"})

        result = fixture.server.of_type("query_result")[-1]
        self.assertEqual("cards", result["query"])
        self.assertEqual(
            [
                {"container_id": "work.md", "container_name": "work", "id": "lane", "title": "Doing"},
                {"container_id": "work.md", "container_name": "work", "id": "a", "title": "Card A"},
            ],
            result["cards"],
        )

    def test_cards_query_without_boards_publishes_error(self) -> None:
        fixture = RuntimeFixture()
        dispatcher = RuntimeCommandDispatcher(timer=fixture.timer, ui=fixture.ui)

        with self.assertLogs("runtime", level="WARNING"):
            dispatcher.handle_command({"type": "cards"})

        self.assertEqual([{"message": "No boards are loaded"}], fixture.server.of_type("error"))


class TimerEventRelayTests(unittest.TestCase):
    def test_relays_signals_and_logged_sessions(self) -> None:
        fixture = RuntimeFixture(with_collector=False)
        relay = TimerEventRelay(fixture.timer, fixture.ui)
        relay.attach()
        relay.attach()

        fixture.timer.start(MODE_STOPWATCH, "a")
        fixture.clock.advance(5)
        fixture.timer.stop()

        signals = [payload["signal"] for payload in fixture.server.of_type("timer")]
        self.assertEqual(["start", "change", "change"], signals)
        logged = fixture.server.of_type("session_logged")
        self.assertEqual(1, len(logged))
        self.assertEqual(5, logged[0]["minutes"])

        relay.detach()
        fixture.timer.start(MODE_STOPWATCH, "a")
        self.assertEqual(3, len(fixture.server.of_type("timer")))

    def test_logged_session_is_the_one_just_finalized(self) -> None:
        fixture = RuntimeFixture(with_collector=False)
        fixture.store.replace(
            Container(
                id="old.md",
                name="old",
                children=(
                    Entity(id="b", text="Card B\n++ @{2023-12-31} @@{10:00} – @@{10:45} (45 m)"),
                ),
            )
        )
        fixture.timer.events.on("log", lambda: fixture.timer.total_focused_ms("b"))
        relay = TimerEventRelay(fixture.timer, fixture.ui)
        relay.attach()

        fixture.timer.start(MODE_STOPWATCH, "a")
        fixture.clock.advance(4)
        fixture.timer.stop()

        self.assertEqual("b", fixture.timer.sessions[-1].entity_id)
        logged = fixture.server.of_type("session_logged")
        self.assertEqual(1, len(logged))
        self.assertEqual("a", logged[0]["entity_id"])
        self.assertEqual(4, logged[0]["minutes"])


class FakeMonotonic:
    def __init__(self):
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class RuntimeEngineTests(unittest.TestCase):
    def _engine(self, fixture: RuntimeFixture, monotonic: FakeMonotonic, on_signals=None):
        hooks = RuntimeHooks(
            setup_signal_handlers=on_signals or (lambda request_shutdown: None),
            monotonic=monotonic,
        )
        return RuntimeEngine(
            RuntimeBootstrap(
                logger=logging.getLogger("runtime"),
                timer=fixture.timer,
                ui=fixture.ui,
                reason_collector=fixture.collector,
                ui_server=None,
                hooks=hooks,
            )
        )

    def test_step_applies_queued_commands_in_order(self) -> None:
        fixture = RuntimeFixture()
        engine = self._engine(fixture, FakeMonotonic())

        engine.submit_command({"type": "start", "target_id": "a"})
        engine.submit_command({"type": "totals", "target_id": "a"})
        engine.step(poll_timeout=0)
        engine.step(poll_timeout=0)
        engine.step(poll_timeout=0)

        self.assertTrue(fixture.timer.is_running(MODE_STOPWATCH, "a"))
        self.assertEqual(1, len(fixture.server.of_type("query_result")))

    def test_tick_completes_pomodoro_into_break(self) -> None:
        fixture = RuntimeFixture(settings=FocusSettings(pomodoro_minutes=1))
        monotonic = FakeMonotonic()
        engine = self._engine(fixture, monotonic)
        engine.submit_command({"type": "start", "mode": "pomodoro", "target_id": "a"})
        engine.step(poll_timeout=0)

        fixture.clock.advance(1)
        engine.step(poll_timeout=0)
        self.assertTrue(fixture.timer.is_running(MODE_POMODORO))

        monotonic.now += 1.0
        engine.step(poll_timeout=0)

        self.assertTrue(fixture.timer.is_running("break", "a"))
        self.assertEqual(1, fixture.timer.completed_pomodoros)
        self.assertEqual(MINUTE, fixture.timer.total_focused_ms("a"))
        self.assertIn({"message": "Pomodoro complete!"}, fixture.server.of_type("notice"))

    def test_run_saves_running_session_on_shutdown(self) -> None:
        fixture = RuntimeFixture()
        engine = self._engine(
            fixture,
            FakeMonotonic(),
            on_signals=lambda request_shutdown: request_shutdown(),
        )
        fixture.timer.start(MODE_STOPWATCH, "a")
        fixture.clock.advance(7)

        self.assertEqual(0, engine.run())

        self.assertFalse(fixture.timer.is_running())
        self.assertIsNone(fixture.timer.pending_stop)
        self.assertEqual(7 * MINUTE, fixture.timer.total_focused_ms("a"))
        self.assertEqual("sync", fixture.server.of_type("timer")[0]["signal"])

    def test_run_saves_session_awaiting_stop_reason_on_shutdown(self) -> None:
        fixture = RuntimeFixture()
        engine = self._engine(
            fixture,
            FakeMonotonic(),
            on_signals=lambda request_shutdown: request_shutdown(),
        )
        fixture.timer.start(MODE_STOPWATCH, "a")
        fixture.clock.advance(20)
        fixture.timer.stop()
        self.assertTrue(fixture.collector.pending)

        self.assertEqual(0, engine.run())

        self.assertIsNone(fixture.timer.pending_stop)
        self.assertFalse(fixture.collector.pending)
        self.assertEqual(1, len(fixture.timer.sessions))
        self.assertEqual(20 * MINUTE, fixture.timer.total_focused_ms("a"))
        card_text = fixture.store.containers()[0].children[0].children[0].text
        self.assertTrue(card_text.endswith("(20 m)"))


if __name__ == "__main__":
    unittest.main()
