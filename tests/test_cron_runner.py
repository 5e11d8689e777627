import asyncio

from app.core import cron_runner
from app.core.config import settings


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class RecordingSleep:
    """Records requested waits; cancels the loop on the given call."""

    def __init__(self, cancel_on_call):
        self.calls = []
        self.cancel_on_call = cancel_on_call

    async def __call__(self, seconds):
        self.calls.append(seconds)
        if len(self.calls) >= self.cancel_on_call:
            raise asyncio.CancelledError()


class TimedProcessor:
    def __init__(self, clock, durations, fail=False):
        self.clock = clock
        self.durations = list(durations)
        self.fail = fail
        self.drains = 0

    async def drain(self):
        self.drains += 1
        self.clock.now += self.durations.pop(0)
        if self.fail:
            raise RuntimeError("evolution down")
        return 1


def test_next_delay_subtracts_elapsed_time():
    assert cron_runner.next_delay(60.0, 25.0) == 35.0
    assert cron_runner.next_delay(60.0, 0.0) == 60.0


def test_next_delay_never_goes_negative():
    assert cron_runner.next_delay(60.0, 60.0) == 0.0
    assert cron_runner.next_delay(60.0, 95.5) == 0.0


def test_queue_loop_keeps_start_to_start_cadence(monkeypatch):
    monkeypatch.setattr(settings, "CRON_QUEUE_INTERVAL_SECONDS", 60.0)
    clock = FakeClock()
    sleep = RecordingSleep(cancel_on_call=3)
    processor = TimedProcessor(clock, durations=[25.0, 25.0])

    asyncio.run(cron_runner.run_notification_queue_cron_loop(processor, sleep=sleep, clock=clock))

    assert sleep.calls == [cron_runner.STARTUP_DELAY_SECONDS, 35.0, 35.0]
    assert processor.drains == 2


def test_queue_loop_runs_again_at_once_after_a_slow_drain(monkeypatch):
    monkeypatch.setattr(settings, "CRON_QUEUE_INTERVAL_SECONDS", 60.0)
    clock = FakeClock()
    sleep = RecordingSleep(cancel_on_call=3)
    processor = TimedProcessor(clock, durations=[90.0, 10.0])

    asyncio.run(cron_runner.run_notification_queue_cron_loop(processor, sleep=sleep, clock=clock))

    assert sleep.calls == [cron_runner.STARTUP_DELAY_SECONDS, 0.0, 50.0]


def test_queue_loop_survives_a_failing_drain(monkeypatch):
    monkeypatch.setattr(settings, "CRON_QUEUE_INTERVAL_SECONDS", 60.0)
    clock = FakeClock()
    sleep = RecordingSleep(cancel_on_call=3)
    processor = TimedProcessor(clock, durations=[5.0, 5.0], fail=True)

    asyncio.run(cron_runner.run_notification_queue_cron_loop(processor, sleep=sleep, clock=clock))

    assert processor.drains == 2
    assert sleep.calls == [cron_runner.STARTUP_DELAY_SECONDS, 55.0, 55.0]


def test_queue_loop_enforces_minimum_interval(monkeypatch):
    monkeypatch.setattr(settings, "CRON_QUEUE_INTERVAL_SECONDS", 1.0)
    clock = FakeClock()
    sleep = RecordingSleep(cancel_on_call=2)
    processor = TimedProcessor(clock, durations=[2.0])

    asyncio.run(cron_runner.run_notification_queue_cron_loop(processor, sleep=sleep, clock=clock))

    assert sleep.calls == [cron_runner.STARTUP_DELAY_SECONDS, 3.0]


def test_scan_loop_subtracts_scan_time(monkeypatch):
    monkeypatch.setattr(settings, "CRON_SCAN_INTERVAL_MINUTES", 2.0)
    clock = FakeClock()
    sleep = RecordingSleep(cancel_on_call=2)

    async def fake_scan():
        clock.now += 20.0
        return 0

    monkeypatch.setattr(cron_runner, "scan_and_queue_invoices", fake_scan)

    asyncio.run(cron_runner.run_invoice_scan_cron_loop(sleep=sleep, clock=clock))

    assert sleep.calls == [cron_runner.STARTUP_DELAY_SECONDS, 100.0]
