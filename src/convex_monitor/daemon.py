"""Trigger runner - serialized polling loop around the change-detection engine."""

from __future__ import annotations

import asyncio
import logging
import signal
import time
from typing import Callable

from convex_monitor.client import ConvexDataClient
from convex_monitor.interfaces.client import DataClient
from convex_monitor.interfaces.store import StateStore
from convex_monitor.models.config import MonitorConfig, RunnerConfig, TriggerConfig
from convex_monitor.models.events import TriggerEvent
from convex_monitor.storage.sqlite import SQLiteStateStore
from convex_monitor.trigger.engine import ChangeDetectionEngine

log = logging.getLogger(__name__)

EventSink = Callable[[TriggerEvent], None]


class TriggerRunner:
    """Drives one trigger instance.

    Each tick loads the instance's PollingState, runs the engine for the
    configured event kind, then persists the updated state. A failed tick
    emits nothing and leaves the stored state as it was, so the next tick
    retries from the last good baseline. Ticks never overlap.
    """

    def __init__(
        self,
        trigger: TriggerConfig,
        client: DataClient,
        store: StateStore,
        runner: RunnerConfig | None = None,
        sink: EventSink | None = None,
    ) -> None:
        self._trigger = trigger
        self._runner = runner or RunnerConfig()
        self._engine = ChangeDetectionEngine(client)
        self._store = store
        self._sink = sink
        self._running = False
        self._lock = asyncio.Lock()

    @property
    def instance_id(self) -> str:
        return self._runner.instance_id

    @property
    def running(self) -> bool:
        return self._running

    async def run_once(self) -> list[TriggerEvent]:
        """One tick: load, poll, save, log. Returns the emitted events."""
        async with self._lock:
            kind = self._trigger.event
            start = time.monotonic()
            state = await self._store.load_state(self.instance_id)
            try:
                result = await self._engine.poll(kind, self._trigger, state)
            except Exception as exc:
                duration_ms = int((time.monotonic() - start) * 1000)
                log.error("Poll failed for %s (%s): %s", self.instance_id, kind.value, exc)
                await self._store.log_poll(
                    self.instance_id, kind.value, 0, error=str(exc), duration_ms=duration_ms,
                )
                return []

            await self._store.save_state(self.instance_id, result.state)
            duration_ms = int((time.monotonic() - start) * 1000)
            await self._store.log_poll(
                self.instance_id, kind.value, len(result.events), duration_ms=duration_ms,
            )

        for event in result.events:
            log.info("Event %s: %s", event.kind.value, event.data)
            if self._sink is not None:
                self._sink(event)
        return result.events

    async def start(self) -> None:
        """Run ticks until stop() is called."""
        log.info("Starting trigger %s", self.instance_id)
        log.info("  Event: %s", self._trigger.event.value)
        log.info("  Interval: %ds", self._runner.poll_interval)

        self._running = True
        while self._running:
            try:
                await self.run_once()
                await asyncio.sleep(self._runner.poll_interval)
            except asyncio.CancelledError:
                log.info("Trigger loop cancelled")
                break
            except Exception as exc:
                # Store failures end up here; engine failures are handled in run_once
                log.error("Trigger loop error: %s", exc, exc_info=True)
                await asyncio.sleep(self._runner.error_backoff)
        log.info("Trigger %s stopped", self.instance_id)

    async def stop(self) -> None:
        """Signal the loop to stop after the current tick."""
        log.info("Stop requested")
        self._running = False


async def run_trigger(cfg: MonitorConfig, sink: EventSink | None = None) -> None:
    """Entry point for running a trigger instance until interrupted."""
    store = SQLiteStateStore(cfg.db_path)
    await store.initialize()
    client = ConvexDataClient(cfg.client)
    runner = TriggerRunner(cfg.trigger, client, store, cfg.runner, sink=sink)

    loop = asyncio.get_running_loop()
    task = asyncio.current_task()

    def _signal_handler():
        asyncio.ensure_future(runner.stop())
        # Wake the loop out of its sleep
        if task is not None:
            task.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    try:
        await runner.start()
    finally:
        await client.aclose()
        await store.close()
        log.info("Trigger runner shut down cleanly")
