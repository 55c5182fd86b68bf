"""Keeping node conditions in sync with the API server through a problem client."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol

from npdetect.pluginconfig import Condition

log = logging.getLogger(__name__)

UPDATE_PERIOD = timedelta(seconds=1)
"""How often the manager checks whether a sync is needed."""

RESYNC_PERIOD = timedelta(seconds=10)
"""How long the manager waits before retrying a failed sync."""

ApiCondition = dict[str, Any]


class ProblemClientError(RuntimeError):
    """Raised when a problem client cannot talk to the API server."""


class ProblemClient(Protocol):
    """What the condition manager needs from a client."""

    def set_conditions(self, conditions: Sequence[ApiCondition]) -> None:
        ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _format_time(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _to_api_condition(condition: Condition) -> ApiCondition:
    status = condition.status.value if condition.status is not None else ""
    return {
        "type": condition.type,
        "status": status,
        "lastHeartbeatTime": None,
        "lastTransitionTime": _format_time(condition.transition),
        "reason": condition.reason,
        "message": condition.message,
    }


def generate_patch(conditions: Iterable[Mapping[str, Any]]) -> bytes:
    """Build the JSON status patch that replaces the node's conditions."""
    raw = json.dumps([dict(c) for c in conditions], separators=(",", ":"))
    return f'{{"status":{{"conditions":{raw}}}}}'.encode()


class FakeProblemClient:
    """An in-memory problem client that only caches conditions."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._conditions: dict[str, ApiCondition] = {}
        self._errors: dict[str, BaseException] = {}

    def inject_error(self, function: str, error: BaseException) -> None:
        """Make the method named ``function`` raise ``error`` from now on."""
        with self._lock:
            self._errors[function] = error

    def _raise_injected(self, function: str) -> None:
        error = self._errors.get(function)
        if error is not None:
            raise error

    def set_conditions(self, conditions: Sequence[ApiCondition]) -> None:
        """Store the given conditions, keyed by type."""
        with self._lock:
            self._raise_injected("set_conditions")
            for condition in conditions:
                self._conditions[condition["type"]] = dict(condition)

    def get_conditions(self, condition_types: Iterable[str]) -> list[ApiCondition]:
        """Return the cached conditions of the given types, in that order."""
        with self._lock:
            self._raise_injected("get_conditions")
            return [
                dict(self._conditions[t]) for t in condition_types if t in self._conditions
            ]

    def assert_conditions(self, expected: Iterable[Mapping[str, Any]]) -> None:
        """Raise AssertionError unless the cached conditions equal ``expected``."""
        wanted = {c["type"]: dict(c) for c in expected}
        with self._lock:
            actual = {t: dict(c) for t, c in self._conditions.items()}
        if wanted != actual:
            raise AssertionError(f"expected {wanted}, got {actual}")

    def eventf(self, event_type: str, source: str, reason: str, message: str, *args: Any) -> None:
        """Events are discarded."""

    def get_node(self) -> Any:
        """A fake client has no node to return."""
        raise ProblemClientError("get_node() not implemented")


class ConditionManager:
    """Pushes node conditions to a client without flooding it.

    Updates are collected and checked every UPDATE_PERIOD; a failed sync is
    retried after RESYNC_PERIOD, and a sync is forced every heartbeat period.
    """

    def __init__(
        self,
        client: ProblemClient,
        clock: Callable[[], datetime] = _utc_now,
        heartbeat_period: timedelta = timedelta(minutes=5),
    ) -> None:
        self.client = client
        self.clock = clock
        self.heartbeat_period = heartbeat_period
        self._lock = threading.Lock()
        self._updates: dict[str, Condition] = {}
        self.conditions: dict[str, Condition] = {}
        self._latest_try: datetime | None = None
        self._resync_needed = False

    def start(self, stop: threading.Event) -> threading.Thread:
        """Run the sync loop in a daemon thread until ``stop`` is set."""
        thread = threading.Thread(target=self._sync_loop, args=(stop,), daemon=True)
        thread.start()
        return thread

    def _sync_loop(self, stop: threading.Event) -> None:
        while not stop.wait(UPDATE_PERIOD.total_seconds()):
            if self.need_updates() or self.need_resync() or self.need_heartbeat():
                self.sync()

    def update_condition(self, condition: Condition) -> None:
        """Queue a condition; a newer one of the same type replaces it."""
        with self._lock:
            self._updates[condition.type] = condition

    def get_conditions(self) -> list[Condition]:
        """Return every condition currently held."""
        with self._lock:
            return list(self.conditions.values())

    def need_updates(self) -> bool:
        """Apply queued updates; return True if any condition changed."""
        with self._lock:
            changed = False
            for condition_type, update in self._updates.items():
                if self.conditions.get(condition_type) != update:
                    changed = True
                    self.conditions[condition_type] = update
            self._updates.clear()
            return changed

    def _since_latest_try(self) -> timedelta | None:
        if self._latest_try is None:
            return None
        return self.clock() - self._latest_try

    def need_resync(self) -> bool:
        """Return True when a failed sync is due to be retried."""
        elapsed = self._since_latest_try()
        due = elapsed is None or elapsed >= RESYNC_PERIOD
        return due and self._resync_needed

    def need_heartbeat(self) -> bool:
        """Return True when a forced sync is due."""
        elapsed = self._since_latest_try()
        return elapsed is None or elapsed >= self.heartbeat_period

    def sync(self) -> None:
        """Send all conditions to the client; on failure, mark a resync."""
        self._latest_try = self.clock()
        self._resync_needed = False
        api_conditions = [_to_api_condition(c) for c in self.conditions.values()]
        try:
            self.client.set_conditions(api_conditions)
        except Exception as err:  # the next sync will try again
            log.error("failed to update node conditions: %s", err)
            self._resync_needed = True