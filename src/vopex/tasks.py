"""Periodic background jobs.

Each :class:`PeriodicTask` is a plain fixed-delay loop: run, sleep for the
interval, repeat. There is no jitter, no overlap protection across
processes and no leader election. A failing run is logged and the loop
carries on. :class:`TaskRunner` runs every task in its own daemon thread and
stops them all through one shared :class:`threading.Event`.

:func:`default_tasks` builds the jobs ``vopex watch`` runs:

======================================  ==========
Job                                     Interval
======================================  ==========
Batch lead-score prediction             30 min
Batch opportunity prediction            45 min
User activity heartbeat                 5 min
User data sync                          10 min
Feature-flag sync                       60 min
======================================  ==========
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

if TYPE_CHECKING:
    from vopex.runtime import Runtime

logger = logging.getLogger(__name__)

LEAD_PREDICTION_INTERVAL = 30 * 60
OPPORTUNITY_PREDICTION_INTERVAL = 45 * 60
HEARTBEAT_INTERVAL = 5 * 60
USER_SYNC_INTERVAL = 10 * 60
FLAG_SYNC_INTERVAL = 60 * 60

BATCH_PAGE_SIZE = 100


class PeriodicTask:
    """Call *func* every *interval* seconds until stopped.

    Args:
        name: Used in log messages and thread names.
        interval: Delay in seconds between the end of one run and the start
            of the next.
        func: The job. Its return value is ignored.
    """

    def __init__(self, name: str, interval: float, func: Callable[[], Any]) -> None:
        self.name = name
        self.interval = interval
        self.func = func
        self.runs = 0
        self.failures = 0

    def __repr__(self) -> str:
        return f"PeriodicTask({self.name!r}, interval={self.interval})"

    def run_once(self) -> bool:
        """Run the job once. Returns ``False`` if it raised."""
        self.runs += 1
        try:
            self.func()
        except Exception:
            self.failures += 1
            logger.exception("Periodic task '%s' failed", self.name)
            return False
        return True

    def run(self, stop: threading.Event) -> None:
        """Loop until *stop* is set. The first run happens immediately."""
        while not stop.is_set():
            self.run_once()
            if stop.wait(self.interval):
                break


class TaskRunner:
    """Runs :class:`PeriodicTask` instances in daemon threads.

    Example::

        with TaskRunner(default_tasks(runtime)) as runner:
            runner.wait()   # until KeyboardInterrupt or runner.stop()
    """

    def __init__(self, tasks: Iterable[PeriodicTask] = ()) -> None:
        self._tasks = list(tasks)
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def tasks(self) -> list[PeriodicTask]:
        return list(self._tasks)

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def add(self, task: PeriodicTask) -> None:
        self._tasks.append(task)

    def start(self) -> None:
        if self._threads:
            return
        self._stop.clear()
        for task in self._tasks:
            thread = threading.Thread(
                target=task.run, args=(self._stop,), name=f"vopex-{task.name}", daemon=True
            )
            thread.start()
            self._threads.append(thread)
            logger.debug("Started periodic task '%s' every %ss", task.name, task.interval)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []

    def wait(self, poll: float = 0.5) -> None:
        """Block until :meth:`stop` is called; wakes every *poll* seconds so
        ``KeyboardInterrupt`` is delivered promptly."""
        while not self._stop.wait(poll):
            pass

    def __enter__(self) -> TaskRunner:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()


# ------------------------------------------------------------------ #
# Built-in jobs
# ------------------------------------------------------------------ #


def records(payload: Any) -> list[dict[str, Any]]:
    """Pull the list of records out of a list endpoint's response.

    Accepts a bare list or a dict wrapping it under ``items``, ``data``,
    ``results``, ``leads`` or ``opportunities``.
    """
    if isinstance(payload, dict):
        for key in ("items", "data", "results", "leads", "opportunities"):
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break
    if not isinstance(payload, list):
        return []
    return [item for item in payload if isinstance(item, dict)]


def predict_unscored_leads(runtime: Runtime) -> int:
    """Batch-score every lead on the first page that has no score yet."""
    leads = records(runtime.leads.list(page=1, page_size=BATCH_PAGE_SIZE))
    ids = [str(lead["id"]) for lead in leads if not lead.get("score") and lead.get("id") is not None]
    if not ids:
        return 0
    return len(runtime.predictions.batch_lead_scores(ids))


def predict_open_opportunities(runtime: Runtime) -> int:
    """Predict outcomes for opportunities that carry no insights yet."""
    opportunities = records(runtime.opportunities.list(page=1, page_size=BATCH_PAGE_SIZE))
    predicted = 0
    for opportunity in opportunities:
        if opportunity.get("predictiveInsights") or opportunity.get("id") is None:
            continue
        if runtime.predictions.predict_opportunity(str(opportunity["id"])) is not None:
            predicted += 1
    return predicted


def send_heartbeat(runtime: Runtime) -> None:
    if runtime.sessions.user:
        runtime.users.heartbeat()


def sync_user(runtime: Runtime) -> None:
    if runtime.sessions.user:
        runtime.users.sync()


def default_tasks(runtime: Runtime) -> list[PeriodicTask]:
    return [
        PeriodicTask("lead-predictions", LEAD_PREDICTION_INTERVAL, lambda: predict_unscored_leads(runtime)),
        PeriodicTask(
            "opportunity-predictions",
            OPPORTUNITY_PREDICTION_INTERVAL,
            lambda: predict_open_opportunities(runtime),
        ),
        PeriodicTask("heartbeat", HEARTBEAT_INTERVAL, lambda: send_heartbeat(runtime)),
        PeriodicTask("user-sync", USER_SYNC_INTERVAL, lambda: sync_user(runtime)),
        PeriodicTask("flag-sync", FLAG_SYNC_INTERVAL, runtime.flags.sync),
    ]
