"""Interval polling of a run until it settles.

Run status, logs and graph are refetched every ``refetch_interval`` seconds
while the run is queued or running; costs are fetched once. Polling stops as
soon as a terminal status is seen. Errors are not retried.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set

from schemas import CostOut, CostSummary, LogOut, RunGraph, RunOut
from services.costs import summarize_costs
from services.lifecycle import refetch_interval
from web.client import FlowApiClient

logger = logging.getLogger(__name__)


@dataclass
class RunSnapshot:
    run: RunOut
    logs: List[LogOut]
    graph: RunGraph
    costs: List[CostOut] = field(default_factory=list)
    new_logs: List[LogOut] = field(default_factory=list)

    @property
    def cost_summary(self) -> CostSummary:
        return summarize_costs(self.costs)


class RunObserver:
    def __init__(self, client: FlowApiClient, run_id: str, sleep: Callable[[float], None] = time.sleep):
        self.client = client
        self.run_id = run_id
        self.sleep = sleep
        self.polls = 0
        self._seen: Set[str] = set()
        self._costs: Optional[List[CostOut]] = None

    def poll(self) -> RunSnapshot:
        run = self.client.get_run(self.run_id)
        logs = self.client.get_run_logs(self.run_id)
        graph = self.client.get_run_graph(self.run_id)
        if self._costs is None:
            self._costs = self.client.get_run_costs(self.run_id)
        self.polls += 1

        fresh = [log for log in logs if log.id not in self._seen]
        self._seen.update(log.id for log in fresh)
        return RunSnapshot(run=run, logs=logs, graph=graph, costs=self._costs, new_logs=fresh)

    def watch(self, on_update: Optional[Callable[[RunSnapshot], None]] = None) -> RunSnapshot:
        while True:
            snapshot = self.poll()
            if on_update is not None:
                on_update(snapshot)
            interval = refetch_interval(snapshot.run.status)
            if interval is None:
                logger.debug("Run %s settled as %s after %d polls", self.run_id, snapshot.run.status, self.polls)
                return snapshot
            self.sleep(interval)
