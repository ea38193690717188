"""
EnrichmentWorkflow: one durable run per feedback item.

Runs execute on a thread pool. The run handle is the LangGraph thread_id,
so progress lives in the checkpointer, not in this object: a new process
with the same checkpointer can resume any run by its handle.
"""

import sqlite3
import threading
import uuid
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from settings import FAILED_RUNS_RETAINED, WORKFLOW_MAX_WORKERS
from src.graph import create_graph
from src.logger import log
from src.models import (
    FeedbackPayload, initial_state, STATUS_COMPLETE, STATUS_UNKNOWN, STEP_STATUS, Step,
)
from nodes.sentiment import SentimentAnalyzer
from nodes.themes import ThemeClassifier
from nodes.urgency import UrgencyClassifier
from nodes.summary import Summarizer
from nodes.prioritize import PriorityScorer


def _config(run_id: str) -> dict:
    return {"configurable": {"thread_id": run_id}}


def sqlite_checkpointer(path: str):
    """Durable checkpointer backed by a SQLite file."""
    from langgraph.checkpoint.sqlite import SqliteSaver

    return SqliteSaver(sqlite3.connect(path, check_same_thread=False))


class EnrichmentWorkflow:
    def __init__(self, graph, max_workers: int = WORKFLOW_MAX_WORKERS,
                 failures_retained: int = FAILED_RUNS_RETAINED):
        self.graph = graph
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="enrichment")
        # In-flight runs only; entries leave the registry when the run finishes
        self._runs: dict[str, Future] = {}
        self._failures: OrderedDict[str, BaseException] = OrderedDict()
        self._failures_retained = failures_retained
        self._lock = threading.Lock()

    @classmethod
    def build(cls, provider, repository, checkpointer=None, scorer: Optional[PriorityScorer] = None,
              max_workers: int = WORKFLOW_MAX_WORKERS, **graph_options) -> "EnrichmentWorkflow":
        """Wire the default classifiers around one provider."""
        graph = create_graph(
            sentiment=SentimentAnalyzer(provider),
            themes=ThemeClassifier(provider),
            urgency=UrgencyClassifier(provider),
            summarizer=Summarizer(provider),
            scorer=scorer or PriorityScorer(),
            repository=repository,
            checkpointer=checkpointer,
            **graph_options,
        )
        return cls(graph, max_workers=max_workers)

    # --- Synchronous execution ---

    def run(self, payload: FeedbackPayload, run_id: Optional[str] = None) -> dict:
        """Run the whole pipeline for one item in the calling thread."""
        run_id = run_id or str(uuid.uuid4())
        log(f"  Run {run_id} started for {payload['id']}")
        result = self.graph.invoke(initial_state(payload), _config(run_id))
        log(f"  Run {run_id} complete for {payload['id']}")
        return result

    def continue_run(self, run_id: str) -> dict:
        """Continue a run from its last checkpoint; completed steps are not re-run."""
        snapshot = self.graph.get_state(_config(run_id))
        if not snapshot.values:
            raise KeyError(f"Unknown run: {run_id}")
        if not snapshot.next:
            return snapshot.values

        log(f"  Run {run_id} resuming at {', '.join(snapshot.next)}")
        result = self.graph.invoke(None, _config(run_id))
        log(f"  Run {run_id} complete for {result['feedback']['id']}")
        return result

    # --- Asynchronous execution ---

    def start(self, payload: FeedbackPayload) -> str:
        """Enqueue a run and return its handle immediately."""
        run_id = str(uuid.uuid4())
        self._submit(run_id, self.run, payload, run_id)
        return run_id

    def resume(self, run_id: str) -> str:
        self._submit(run_id, self.continue_run, run_id)
        return run_id

    def _submit(self, run_id: str, fn, *args) -> None:
        with self._lock:
            future = self._executor.submit(fn, *args)
            self._runs[run_id] = future
            self._failures.pop(run_id, None)
        future.add_done_callback(lambda f: self._finished(run_id, f))

    def _finished(self, run_id: str, future: Future) -> None:
        """Drop a finished run from the registry, remembering recent failures."""
        error = future.exception()
        if error is not None:
            log(f"  Run {run_id} failed: {type(error).__name__}: {str(error)[:200]}")
        with self._lock:
            if self._runs.get(run_id) is future:
                del self._runs[run_id]
            if error is not None:
                self._failures[run_id] = error
                while len(self._failures) > self._failures_retained:
                    self._failures.popitem(last=False)

    @property
    def active_runs(self) -> int:
        with self._lock:
            return len(self._runs)

    def wait(self, run_id: str, timeout: Optional[float] = None) -> dict:
        """Block until a run started here finishes; re-raises its failure."""
        with self._lock:
            future = self._runs.get(run_id)
            error = self._failures.get(run_id)
        if future is not None:
            return future.result(timeout=timeout)
        if error is not None:
            raise error
        return self.graph.get_state(_config(run_id)).values

    def status(self, run_id: str) -> str:
        """Last checkpointed status, or "complete" once the final step is stored."""
        snapshot = self.graph.get_state(_config(run_id))
        if not snapshot.values:
            with self._lock:
                return "queued" if run_id in self._runs else STATUS_UNKNOWN
        status = snapshot.values.get("status", STATUS_UNKNOWN)
        if not snapshot.next and status == STEP_STATUS[Step.STORE_RESULTS]:
            return STATUS_COMPLETE
        return status

    def completed_steps(self, run_id: str) -> list[str]:
        """Steps whose results are checkpointed for this run."""
        snapshot = self.graph.get_state(_config(run_id))
        if not snapshot.values:
            return []
        pending = set(snapshot.next)
        done = []
        for step in Step:
            if step.value in pending:
                break
            done.append(step.value)
        return done

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
