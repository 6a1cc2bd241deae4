"""Small declarative task graph used to run the stages of one evolution step.

Tasks name their dependencies. Each task is called with the run's context
followed by the dependency results, in declaration order. The graph is
validated once at construction. With an executor, every task is submitted as
soon as its last dependency finishes (from that dependency's done-callback),
so no worker ever blocks waiting for another task; only the caller of `run`
waits.
"""

from __future__ import annotations

import concurrent.futures as cf
from dataclasses import dataclass
import threading
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import networkx as nx

from evokit.exceptions import ConfigurationError


@dataclass(frozen=True)
class Task:
    name: str
    fn: Callable[..., Any]
    depends_on: Tuple[str, ...] = ()

    @classmethod
    def of(cls, name: str, fn: Callable[..., Any], *depends_on: str) -> "Task":
        return cls(name, fn, tuple(depends_on))


class TaskGraph:
    def __init__(self, tasks: Iterable[Task]):
        self.tasks: Dict[str, Task] = {}
        for task in tasks:
            if task.name in self.tasks:
                raise ConfigurationError(f"Duplicate task name '{task.name}'")
            self.tasks[task.name] = task

        errors = self.validate_structure(self.tasks)
        if errors:
            raise ConfigurationError("Invalid task graph: " + "; ".join(errors))

        self.graph = nx.DiGraph()
        self.graph.add_nodes_from(self.tasks)
        for task in self.tasks.values():
            for dep in task.depends_on:
                self.graph.add_edge(dep, task.name)
        self.order = list(nx.topological_sort(self.graph))

    @staticmethod
    def validate_structure(tasks: Dict[str, Task]) -> list[str]:
        """Error messages for unknown dependencies and cycles; empty when valid."""
        errors: list[str] = []
        G = nx.DiGraph()
        G.add_nodes_from(tasks)
        for task in tasks.values():
            for dep in task.depends_on:
                if dep not in tasks:
                    errors.append(f"Task '{task.name}' depends on unknown task '{dep}'")
                    continue
                G.add_edge(dep, task.name)

        if not nx.is_directed_acyclic_graph(G):
            cycle_edges = nx.find_cycle(G, orientation="original")
            cycle_nodes = [cycle_edges[0][0]] + [v for (_, v, *_) in cycle_edges]
            errors.append(f"Cycle detected: {' -> '.join(cycle_nodes)}")
        return errors

    def run(self, context: Any = None, executor: Optional[cf.Executor] = None) -> Dict[str, Any]:
        """Run all tasks and return their results by name.

        The first failing task fails the run with its exception; tasks not
        yet submitted at that point are never started.
        """
        if executor is None:
            return self._run_inline(context)
        return self._run_concurrent(context, executor).result()

    def _run_inline(self, context: Any) -> Dict[str, Any]:
        results: Dict[str, Any] = {}
        for name in self.order:
            task = self.tasks[name]
            results[name] = task.fn(context, *(results[d] for d in task.depends_on))
        return results

    def _run_concurrent(self, context: Any, executor: cf.Executor) -> cf.Future:
        done: cf.Future = cf.Future()
        results: Dict[str, Any] = {}
        waiting = {name: self.graph.in_degree(name) for name in self.tasks}
        remaining = [len(self.tasks)]
        lock = threading.Lock()

        def fail(exc: BaseException) -> None:
            with lock:
                if not done.done():
                    done.set_exception(exc)

        def submit(name: str) -> None:
            task = self.tasks[name]
            args = [results[d] for d in task.depends_on]
            try:
                future = executor.submit(task.fn, context, *args)
            except RuntimeError as exc:
                # executor already shut down
                fail(exc)
                return
            future.add_done_callback(lambda f: finished(name, f))

        def finished(name: str, future: cf.Future) -> None:
            if future.cancelled():
                fail(cf.CancelledError(f"Task '{name}' was cancelled"))
                return
            exc = future.exception()
            if exc is not None:
                fail(exc)
                return

            ready = []
            with lock:
                if done.done():
                    return
                results[name] = future.result()
                remaining[0] -= 1
                for successor in self.graph.successors(name):
                    waiting[successor] -= 1
                    if waiting[successor] == 0:
                        ready.append(successor)
                if remaining[0] == 0:
                    done.set_result(dict(results))
            for successor in ready:
                submit(successor)

        if not self.tasks:
            done.set_result({})
        for name in [n for n, count in waiting.items() if count == 0]:
            submit(name)
        return done
