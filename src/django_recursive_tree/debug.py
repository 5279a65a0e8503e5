"""Step-by-step recording of tree traversals.

A traversal is a short sequence of batched queries: the starting rows (step 0),
one query per level, and for leaves a last lookup of the rows that have
children. ``log_queries`` records one ``TraversalStep`` per query issued inside
it::

    from django_recursive_tree.debug import log_queries

    with log_queries() as log:
        Category.objects.descendants(node)

    log.levels                              # deepest level expanded
    [step.frontier for step in log]         # primary keys expanded by each query
    log.for_query("DescendantQuery")[1].sql

It also works as a decorator, and with ``capture_executed=True`` keeps the SQL
Django actually ran, including the final ordered fetch of the results.
"""

import logging
from contextlib import ContextDecorator
from contextvars import ContextVar
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

_active_log: ContextVar["TreeQueryLog | None"] = ContextVar("_active_log", default=None)


@dataclass(frozen=True)
class TraversalStep:
    """One batched query of a traversal.

    ``step`` is 0 for the starting rows, the level number while expanding, and ``"leaves"`` for the lookup that
    separates leaves from inner nodes. ``frontier`` holds the primary keys the query expanded from.
    """

    query_class: str
    step: object
    frontier: tuple
    sql: str
    max_depth: int | None = None

    @property
    def is_level(self):
        return isinstance(self.step, int) and self.step > 0


@dataclass
class TreeQueryLog:
    steps: list = field(default_factory=list)
    executed: list = field(default_factory=list)

    def __iter__(self):
        return iter(self.steps)

    def __len__(self):
        return len(self.steps)

    @property
    def levels(self):
        """The deepest level any recorded traversal expanded."""
        return max((step.step for step in self.steps if step.is_level), default=0)

    def for_query(self, query_class):
        return [step for step in self.steps if step.query_class == query_class]

    def frontier_sizes(self):
        return [len(step.frontier) for step in self.steps]


def is_recording():
    return _active_log.get() is not None


def record_step(query_class, step, frontier, sql, max_depth=None):
    """Append one traversal step to the active log, if any."""
    log = _active_log.get()
    if log is not None:
        log.steps.append(TraversalStep(query_class, step, tuple(frontier or ()), sql, max_depth))


class log_queries(ContextDecorator):
    """Record traversal steps issued inside the block.

    Args:
        capture_executed: also keep the SQL Django executed, in ``log.executed``.
        echo: log every recorded step to ``django_recursive_tree.debug`` at INFO level on exit.
    """

    def __init__(self, capture_executed=False, echo=False):
        self.capture_executed = capture_executed
        self.echo = echo
        self.log = TreeQueryLog()
        self._token = None
        self._capture = None

    def __enter__(self):
        self.log = TreeQueryLog()
        self._token = _active_log.set(self.log)
        if self.capture_executed:
            from django.db import connection
            from django.test.utils import CaptureQueriesContext

            self._capture = CaptureQueriesContext(connection)
            self._capture.__enter__()
        return self.log

    def __exit__(self, exc_type, exc_val, exc_tb):
        _active_log.reset(self._token)
        if self._capture is not None:
            self._capture.__exit__(exc_type, exc_val, exc_tb)
            self.log.executed = [query["sql"] for query in self._capture.captured_queries]
            self._capture = None

        if self.echo:
            for step in self.log:
                logger.info("%s step=%s frontier=%s\n%s", step.query_class, step.step, list(step.frontier), step.sql)
        return False
