"""Traversal engine for adjacency-list trees.

Each query expands a frontier of primary keys one level at a time. Every level
is fetched with a single batched ``values_list(pk, parent)`` query, so the
number of queries grows with the depth of the tree rather than its size. A
visited set guarantees termination even when parent references form a cycle.
"""

import logging
from abc import ABC, abstractmethod

from django.db import models
from django.db.models.query import QuerySet

from .config import get_max_depth, registry
from .debug import is_recording, record_step
from .exceptions import IncorrectUsageException, NodeNotFoundException
from .queryables import DjangoQueryable
from .utils import _ordered_filter

logger = logging.getLogger(__name__)


def _dedupe(values):
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


class BaseQuery(ABC):
    """Base Query Class.

    The starting scope is either ``instance`` (a model instance, a queryset or a list of instances) or ``ids``
    (one primary key or an iterable of them) together with ``model``. Passing ``model`` alone starts from every
    row of the table. When both are given, ``model`` decides which class the results are returned as, so a proxy
    model can be traversed from instances of its concrete model.

    ``condition`` is a boundary predicate: candidates that fail it are dropped, and nothing beyond them is explored.
    """

    def __init__(self, instance=None, ids=None, model=None, condition=None, max_depth=None, include_self=False):
        self.instance = instance
        self.condition = condition
        self.max_depth = get_max_depth(max_depth)
        self.include_self = include_self

        source_model = None
        starting_pks = None
        if instance is None:
            if model is None:
                raise IncorrectUsageException("Either instance or model is required")
        elif isinstance(instance, QuerySet):
            source_model = instance.model
            starting_pks = list(instance.values_list("pk", flat=True))
        elif isinstance(instance, models.Model):
            source_model = type(instance)
            starting_pks = [instance.pk]
        else:
            instances = list(instance)
            if instances:
                source_model = type(instances[0])
            elif model is None:
                raise IncorrectUsageException("An empty instance list requires a model")
            starting_pks = [node.pk for node in instances]

        self.model = model if model is not None else source_model
        self.config = registry.resolve(self.model)
        if source_model is not None and registry.resolve(source_model) is not self.config:
            raise IncorrectUsageException(
                f"{source_model.__name__} nodes cannot start a traversal of {self.model.__name__}"
            )
        self.pk_field = self.model._meta.pk

        if instance is not None:
            self.starting_pks = _dedupe(starting_pks)
        elif ids is not None:
            self.starting_pks = self._normalize_ids(ids)
        else:
            self.starting_pks = None

        self._depth_map = {}
        self._traversed = False

    def _normalize_ids(self, ids):
        if isinstance(ids, (str, bytes)) or not hasattr(ids, "__iter__"):
            ids = [ids]
        return _dedupe(self.pk_field.to_python(value) for value in ids)

    def _queryable(self):
        """Return the base Queryable every step narrows; ordered by pk so each level is deterministic."""
        return DjangoQueryable(self.model._default_manager.order_by("pk"))

    def _execute(self, queryable, step, frontier=None):
        """Execute one batched step, optionally record it, and return (pk, parent_pk) rows."""
        if is_recording():
            record_step(type(self).__name__, step, frontier, str(queryable), self.max_depth)
        return queryable.execute("pk", self.config.parent_column)

    def _fetch_start(self, queryable):
        """Fetch the starting rows; raises NodeNotFoundException if any requested id does not exist."""
        if self.starting_pks is None:
            return self._execute(queryable, 0)

        rows = self._execute(
            queryable.filter_by_in(self.config.primary_key_name, self.starting_pks), 0, self.starting_pks
        )
        found = {pk: parent_pk for pk, parent_pk in rows}
        missing = [pk for pk in self.starting_pks if pk not in found]
        if missing:
            raise NodeNotFoundException(f"{self.model.__name__} with pk {missing} does not exist")
        # Keep the caller's order for the starting nodes
        return [(pk, found[pk]) for pk in self.starting_pks]

    @abstractmethod
    def _fetch_step(self, queryable, frontier, step):
        """Return the (pk, parent_pk, depth) rows one level beyond the (pk, parent_pk, depth) frontier rows."""

    def traverse(self):
        """Return the primary keys of the closure in discovery order."""
        self._traversed = True
        self._depth_map = {}
        if self.starting_pks is not None and not self.starting_pks:
            return []

        queryable = self._queryable()
        start_rows = self._fetch_start(queryable)
        result = self._walk(queryable, start_rows)
        if self.include_self or len(start_rows) < 2:
            return result

        # A starting node reached from another one must come out after its own parent, so it is only expanded
        # once it is reached
        reached = set(result).intersection(pk for pk, _parent_pk in start_rows)
        if not reached:
            return result
        seeds = [row for row in start_rows if row[0] not in reached]
        pending = [row for row in start_rows if row[0] in reached]
        return self._walk(queryable, seeds, pending)

    def _walk(self, queryable, start_rows, pending=()):
        """Expand start_rows level by level, then any pending starting rows that were never reached.

        Depths are counted from the nearest starting node, and ``max_depth`` applies per starting node.
        """
        self._depth_map = {}
        restarts = {pk for pk, _parent_pk in pending}
        pending = list(pending)
        visited = set()
        result = []
        if self.include_self:
            for pk, _parent_pk in start_rows:
                visited.add(pk)
                result.append(pk)
                self._depth_map[pk] = 0

        frontier = [(pk, parent_pk, 0) for pk, parent_pk in start_rows]
        step = 0
        while frontier or pending:
            if not frontier:
                # Starting nodes reachable only from each other, through a cycle
                pk, parent_pk = pending.pop(0)
                if pk not in visited:
                    frontier = [(pk, parent_pk, 0)]
                continue

            if self.max_depth is not None:
                frontier = [row for row in frontier if row[2] < self.max_depth]
                if not frontier:
                    continue
            step += 1

            next_frontier = []
            for pk, parent_pk, depth in self._fetch_step(queryable, frontier, step):
                if pk in visited:
                    logger.debug(
                        "%s: %s pk=%s reached twice, not expanding it again", type(self).__name__, self.model.__name__, pk
                    )
                    continue
                visited.add(pk)
                result.append(pk)
                self._depth_map[pk] = depth
                next_frontier.append((pk, parent_pk, 0 if pk in restarts else depth))
            frontier = next_frontier

        return result

    def id_list(self):
        """Return a list of ids in the resulting query."""
        return self.traverse()

    def depth_map(self):
        """Return {pk: depth} for the most recent traversal, running one if needed."""
        if not self._traversed:
            self.traverse()
        return dict(self._depth_map)

    def queryset(self):
        """Return a QuerySet of the closure, ordered the way it was discovered."""
        return _ordered_filter(self.model._default_manager.all(), "pk", self.traverse())

    def __str__(self):
        return f"{type(self).__name__}({self.model.__name__}, starting_pks={self.starting_pks})"

    __repr__ = __str__


class AncestorQuery(BaseQuery):
    """Walks from the starting nodes toward the root: nearest parent first."""

    def _fetch_step(self, queryable, frontier, step):
        depth_of = {}
        for _pk, parent_pk, depth in frontier:
            if parent_pk is not None:
                depth_of[parent_pk] = min(depth_of.get(parent_pk, depth), depth)
        if not depth_of:
            return []
        parent_pks = list(depth_of)
        candidates = queryable.filter_by_in(self.config.primary_key_name, parent_pks).filter_by_predicate(
            self.condition
        )
        return [(pk, parent_pk, depth_of[pk] + 1) for pk, parent_pk in self._execute(candidates, step, parent_pks)]


class DescendantQuery(BaseQuery):
    """Walks from the starting nodes toward the leaves. A parent is always emitted before its descendants."""

    def _fetch_step(self, queryable, frontier, step):
        depth_of = {pk: depth for pk, _parent_pk, depth in frontier}
        frontier_pks = list(depth_of)
        candidates = queryable.filter_by_in(self.config.parent_column, frontier_pks).filter_by_predicate(
            self.condition
        )
        return [
            (pk, parent_pk, depth_of[parent_pk] + 1) for pk, parent_pk in self._execute(candidates, step, frontier_pks)
        ]


class LeavesQuery(DescendantQuery):
    """Members of the self-and-descendants closure that no row references as its parent."""

    def __init__(self, **kwargs):
        kwargs["include_self"] = True
        super().__init__(**kwargs)

    def traverse(self):
        closure = super().traverse()
        if not closure:
            return []
        with_children = self._queryable().filter_by_in(self.config.parent_column, closure)
        if is_recording():
            record_step(type(self).__name__, "leaves", closure, str(with_children), self.max_depth)
        parent_pks = {parent_pk for (parent_pk,) in with_children.execute(self.config.parent_column)}
        leaves = [pk for pk in closure if pk not in parent_pks]
        self._depth_map = {pk: depth for pk, depth in self._depth_map.items() if pk not in parent_pks}
        return leaves


class QueryBuilder:
    """Builds closures over one tree model.

    Constructed with the model, an optional fixed starting scope (``None`` meaning every row, one pk or a set of
    pks), an optional boundary ``condition`` and an optional ``max_depth``. Each operation may be given its own
    starting node(s) as an instance, a pk, a queryset or an iterable; otherwise the constructor's scope is used.
    Results are instances of the model the builder was constructed with, proxies included.

        builder = QueryBuilder(Category, condition=Q(active=True))
        builder.descendants_of(electronics)
    """

    def __init__(self, model, ids=None, condition=None, max_depth=None):
        self.config = registry.resolve(model)
        self.model = model
        self.ids = ids
        self.condition = condition
        self.max_depth = max_depth

    def build(self, query_class, node=None, include_self=False):
        """Return an unexecuted query of query_class for the given starting node(s)."""
        kwargs = {
            "model": self.model,
            "condition": self.condition,
            "max_depth": self.max_depth,
            "include_self": include_self,
        }
        if node is None:
            kwargs["ids"] = self.ids
        elif isinstance(node, (models.Model, QuerySet)):
            kwargs["instance"] = node
        elif isinstance(node, (list, tuple, set, frozenset)) and any(isinstance(n, models.Model) for n in node):
            kwargs["instance"] = list(node)
        else:
            kwargs["ids"] = node
        if query_class is LeavesQuery:
            kwargs.pop("include_self")
        return query_class(**kwargs)

    def ancestors_of(self, node=None):
        """Ancestors, nearest parent first and ending at the root. Excludes the starting node."""
        return self.build(AncestorQuery, node).queryset()

    def self_and_ancestors_of(self, node=None):
        """The starting node, then its ancestors up to the root."""
        return self.build(AncestorQuery, node, include_self=True).queryset()

    def descendants_of(self, node=None):
        """Descendants in parent-before-child order. Excludes the starting node."""
        return self.build(DescendantQuery, node).queryset()

    def self_and_descendants_of(self, node=None):
        """The starting node, then its descendants in parent-before-child order."""
        return self.build(DescendantQuery, node, include_self=True).queryset()

    def leaves_of(self, node=None):
        """Leaves below the starting node; the node itself when it has no children."""
        return self.build(LeavesQuery, node).queryset()
