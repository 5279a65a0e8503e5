"""The storage capability the traversal engine is written against.

Traversals never touch a QuerySet directly; they narrow and execute a
``Queryable``. ``DjangoQueryable`` is the implementation over the Django ORM.
"""

from abc import ABC, abstractmethod

from django.db.models import Q, QuerySet

from .exceptions import IncorrectUsageException


class Queryable(ABC):
    """Filtering and execution operations required by the traversal engine."""

    @abstractmethod
    def filter_by_equals(self, column, value):
        """Rows whose column equals value."""

    @abstractmethod
    def filter_by_in(self, column, values):
        """Rows whose column is a member of values."""

    @abstractmethod
    def filter_by_null(self, column):
        """Rows whose column is NULL."""

    @abstractmethod
    def filter_by_predicate(self, predicate):
        """Rows satisfying a caller supplied boundary predicate."""

    @abstractmethod
    def exclude_identifier(self, pk):
        """All current rows except the one identified by pk."""

    @abstractmethod
    def execute(self, *columns):
        """Materialize the rows, or tuples of the given columns, as a list."""


class DjangoQueryable(Queryable):
    """Queryable over a Django QuerySet. Every operation returns a new instance."""

    def __init__(self, queryset):
        if isinstance(queryset, type):
            queryset = queryset._default_manager.all()
        self.queryset = queryset

    def _chain(self, queryset):
        return type(self)(queryset)

    @property
    def model(self):
        return self.queryset.model

    def filter_by_equals(self, column, value):
        if value is None:
            return self.filter_by_null(column)
        return self._chain(self.queryset.filter(**{column: value}))

    def filter_by_in(self, column, values):
        return self._chain(self.queryset.filter(**{f"{column}__in": list(values)}))

    def filter_by_null(self, column):
        return self._chain(self.queryset.filter(**{f"{column}__isnull": True}))

    def filter_by_predicate(self, predicate):
        """Apply a boundary predicate.

        Accepts a ``Q`` object, a dict of lookups, a QuerySet of the same model (rows are kept when their
        primary key is in it) or None, which leaves the rows untouched.
        """
        if predicate is None:
            return self
        if isinstance(predicate, Q):
            return self._chain(self.queryset.filter(predicate))
        if isinstance(predicate, dict):
            return self._chain(self.queryset.filter(**predicate))
        if isinstance(predicate, QuerySet):
            if predicate.model._meta.concrete_model is not self.model._meta.concrete_model:
                raise IncorrectUsageException(
                    f"Boundary queryset of {predicate.model.__name__} cannot filter {self.model.__name__} rows"
                )
            return self._chain(self.queryset.filter(pk__in=predicate.values("pk")))
        raise IncorrectUsageException(f"Unsupported boundary predicate type: {type(predicate).__name__}")

    def exclude_identifier(self, pk):
        return self._chain(self.queryset.exclude(pk=pk))

    def execute(self, *columns):
        if columns:
            return list(self.queryset.values_list(*columns))
        return list(self.queryset)

    def __str__(self):
        return str(self.queryset.query)
