"""Static registry mapping tree models to the columns that encode their hierarchy.

Each concrete tree model is registered exactly once, either automatically when a
model built with ``tree_node_factory`` is prepared by Django, or explicitly::

    from django_recursive_tree.config import registry

    registry.register(Category, parent_field="parent_category")

Traversals then resolve the configuration with a plain dictionary lookup.
"""

from dataclasses import dataclass

from django.conf import settings
from django.core.exceptions import FieldDoesNotExist
from django.db import models

from .exceptions import TreeConfigurationException


@dataclass(frozen=True)
class TreeConfig:
    """Immutable description of how one model stores its tree."""

    model: type
    parent_field: str
    parent_column: str
    primary_key_column: str

    @property
    def primary_key_name(self):
        """The field name of the primary key, usable in ORM lookups."""
        return self.model._meta.pk.name

    def parent_lookup(self, lookup=None):
        """Return an ORM lookup string on the parent column, e.g. ``parent_id__in``."""
        if lookup is None:
            return self.parent_column
        return f"{self.parent_column}__{lookup}"


class TreeRegistry:
    """Holds one TreeConfig per registered model class."""

    def __init__(self):
        self._configs = {}

    def __contains__(self, model):
        return self._lookup(model) is not None

    def __iter__(self):
        return iter(self._configs.values())

    def register(self, model, parent_field="parent"):
        """Register a model whose ``parent_field`` ForeignKey points at its parent row."""
        try:
            field = model._meta.get_field(parent_field)
        except FieldDoesNotExist:
            raise TreeConfigurationException(f"{model.__name__} has no field named '{parent_field}'")

        if not (field.is_relation and field.many_to_one):
            raise TreeConfigurationException(f"{model.__name__}.{parent_field} must be a ForeignKey to {model.__name__}")

        existing = self._configs.get(model)
        if existing is not None:
            if existing.parent_field != parent_field:
                raise TreeConfigurationException(
                    f"{model.__name__} is already registered with parent field '{existing.parent_field}'"
                )
            return existing

        config = TreeConfig(
            model=model,
            parent_field=parent_field,
            parent_column=field.attname,
            primary_key_column=model._meta.pk.attname,
        )
        self._configs[model] = config
        return config

    def unregister(self, model):
        self._configs.pop(model, None)

    def _lookup(self, model):
        if isinstance(model, models.Model):
            model = type(model)
        config = self._configs.get(model)
        if config is not None:
            return config

        # Proxy models share the concrete model's table
        config = self._configs.get(model._meta.concrete_model)
        if config is not None:
            return config

        # Multi-table inheritance children traverse through their registered parent table
        for parent in model._meta.get_parent_list():
            config = self._configs.get(parent)
            if config is not None:
                return config
        return None

    def resolve(self, model):
        """Return the TreeConfig for a model class or instance.

        Raises TreeConfigurationException if the model has not been registered.
        """
        config = self._lookup(model)
        if config is None:
            name = model.__name__ if isinstance(model, type) else type(model).__name__
            raise TreeConfigurationException(f"{name} is not registered as a recursive tree model")
        return config


registry = TreeRegistry()

# max_depth value that walks the whole closure, whatever DJANGO_RECURSIVE_TREE_MAX_DEPTH says
UNLIMITED = object()


def get_max_depth(max_depth=None):
    """Return the explicit max_depth, falling back to the project-wide setting (unlimited by default).

    Pass ``UNLIMITED`` for lookups that are only correct over the full closure, such as ``root()``.
    """
    if max_depth is UNLIMITED:
        return None
    if max_depth is not None:
        return max_depth
    return getattr(settings, "DJANGO_RECURSIVE_TREE_MAX_DEPTH", None)
