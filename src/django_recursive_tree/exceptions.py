"""Provides exceptions relevant to recursive trees."""

from django.core.exceptions import ImproperlyConfigured, ObjectDoesNotExist


class TreeConfigurationException(ImproperlyConfigured):
    """Exception raised when a model has no registered parent column, or is registered inconsistently."""

    pass


class NodeNotFoundException(ObjectDoesNotExist):
    """Exception raised when a starting node does not exist, or a tree lookup cannot be satisfied."""

    pass


class GraphModelsCannotBeParsedException(Exception):
    """Exception raised when the provided model cannot be identified as a tree node model."""

    pass


class IncorrectUsageException(Exception):
    """Exception raised when a function is called with incorrect arguments."""

    pass
