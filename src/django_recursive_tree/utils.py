"""Helpers shared by the tree service and the transformation functions."""

import inspect
from itertools import chain

from django.db.models import Case, When
from django.db.models.fields import DateTimeField, UUIDField
from django.db.models.fields.files import FileField, ImageField
from django.db.models.fields.related import ManyToManyField

from .config import registry
from .exceptions import GraphModelsCannotBeParsedException, IncorrectUsageException, TreeConfigurationException


def _ordered_filter(queryset, field_names, values):
    """Filter the provided queryset for 'field_name__in values' for each given field_name in [field_names].

    Orders results in the same order as provided values.

        For instance
            _ordered_filter(Category.objects, "pk", pks)
        returns a queryset of Category, with instances where the 'pk' field matches a pk in pks.
    """
    if not isinstance(field_names, list):
        field_names = [field_names]
    values = list(values)
    if not values:
        return queryset.none()
    case = []
    for pos, value in enumerate(values):
        when_condition = {field_names[0]: value, "then": pos}
        case.append(When(**when_condition))
    order_by = Case(*case)
    filter_condition = {field_name + "__in": values for field_name in field_names}
    return queryset.filter(**filter_condition).order_by(order_by)


def get_queryset_characteristics(queryset):
    """Return a tuple of the tree model class and its TreeConfig for the provided queryset."""
    try:
        config = registry.resolve(queryset.model)
    except (AttributeError, TreeConfigurationException):
        raise GraphModelsCannotBeParsedException
    return (config.model, config)


def parent_links(nodes, config):
    """Return (parent_pk, child_pk) pairs for every parent reference that stays inside nodes."""
    nodes = list(nodes)
    node_pks = {node.pk for node in nodes}
    links = []
    for node in nodes:
        parent_pk = getattr(node, config.parent_column)
        if parent_pk is not None and parent_pk in node_pks:
            links.append((parent_pk, node.pk))
    return links


def model_to_dict(instance, fields=None, date_strf=None):
    """Return a dictionary of {field_name: field_value} for a given model instance.

    e.g.: model_to_dict(myqueryset.first(), fields=["id",])

    For DateTimeFields, a formatting string can be provided.
    """

    if not fields:
        raise IncorrectUsageException("fields list must be provided")

    opts = instance._meta
    data = {}
    __fields = [name.split("__")[0] for name in fields]

    for f in chain(opts.concrete_fields, opts.private_fields, opts.many_to_many):
        if f.name not in __fields:
            continue

        if isinstance(f, DateTimeField):
            dt = f.value_from_object(instance)
            if dt is None:
                data[f.name] = None
            else:
                # Format based on format string provided, otherwise return a timestamp
                data[f.name] = dt.strftime(date_strf) if date_strf else dt.timestamp()

        elif isinstance(f, ImageField):
            image = f.value_from_object(instance)
            data[f.name] = image.url if image else None

        elif isinstance(f, FileField):
            file = f.value_from_object(instance)
            data[f.name] = file.url if file else None

        elif isinstance(f, ManyToManyField):
            if instance.pk is None:
                data[f.name] = []
            else:
                data[f.name] = [item.pk for item in f.value_from_object(instance)]

        elif isinstance(f, UUIDField):
            uuid = f.value_from_object(instance)
            data[f.name] = str(uuid) if uuid else None

        elif f.is_relation:
            # Foreign keys, including the parent reference, export their raw id
            data[f.name] = getattr(instance, f.attname)

        elif getattr(f, "editable", False):
            data[f.name] = f.value_from_object(instance)

    funcs = set(__fields) - set(data.keys())
    for func in funcs:
        obj = getattr(instance, func)
        if inspect.ismethod(obj):
            data[func] = obj()
        else:
            data[func] = obj
    return data
