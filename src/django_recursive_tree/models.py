"""Model factory and tree service for hierarchies stored as adjacency lists.

Every row optionally references its parent row through a self-referential
ForeignKey. Traversals are answered by ``TreeManager``, which is bound to one
model and always receives the node (an instance or a primary key) explicitly;
model instances carry no traversal behavior themselves.
"""

from collections import defaultdict

from django.db import models
from django.db.models.signals import class_prepared
from django.dispatch import receiver

from .config import UNLIMITED, registry
from .exceptions import NodeNotFoundException
from .query_builders import AncestorQuery, DescendantQuery, LeavesQuery, QueryBuilder
from .queryables import DjangoQueryable
from .utils import _ordered_filter, parent_links


class TreeManager(models.Manager):
    @property
    def tree_config(self):
        return registry.resolve(self.model)

    def _get_node(self, node):
        """Return the model instance for node, which may already be an instance or a primary key."""
        if isinstance(node, models.Model):
            return node
        try:
            return self.get(pk=node)
        except self.model.DoesNotExist:
            raise NodeNotFoundException(f"{self.model.__name__} with pk {node!r} does not exist")

    @staticmethod
    def _get_pk(node):
        return node.pk if isinstance(node, models.Model) else node

    def query_builder(self, ids=None, condition=None, max_depth=None):
        """Return a QueryBuilder for this model, optionally scoped to fixed starting ids."""
        return QueryBuilder(self.model, ids=ids, condition=condition, max_depth=max_depth)

    def ancestors(self, node, condition=None, max_depth=None):
        """Return a QuerySet of all ancestors, starting from the parent and ending at the root."""
        return self.query_builder(condition=condition, max_depth=max_depth).ancestors_of(node)

    def ancestors_count(self, node, condition=None):
        """Return an integer number representing the total number of ancestor nodes."""
        query = AncestorQuery(model=self.model, ids=self._get_pk(node), condition=condition, max_depth=UNLIMITED)
        return len(query.id_list())

    def self_and_ancestors(self, node, condition=None, max_depth=None):
        """Return a QuerySet of all ancestors, prepending with the node itself."""
        return self.query_builder(condition=condition, max_depth=max_depth).self_and_ancestors_of(node)

    def descendants(self, node, condition=None, max_depth=None):
        """Return a QuerySet of all descendants, parents always ahead of their own children."""
        return self.query_builder(condition=condition, max_depth=max_depth).descendants_of(node)

    def descendants_count(self, node, condition=None):
        """Return an integer number representing the total number of descendant nodes."""
        query = DescendantQuery(model=self.model, ids=self._get_pk(node), condition=condition, max_depth=UNLIMITED)
        return len(query.id_list())

    def self_and_descendants(self, node, condition=None, max_depth=None):
        """Return a QuerySet of all descendants, prepending with the node itself."""
        return self.query_builder(condition=condition, max_depth=max_depth).self_and_descendants_of(node)

    def roots(self, node=None):
        """Return a QuerySet of all root nodes (nodes with no parent) in the model.

        If a node is specified, returns only the root of that node's tree.
        """
        if node is not None:
            return self.filter(pk=self.root(node).pk)
        return DjangoQueryable(self.all()).filter_by_null(self.tree_config.parent_column).queryset

    def leaves(self, node=None, condition=None, max_depth=None):
        """Return a QuerySet of all leaf nodes (nodes with no children) in the model.

        If a node is specified, returns only the leaves below that node, or the node itself if it has no children.
        """
        if node is not None:
            return self.query_builder(condition=condition, max_depth=max_depth).leaves_of(node)
        parent_pks = self.exclude(**{self.tree_config.parent_lookup("isnull"): True}).values(
            self.tree_config.parent_column
        )
        return self.exclude(pk__in=parent_pks)

    def root(self, node):
        """Return the root node of the tree containing node.

        Raises NodeNotFoundException if the ancestor chain never reaches a row without a parent.
        """
        instance = self._get_node(node)
        config = self.tree_config
        if getattr(instance, config.parent_column) is None:
            return instance
        chain = self.query_builder(max_depth=UNLIMITED).self_and_ancestors_of(instance)
        root = chain.filter(**{config.parent_lookup("isnull"): True}).first()
        if root is None:
            raise NodeNotFoundException(f"No root found for {self.model.__name__} with pk {instance.pk!r}")
        return root

    def parent(self, node):
        """Return the parent instance, or None for a root."""
        instance = self._get_node(node)
        return getattr(instance, self.tree_config.parent_field)

    def children(self, node):
        """Return a QuerySet of the direct children of node."""
        return DjangoQueryable(self.all()).filter_by_equals(self.tree_config.parent_column, self._get_pk(node)).queryset

    def self_and_children(self, node):
        """Return a QuerySet of the node and its direct children."""
        pk = self._get_pk(node)
        return self.filter(models.Q(pk=pk) | models.Q(**{self.tree_config.parent_column: pk}))

    def self_and_siblings(self, node):
        """Return a QuerySet of all nodes sharing the node's parent, the node included.

        Roots share the NULL parent, so all roots are siblings of each other.
        """
        instance = self._get_node(node)
        parent_column = self.tree_config.parent_column
        return DjangoQueryable(self.all()).filter_by_equals(parent_column, getattr(instance, parent_column)).queryset

    def siblings(self, node):
        """Return a QuerySet of all nodes sharing the node's parent, excluding the node."""
        instance = self._get_node(node)
        parent_column = self.tree_config.parent_column
        return (
            DjangoQueryable(self.all())
            .filter_by_equals(parent_column, getattr(instance, parent_column))
            .exclude_identifier(instance.pk)
            .queryset
        )

    def is_root(self, node):
        """Return True if node has no parent."""
        return getattr(self._get_node(node), self.tree_config.parent_column) is None

    def is_leaf(self, node):
        """Return True if no row references node as its parent."""
        return not self.children(self._get_node(node)).exists()

    def node_depth(self, node):
        """Return the number of ancestors of node; roots have depth 0."""
        return self.ancestors_count(node)

    def _with_depth(self, query):
        depth_map = query.depth_map()
        nodes = self.in_bulk(list(depth_map))
        return [(nodes[pk], depth) for pk, depth in depth_map.items() if pk in nodes]

    def ancestors_with_depth(self, node, condition=None, max_depth=None):
        """Return list of (ancestor_node, depth) tuples, the parent having depth 1."""
        query = AncestorQuery(model=self.model, ids=self._get_pk(node), condition=condition, max_depth=max_depth)
        return self._with_depth(query)

    def descendants_with_depth(self, node, condition=None, max_depth=None):
        """Return list of (descendant_node, depth) tuples, direct children having depth 1."""
        query = DescendantQuery(model=self.model, ids=self._get_pk(node), condition=condition, max_depth=max_depth)
        return self._with_depth(query)

    def leaves_with_depth(self, node, condition=None, max_depth=None):
        """Return list of (leaf_node, depth) tuples relative to node."""
        query = LeavesQuery(model=self.model, ids=self._get_pk(node), condition=condition, max_depth=max_depth)
        return self._with_depth(query)

    def descendants_tree(self, node, condition=None, max_depth=None):
        """Return a tree-like structure of nested dicts with the descendants of node."""
        instance = self._get_node(node)
        descendants = list(self.descendants(instance, condition=condition, max_depth=max_depth))
        if not descendants:
            return {}
        all_nodes = [instance] + descendants
        node_map = {n.pk: n for n in all_nodes}
        children_of = defaultdict(list)
        for parent_pk, child_pk in parent_links(all_nodes, self.tree_config):
            children_of[parent_pk].append(node_map[child_pk])

        visited = set()

        def _build(current):
            # Recursively map each child node to its own subtree dict
            visited.add(current.pk)
            return {child: _build(child) for child in children_of.get(current.pk, []) if child.pk not in visited}

        return _build(instance)

    def ordered_queryset_from_pks(self, pks):
        """Generate a queryset of this model ordered by the provided pks."""
        return _ordered_filter(self.all(), "pk", pks)


def tree_node_factory(parent_field="parent", parent_null=True, on_delete=models.CASCADE, base_model=models.Model):
    """Return an abstract model with a self-referential parent ForeignKey and a TreeManager.

    Concrete subclasses are registered with the tree registry when Django prepares them.
    """

    class TreeNode(base_model):
        _tree_parent_field = parent_field

        objects = TreeManager()

        class Meta:
            abstract = True

    TreeNode.add_to_class(
        parent_field,
        models.ForeignKey(
            "self",
            null=parent_null,
            blank=parent_null,
            on_delete=on_delete,
            related_name="children",
        ),
    )
    return TreeNode


@receiver(class_prepared)
def register_tree_model(sender, **kwargs):
    """Register concrete models built from tree_node_factory as soon as Django prepares them."""
    parent_field = getattr(sender, "_tree_parent_field", None)
    if parent_field is None or sender._meta.abstract or sender._meta.proxy:
        return
    # Multi-table children resolve through their already registered parent
    if sender in registry:
        return
    registry.register(sender, parent_field=parent_field)
