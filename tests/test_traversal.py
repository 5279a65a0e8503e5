from django.test import TestCase

from django_recursive_tree.query_builders import QueryBuilder
from tests.helpers import CategoryTreeFixtureMixin, SmallTreeFixtureMixin
from tests.testapp.models import Category


class SmallTreeTraversalTestCase(SmallTreeFixtureMixin, TestCase):
    """Traversals over root -> child1 -> subchild1, root -> child2."""

    def test_ancestors(self):
        self.assertEqual(list(Category.objects.ancestors(self.subchild1)), [self.child1, self.root])

    def test_ancestors_of_root_is_empty(self):
        self.assertEqual(list(Category.objects.ancestors(self.root)), [])
        self.assertTrue(Category.objects.is_root(self.root))

    def test_self_and_ancestors(self):
        self.assertEqual(
            list(Category.objects.self_and_ancestors(self.subchild1)), [self.subchild1, self.child1, self.root]
        )

    def test_descendants(self):
        descendants = list(Category.objects.descendants(self.root))
        self.assertEqual(set(descendants), {self.child1, self.child2, self.subchild1})
        self.assertLess(descendants.index(self.child1), descendants.index(self.subchild1))
        self.assertNotIn(self.root, descendants)

    def test_self_and_descendants(self):
        self_and_descendants = list(Category.objects.self_and_descendants(self.root))
        self.assertEqual(self_and_descendants[0], self.root)
        self.assertEqual(self_and_descendants, [self.root, self.child1, self.child2, self.subchild1])

    def test_siblings(self):
        self.assertEqual(list(Category.objects.siblings(self.subchild1)), [])
        self.assertEqual(list(Category.objects.siblings(self.child1)), [self.child2])

    def test_root(self):
        self.assertEqual(Category.objects.root(self.subchild1), self.root)
        self.assertEqual(Category.objects.root(self.root), self.root)

    def test_is_leaf(self):
        self.assertTrue(Category.objects.is_leaf(self.child2))
        self.assertFalse(Category.objects.is_leaf(self.child1))

    def test_leaves(self):
        self.assertEqual(list(Category.objects.leaves(self.root)), [self.child2, self.subchild1])
        self.assertEqual(list(Category.objects.leaves(self.child2)), [self.child2])

    def test_accepts_primary_keys(self):
        self.assertEqual(list(Category.objects.ancestors(self.subchild1.pk)), [self.child1, self.root])
        self.assertEqual(Category.objects.root(self.subchild1.pk), self.root)


class TraversalPropertiesTestCase(CategoryTreeFixtureMixin, TestCase):
    """Properties that hold for every node of the fixture forest."""

    def test_self_and_ancestors_is_self_then_ancestors(self):
        for node in self.all_nodes:
            chain = list(Category.objects.self_and_ancestors(node))
            self.assertEqual(chain, [node] + list(Category.objects.ancestors(node)))
            self.assertIsNone(chain[-1].parent_id)

    def test_descendants_have_no_duplicates(self):
        for node in self.all_nodes:
            pks = [n.pk for n in Category.objects.descendants(node)]
            self.assertEqual(len(pks), len(set(pks)))

    def test_descendants_ancestor_chain_passes_through_node(self):
        for node in self.all_nodes:
            for descendant in Category.objects.descendants(node):
                self.assertIn(node, Category.objects.ancestors(descendant))

    def test_descendants_are_parent_before_child(self):
        for node in self.all_nodes:
            descendants = list(Category.objects.self_and_descendants(node))
            positions = {n.pk: i for i, n in enumerate(descendants)}
            for n in descendants[1:]:
                self.assertLess(positions[n.parent_id], positions[n.pk])

    def test_descendants_are_idempotent(self):
        first = list(Category.objects.descendants(self.root))
        second = list(Category.objects.descendants(self.root))
        self.assertEqual(first, second)

    def test_leaf_iff_no_descendants(self):
        for node in self.all_nodes:
            self.assertEqual(Category.objects.is_leaf(node), not Category.objects.descendants(node).exists())

    def test_root_iff_no_ancestors(self):
        for node in self.all_nodes:
            self.assertEqual(Category.objects.is_root(node), not Category.objects.ancestors(node).exists())

    def test_descendants_order(self):
        self.assertEqual(
            list(Category.objects.descendants(self.root)),
            [self.a1, self.a2, self.a3, self.b1, self.b2, self.b3, self.b4, self.c1, self.c2],
        )

    def test_ancestors_order(self):
        self.assertEqual(list(Category.objects.ancestors(self.c1)), [self.b2, self.a1, self.root])

    def test_island_has_no_relatives(self):
        self.assertEqual(list(Category.objects.ancestors(self.island)), [])
        self.assertEqual(list(Category.objects.descendants(self.island)), [])
        self.assertEqual(list(Category.objects.leaves(self.island)), [self.island])


class QueryBuilderOperationsTestCase(CategoryTreeFixtureMixin, TestCase):
    """The five operations called directly on a QueryBuilder."""

    def setUp(self):
        super().setUp()
        self.builder = QueryBuilder(Category)

    def test_ancestors_of(self):
        self.assertEqual(list(self.builder.ancestors_of(self.c2)), [self.b3, self.a2, self.root])

    def test_self_and_ancestors_of(self):
        self.assertEqual(list(self.builder.self_and_ancestors_of(self.b1)), [self.b1, self.a1, self.root])

    def test_descendants_of(self):
        self.assertEqual(list(self.builder.descendants_of(self.a3)), [self.b4])

    def test_self_and_descendants_of(self):
        self.assertEqual(list(self.builder.self_and_descendants_of(self.a2)), [self.a2, self.b3, self.c2])

    def test_leaves_of(self):
        self.assertEqual(list(self.builder.leaves_of(self.root)), [self.b1, self.b4, self.c1, self.c2])

    def test_fixed_starting_id(self):
        builder = QueryBuilder(Category, ids=self.a1.pk)
        self.assertEqual(list(builder.descendants_of()), [self.b1, self.b2, self.c1])
        self.assertEqual(list(builder.ancestors_of()), [self.root])

    def test_results_are_querysets(self):
        descendants = self.builder.descendants_of(self.root)
        self.assertEqual(descendants.filter(active=False).count(), 2)
