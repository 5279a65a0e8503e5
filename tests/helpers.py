from django.db.models import Q

from tests.testapp.models import Category

ACTIVE = Q(active=True)


class SmallTreeFixtureMixin:
    """Shared fixture building the four node tree:

    root
    ├── child1
    │   └── subchild1
    └── child2
    """

    def setUp(self):
        self.root = Category.objects.create(name="root")
        self.child1 = Category.objects.create(name="child1", parent=self.root)
        self.child2 = Category.objects.create(name="child2", parent=self.root)
        self.subchild1 = Category.objects.create(name="subchild1", parent=self.child1)


class CategoryTreeFixtureMixin:
    """Shared fixture building an eleven node forest, created in primary key order:

    root
    ├── a1
    │   ├── b1
    │   └── b2 (inactive)
    │       └── c1
    ├── a2
    │   └── b3
    │       └── c2
    └── a3 (inactive)
        └── b4
    island
    """

    def setUp(self):
        self.root = Category.objects.create(name="root")
        self.a1 = Category.objects.create(name="a1", parent=self.root)
        self.a2 = Category.objects.create(name="a2", parent=self.root)
        self.a3 = Category.objects.create(name="a3", parent=self.root, active=False)
        self.b1 = Category.objects.create(name="b1", parent=self.a1)
        self.b2 = Category.objects.create(name="b2", parent=self.a1, active=False)
        self.b3 = Category.objects.create(name="b3", parent=self.a2)
        self.b4 = Category.objects.create(name="b4", parent=self.a3)
        self.c1 = Category.objects.create(name="c1", parent=self.b2)
        self.c2 = Category.objects.create(name="c2", parent=self.b3)
        self.island = Category.objects.create(name="island")

    @property
    def all_nodes(self):
        return [
            self.root, self.a1, self.a2, self.a3, self.b1, self.b2, self.b3, self.b4, self.c1, self.c2, self.island,
        ]


class CycleFixtureMixin:
    """Two rows referencing each other as parent, plus a child hanging off the loop:

    x -> y -> x
         y -> z
    """

    def setUp(self):
        self.x = Category.objects.create(name="x")
        self.y = Category.objects.create(name="y", parent=self.x)
        self.z = Category.objects.create(name="z", parent=self.y)
        Category.objects.filter(pk=self.x.pk).update(parent=self.y)
        self.x.refresh_from_db()
