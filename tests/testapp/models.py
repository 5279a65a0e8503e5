import uuid

from django.db import models

from django_recursive_tree.config import registry
from django_recursive_tree.models import TreeManager, tree_node_factory


class Category(tree_node_factory()):
    name = models.CharField(max_length=100)
    active = models.BooleanField(default=True)

    def __str__(self):
        return self.name

    class Meta:
        app_label = "testapp"


class ActiveCategory(Category):
    """Proxy model sharing Category's table and tree configuration."""

    class Meta:
        proxy = True
        app_label = "testapp"


class Folder(tree_node_factory(parent_field="parent_folder")):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)

    def __str__(self):
        return self.name

    class Meta:
        app_label = "testapp"


class Comment(models.Model):
    """A model with its own reply_to column, registered explicitly instead of through the factory."""

    body = models.CharField(max_length=200)
    reply_to = models.ForeignKey("self", null=True, blank=True, on_delete=models.CASCADE, related_name="replies")
    thread = models.ForeignKey(
        "self", null=True, blank=True, on_delete=models.SET_NULL, related_name="thread_comments"
    )

    objects = TreeManager()

    def __str__(self):
        return self.body

    class Meta:
        app_label = "testapp"


registry.register(Comment, parent_field="reply_to")


class FieldTestModel(models.Model):
    """Model for testing model_to_dict with various field types."""

    name = models.CharField(max_length=100)
    created_at = models.DateTimeField(auto_now_add=True)
    uuid_field = models.UUIDField(null=True, blank=True)
    nullable_dt = models.DateTimeField(null=True, blank=True)
    file_field = models.FileField(upload_to="test/", null=True, blank=True)

    class Meta:
        app_label = "testapp"
