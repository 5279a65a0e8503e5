"""Sphinx configuration for django-recursive-tree documentation."""

from datetime import datetime

project = "django-recursive-tree"
author = "Jack Linke"
copyright = f"{datetime.now().year}, {author}"

extensions = [
    "myst_parser",
    "sphinx_copybutton",
    "sphinx.ext.intersphinx",
]

myst_enable_extensions = [
    "colon_fence",
    "deflist",
    "smartquotes",
]

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "django": ("https://docs.djangoproject.com/en/5.2/", None),
}

exclude_patterns = ["_build", "Thumbs.db", ".DS_Store"]

html_theme = "furo"
