#!/usr/bin/env python

import os
from setuptools import setup

version = "0.1.0"

classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "License :: OSI Approved :: Apache Software License",
    "Programming Language :: Python",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Libraries",
    "Topic :: Database",
    "Topic :: Utilities",
    "Environment :: Web Environment",
    "Framework :: Django",
    "Framework :: Django :: 4.2",
    "Framework :: Django :: 5.1",
    "Framework :: Django :: 5.2",
]

root_dir = os.path.dirname(__file__)
if not root_dir:
    root_dir = "."
with open(root_dir + "/README.md") as readme:
    long_desc = readme.read()

setup(
    name="django-recursive-tree",
    version=version,
    author="Jack Linke, et al.",
    author_email="jacklinke@gmail.com",
    license="Apache Software License",
    packages=["django_recursive_tree"],
    package_dir={"django_recursive_tree": "src/django_recursive_tree"},
    description="Adjacency-list tree queries (ancestors, descendants, leaves, siblings) for Django models",
    classifiers=classifiers,
    long_description_content_type="text/markdown",
    long_description=long_desc,
    python_requires=">=3.10",
    install_requires=["Django>=4.2"],
    extras_require={
        "transforms": ["networkx>=3.0", "rustworkx>=0.13"],
        "dev": [
            "pytest",
            "pytest-django",
            "coverage[toml]",
            "networkx>=3.0",
            "rustworkx>=0.13",
        ],
        "postgres": ["psycopg[binary]>=3.1"],
    },
)
