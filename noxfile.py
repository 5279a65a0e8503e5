"""Nox sessions for django-recursive-tree."""

import sys

import nox

DJANGO_STABLE_VERSION = "5.2"
DJANGO_VERSIONS = ["4.2", "5.1", "5.2"]
PYTHON_STABLE_VERSION = "3.13"
PYTHON_VERSIONS = ["3.11", "3.12", "3.13"]
PACKAGE = "django_recursive_tree"

nox.options.default_venv_backend = "uv"
nox.options.sessions = ["tests"]


@nox.session(
    python=PYTHON_VERSIONS,
    tags=["tests"],
)
@nox.parametrize("django", DJANGO_VERSIONS)
def tests(session: nox.Session, django: str) -> None:
    """Run the test suite across Python and Django versions."""
    session.install(".[dev]")
    session.install(f"django~={django}.0")
    session.run(
        "coverage",
        "run",
        "--source",
        PACKAGE,
        "-m",
        "pytest",
        "-vv",
        *session.posargs,
    )

    if sys.stdin.isatty():
        session.notify("coverage")


@nox.session(name="tests-postgres", python=PYTHON_STABLE_VERSION)
def tests_postgres(session: nox.Session) -> None:
    """Run the test suite against PostgreSQL (set PG_HOST and friends)."""
    session.install(".[dev,postgres]")
    session.install(f"django~={DJANGO_STABLE_VERSION}.0")
    session.run("pytest", "-vv", *session.posargs)


@nox.session(python=PYTHON_STABLE_VERSION)
def coverage(session: nox.Session) -> None:
    """Combine and report coverage."""
    session.install("coverage[toml]")
    session.run("coverage", "combine", success_codes=[0, 1])
    session.run("coverage", "report")


@nox.session(name="docs-build", python=PYTHON_STABLE_VERSION)
def docs_build(session: nox.Session) -> None:
    """Build the documentation."""
    session.install("-r", "docs/requirements.txt")
    session.install(".")
    session.run("sphinx-build", "docs", "docs/_build")
