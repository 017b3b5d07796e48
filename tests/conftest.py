"""Global pytest configuration for the metastore test-suite.

The module ensures the ``src`` tree is importable regardless of how the
repository is cloned, and provides the store fixtures shared by the backend
and persistence tests. ``metastore`` is parametrized over every backend so the
contract tests run against each of them.
"""

import sys
from pathlib import Path

import pytest

# Add the src directory to the Python path so imports can work correctly
project_root = Path(__file__).parent.parent
src_dir = project_root / "src"

if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from metastore.backends.in_memory import InMemoryMetaStore  # noqa: E402
from metastore.backends.sqlite import SQLiteMetaStore  # noqa: E402


@pytest.fixture
def in_memory_store() -> InMemoryMetaStore:
    return InMemoryMetaStore({"name": "test-memory"})


@pytest.fixture
def sqlite_store(tmp_path):
    store = SQLiteMetaStore({"name": "test-sqlite", "database_path": str(tmp_path / "metastore.db")})
    yield store
    store.close()


@pytest.fixture(params=["memory", "sqlite"])
def metastore(request):
    """Every backend, one test run each."""
    fixture_names = {"memory": "in_memory_store", "sqlite": "sqlite_store"}
    return request.getfixturevalue(fixture_names[request.param])
