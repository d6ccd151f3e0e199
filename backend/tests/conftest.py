import os

# The app builds its engine at import time, so point it at a shared
# in-memory database before anything from `studygroups` is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "dev"

import pytest

from studygroups import models  # noqa: F401  registers the tables
from studygroups.database import create_db_and_tables, drop_db_and_tables


@pytest.fixture(autouse=True)
def reset_db():
    """Ensure fresh, empty tables for every test."""
    drop_db_and_tables()
    create_db_and_tables()
    yield
