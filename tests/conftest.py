import pytest

from gh_star_classifier.core.database import StarDatabase

from .factories import NOW


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def db():
    database = StarDatabase(":memory:")
    yield database
    database.close()
