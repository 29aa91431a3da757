import pathlib
import site

import pytest
from qstorage.types import ColumnReader

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def restore_column_readers():
    """Restore the column reader registry after each test to ensure test isolation."""
    readers = dict(ColumnReader._readers)
    yield
    ColumnReader._readers.clear()
    ColumnReader._readers.update(readers)


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.sqlite',
]
