"""Common utilities for tests."""

from tests.mock_utils import (  # noqa: F401
    MockBatch,
    MockTransaction,
    make_db,
    mock_transactional,
    patch_mockfirestore,
)

patch_mockfirestore()
