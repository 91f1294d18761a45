import os

# Settings are read once at import; tests run against the in-process store
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("CB_STORAGE", "memory")

import pytest  # noqa: E402

from promptgate.services.inference.api_keys import reset_memory_keys  # noqa: E402
from promptgate.storage.factory import EntitlementStoreFactory  # noqa: E402


@pytest.fixture(autouse=True)
def _clean_memory_state():
    EntitlementStoreFactory.reset_memory()
    reset_memory_keys()
    yield
    EntitlementStoreFactory.reset_memory()
    reset_memory_keys()
