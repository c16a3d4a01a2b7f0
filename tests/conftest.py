import os

# Settings are read at import time; keep the suite fast and off the real database
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("KDF_ITERATIONS", "1000")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_image_vault.db")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from image_vault.crypto.key_derivation import derive_key, new_salt


@pytest.fixture
def salt():
    return new_salt()


@pytest.fixture
def key(salt):
    return derive_key("password123", salt, 1000)
