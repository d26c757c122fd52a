import os

os.environ.setdefault("THOUGHT_CHAIN_DB_PATH", ":memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("THOUGHT_CHAIN_LOG_LEVEL", "WARNING")

import pytest

from thoughtchain.db import create_store
from thoughtchain.mcp.server import build_runtime, set_runtime
from thoughtchain.services.chain_controller import ChainController
from thoughtchain.services.rate_limiter import RateLimitConfig, RateLimitRule
from thoughtchain.session import ChainSession
from thoughtchain.storage_location import MEMORY_PATH, StorageLocation


def memory_location() -> StorageLocation:
    return StorageLocation(path=MEMORY_PATH, directory=None, managed=False)


@pytest.fixture
def store():
    store = create_store(memory_location())
    yield store
    store.close()


@pytest.fixture
def file_location(tmp_path):
    return StorageLocation(
        path=str(tmp_path / "thoughts.db"),
        directory=str(tmp_path),
        managed=False,
    )


@pytest.fixture
def controller(store):
    return ChainController(store)


@pytest.fixture
def session():
    return ChainSession()


@pytest.fixture
def runtime(store):
    runtime = build_runtime(
        store=store,
        rate_config=RateLimitConfig(enabled=False, rule=RateLimitRule(limit=100, window_seconds=60)),
    )
    previous = set_runtime(runtime)
    yield runtime
    set_runtime(previous)
