import logging
import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from tests.fakes import EMBED_URL, QDRANT_URL, VECTOR_SIZE, FakeEmbeddingProvider, FakeQdrant, FakeRedis, make_transport


BASE_ENV = {
    "RAG_ENGINE": "qdrant",
    "RAG_QDRANT_BASE_URL": QDRANT_URL,
    "RAG_QDRANT_COLLECTION": "chat_messages",
    "RAG_QDRANT_VECTOR_SIZE": str(VECTOR_SIZE),
    "EMBED_ENGINE": "openrouter",
    "EMBED_OPENROUTER_BASE_URL": EMBED_URL,
    "EMBED_OPENROUTER_API_KEY": "test-key",
    "QUEUE_ENGINE": "redis",
    "QUEUE_REDIS_URL": "redis://queue.test:6379/0",
    "WORKER_RETRY_BACKOFF": "0.01",
    "APP_API_KEY": "secret",
}


@pytest.fixture
def logger():
    return ColorLogger(logging.getLogger("tests"))


@pytest.fixture
def make_config(logger):
    def _make(**overrides) -> HelperConfig:
        env = dict(BASE_ENV)
        for key, value in overrides.items():
            if value is None:
                env.pop(key, None)
            else:
                env[key] = value
        return HelperConfig(logger=logger, environ=env)

    return _make


@pytest.fixture
def config(make_config):
    return make_config()


@pytest.fixture
def qdrant():
    return FakeQdrant()


@pytest.fixture
def provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def transport(qdrant, provider):
    return make_transport(qdrant, provider)


@pytest.fixture
def fake_redis():
    return FakeRedis()
