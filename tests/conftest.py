import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)


@pytest.fixture
def provider():
    from tests.utils import FakeProvider

    return FakeProvider()


@pytest.fixture
def ctx(provider):
    from tests.utils import make_context

    return make_context(provider)


@pytest.fixture
def client(ctx):
    from fastapi.testclient import TestClient

    from src.chatbot.api.main import create_app

    return TestClient(create_app(ctx))
