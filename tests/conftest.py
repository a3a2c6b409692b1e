import logging
from types import SimpleNamespace

import pytest

from logger import logger
from weapon import load_catalog

logger.setLevel(logging.DEBUG)


@pytest.fixture(scope="session")
def catalog():
    return load_catalog()


class FakeCompletions:
    def __init__(self, content="REPORT", exc=None):
        self.content = content
        self.exc = exc
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.exc is not None:
            raise self.exc
        msg = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=msg)])


class FakeClient:
    """Stands in for openai.OpenAI: only ``chat.completions.create`` is used."""

    def __init__(self, content="REPORT", exc=None):
        self.chat = SimpleNamespace(completions=FakeCompletions(content, exc))

    @property
    def calls(self):
        return self.chat.completions.calls


@pytest.fixture
def fake_client():
    return FakeClient()
