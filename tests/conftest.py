import pytest

from auditai.config import ModelSettings
from auditai.providers.base import BaseProvider


class FakeProvider(BaseProvider):
    """Replays canned responses; an Exception instance in the queue is raised instead."""

    retryable = (ConnectionError,)

    def __init__(self, *responses, retries=3):
        super().__init__(ModelSettings(provider="fake", model_id="fake-1", api_key_env="FAKE_KEY"), retries=retries, backoff=0)
        self.responses = list(responses)
        self.calls = []

    @property
    def provider_name(self) -> str:
        return "Fake"

    def _complete_once(self, *, system: str, user: str) -> str:
        self.calls.append((system, user))
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def fake_provider():
    """The FakeProvider class; call it with the responses to replay."""
    return FakeProvider
