import threading
import time
from types import SimpleNamespace

import pytest

from src.core.errors import UpstreamGenerationError
from src.core.schemas import ChatMessage
from src.services import llm_services
from src.services.llm_services import CompletionClient


class _FakeChatModel:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.seen = []

    def invoke(self, messages):
        self.seen.append(messages)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def built(monkeypatch):
    models = []

    def fake_get_chat_llm(provider, model, temperature=0, max_tokens=None):
        time.sleep(0.01)
        m = _FakeChatModel(reply=SimpleNamespace(content="ok", usage_metadata={"input_tokens": 3, "output_tokens": 4}))
        models.append((max_tokens, temperature, m))
        return m

    monkeypatch.setattr(llm_services, "get_chat_llm", fake_get_chat_llm)
    return models


def test_model_handle_built_once_per_setting_across_threads(built):
    client = CompletionClient(model="test-model")
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        client._llm(1000, 0.3)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(built) == 1
    client._llm(2000, 0.3)
    assert [(b[0], b[1]) for b in built] == [(1000, 0.3), (2000, 0.3)]


def test_complete_reports_text_and_usage(built):
    client = CompletionClient(model="test-model")
    out = client.complete("system text", [ChatMessage(role="user", content="hi")], max_tokens=100, temperature=0.1)
    assert out.text == "ok"
    assert (out.input_tokens, out.output_tokens) == (3, 4)
    assert out.model == "test-model"
    messages = built[0][2].seen[0]
    assert [type(m).__name__ for m in messages] == ["SystemMessage", "HumanMessage"]


def test_provider_error_becomes_upstream_error(monkeypatch):
    monkeypatch.setattr(
        llm_services, "get_chat_llm", lambda *a, **kw: _FakeChatModel(error=TimeoutError("deadline"))
    )
    with pytest.raises(UpstreamGenerationError):
        CompletionClient(model="m").complete("s", [ChatMessage(role="user", content="x")])


def test_block_content_is_flattened():
    assert llm_services._text_of([{"type": "text", "text": "a"}, {"type": "image"}, "b"]) == "ab"
    assert llm_services._text_of("plain") == "plain"
