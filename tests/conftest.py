"""
Pytest configuration and shared fixtures
"""
import pytest
from fastapi.testclient import TestClient
import sys
import os

# Make the flat top-level packages importable without installation
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from main import app, get_provider
from config.settings import Settings, get_settings
from providers.llm_provider import CompletionResult, LLMProvider, ProviderError

MODELS = ["model-a", "model-b", "model-c"]


def ok(content):
    return CompletionResult(model="", status=200, content=content)


def http_status(code, text="upstream error"):
    return CompletionResult(model="", status=code, error_text=text)


class ScriptedProvider(LLMProvider):
    """Stand-in gateway: each model answers from a script, in call order.

    A script entry is a CompletionResult or an exception to raise. Models
    without a script answer 500.
    """

    def __init__(self, script=None):
        self.script = {model: list(replies) for model, replies in (script or {}).items()}
        self.calls = []

    async def complete(self, model, messages, title=None):
        self.calls.append({"model": model, "messages": messages, "title": title})
        replies = self.script.get(model)
        if not replies:
            return CompletionResult(model=model, status=500, error_text="not scripted")
        reply = replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return CompletionResult(model=model, status=reply.status, content=reply.content,
                                error_text=reply.error_text)

    @property
    def models_called(self):
        return [call["model"] for call in self.calls]

    def get_provider_name(self):
        return "Scripted"

    def is_available(self):
        return True


@pytest.fixture
def settings():
    """Settings isolated from the environment and any .env file"""
    return Settings(
        _env_file=None,
        OPENROUTER_API_KEY="test-key",
        STORY_MODELS=MODELS,
        ANALYSIS_MODELS=MODELS,
        QUESTION_MODELS=MODELS,
        STORY_MIN_LENGTH=0,
    )


@pytest.fixture
def make_client(settings):
    """Build a test client whose gateway follows the given script"""
    providers = []

    def _make(script=None, **overrides):
        provider = ScriptedProvider(script)
        providers.append(provider)
        configured = settings.model_copy(update=overrides) if overrides else settings
        app.dependency_overrides[get_settings] = lambda: configured
        app.dependency_overrides[get_provider] = lambda: provider
        return TestClient(app), provider

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    """FastAPI test client with an unscripted gateway"""
    test_client, _ = make_client()
    return test_client


@pytest.fixture
def transport_error():
    return ProviderError("error", "connection reset")


@pytest.fixture
def sample_story():
    return "小明今天去公园。他看见一只小狗。\n\n小狗很可爱。小明很高兴。"


@pytest.fixture
def five_questions():
    return (
        '[{"id": 1, "question": "小明去哪儿了?"},'
        ' {"id": 2, "question": "他看见了什么?"},'
        ' {"id": 3, "question": "小狗怎么样?"},'
        ' {"id": 4, "question": "小明高兴吗?"},'
        ' {"id": 5, "question": "故事发生在什么时候?"}]'
    )


@pytest.fixture
def three_questions():
    return (
        '[{"id": 1, "question": "如果你是小明，你会怎么做？"},'
        ' {"id": 2, "question": "你喜欢小狗吗？为什么？"},'
        ' {"id": 3, "question": "你有过类似的经历吗？"}]'
    )
