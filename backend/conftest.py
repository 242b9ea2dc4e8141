"""
Shared fixtures: a stub chat model and a TestClient wired to it.
"""

import asyncio
import os
import sys

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage

# Add backend to path
sys.path.insert(0, os.path.dirname(__file__))

from config import settings
from main import app, get_model_factory


class StubChatModel:
    """Stands in for a LangChain chat model; records every ainvoke call."""

    def __init__(self, reply: str = "", error: Exception = None, delay: float = 0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return AIMessage(content=self.reply)


class UpstreamError(Exception):
    """Provider error carrying an HTTP status, like the OpenAI SDK's APIStatusError."""

    def __init__(self, status_code: int):
        super().__init__("upstream request failed")
        self.status_code = status_code


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "upload_dir", path)
    return path


@pytest.fixture
def client(upload_dir):
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def use_model():
    """Route /solve to a stub model: use_model(StubChatModel(reply=...))."""
    def _use(model):
        app.dependency_overrides[get_model_factory] = lambda: (lambda: model)
        return model
    return _use
