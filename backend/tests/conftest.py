"""
Shared fixtures for the feedback service tests.
"""

import os

# Settings are read at import time; keep tests off external services
os.environ["APP_ENV"] = "development"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["MONGODB_URI"] = ""
os.environ.setdefault("GROQ_API_KEY", "test-key")

import asyncio
import pytest

from feedback_engine.utils.metrics import metrics_collector


class StubGenerator:
    """Deterministic text generator returning a canned reply."""

    def __init__(self, reply: str = "", error: Exception = None, delay: float = 0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.prompts = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def stub_generator():
    return StubGenerator


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics_collector.reset()
    yield
    metrics_collector.reset()
