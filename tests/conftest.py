import os

# Keep the suite offline: no AI key and no DynamoDB table
os.environ["DISABLE_AI"] = "true"
os.environ["DYNAMODB_TABLE_NAME"] = ""

import pytest

from talentsonar.utils.exceptions import NotConfiguredError


class FakeAI:
    """Stand-in for AIService with scripted JSON responses and embeddings."""

    model = "fake-model"

    def __init__(self, available=True, json_responses=None, embed=None):
        self.available = available
        self.json_responses = list(json_responses or [])
        self.embed = embed
        self.json_calls = []
        self.embed_calls = []

    def is_available(self):
        return self.available

    def generate_json(self, system_prompt, user_prompt, max_tokens=800, model=None):
        self.json_calls.append(
            {"system": system_prompt, "user": user_prompt, "model": model}
        )
        if not self.json_responses:
            raise NotConfiguredError("FakeAI", "no scripted response")
        response = self.json_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def embed_text(self, text):
        self.embed_calls.append(text)
        if isinstance(self.embed, Exception):
            raise self.embed
        return self.embed(text)


@pytest.fixture
def fake_ai_factory():
    return FakeAI
