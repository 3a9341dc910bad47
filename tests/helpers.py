import json

import httpx


class FakeOllama:
    """Stands in for ollama.Client: canned generate() output and fixed embeddings"""

    def __init__(self, response="", vectors=None, fail=False):
        self.response = response
        self.vectors = vectors or {}
        self.fail = fail
        self.prompts = []

    def generate(self, model, prompt, stream=False, options=None):
        self.prompts.append(prompt)
        if self.fail:
            raise ConnectionError("connection refused")
        return {"response": self.response}

    def embeddings(self, model, prompt):
        self.prompts.append(prompt)
        if self.fail:
            raise ConnectionError("connection refused")
        return {"embedding": self.vectors.get(prompt, [1.0, 0.0, 0.0])}

    def list(self):
        if self.fail:
            raise ConnectionError("connection refused")
        return {"models": []}


def json_response(data, status_code=200):
    return httpx.Response(status_code, json=data)


def mock_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))
