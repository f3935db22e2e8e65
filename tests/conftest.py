"""Shared fakes for the Gmail, Sheets and OpenAI collaborators."""
import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from application_tracker.models import ApplicationRecord


class FakeStore:
    def __init__(self, records=None, fail_on=()):
        self.records = list(records or [])
        self.fail_on = set(fail_on)
        self.reads = 0

    def read_all(self):
        self.reads += 1
        return list(self.records)

    def seen_ids(self):
        return {r.email_id for r in self.read_all() if r.email_id}

    def append(self, record):
        if record.email_id in self.fail_on:
            raise RuntimeError("sheet write failed")
        self.records.append(record)


class FakeExtractor:
    """Returns a canned record per subject; counts calls."""

    def __init__(self, results=None):
        self.results = results or {}
        self.calls = []

    def extract(self, subject, body, email_date, today=None):
        self.calls.append(subject)
        if subject in self.results:
            return self.results[subject]
        return ApplicationRecord(
            date=email_date, company="Acme", role="Engineer", status="In-Process",
            next_steps="", email_date=email_date,
        )


def completion(content):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def openai_client():
    """MagicMock client whose next completion is set via ``client.reply(...)``."""
    client = MagicMock()

    def reply(payload):
        content = payload if isinstance(payload, str) or payload is None else json.dumps(payload)
        client.chat.completions.create.return_value = completion(content)

    client.reply = reply
    return client
