"""
Shared fixtures for taskboard tests.

Supabase is replaced by ``FakeClient``: every ``table()`` call returns a
chainable ``FakeQuery`` that records the builder calls it receives and, on
``execute()``, returns the next response queued for that table.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from taskboard.app import app
from taskboard.services import supabase_service
from taskboard.services.auth_service import Session, get_current_session


class FakeResponse:
    def __init__(self, data: Optional[List[Dict[str, Any]]] = None, count: Optional[int] = None):
        self.data = data if data is not None else []
        self.count = count


class FakeQuery:
    def __init__(self, table: str, response: FakeResponse):
        self.table = table
        self.calls: List[tuple] = []
        self._response = response

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)

        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return method

    def execute(self) -> FakeResponse:
        self.calls.append(("execute", (), {}))
        return self._response

    def args_for(self, name: str) -> List[tuple]:
        return [args for call_name, args, _ in self.calls if call_name == name]

    def kwargs_for(self, name: str) -> List[dict]:
        return [kwargs for call_name, _, kwargs in self.calls if call_name == name]

    @property
    def methods(self) -> List[str]:
        return [call[0] for call in self.calls]


class FakeClient:
    def __init__(self):
        self.responses: Dict[str, List[FakeResponse]] = {}
        self.queries: List[FakeQuery] = []
        self.auth = Mock()

    def queue(self, table: str, data: Optional[List[Dict[str, Any]]] = None, count: Optional[int] = None) -> None:
        self.responses.setdefault(table, []).append(FakeResponse(data, count))

    def table(self, name: str) -> FakeQuery:
        pending = self.responses.get(name) or []
        response = pending.pop(0) if pending else FakeResponse()
        query = FakeQuery(name, response)
        self.queries.append(query)
        return query

    def queries_for(self, table: str) -> List[FakeQuery]:
        return [q for q in self.queries if q.table == table]


@pytest.fixture
def fake_supabase(monkeypatch) -> FakeClient:
    client = FakeClient()
    monkeypatch.setattr(supabase_service, "get_client", lambda: client)
    monkeypatch.setattr(supabase_service, "get_anon_client", lambda: client)
    return client


@pytest.fixture
def session() -> Session:
    return Session(user_id="user-1", email="ada@example.com", role="User", access_token="token-1")


@pytest.fixture
def login():
    """Override the session dependency; returns a setter for role switching."""

    def _login(session: Session) -> None:
        app.dependency_overrides[get_current_session] = lambda: session

    yield _login
    app.dependency_overrides.pop(get_current_session, None)


@pytest.fixture
def client(fake_supabase, session, login) -> TestClient:
    login(session)
    return TestClient(app)
