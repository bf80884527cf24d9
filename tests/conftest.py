# -*- coding: utf-8 -*-
"""
Shared test fixtures for the SupportDesk test suite.

Store-backed tests run against FakeSupabase, an in-memory stand-in for the
supabase client that implements the PostgREST builder calls the services
use (select/insert/update/delete, eq/in_/or_/order/limit, execute).
"""

import copy
import re
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Tuple

import jwt
import pytest
from postgrest.exceptions import APIError

from supportdesk.config import reset_settings
from supportdesk.database import SupabaseClientSingleton
from supportdesk.models.session import Caller
from supportdesk.service.auth_service import AuthServiceSingleton
from supportdesk.service.comment_service import CommentService, CommentServiceSingleton
from supportdesk.service.ticket_service import TicketService, TicketServiceSingleton
from supportdesk.service.user_service import UserService, UserServiceSingleton
from supportdesk.analytics.dashboard_service import reset_dashboard_service

TEST_JWT_SECRET = "test-jwt-secret-with-at-least-32-bytes!!"


# =============================================================================
# IN-MEMORY SUPABASE
# =============================================================================

def _split_top_level(expression: str) -> List[str]:
    """Split an or_() expression on commas that are not inside double quotes."""
    parts, current, in_quotes, escaped = [], [], False, False
    for char in expression:
        if escaped:
            current.append(char)
            escaped = False
        elif char == '\\' and in_quotes:
            current.append(char)
            escaped = True
        elif char == '"':
            current.append(char)
            in_quotes = not in_quotes
        elif char == ',' and not in_quotes:
            parts.append(''.join(current))
            current = []
        else:
            current.append(char)
    parts.append(''.join(current))
    return parts


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return re.sub(r'\\(.)', r'\1', value[1:-1])
    return value


def _like_to_regex(pattern: str) -> re.Pattern:
    """ILIKE pattern (backslash escapes, * treated as % like PostgREST does) to regex."""
    out, i = [], 0
    while i < len(pattern):
        char = pattern[i]
        if char == '\\' and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if char in '%*':
            out.append('.*')
        elif char == '_':
            out.append('.')
        else:
            out.append(re.escape(char))
        i += 1
    return re.compile(''.join(out), re.IGNORECASE | re.DOTALL)


def _condition(expression: str):
    column, operator, raw = expression.split('.', 2)
    value = _unquote(raw)
    if operator == 'eq':
        return lambda row: row.get(column) is not None and str(row.get(column)) == value
    if operator == 'ilike':
        regex = _like_to_regex(value)
        return lambda row: row.get(column) is not None and regex.fullmatch(str(row.get(column))) is not None
    raise NotImplementedError(f"FakeSupabase does not support operator {operator}")


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.operation = 'select'
        self.columns = '*'
        self.payload = None
        self.conditions = []
        self.ordering = None
        self.row_limit = None

    # Operations

    def select(self, columns: str = '*'):
        self.operation = 'select'
        self.columns = columns
        return self

    def insert(self, payload):
        self.operation = 'insert'
        self.payload = payload
        return self

    def update(self, payload):
        self.operation = 'update'
        self.payload = payload
        return self

    def delete(self):
        self.operation = 'delete'
        return self

    # Filters and modifiers

    def eq(self, column, value):
        self.conditions.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.conditions.append(lambda row: row.get(column) in values)
        return self

    def or_(self, expression: str):
        checks = [_condition(part) for part in _split_top_level(expression)]
        self.conditions.append(lambda row: any(check(row) for check in checks))
        return self

    def order(self, column, desc: bool = False):
        self.ordering = (column, desc)
        return self

    def limit(self, count: int):
        self.row_limit = count
        return self

    # Execution

    def _matches(self, row) -> bool:
        return all(condition(row) for condition in self.conditions)

    def _project(self, row) -> Dict[str, Any]:
        if self.columns.strip() == '*':
            return copy.deepcopy(row)
        names = [c.strip() for c in self.columns.split(',')]
        return {name: row.get(name) for name in names}

    def execute(self):
        self.db.executed.append((self.table_name, self.operation))
        pending = self.db.failures.get(self.table_name)
        if pending is not None and pending[0] in (None, self.operation):
            del self.db.failures[self.table_name]
            raise pending[1]

        rows = self.db.tables.setdefault(self.table_name, [])

        if self.operation == 'insert':
            new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for row in new_rows:
                row = copy.deepcopy(row)
                row.setdefault('id', str(uuid.uuid4()))
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return SimpleNamespace(data=inserted)

        matched = [row for row in rows if self._matches(row)]

        if self.operation == 'update':
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return SimpleNamespace(data=[copy.deepcopy(r) for r in matched])

        if self.operation == 'delete':
            self.db.tables[self.table_name] = [row for row in rows if not self._matches(row)]
            if self.table_name == 'tickets':
                # ticket_comments.ticket_id is ON DELETE CASCADE
                gone = {row['id'] for row in matched}
                self.db.tables['ticket_comments'] = [
                    c for c in self.db.tables.get('ticket_comments', []) if c.get('ticket_id') not in gone
                ]
            return SimpleNamespace(data=[copy.deepcopy(r) for r in matched])

        if self.ordering:
            column, desc = self.ordering
            matched.sort(key=lambda r: (r.get(column) is None, r.get(column) or ''), reverse=desc)
        if self.row_limit is not None:
            matched = matched[:self.row_limit]
        return SimpleNamespace(data=[self._project(r) for r in matched])


class FakeSupabase:
    """Tables are lists of row dicts keyed by table name."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            'users': [],
            'tickets': [],
            'ticket_comments': [],
        }
        self.failures: Dict[str, Tuple[Optional[str], Exception]] = {}
        self.executed = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def fail_next(self, table: str, error: Exception, operation: str = None) -> None:
        """Raise error from the next execute() against table, optionally only for one operation."""
        self.failures[table] = (operation, error)

    def add_user(self, full_name: str, role: str = 'user', email: str = None) -> Dict[str, Any]:
        row = {
            'id': str(uuid.uuid4()),
            'email': email or f"{full_name.split()[0].lower()}@example.com",
            'full_name': full_name,
            'role': role,
            'avatar_url': None,
            'created_at': '2026-01-01T00:00:00+00:00',
        }
        self.tables['users'].append(row)
        return row


def _api_error(code: str, message: str = "backend error") -> APIError:
    return APIError({"message": message, "code": code, "hint": None, "details": None})


class FakeClock:
    """Deterministic clock; each call returns the current time, advance() moves it."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Fresh settings and service singletons for every test."""
    monkeypatch.setenv("SUPABASE_URL", "https://test.supabase.co")
    monkeypatch.setenv("SUPABASE_SECRET_KEY", "test-service-role-key")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "test-anon-key")
    monkeypatch.setenv("SUPABASE_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.delenv("LOG_FILE", raising=False)
    reset_settings()

    yield

    for singleton in (
        SupabaseClientSingleton,
        UserServiceSingleton,
        TicketServiceSingleton,
        CommentServiceSingleton,
        AuthServiceSingleton,
    ):
        singleton.reset_instance()
    reset_dashboard_service()
    reset_settings()


@pytest.fixture
def fake_supabase():
    """In-memory client installed as the process-wide Supabase client."""
    fake = FakeSupabase()
    SupabaseClientSingleton._instance = fake
    return fake


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def users(fake_supabase):
    """One admin and two regular users."""
    return SimpleNamespace(
        admin=fake_supabase.add_user("Grace Admin", role='admin'),
        alice=fake_supabase.add_user("Alice User"),
        bob=fake_supabase.add_user("Bob User"),
    )


def caller_for(row: Dict[str, Any]) -> Caller:
    return Caller(id=row['id'], role=row['role'], email=row['email'], full_name=row['full_name'])


@pytest.fixture
def callers(users):
    return SimpleNamespace(
        admin=caller_for(users.admin),
        alice=caller_for(users.alice),
        bob=caller_for(users.bob),
    )


@pytest.fixture
def user_service(fake_supabase):
    return UserService(fake_supabase)


@pytest.fixture
def ticket_service(fake_supabase, user_service, clock):
    return TicketService(fake_supabase, user_service, clock)


@pytest.fixture
def comment_service(fake_supabase, ticket_service, user_service, clock):
    return CommentService(fake_supabase, ticket_service, user_service, clock)


@pytest.fixture
def make_token():
    """Mint a Supabase-style access token signed with the test secret."""
    def _make(user_id: str, expires_in: int = 3600, secret: str = TEST_JWT_SECRET, audience: str = "authenticated"):
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "aud": audience,
            "role": "authenticated",
            "iat": now,
            "exp": now + timedelta(seconds=expires_in),
        }
        return jwt.encode(payload, secret, algorithm="HS256")
    return _make


@pytest.fixture
def auth_headers(make_token):
    def _headers(user_row: Dict[str, Any]) -> Dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_row['id'])}"}
    return _headers


@pytest.fixture
def api_error():
    """Factory for PostgREST APIError instances with a given code."""
    return _api_error
