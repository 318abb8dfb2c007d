from __future__ import annotations

import base64
import datetime
import hashlib
import hmac
import json

import pytest

from optout.app import create_app
from optout.config import Settings
from optout.db import SuppressionStore

SECRET = "s3cret"
NOW = 1_700_000_000


def make_token(payload, secret: str = SECRET) -> str:
    """Sign a payload the way the link issuer does (test-only)."""
    if isinstance(payload, dict):
        payload = json.dumps(payload)
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    sig = hmac.new(secret.encode(), payload, hashlib.sha256).digest()
    return base64.urlsafe_b64encode(payload + b"." + sig).rstrip(b"=").decode()


def raw_token(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


class _Query:
    def __init__(self, run):
        self._run = run

    def execute(self):
        return self._run()


class FakeTable:
    def __init__(self, client: FakeSupabase, name: str) -> None:
        self.client = client
        self.name = name

    def upsert(self, row: dict, on_conflict: str = "", ignore_duplicates: bool = False):
        def run():
            if self.client.fail_writes:
                raise RuntimeError("connection reset by peer")
            rows = self.client.tables.setdefault(self.name, {})
            key = row[on_conflict]
            if key in rows and ignore_duplicates:
                return _Result([])
            rows[key] = dict(row)
            self.client.writes += 1
            return _Result([dict(row)])
        return _Query(run)


class _Result:
    def __init__(self, data):
        self.data = data


class FakeSupabase:
    """Just enough of supabase.Client for the suppression store."""

    def __init__(self, fail_writes: bool = False, fail_rpc: bool = False) -> None:
        self.tables: dict[str, dict[str, dict]] = {}
        self.rpc_calls: list[str] = []
        self.fail_writes = fail_writes
        self.fail_rpc = fail_rpc
        self.writes = 0

    def table(self, name: str) -> FakeTable:
        return FakeTable(self, name)

    def rpc(self, fn: str, params: dict | None = None):
        def run():
            self.rpc_calls.append(fn)
            if self.fail_rpc:
                raise RuntimeError("could not connect to server")
            return _Result(None)
        return _Query(run)


class StepClock:
    """Returns strictly increasing UTC datetimes, one second apart."""

    def __init__(self) -> None:
        self.current = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)

    def __call__(self) -> datetime.datetime:
        self.current += datetime.timedelta(seconds=1)
        return self.current


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def settings():
    return Settings(unsub_secret=SECRET, supabase_url="https://example.supabase.co", supabase_key="key")


@pytest.fixture
def store(fake_supabase):
    return SuppressionStore(fake_supabase, clock=StepClock())


@pytest.fixture
def client(settings, store):
    app = create_app(settings, store, clock=lambda: NOW)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def valid_token():
    return make_token({"email": "Jane.Doe@Example.com ", "exp": NOW + 3600})
