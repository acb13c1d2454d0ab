import io
import json
import os
from urllib.error import HTTPError
from urllib.parse import parse_qs, unquote, urlparse

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["AIRTABLE_RETRY_DELAY_SECONDS"] = "0"
os.environ.pop("DASHBOARD_USERS", None)

import pytest
from fastapi.testclient import TestClient

from db.base import Base
from db.session import SessionLocal, engine
from main import app
from services import record_store
from services.dashboard_state import controller
from services.snapshot_repository import invalidate_records_cache
from services.tables.schema import Record, TableKind


def make_record(record_id: str, **fields) -> Record:
    return Record(id=record_id, fields=fields, created_time="2024-01-01T00:00:00.000Z")


def airtable_payload(record_id: str, **fields) -> dict:
    return {"id": record_id, "createdTime": "2024-01-01T00:00:00.000Z", "fields": fields}


class FakeResponse:
    def __init__(self, payload: dict):
        self._body = json.dumps(payload).encode("utf-8")

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeAirtable:
    """Serves tables by name, `page_size` records per page, through an offset cursor."""

    def __init__(self, page_size: int = 100):
        self.page_size = page_size
        self.tables: dict[str, list[dict]] = {}
        self.requests: list[str] = []
        # table name -> (status, body) to answer with instead of records
        self.failures: dict[str, tuple[int, dict]] = {}
        self.rate_limits_left = 0

    def __call__(self, req, timeout=None):
        url = req.full_url
        self.requests.append(url)
        parsed = urlparse(url)
        table = unquote(parsed.path.rsplit("/", 1)[-1])
        if self.rate_limits_left > 0:
            self.rate_limits_left -= 1
            raise HTTPError(url, 429, "Too Many Requests", {}, io.BytesIO(b"{}"))
        if table in self.failures:
            status, body = self.failures[table]
            raise HTTPError(url, status, "error", {}, io.BytesIO(json.dumps(body).encode("utf-8")))

        query = parse_qs(parsed.query)
        start = int(query.get("offset", ["0"])[0])
        size = int(query.get("maxRecords", [self.page_size])[0])
        size = min(size, self.page_size)
        records = self.tables.get(table, [])
        chunk = records[start:start + size]
        payload = {"records": chunk}
        if "maxRecords" not in query and start + size < len(records):
            payload["offset"] = str(start + size)
        return FakeResponse(payload)


@pytest.fixture
def fake_airtable(monkeypatch):
    fake = FakeAirtable()
    monkeypatch.setattr(record_store, "urlopen", fake)
    return fake


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    monkeypatch.delenv("AIRTABLE_API_KEY", raising=False)
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    invalidate_records_cache()
    controller.reset()
    yield
    invalidate_records_cache()
    controller.reset()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def _login(client: TestClient, email: str, password: str) -> dict:
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def admin_headers(client):
    return _login(client, "admin@pinintel.io", "admin123")


@pytest.fixture
def viewer_headers(client):
    return _login(client, "viewer@pinintel.io", "viewer123")


@pytest.fixture
def sample_tables() -> dict[str, list[dict]]:
    return {
        "Competitor Pins": [
            airtable_payload("recP1", **{"Pin Title": "Budget hacks", "Competitor Name": "Acme", "Saves": 120}),
            airtable_payload("recP2", **{"Pin Title": "Meal prep", "Competitor Name": "Beta", "Saves": 40}),
            airtable_payload("recP3", **{"Pin Title": "Debt payoff", "Competitor Name": "Acme", "Saves": 75}),
        ],
        "Pin Analysis": [
            airtable_payload(
                "recA1",
                **{
                    "Hook Technique": "Curiosity",
                    "Primary Keywords": "Save, Money",
                    "Secondary Keywords": "Budget",
                    "Content Pillar": "Educational",
                    "CTA Strength": 8,
                    "Gap Opportunity": "Video tutorials",
                },
            ),
            airtable_payload(
                "recA2",
                **{
                    "Hook Technique": "List",
                    "Primary Keywords": "budget",
                    "Content Pillar": "Offer",
                    "CTA Strength": "bad",
                },
            ),
            airtable_payload(
                "recA3",
                **{
                    "Hook Technique": "Curiosity",
                    "Content Pillar": "Memes",
                    "CTA Strength": 4,
                    "Gap Opportunity": "video tutorials ",
                },
            ),
        ],
        "competitor_intelligence": [
            airtable_payload("recI1", **{"Report Date": "2024-03-01", "Week Summary": "Older week"}),
            airtable_payload("recI2", **{"Report Date": "2024-03-08", "Executive Summary": "Newest report"}),
        ],
        "content_queue": [
            airtable_payload("recQ1", Topic="Budget", Status="Posted", Metrics_Engagement=10),
            airtable_payload("recQ2", Topic="Savings", Status="Posted", Metrics_Engagement=5),
            airtable_payload("recQ3", Topic="Meal prep", Status="Queued"),
        ],
    }


@pytest.fixture
def snapshot_records(sample_tables) -> dict[TableKind, tuple[Record, ...]]:
    names = {
        "Competitor Pins": TableKind.COMPETITOR_PINS,
        "Pin Analysis": TableKind.PIN_ANALYSIS,
        "competitor_intelligence": TableKind.COMPETITOR_INTELLIGENCE,
        "content_queue": TableKind.CONTENT_QUEUE,
    }
    return {
        names[name]: tuple(Record.from_airtable(p) for p in payloads)
        for name, payloads in sample_tables.items()
    }
