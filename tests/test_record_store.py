import pytest

from conftest import airtable_payload
from services.credentials import extract_base_id, get_api_key, get_base_id, set_api_key, set_base_id
from services.record_store import AirtableClient, RecordStoreError


def _client() -> AirtableClient:
    return AirtableClient(api_key="key123", base_id="appTEST", retry_delay=0)


def test_fetch_table_follows_offset_cursor(fake_airtable):
    fake_airtable.page_size = 2
    fake_airtable.tables["Competitor Pins"] = [airtable_payload(f"rec{i}", Saves=i) for i in range(5)]

    records = _client().fetch_table("Competitor Pins")

    assert [r.id for r in records] == ["rec0", "rec1", "rec2", "rec3", "rec4"]
    assert len(fake_airtable.requests) == 3
    assert "offset=2" in fake_airtable.requests[1]
    assert fake_airtable.requests[0].startswith("https://api.airtable.com/v0/appTEST/Competitor%20Pins")


def test_fetch_table_passes_query_options(fake_airtable):
    _client().fetch_table(
        "Pin Analysis",
        filter_formula="{Status}='Done'",
        max_records=5,
        sort=[("CTA Strength", "desc")],
    )
    url = fake_airtable.requests[0]
    assert "filterByFormula=" in url
    assert "maxRecords=5" in url
    assert "sort%5B0%5D%5Bfield%5D=CTA+Strength" in url
    assert "sort%5B0%5D%5Bdirection%5D=desc" in url


def test_rate_limit_is_retried(fake_airtable):
    fake_airtable.rate_limits_left = 2
    fake_airtable.tables["content_queue"] = [airtable_payload("recQ1", Topic="x")]

    records = _client().fetch_table("content_queue")

    assert [r.id for r in records] == ["recQ1"]
    assert len(fake_airtable.requests) == 3


def test_rate_limit_gives_up_after_max_retries(fake_airtable):
    fake_airtable.rate_limits_left = 10
    with pytest.raises(RecordStoreError) as exc_info:
        AirtableClient(api_key="k", base_id="appTEST", max_retries=2, retry_delay=0).fetch_table("x")
    assert exc_info.value.status == 429
    assert len(fake_airtable.requests) == 3


def test_error_message_comes_from_response_body(fake_airtable):
    fake_airtable.failures["Pin Analysis"] = (401, {"error": {"type": "AUTH", "message": "Invalid API key"}})
    with pytest.raises(RecordStoreError) as exc_info:
        _client().fetch_table("Pin Analysis")
    assert exc_info.value.message == "Invalid API key"
    assert exc_info.value.status == 401


def test_error_string_and_fallback(fake_airtable):
    fake_airtable.failures["a"] = (404, {"error": "NOT_FOUND"})
    fake_airtable.failures["b"] = (500, {})
    with pytest.raises(RecordStoreError, match="NOT_FOUND"):
        _client().fetch_table("a")
    with pytest.raises(RecordStoreError, match="Failed to fetch b"):
        _client().fetch_table("b")


def test_test_connection_reports_first_failing_table(fake_airtable):
    fake_airtable.failures["competitor_intelligence"] = (403, {"error": {"message": "Forbidden"}})
    result = _client().test_connection()
    assert result == {"success": False, "error": 'Table "competitor_intelligence" - Forbidden'}


def test_test_connection_success(fake_airtable):
    assert _client().test_connection() == {"success": True, "error": None}
    assert all("maxRecords=1" in url for url in fake_airtable.requests)


def test_write_back_requests(fake_airtable, monkeypatch):
    sent = []

    def fake_request(url, method="GET", body=None, fallback=""):
        sent.append((url, method, body))
        return airtable_payload("recNew", **body["fields"])

    client = _client()
    monkeypatch.setattr(client, "_request", fake_request)
    created = client.create_record("content_queue", {"Topic": "New"})
    updated = client.update_record("content_queue", "recNew", {"Status": "Ready"})

    assert created.id == "recNew"
    assert updated.get("Status") == "Ready"
    assert sent[0][1] == "POST"
    assert sent[1][0].endswith("/content_queue/recNew")
    assert sent[1][1] == "PATCH"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("appABC123", "appABC123"),
        ("https://airtable.com/appABC123/tblXYZ/viwQ?blocks=hide", "appABC123"),
        ("  appZ9  ", "appZ9"),
        ("", ""),
    ],
)
def test_extract_base_id(raw, expected):
    assert extract_base_id(raw) == expected


def test_credentials_are_stored_in_settings(db, monkeypatch):
    assert get_api_key(db) is None
    monkeypatch.setenv("AIRTABLE_API_KEY", "from-env")
    assert get_api_key(db) == "from-env"

    set_api_key(db, " stored-key ")
    set_base_id(db, "https://airtable.com/appSTORED/tbl1")
    db.commit()
    assert get_api_key(db) == "stored-key"
    assert get_base_id(db) == "appSTORED"
