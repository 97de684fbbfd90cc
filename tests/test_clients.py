"""Tests for the remote ingest API client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from trainset_ingest.clients import APIError, IngestApiClient, fetch_master_csv
from trainset_ingest.transform import master_headers


def make_response(status_code=200, json_body=None, text="", reason="OK"):
    """Build a stand-in for requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = reason
    response.text = text
    response.content = text.encode("utf-8")
    if json_body is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = json_body
    return response


@pytest.fixture
def client():
    """Client pointed at a fake backend."""
    return IngestApiClient(base_url="http://backend/api/", timeout=5)


class TestIngestApiClient:
    """Tests for IngestApiClient requests."""

    def test_requires_base_url(self, monkeypatch):
        """Test a missing base URL is a configuration error."""
        monkeypatch.delenv("INGEST_API_URL", raising=False)

        with pytest.raises(ValueError, match="INGEST_API_URL"):
            IngestApiClient()

    def test_reads_environment(self, monkeypatch):
        """Test URL, token and timeout come from the environment."""
        monkeypatch.setenv("INGEST_API_URL", "http://env-host/api")
        monkeypatch.setenv("INGEST_API_TOKEN", "secret")
        monkeypatch.setenv("INGEST_API_TIMEOUT", "3.5")

        client = IngestApiClient()

        assert client.base_url == "http://env-host/api"
        assert client.timeout == 3.5
        assert client.get_auth_headers() == {"Authorization": "Bearer secret"}

    def test_no_token_no_auth_header(self, client):
        """Test no Authorization header without a token."""
        client.token = None
        assert client.get_auth_headers() == {}

    def test_save_feature(self, client):
        """Test rows are posted to the feature endpoint."""
        response = make_response(json_body={"status": "ok", "saved": 1})

        with patch.object(client.session, "request", return_value=response) as mock_request:
            result = client.save_feature("Branding", [{"train_id": "T1"}])

        assert result == {"status": "ok", "saved": 1}
        kwargs = mock_request.call_args.kwargs
        assert kwargs["method"] == "POST"
        assert kwargs["url"] == "http://backend/api/ml/feature"
        assert kwargs["json"] == {"dataset": "branding", "rows": [{"train_id": "T1"}]}
        assert kwargs["timeout"] == 5

    def test_ingest(self, client):
        """Test rows are posted to the ingest endpoint."""
        response = make_response(json_body={"status": "ok", "ingested": 2})

        with patch.object(client.session, "request", return_value=response) as mock_request:
            result = client.ingest("stabling", [{"train_id": "T1"}, {"train_id": "T2"}])

        assert result["ingested"] == 2
        assert mock_request.call_args.kwargs["url"] == "http://backend/api/ml/ingest"

    def test_bearer_token_sent(self, client):
        """Test configured token is sent on every request."""
        client.token = "abc"
        response = make_response(json_body={"status": "ok", "loaded": {}})

        with patch.object(client.session, "request", return_value=response) as mock_request:
            client.load_local()

        kwargs = mock_request.call_args.kwargs
        assert kwargs["headers"]["Authorization"] == "Bearer abc"
        assert kwargs["url"] == "http://backend/api/ml/load-local"

    def test_get_master_csv(self, client):
        """Test master CSV is fetched as text."""
        response = make_response(text="train_id\nT1\n")

        with patch.object(client.session, "request", return_value=response) as mock_request:
            text = client.get_master_csv()

        assert text == "train_id\nT1\n"
        kwargs = mock_request.call_args.kwargs
        assert kwargs["method"] == "GET"
        assert kwargs["headers"]["Accept"] == "text/csv"

    def test_unknown_dataset(self, client):
        """Test unknown dataset tags fail before any request."""
        with patch.object(client.session, "request") as mock_request:
            with pytest.raises(ValueError):
                client.save_feature("depots", [])

        mock_request.assert_not_called()

    def test_rows_must_be_list(self, client):
        """Test non-list rows are rejected."""
        with pytest.raises(TypeError):
            client.save_feature("branding", {"train_id": "T1"})


class TestErrorHandling:
    """Tests for API error mapping."""

    def test_json_error_message(self, client):
        """Test the server's message is surfaced."""
        response = make_response(
            status_code=400,
            json_body={"message": "dataset and rows required"},
            reason="Bad Request",
        )

        with patch.object(client.session, "request", return_value=response):
            with pytest.raises(APIError) as exc_info:
                client.save_feature("branding", [])

        assert str(exc_info.value) == "dataset and rows required"
        assert exc_info.value.status_code == 400

    def test_status_line_fallback(self, client):
        """Test status line is used when the body is not JSON."""
        response = make_response(status_code=502, text="<html>", reason="Bad Gateway")

        with patch.object(client.session, "request", return_value=response):
            with pytest.raises(APIError) as exc_info:
                client.get_master_csv()

        assert str(exc_info.value) == "HTTP 502: Bad Gateway"
        assert exc_info.value.status_code == 502

    def test_transport_error(self, client):
        """Test connection failures become APIError."""
        with patch.object(
            client.session, "request", side_effect=requests.exceptions.ConnectionError("refused")
        ):
            with pytest.raises(APIError) as exc_info:
                client.load_local()

        assert exc_info.value.status_code is None
        assert "refused" in str(exc_info.value)

    def test_metrics_recorded(self, client):
        """Test request metrics count successes and failures."""
        ok = make_response(json_body={"status": "ok"})
        bad = make_response(status_code=500, reason="Server Error")

        with patch.object(client.session, "request", side_effect=[ok, bad]):
            client.load_local()
            with pytest.raises(APIError):
                client.load_local()

        metrics = client.metrics.to_dict()
        assert metrics["total_requests"] == 2
        assert metrics["successful_requests"] == 1
        assert metrics["failed_requests"] == 1


class TestFetchMasterCsv:
    """Tests for remote master CSV with local fallback."""

    def test_no_client_uses_store(self, store):
        """Test local master table without a client."""
        store.submit("stabling", [{"train_id": "T1", "stabling_bay": "B-12"}])

        text = fetch_master_csv(None, store)

        assert text == store.master_csv()
        assert text.splitlines()[0] == ",".join(master_headers())

    def test_remote_table_preferred(self, store):
        """Test remote CSV with data rows is returned as-is."""
        client = MagicMock(spec=IngestApiClient)
        client.get_master_csv.return_value = "train_id,x\nT9,1\n"

        assert fetch_master_csv(client, store) == "train_id,x\nT9,1\n"

    def test_fallback_on_error(self, store):
        """Test request failure falls back to the local table."""
        store.submit("stabling", [{"train_id": "T1", "stabling_bay": "B-12"}])
        client = MagicMock(spec=IngestApiClient)
        client.get_master_csv.side_effect = APIError("HTTP 503: Unavailable", status_code=503)

        assert fetch_master_csv(client, store) == store.master_csv()

    def test_fallback_on_header_only(self, store):
        """Test a remote table without data rows falls back to the local table."""
        store.submit("stabling", [{"train_id": "T1", "stabling_bay": "B-12"}])
        client = MagicMock(spec=IngestApiClient)
        client.get_master_csv.return_value = "train_id,x\n\n"

        text = fetch_master_csv(client, store)

        assert text == store.master_csv()
        assert "T1" in text
