"""
Tests for the Docmosis render client.
"""
import json
import sys
from pathlib import Path

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

import docmosis_client
from docmosis_client import DocmosisClient, DocmosisError


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    """Skip the retry backoff."""
    monkeypatch.setattr(docmosis_client.time, "sleep", lambda seconds: None)


def client_for(handler, api_key="test-key"):
    return DocmosisClient(
        api_key=api_key,
        api_url="https://docmosis.test/api/render",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


class TestRender:

    def test_posts_json_payload(self, docmosis, docmosis_requests):
        content = docmosis.render("Rechnung.docx", "Rechnung_023976.docx", {"kunde_unternehmen": "Acme"})

        assert content == b"PK-docx-bytes"
        request = docmosis_requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://docmosis.test/api/render"
        assert json.loads(request.content) == {
            "accessKey": "test-key",
            "templateName": "Rechnung.docx",
            "outputName": "Rechnung_023976.docx",
            "data": {"kunde_unternehmen": "Acme"},
        }

    def test_missing_api_key(self):
        client = client_for(lambda request: httpx.Response(200), api_key="")
        with pytest.raises(DocmosisError, match="DOCMOSIS_API_KEY"):
            client.render("Rechnung.docx", "out.docx", {})

    def test_client_error_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(400, text="Template not found")

        with pytest.raises(DocmosisError) as exc_info:
            client_for(handler).render("Fehlt.docx", "out.docx", {})

        assert len(calls) == 1
        assert exc_info.value.status_code == 400
        assert exc_info.value.response == "Template not found"

    def test_server_error_retried_then_succeeds(self):
        responses = [httpx.Response(503), httpx.Response(200, content=b"ok")]

        result = client_for(lambda request: responses.pop(0)).render("R.docx", "out.docx", {})

        assert result == b"ok"
        assert responses == []

    def test_server_error_exhausts_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, text="boom")

        with pytest.raises(DocmosisError) as exc_info:
            client_for(handler).render("R.docx", "out.docx", {}, retry_count=3)

        assert len(calls) == 3
        assert exc_info.value.status_code == 500

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(DocmosisError, match="Request failed"):
            client_for(handler).render("R.docx", "out.docx", {}, retry_count=2)

    def test_transport_error_recovers(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ReadTimeout("timeout", request=request)
            return httpx.Response(200, content=b"ok")

        assert client_for(handler).render("R.docx", "out.docx", {}) == b"ok"
        assert len(attempts) == 2
