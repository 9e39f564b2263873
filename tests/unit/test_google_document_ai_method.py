import base64
import json

import httpx
import pytest

from creditworker.config.settings import Settings
from creditworker.extraction.exceptions import MethodFailedError, MethodUnavailableError
from creditworker.extraction.methods.google_document_ai import GoogleDocumentAiMethod
from creditworker.extraction.models import Document, ExtractionMethodName


def _method(handler) -> GoogleDocumentAiMethod:  # type: ignore[no-untyped-def]
    return GoogleDocumentAiMethod(
        project_id="proj",
        location="eu",
        processor_id="proc",
        access_token="token",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def _document() -> Document:
    return Document(report_id=1, content=b"%PDF-fake")


class TestGoogleDocumentAiExtract:
    def test_sends_raw_document_to_processor(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"document": {"text": "Credit Report"}})

        _method(handler).extract(_document(), timeout=5.0)

        request = seen[0]
        assert str(request.url) == (
            "https://eu-documentai.googleapis.com/v1/projects/proj"
            "/locations/eu/processors/proc:process"
        )
        assert request.headers["Authorization"] == "Bearer token"
        body = json.loads(request.content)
        assert body["rawDocument"]["mimeType"] == "application/pdf"
        assert base64.b64decode(body["rawDocument"]["content"]) == b"%PDF-fake"

    def test_returns_text_and_structure(self) -> None:
        response = {
            "document": {
                "text": "Chase Bank Balance $1,250.00",
                "pages": [
                    {"tables": [{}, {}], "formFields": [{}]},
                    {"tables": [], "formFields": []},
                ],
            }
        }
        method = _method(lambda request: httpx.Response(200, json=response))

        output = method.extract(_document(), timeout=5.0)

        assert output.text == "Chase Bank Balance $1,250.00"
        assert output.has_structured_data
        assert output.metadata == {"pages": 2, "tables": 2, "form_fields": 1}

    def test_plain_text_has_no_structure(self) -> None:
        method = _method(lambda request: httpx.Response(200, json={"document": {"text": "x"}}))

        output = method.extract(_document(), timeout=5.0)

        assert not output.has_structured_data

    def test_missing_document_is_not_retryable(self) -> None:
        method = _method(lambda request: httpx.Response(200, json={"error": "nope"}))

        with pytest.raises(MethodFailedError, match="no document text") as exc_info:
            method.extract(_document(), timeout=5.0)

        assert not exc_info.value.retryable


class TestGoogleDocumentAiFromSettings:
    def test_missing_credentials_make_method_unavailable(self) -> None:
        settings = Settings(google_document_ai_project_id="proj")

        with pytest.raises(MethodUnavailableError, match="google_document_ai_processor_id"):
            GoogleDocumentAiMethod.from_settings(settings)

    def test_builds_from_complete_settings(self) -> None:
        settings = Settings(
            google_document_ai_project_id="proj",
            google_document_ai_processor_id="proc",
            google_document_ai_access_token="token",
        )

        method = GoogleDocumentAiMethod.from_settings(settings)

        assert method.name is ExtractionMethodName.GOOGLE_DOCUMENT_AI
        assert method.network_bound
