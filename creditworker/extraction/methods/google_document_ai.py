import base64

import httpx

from creditworker.config.settings import Settings
from creditworker.extraction.exceptions import MethodFailedError, MethodUnavailableError
from creditworker.extraction.methods.base import BaseExtractionMethod
from creditworker.extraction.methods.http import post_json
from creditworker.extraction.models import Document, ExtractionMethodName, MethodOutput


class GoogleDocumentAiMethod(BaseExtractionMethod):
    """Runs the document through a Google Document AI processor."""

    name = ExtractionMethodName.GOOGLE_DOCUMENT_AI

    ENDPOINT = (
        "https://{location}-documentai.googleapis.com/v1/projects/{project}"
        "/locations/{location}/processors/{processor}:process"
    )

    def __init__(
        self,
        *,
        project_id: str,
        location: str,
        processor_id: str,
        access_token: str,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = self.ENDPOINT.format(
            project=project_id,
            location=location,
            processor=processor_id,
        )
        self._access_token = access_token
        self._client = client or httpx.Client()

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleDocumentAiMethod":
        required = {
            "google_document_ai_project_id": settings.google_document_ai_project_id,
            "google_document_ai_processor_id": settings.google_document_ai_processor_id,
            "google_document_ai_access_token": settings.google_document_ai_access_token,
        }
        missing = [key for key, value in required.items() if not value]
        if missing:
            raise MethodUnavailableError(cls.name, f"missing {', '.join(missing)}")
        return cls(
            project_id=settings.google_document_ai_project_id,
            location=settings.google_document_ai_location,
            processor_id=settings.google_document_ai_processor_id,
            access_token=settings.google_document_ai_access_token,
        )

    def extract(self, document: Document, timeout: float) -> MethodOutput:
        body = post_json(
            self._client,
            self._url,
            method=self.name,
            payload={
                "rawDocument": {
                    "content": base64.b64encode(document.content).decode("ascii"),
                    "mimeType": document.media_type,
                },
            },
            headers={"Authorization": f"Bearer {self._access_token}"},
            timeout=timeout,
        )

        processed = body.get("document")
        if not isinstance(processed, dict) or not isinstance(processed.get("text", ""), str):
            raise MethodFailedError(
                "google-document-ai response has no document text", retryable=False
            )

        pages = processed.get("pages") or []
        tables = sum(len(page.get("tables") or []) for page in pages)
        form_fields = sum(len(page.get("formFields") or []) for page in pages)
        return MethodOutput(
            text=processed.get("text", ""),
            has_structured_data=bool(tables or form_fields),
            metadata={"pages": len(pages), "tables": tables, "form_fields": form_fields},
        )
