import base64
from typing import Any

import httpx

from creditworker.config.settings import Settings
from creditworker.extraction.exceptions import MethodFailedError, MethodUnavailableError
from creditworker.extraction.methods.base import BaseExtractionMethod
from creditworker.extraction.methods.http import post_json
from creditworker.extraction.models import Document, ExtractionMethodName, MethodOutput


class GoogleVisionMethod(BaseExtractionMethod):
    """OCR through the Cloud Vision DOCUMENT_TEXT_DETECTION feature.

    PDFs go through ``files:annotate`` (first ``max_pages`` pages), images
    through ``images:annotate``.
    """

    name = ExtractionMethodName.GOOGLE_VISION

    FILES_ENDPOINT = "https://vision.googleapis.com/v1/files:annotate"
    IMAGES_ENDPOINT = "https://vision.googleapis.com/v1/images:annotate"
    FEATURES = [{"type": "DOCUMENT_TEXT_DETECTION"}]

    def __init__(
        self,
        *,
        api_key: str,
        max_pages: int = 5,
        client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._max_pages = max_pages
        self._client = client or httpx.Client()

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleVisionMethod":
        if not settings.google_vision_api_key:
            raise MethodUnavailableError(cls.name, "missing google_vision_api_key")
        return cls(
            api_key=settings.google_vision_api_key,
            max_pages=settings.google_vision_max_pages,
        )

    def extract(self, document: Document, timeout: float) -> MethodOutput:
        content = base64.b64encode(document.content).decode("ascii")
        if document.media_type.startswith("image/"):
            url = self.IMAGES_ENDPOINT
            request: dict[str, Any] = {"image": {"content": content}, "features": self.FEATURES}
        else:
            url = self.FILES_ENDPOINT
            request = {
                "inputConfig": {"content": content, "mimeType": document.media_type},
                "features": self.FEATURES,
                "pages": list(range(1, self._max_pages + 1)),
            }

        body = post_json(
            self._client,
            url,
            method=self.name,
            payload={"requests": [request]},
            params={"key": self._api_key},
            timeout=timeout,
        )

        responses = body.get("responses")
        if not isinstance(responses, list) or not responses:
            raise MethodFailedError("google-vision returned no responses", retryable=False)
        first = responses[0]
        if "error" in first:
            raise MethodFailedError(
                f"google-vision error: {first['error'].get('message', 'unknown')}",
                retryable=False,
            )

        # files:annotate nests one response per page
        page_responses = first.get("responses", [first])
        texts = [
            page.get("fullTextAnnotation", {}).get("text", "")
            for page in page_responses
        ]
        return MethodOutput(
            text="\n".join(text for text in texts if text).strip(),
            metadata={"pages": len(page_responses)},
        )
