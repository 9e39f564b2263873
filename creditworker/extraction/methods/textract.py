from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    NoCredentialsError,
    ReadTimeoutError,
)

from creditworker.config.settings import Settings
from creditworker.extraction.exceptions import (
    MethodFailedError,
    MethodTimeoutError,
    MethodUnavailableError,
)
from creditworker.extraction.methods.base import BaseExtractionMethod
from creditworker.extraction.models import Document, ExtractionMethodName, MethodOutput
from creditworker.pdf.exceptions import PdfExtractionError
from creditworker.pdf.renderer import render_page_images

RETRYABLE_ERROR_CODES = frozenset({
    "ThrottlingException",
    "ProvisionedThroughputExceededException",
    "InternalServerError",
    "ServiceUnavailableException",
})


class TextractMethod(BaseExtractionMethod):
    """AWS Textract AnalyzeDocument with table and form detection.

    The synchronous API only accepts single images, so PDF pages are
    rendered to PNG first and analyzed one by one.
    """

    name = ExtractionMethodName.TEXTRACT

    FEATURE_TYPES = ["TABLES", "FORMS"]

    def __init__(self, client: Any, *, max_pages: int = 5, dpi: int = 150) -> None:
        self._client = client
        self._max_pages = max_pages
        self._dpi = dpi

    @classmethod
    def from_settings(cls, settings: Settings) -> "TextractMethod":
        if not settings.aws_access_key_id or not settings.aws_secret_access_key:
            raise MethodUnavailableError(cls.name, "missing AWS credentials")
        client = boto3.client(
            "textract",
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region,
            config=Config(
                connect_timeout=settings.method_timeout_seconds,
                read_timeout=settings.method_timeout_seconds,
                retries={"max_attempts": 1},
            ),
        )
        return cls(
            client,
            max_pages=settings.textract_max_pages,
            dpi=settings.textract_render_dpi,
        )

    def extract(self, document: Document, timeout: float) -> MethodOutput:
        images = self._page_images(document)
        lines: list[str] = []
        tables = 0
        key_values = 0
        for image in images:
            for block in self._analyze(image).get("Blocks", []):
                block_type = block.get("BlockType")
                if block_type == "LINE" and block.get("Text"):
                    lines.append(block["Text"])
                elif block_type == "TABLE":
                    tables += 1
                elif block_type == "KEY_VALUE_SET" and "KEY" in block.get("EntityTypes", []):
                    key_values += 1

        return MethodOutput(
            text="\n".join(lines),
            has_structured_data=bool(tables or key_values),
            metadata={"pages": len(images), "tables": tables, "key_values": key_values},
        )

    def _page_images(self, document: Document) -> list[bytes]:
        if document.media_type.startswith("image/"):
            return [document.content]
        try:
            images = render_page_images(
                document.content,
                dpi=self._dpi,
                max_pages=self._max_pages,
            )
        except PdfExtractionError as exc:
            raise MethodFailedError(f"textract: {exc}", retryable=False) from exc
        if not images:
            raise MethodFailedError("textract: document has no pages", retryable=False)
        return images

    def _analyze(self, image: bytes) -> dict[str, Any]:
        try:
            return self._client.analyze_document(
                Document={"Bytes": image},
                FeatureTypes=self.FEATURE_TYPES,
            )
        except ClientError as exc:
            error = exc.response.get("Error", {})
            code = error.get("Code", "Unknown")
            raise MethodFailedError(
                f"textract error ({code}): {error.get('Message', exc)}",
                retryable=code in RETRYABLE_ERROR_CODES,
            ) from exc
        except NoCredentialsError as exc:
            raise MethodFailedError("textract: AWS credentials not found", retryable=False) from exc
        except (ConnectTimeoutError, ReadTimeoutError) as exc:
            raise MethodTimeoutError(f"textract request timed out: {exc}") from exc
        except BotoCoreError as exc:
            raise MethodFailedError(f"textract network error: {exc}") from exc
