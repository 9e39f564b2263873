from creditworker.config.settings import Settings
from creditworker.extraction.methods.factory import ExtractionMethodFactory
from creditworker.extraction.methods.fallback import LocalFallbackMethod
from creditworker.extraction.methods.google_vision import GoogleVisionMethod
from creditworker.extraction.models import ExtractionMethodName

NO_CREDENTIALS = {
    "google_document_ai_project_id": "",
    "google_document_ai_processor_id": "",
    "google_document_ai_access_token": "",
    "google_vision_api_key": "",
    "aws_access_key_id": "",
    "aws_secret_access_key": "",
}


class TestExtractionMethodFactory:
    def test_without_credentials_only_fallback_is_enabled(self) -> None:
        methods = ExtractionMethodFactory.create(Settings(**NO_CREDENTIALS))

        assert len(methods) == 1
        assert isinstance(methods[0], LocalFallbackMethod)

    def test_configured_cloud_method_is_enabled(self) -> None:
        settings = Settings(**{**NO_CREDENTIALS, "google_vision_api_key": "key"})

        methods = ExtractionMethodFactory.create(settings)

        assert [method.name for method in methods] == [
            ExtractionMethodName.GOOGLE_VISION,
            ExtractionMethodName.FALLBACK,
        ]
        assert isinstance(methods[0], GoogleVisionMethod)

    def test_fallback_uses_configured_pdf_engine(self) -> None:
        settings = Settings(**NO_CREDENTIALS, pdf_engine="pymupdf")

        methods = ExtractionMethodFactory.create(settings)

        assert methods[-1]._pdf_extractor.name == "pymupdf"  # type: ignore[attr-defined]
