from creditworker.config.settings import Settings
from creditworker.extraction.exceptions import MethodUnavailableError
from creditworker.extraction.methods.base import BaseExtractionMethod
from creditworker.extraction.methods.fallback import LocalFallbackMethod
from creditworker.extraction.methods.google_document_ai import GoogleDocumentAiMethod
from creditworker.extraction.methods.google_vision import GoogleVisionMethod
from creditworker.extraction.methods.textract import TextractMethod
from creditworker.logging.logger import Log


class ExtractionMethodFactory:
    """Builds the enabled extraction methods, once, from settings.

    Cloud methods whose credentials are missing are left out. The local
    fallback is always included.
    """

    CLOUD_METHODS: tuple[type[BaseExtractionMethod], ...] = (
        GoogleDocumentAiMethod,
        GoogleVisionMethod,
        TextractMethod,
    )

    @classmethod
    def create(cls, settings: Settings) -> list[BaseExtractionMethod]:
        methods: list[BaseExtractionMethod] = []
        for method_cls in cls.CLOUD_METHODS:
            try:
                methods.append(method_cls.from_settings(settings))
            except MethodUnavailableError as exc:
                Log.info(f"Extraction method disabled: {exc}")
        methods.append(LocalFallbackMethod.from_settings(settings))
        Log.info(
            "Enabled extraction methods: "
            + ", ".join(method.name.value for method in methods)
        )
        return methods
