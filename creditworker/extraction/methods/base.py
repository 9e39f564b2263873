from abc import ABC, abstractmethod
from typing import ClassVar

from creditworker.config.settings import Settings
from creditworker.extraction.models import Document, ExtractionMethodName, MethodOutput


class BaseExtractionMethod(ABC):
    """Contract for every extraction method variant."""

    name: ClassVar[ExtractionMethodName]
    network_bound: ClassVar[bool] = True

    @classmethod
    @abstractmethod
    def from_settings(cls, settings: Settings) -> "BaseExtractionMethod":
        """Build the method from configuration.

        Raises:
            MethodUnavailableError: if the credentials the method needs are
                not configured.
        """

    @abstractmethod
    def extract(self, document: Document, timeout: float) -> MethodOutput:
        """Recover text from the document within ``timeout`` seconds.

        Raises:
            MethodFailedError: for any failure of this single call.
        """
