from pathlib import Path

from creditworker.extraction.exceptions import DocumentTooLargeError
from creditworker.processor.exceptions import FileReadError
from creditworker.processor.models import CreditReport


class FileLoader:
    """Resolves the filesystem path of a report and reads its bytes."""

    FILES_ROOT = Path("/app/files")

    def __init__(
        self,
        files_root: Path | None = None,
        max_document_bytes: int = 10 * 1024 * 1024,
    ) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT
        self._max_document_bytes = max_document_bytes

    def load(self, report: CreditReport) -> bytes:
        """Read report bytes from disk.

        Raises:
            FileReadError: if the path escapes the files root, the file does
                not exist or cannot be read.
            DocumentTooLargeError: if the file exceeds the size cap. Checked
                before the file is read.
        """
        path = self._resolve_path(report)
        if not path.is_file():
            raise FileReadError(f"File not found: {path}")
        size = path.stat().st_size
        if size > self._max_document_bytes:
            raise DocumentTooLargeError(size, self._max_document_bytes)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FileReadError(f"Cannot read {path}: {exc}") from exc

    def _resolve_path(self, report: CreditReport) -> Path:
        root = self._files_root.resolve()
        path = (root / report.file_path).resolve()
        if not path.is_relative_to(root):
            raise FileReadError(f"Report file path escapes the files root: {report.file_path}")
        return path
