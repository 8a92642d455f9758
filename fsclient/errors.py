from typing import Optional


class FileStoreError(Exception):
    """Base class for every failure the file session reports."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PolicyViolation(FileStoreError):
    """Raised before any network call when a file breaks the upload policy."""

    kind = "policy"

    def __init__(self, rule: str, message: str) -> None:
        super().__init__(message)
        self.rule = rule


class RemoteError(FileStoreError):
    kind = "remote"

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message or "An error occurred")
        self.status_code = status_code


class ParseError(RemoteError):
    kind = "parse"

    def __init__(self, message: str = "Failed to parse response", status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code)
