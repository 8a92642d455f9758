import os
from dataclasses import dataclass
from typing import Optional, Tuple

from .policy import DEFAULT_ALLOWED_TYPES, DEFAULT_MAX_UPLOAD_BYTES, UploadPolicy

DEFAULT_BASE_URL = "https://127.0.0.1:22010"

_TRUTHY = ("1", "true", "TRUE", "yes", "on")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw in _TRUTHY


@dataclass
class Settings:
    base_url: str = DEFAULT_BASE_URL
    token: Optional[str] = None
    timeout: float = 30.0
    verify: bool = True
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    allowed_types: Tuple[str, ...] = DEFAULT_ALLOWED_TYPES
    http_log_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        allowed = os.getenv("FILESTORE_ALLOWED_TYPES")
        if allowed:
            allowed_types = tuple(t.strip() for t in allowed.split(",") if t.strip())
        else:
            allowed_types = DEFAULT_ALLOWED_TYPES
        return cls(
            base_url=os.getenv("FILESTORE_BASE_URL") or DEFAULT_BASE_URL,
            token=os.getenv("FILESTORE_TOKEN") or None,
            timeout=float(os.getenv("FILESTORE_TIMEOUT") or 30.0),
            verify=_env_flag("FILESTORE_VERIFY_TLS", True),
            max_upload_bytes=int(os.getenv("FILESTORE_MAX_UPLOAD_BYTES") or DEFAULT_MAX_UPLOAD_BYTES),
            allowed_types=allowed_types,
            http_log_path=os.getenv("FILESTORE_HTTP_LOG") or None,
        )

    def policy(self) -> UploadPolicy:
        return UploadPolicy(max_size=self.max_upload_bytes, allowed_types=frozenset(self.allowed_types))
