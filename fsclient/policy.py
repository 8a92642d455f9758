from dataclasses import dataclass, field
from typing import FrozenSet

from .errors import PolicyViolation
from .models import UploadCandidate
from .utils import format_bytes

DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024

DEFAULT_ALLOWED_TYPES = (
    # Documents
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
    "text/csv",
    # Images
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/svg+xml",
    # Archives
    "application/zip",
    "application/x-rar-compressed",
    "application/x-7z-compressed",
)


@dataclass(frozen=True)
class UploadPolicy:
    max_size: int = DEFAULT_MAX_UPLOAD_BYTES
    allowed_types: FrozenSet[str] = field(default_factory=lambda: frozenset(DEFAULT_ALLOWED_TYPES))


def validate_upload(candidate: UploadCandidate, policy: UploadPolicy) -> None:
    """Raise PolicyViolation for the first rule the candidate breaks.

    Size is checked before type. Nothing is read from the file itself.
    """
    if candidate.size > policy.max_size:
        mib, rest = divmod(policy.max_size, 1024 * 1024)
        limit = f"{mib}MB" if mib and not rest else format_bytes(policy.max_size)
        raise PolicyViolation("size", f"File size exceeds the limit of {limit}")
    if candidate.type not in policy.allowed_types:
        raise PolicyViolation("type", "File type not allowed")
