import io
import mimetypes
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Generic, List, Optional, Tuple, TypeVar, Union

T = TypeVar("T")

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class FileEntry:
    name: str
    path: str
    size: int
    is_dir: bool
    modified: str
    mime_type: Optional[str] = None


@dataclass(frozen=True)
class UploadReceipt:
    path: str
    size: int


@dataclass
class UploadCandidate:
    """A local file about to be uploaded.

    ``name`` is the filename sent in the multipart body. For folder uploads it
    keeps the folder-relative part (``"photos/2024/a.png"``) so the server can
    recreate the tree below the destination path.
    """

    name: str
    size: int
    type: str
    data: Optional[bytes] = None
    source: Optional[str] = None

    @classmethod
    def from_bytes(cls, name: str, data: bytes, type: Optional[str] = None) -> "UploadCandidate":
        return cls(name=name, size=len(data), type=type or guess_mime_type(name), data=data)

    @classmethod
    def from_path(cls, path: Union[str, Path], name: Optional[str] = None) -> "UploadCandidate":
        local = Path(path)
        return cls(
            name=name or local.name,
            size=local.stat().st_size,
            type=guess_mime_type(local.name),
            source=str(local),
        )

    def open(self) -> BinaryIO:
        if self.data is not None:
            return io.BytesIO(self.data)
        if self.source is None:
            raise ValueError(f"Upload candidate {self.name!r} has no content")
        return open(self.source, "rb")


def guess_mime_type(name: str) -> str:
    mime, _ = mimetypes.guess_type(name)
    return mime or DEFAULT_MIME_TYPE


def candidates_from_directory(root: Union[str, Path]) -> List[UploadCandidate]:
    base = Path(root)
    if not base.is_dir():
        raise NotADirectoryError(str(base))
    out: List[UploadCandidate] = []
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames.sort()
        for filename in sorted(filenames):
            local = Path(dirpath) / filename
            relative = local.relative_to(base.parent).as_posix()
            out.append(UploadCandidate.from_path(local, name=relative))
    return out


@dataclass(frozen=True)
class SessionState:
    current_path: str = ""
    entries: Tuple[FileEntry, ...] = ()
    loading: bool = False
    error: Optional[str] = None
    upload_progress: int = 0


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: str
    kind: str = "error"

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


@dataclass
class BatchResult:
    results: List[Union[Ok[UploadReceipt], Err]] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if isinstance(r, Ok))

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if isinstance(r, Err))
