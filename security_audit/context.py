# Per-file scan context: project root, relative path, file type and test-file flag.
# Also owns reading file text with a size ceiling so rules always receive a str.

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

DEFAULT_MAX_FILE_SIZE = 1024 * 1024

TEST_PATH_MARKERS = ("test", "spec")


class FileReadError(OSError):
    """Raised when a file cannot be read or exceeds the size ceiling."""


@dataclass(frozen=True)
class ScanContext:
    """
    Per-file state handed to every rule.

    ``relative_path`` is the posix path relative to ``project_root``; it is what
    findings report and what the test-file heuristic looks at, so the location of
    the checkout never influences results.
    """

    project_root: Path
    file_path: Path
    relative_path: str
    file_type: str
    is_test: bool = False


def is_test_path(relative_path: str) -> bool:
    """True if the path looks like a test or spec file."""
    lowered = relative_path.lower()
    return any(marker in lowered for marker in TEST_PATH_MARKERS)


def relative_posix(path: Path, project_root: Path) -> str:
    """Return ``path`` relative to ``project_root`` using forward slashes."""
    try:
        rel = path.relative_to(project_root)
    except ValueError:
        return path.as_posix()
    return PurePosixPath(*rel.parts).as_posix()


def create_context(path: Path, project_root: Path) -> ScanContext:
    """Build the ScanContext for one file under ``project_root``."""
    rel = relative_posix(path, project_root)
    return ScanContext(
        project_root=project_root,
        file_path=path,
        relative_path=rel,
        file_type=path.suffix.lower(),
        is_test=is_test_path(rel),
    )


def read_source(path: Path, max_size: Optional[int] = DEFAULT_MAX_FILE_SIZE) -> str:
    """
    Read a file as UTF-8 text.

    Undecodable bytes are replaced rather than failing the read. Files larger than
    ``max_size`` bytes are refused with FileReadError so a single huge file cannot
    stall the scan; pass ``None`` to disable the ceiling.
    """
    try:
        if max_size is not None:
            size = path.stat().st_size
            if size > max_size:
                raise FileReadError(f"File {path} is {size} bytes, exceeds limit of {max_size}")
        data = path.read_bytes()
    except FileReadError:
        raise
    except OSError as e:
        raise FileReadError(f"Failed to read file {path}: {e}") from e
    return data.decode("utf-8", errors="replace")
