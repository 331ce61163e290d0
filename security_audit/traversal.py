"""
File system traversal: walk a project tree and collect files to audit.

Files are selected by extension and filtered through exclude globs matched
against the project-relative posix path. Directories whose contents would all be
excluded (``node_modules/**`` and the like) are pruned instead of walked.

Typical usage:
    from pathlib import Path
    from security_audit.traversal import find_source_files

    files = find_source_files(Path("./my_project"))

    files = find_source_files(
        Path("./my_project"),
        extensions={".ts", ".js"},
        exclude=["node_modules/**", "**/*.test.ts"],
    )
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence, Set

from security_audit.context import relative_posix
from security_audit.globs import compile_glob

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: frozenset[str] = frozenset(
    {".ts", ".js", ".jsx", ".tsx", ".json", ".yml", ".yaml"}
)

DEFAULT_EXCLUDES: tuple[str, ...] = ("node_modules/**", "dist/**", "coverage/**")

# Version control metadata is never worth scanning.
ALWAYS_IGNORED_DIRS: Set[str] = {".git", ".svn", ".hg"}


def is_excluded(relative_path: str, exclude: Sequence[str]) -> bool:
    """True if the relative path matches any exclude glob."""
    return any(compile_glob(pattern).match(relative_path) for pattern in exclude)


def should_prune_directory(relative_dir: str, exclude: Sequence[str]) -> bool:
    """
    Check if a directory can be skipped entirely.

    A directory is pruned when a file directly inside it would already match an
    exclude pattern regardless of its name, e.g. ``dist/`` under ``dist/**``.
    """
    candidate = relative_dir.rstrip("/") + "/"
    return is_excluded(candidate, exclude)


def find_source_files(
    root: Path,
    extensions: Optional[Iterable[str]] = None,
    exclude: Optional[Sequence[str]] = None,
    follow_symlinks: bool = False,
) -> list[Path]:
    """
    Recursively find all auditable files in a directory tree.

    Args:
        root: Project root to start from.
        extensions: File extensions to collect. If None, uses DEFAULT_EXTENSIONS.
        exclude: Glob patterns relative to ``root``. If None, uses DEFAULT_EXCLUDES.
        follow_symlinks: If False (default), symlinks are skipped.

    Returns:
        Absolute paths of matching files in deterministic (sorted walk) order.

    Raises:
        FileNotFoundError: If ``root`` does not exist.
        NotADirectoryError: If ``root`` is not a directory.

    Notes:
        Permission errors on subdirectories are logged and do not stop traversal.
    """
    wanted = frozenset(ext.lower() for ext in (extensions or DEFAULT_EXTENSIONS))
    patterns: Sequence[str] = DEFAULT_EXCLUDES if exclude is None else list(exclude)

    root = root.resolve()
    if not root.exists():
        logger.error("Root directory does not exist: %s", root)
        raise FileNotFoundError(f"Root directory does not exist: {root}")
    if not root.is_dir():
        logger.error("Root path is not a directory: %s", root)
        raise NotADirectoryError(f"Root path is not a directory: {root}")

    logger.info("Starting traversal from: %s", root)
    logger.debug("Traversal config: extensions=%s, exclude=%s", sorted(wanted), patterns)

    collected: list[Path] = []

    def _walk_directory(current_dir: Path) -> None:
        try:
            entries = sorted(current_dir.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.warning("Error accessing directory %s: %s", current_dir, e)
            return

        for entry in entries:
            if entry.is_symlink() and not follow_symlinks:
                logger.debug("Skipping symlink: %s", entry)
                continue

            rel = relative_posix(entry, root)
            if entry.is_dir():
                if entry.name in ALWAYS_IGNORED_DIRS or should_prune_directory(rel, patterns):
                    logger.debug("Ignoring directory: %s", rel)
                    continue
                _walk_directory(entry)
            elif entry.is_file():
                if entry.suffix.lower() not in wanted:
                    continue
                if is_excluded(rel, patterns):
                    logger.debug("Excluded by pattern: %s", rel)
                    continue
                collected.append(entry)

    _walk_directory(root)

    logger.info("Traversal complete: found %d file(s) in %s", len(collected), root)
    return collected
