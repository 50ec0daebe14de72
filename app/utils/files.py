import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def resolve_within_root(stored_path: str | None, root: str | Path) -> Path | None:
    """
    Canonicalize a stored attachment path against the upload root.

    Returns None when the path is empty or resolves outside the root
    (`..` segments, absolute paths, symlinks pointing elsewhere).
    """
    if not stored_path or "\x00" in stored_path:
        return None
    base = Path(root).resolve()
    candidate = (base / stored_path).resolve()
    if candidate != base and base not in candidate.parents:
        logger.warning(f"Rejected attachment path outside upload root: {stored_path!r}")
        return None
    return candidate


def resolve_attachment(stored_path: str | None, root: str | Path) -> Path | None:
    """Like resolve_within_root, but only returns paths of existing regular files."""
    path = resolve_within_root(stored_path, root)
    if path is None or not path.is_file():
        return None
    return path
