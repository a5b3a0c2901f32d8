"""Document categorization and a filesystem document store.

The core treats the document store as an external collaborator. This module
holds the filename heuristics every store shares and the simplest concrete
store: a walk over a project directory, used by the CLI.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath
from typing import Iterator, Optional

from contentpilot.core.models import Document, DocumentCategory, estimate_tokens

logger = logging.getLogger("contentpilot.context.documents")

__all__ = [
    "DEFAULT_PATTERNS",
    "FileSystemDocumentStore",
    "categorize_document",
    "estimate_tokens",
    "extract_project_facts",
]

DEFAULT_PATTERNS = ("*.md", "*.markdown", "*.rst", "*.txt")

SKIPPED_DIRS = {
    ".git", ".hg", ".svn", "node_modules", ".venv", "venv", "__pycache__",
    "dist", "build", ".tox", ".mypy_cache", ".pytest_cache", "site-packages",
}

_CHANGELOG_MARKERS = ("changelog", "changes", "history", "release-notes", "release_notes", "news")
_GUIDE_MARKERS = ("guide", "tutorial", "howto", "how-to", "getting-started", "getting_started", "quickstart")
_API_MARKERS = ("api", "reference")
_DOC_DIRS = ("docs", "doc", "documentation", "guides", "manual")


def categorize_document(path: str) -> DocumentCategory:
    """Classify a project file from its name and directory.

    Order matters: a README inside docs/ is still a readme, and an API page
    inside examples/ is still api-doc.
    """
    posix = PurePosixPath(path.replace("\\", "/"))
    stem = posix.stem.lower()
    words = set(re.split(r"[-_.\s]+", stem))
    dirs = [part.lower() for part in posix.parts[:-1]]

    if stem.startswith("readme"):
        return DocumentCategory.README
    if any(stem.startswith(marker) for marker in _CHANGELOG_MARKERS):
        return DocumentCategory.CHANGELOG
    if words & set(_API_MARKERS) or any(d in _API_MARKERS for d in dirs):
        return DocumentCategory.API_DOC
    if any(w.startswith("example") for w in words) or any(d.startswith("example") for d in dirs):
        return DocumentCategory.EXAMPLE
    if any(marker in stem for marker in _GUIDE_MARKERS) or any(d in _DOC_DIRS for d in dirs):
        return DocumentCategory.GUIDE
    return DocumentCategory.OTHER


class FileSystemDocumentStore:
    """Read-only document provider over a project directory.

    Yields one Document snapshot per matching text file. Nothing is cached;
    each call to documents() re-reads the tree.
    """

    def __init__(
        self,
        root: Path,
        patterns: tuple[str, ...] = DEFAULT_PATTERNS,
        max_file_bytes: int = 512_000,
    ):
        self.root = Path(root)
        self.patterns = patterns
        self.max_file_bytes = max_file_bytes

    def documents(self) -> list[Document]:
        docs = list(self._iter_documents())
        logger.info("Loaded %d documents from %s", len(docs), self.root)
        return docs

    def _iter_documents(self) -> Iterator[Document]:
        if not self.root.is_dir():
            logger.warning("Document root %s is not a directory", self.root)
            return
        seen: set[Path] = set()
        for pattern in self.patterns:
            for path in sorted(self.root.rglob(pattern)):
                if path in seen or not path.is_file() or self._is_skipped(path):
                    continue
                seen.add(path)
                doc = self._load(path)
                if doc is not None:
                    yield doc

    def _is_skipped(self, path: Path) -> bool:
        rel_parts = path.relative_to(self.root).parts[:-1]
        return any(part in SKIPPED_DIRS or part.startswith(".") for part in rel_parts)

    def _load(self, path: Path) -> Optional[Document]:
        try:
            stat = path.stat()
            if stat.st_size > self.max_file_bytes:
                logger.debug("Skipping %s: %d bytes exceeds limit", path, stat.st_size)
                return None
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("Could not read %s: %s", path, e)
            return None

        rel = path.relative_to(self.root).as_posix()
        return Document(
            path=rel,
            raw_content=text,
            category=categorize_document(rel),
            token_estimate=estimate_tokens(text),
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
        )


_BULLET_RE = re.compile(r"^\s*[-*+]\s+(.+?)\s*$")
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
_FEATURE_HEADINGS = ("feature", "highlight", "capabilit", "what it does", "why")


def extract_project_facts(text: str, max_features: int = 6) -> dict[str, object]:
    """Best-effort project facts from markdown, without any model call.

    The first H1 is the name, the first prose paragraph the description, and
    bullets under a features-like heading (or any bullets at all) the features.
    """
    name = ""
    description = ""
    features: list[str] = []
    loose_bullets: list[str] = []
    in_feature_section = False

    for raw in text.splitlines():
        line = raw.strip()
        heading = _HEADING_RE.match(line)
        if heading:
            title = heading.group(2).strip()
            if len(heading.group(1)) == 1 and not name:
                name = title
            in_feature_section = any(h in title.lower() for h in _FEATURE_HEADINGS)
            continue
        bullet = _BULLET_RE.match(line)
        if bullet:
            item = bullet.group(1).replace("**", "").strip()
            if item:
                (features if in_feature_section else loose_bullets).append(item)
            continue
        if line and not description and not line.startswith(("```", "|", ">", "<", "[!", "![")):
            description = line

    chosen = features or loose_bullets
    return {
        "name": name,
        "description": description,
        "features": chosen[:max_features],
    }
