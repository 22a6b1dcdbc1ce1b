"""Revision snapshots of the configuration document.

Each revision is a full copy of the document taken right before a mutation:

    <revisions_dir>/<document name>.<sequence>.<UTC timestamp>
    e.g. revisions/config.yaml.000012.20261019T101112345678Z

Sequence numbers order revisions; the timestamp records when the snapshot
was taken.
"""
import difflib
import logging
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import BackendError, RevisionNotFoundError

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S%fZ"


@dataclass(frozen=True)
class Revision:
    """A stored snapshot of the document."""
    name: str
    sequence: int
    created_at: datetime
    path: Path
    size: int

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "sequence": self.sequence,
            "created_at": self.created_at.isoformat(),
            "size": self.size,
        }


class RevisionManager:
    """Creates, enumerates and removes revision files of one document.

    Callers are responsible for holding the document lock.
    """

    def __init__(
        self,
        document_path: Path,
        revisions_dir: Optional[Path] = None,
        max_revisions: int = 0,
    ):
        """
        Args:
            document_path: The live document
            revisions_dir: Where snapshots go (default: <document dir>/revisions)
            max_revisions: Keep at most this many snapshots (0 = unlimited)
        """
        self.document_path = Path(document_path)
        self.revisions_dir = (
            Path(revisions_dir) if revisions_dir else self.document_path.parent / "revisions"
        )
        self.max_revisions = max_revisions
        self._pattern = re.compile(
            rf"^{re.escape(self.document_path.name)}\.(\d{{6,}})\.(\d{{8}}T\d{{12}}Z)$"
        )

    def _parse(self, path: Path) -> Optional[Revision]:
        match = self._pattern.match(path.name)
        if not match:
            return None
        try:
            created_at = datetime.strptime(match.group(2), TIMESTAMP_FORMAT)
        except ValueError:
            return None
        return Revision(
            name=path.name,
            sequence=int(match.group(1)),
            created_at=created_at.replace(tzinfo=timezone.utc),
            path=path,
            size=path.stat().st_size,
        )

    def list_revisions(self) -> list[Revision]:
        """All revisions, oldest first."""
        if not self.revisions_dir.is_dir():
            return []

        revisions = []
        for path in self.revisions_dir.iterdir():
            if path.is_file():
                revision = self._parse(path)
                if revision is not None:
                    revisions.append(revision)

        return sorted(revisions, key=lambda r: r.sequence)

    def latest(self) -> Optional[Revision]:
        """The most recent revision, or None."""
        revisions = self.list_revisions()
        return revisions[-1] if revisions else None

    def get(self, name: str) -> Revision:
        """Look up a revision by file name.

        Raises:
            RevisionNotFoundError: If there is no such revision
        """
        for revision in self.list_revisions():
            if revision.name == name:
                return revision
        raise RevisionNotFoundError(name)

    def create(self) -> Revision:
        """Snapshot the current on-disk document."""
        if not self.document_path.exists():
            raise BackendError(f"Cannot snapshot missing document {self.document_path}")

        self.revisions_dir.mkdir(parents=True, exist_ok=True)

        latest = self.latest()
        sequence = latest.sequence + 1 if latest else 1
        timestamp = datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)
        name = f"{self.document_path.name}.{sequence:06d}.{timestamp}"

        target = self.revisions_dir / name
        shutil.copy2(self.document_path, target)
        logger.info(f"Created revision {name}")

        self._enforce_retention()
        return self.get(name)

    def _enforce_retention(self) -> None:
        if self.max_revisions <= 0:
            return
        revisions = self.list_revisions()
        for revision in revisions[:-self.max_revisions]:
            revision.path.unlink()
            logger.debug(f"Pruned revision {revision.name}")

    def read(self, revision: Revision) -> str:
        """Contents of a revision."""
        return revision.path.read_text(encoding="utf-8")

    def delete(self, name: str) -> Revision:
        """Delete a single revision.

        Raises:
            RevisionNotFoundError: If there is no such revision
        """
        revision = self.get(name)
        revision.path.unlink()
        logger.info(f"Deleted revision {name}")
        return revision

    def delete_newer(self, revision: Revision) -> int:
        """Delete every revision newer than `revision`; `revision` itself stays.

        Returns:
            Number of deleted revisions
        """
        count = 0
        for candidate in self.list_revisions():
            if candidate.sequence > revision.sequence:
                candidate.path.unlink()
                count += 1
        logger.info(f"Deleted {count} revisions newer than {revision.name}")
        return count

    def unlink_all(self) -> int:
        """Delete all revisions.

        Returns:
            Number of deleted revisions
        """
        revisions = self.list_revisions()
        for revision in revisions:
            revision.path.unlink()
        logger.info(f"Deleted all {len(revisions)} revisions of {self.document_path.name}")
        return len(revisions)

    def diff(self, revision: Revision, current: str) -> str:
        """Unified diff from a revision to the given current document text."""
        lines = difflib.unified_diff(
            self.read(revision).splitlines(keepends=True),
            current.splitlines(keepends=True),
            fromfile=revision.name,
            tofile=self.document_path.name,
        )
        return "".join(lines)
