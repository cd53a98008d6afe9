"""
Persistence for enrollment sets.

A store holds at most one enrollment set per identity. Saving replaces
the previous set as a whole, so readers see either the old set or the
new one and never a mix.
"""

import hashlib
import json
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict

import structlog

from . import config
from .enrollment import EnrollmentSet
from .exceptions import InvalidEnrollmentError

logger = structlog.get_logger(__name__)


# Bump when the document layout changes
STORE_FORMAT_VERSION = 3


class EnrollmentStore(ABC):
    """Key-value store of enrollment sets, keyed by local identity."""

    @abstractmethod
    def save(self, identity: str, enrollment: EnrollmentSet) -> None:
        """Replace whatever is stored for ``identity`` with ``enrollment``."""

    @abstractmethod
    def load(self, identity: str) -> EnrollmentSet | None:
        """Return the set stored for ``identity``, or None."""

    @abstractmethod
    def clear(self, identity: str) -> None:
        """Remove the set stored for ``identity``, if any."""


class MemoryEnrollmentStore(EnrollmentStore):
    """In-process store. Contents are lost when the process exits."""

    def __init__(self):
        self._sets: Dict[str, EnrollmentSet] = {}

    def save(self, identity: str, enrollment: EnrollmentSet) -> None:
        self._sets[identity] = enrollment

    def load(self, identity: str) -> EnrollmentSet | None:
        return self._sets.get(identity)

    def clear(self, identity: str) -> None:
        self._sets.pop(identity, None)


class JsonFileEnrollmentStore(EnrollmentStore):
    """
    One JSON document per identity in a directory.

    File names are the SHA-256 of the identity, so identities never reach
    the filesystem verbatim. Documents are written to a temporary file in
    the same directory and moved into place with ``os.replace``. The
    directory defaults to the configured store directory.

    Document layout:
        {
            "version": 3,
            "saved_at": "<ISO-8601 UTC>",
            "enrollment": { ... EnrollmentSet.to_dict() ... }
        }
    """

    def __init__(self, root: str | os.PathLike | None = None):
        self.root = Path(root) if root is not None else config.STORE_DIR

    def path_for(self, identity: str) -> Path:
        digest = hashlib.sha256(identity.encode("utf-8")).hexdigest()
        return self.root / f"{digest}.json"

    def save(self, identity: str, enrollment: EnrollmentSet) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        document = {
            "version": STORE_FORMAT_VERSION,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "enrollment": enrollment.to_dict(),
        }

        target = self.path_for(identity)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".enrollment-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info("Enrollment saved", records=len(enrollment), path=str(target))

    def load(self, identity: str) -> EnrollmentSet | None:
        """
        Load the set stored for ``identity``.

        Raises:
            InvalidEnrollmentError: If the document cannot be read, is not
                valid JSON, has an unknown version or an invalid set.
        """
        path = self.path_for(identity)
        if not path.exists():
            return None

        try:
            with path.open("r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidEnrollmentError(f"Failed to read enrollment document: {e}") from e

        if not isinstance(document, dict) or document.get("version") != STORE_FORMAT_VERSION:
            raise InvalidEnrollmentError("Unsupported enrollment document version")

        enrollment = EnrollmentSet.from_dict(document.get("enrollment") or {})
        logger.debug("Enrollment loaded", records=len(enrollment), path=str(path))
        return enrollment

    def clear(self, identity: str) -> None:
        path = self.path_for(identity)
        path.unlink(missing_ok=True)
        logger.info("Enrollment cleared", path=str(path))
