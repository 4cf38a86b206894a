"""On-disk credential persistence for the daemon.

Writers are serialised across processes with an exclusive ``flock`` on
a sibling ``.lock`` file, and each write lands atomically (temp file +
``os.replace``) so readers never observe a torn file.  Storage is plain
JSON with ``0600`` permissions.
"""

from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from orgctl.core.models import Credentials

logger = logging.getLogger(__name__)


class FileCredentialStore:
    """Credential store backed by a JSON file.

    Satisfies :class:`~orgctl.core.protocols.CredentialStore`
    structurally.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock_file = self.path.with_suffix(".lock")

    @contextmanager
    def _file_lock(self) -> Iterator[None]:
        """Acquire an exclusive lock shared with other processes."""
        self._lock_file.touch(exist_ok=True)
        with open(self._lock_file, "r") as lock_handle:
            try:
                fcntl.flock(lock_handle.fileno(), fcntl.LOCK_EX)
                yield
            finally:
                fcntl.flock(lock_handle.fileno(), fcntl.LOCK_UN)

    def get(self) -> Credentials:
        """Return stored credentials, or empty ones if none are readable."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return Credentials()
        except (ValueError, OSError) as exc:
            logger.warning("Ignoring unreadable credentials file %s: %s", self.path, exc)
            return Credentials()

        if not isinstance(data, dict):
            return Credentials()
        return Credentials(
            token=str(data.get("token") or ""),
            passphrase=str(data.get("passphrase") or ""),
        )

    def set(self, token: str, passphrase: str) -> None:
        """Overwrite the stored pair."""
        with self._file_lock():
            self._write({"token": token, "passphrase": passphrase})
        logger.debug("Credentials written to %s", self.path)

    def clear(self) -> None:
        self.set("", "")

    def _write(self, data: dict[str, str]) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp",
        )
        try:
            os.fchmod(fd, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
