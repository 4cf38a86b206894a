"""Shared pytest fixtures and configuration for the orgctl test suite.

Guidelines
----------
* No internet access in any test; HTTP goes through ``httpx.MockTransport``.
* The credential daemon runs in-process on a temporary Unix socket.
* Core tests must be pure; collaborators are mocked at the protocol seam.
* Tests must not depend on the user's real configuration directory.
"""

from __future__ import annotations

import os
import shutil
import tempfile
import threading
from collections.abc import Iterator
from pathlib import Path

import pytest

from orgctl.config import Settings, load_settings


@pytest.fixture
def short_tmp() -> Iterator[Path]:
    """A short temporary directory.

    Unix socket paths are limited to ~104 bytes, which pytest's
    ``tmp_path`` can exceed.
    """
    path = Path(tempfile.mkdtemp(prefix="orgctl-"))
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep ORGCTL_* from the developer's shell out of every test."""
    for key in list(os.environ):
        if key.startswith("ORGCTL_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("ORGCTL_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def settings(short_tmp: Path) -> Settings:
    return load_settings(
        api_url="https://api.test/v1",
        config_dir=short_tmp,
    )


@pytest.fixture
def running_daemon(short_tmp: Path) -> Iterator[object]:
    """A :class:`CredentialDaemon` serving on a temporary socket."""
    from orgctl.infra.credential_store import FileCredentialStore
    from orgctl.infra.daemon import CredentialDaemon

    daemon = CredentialDaemon(
        FileCredentialStore(short_tmp / "credentials.json"),
        short_tmp / "d.sock",
    )
    daemon.bind()
    thread = threading.Thread(target=daemon.serve_forever, daemon=True)
    thread.start()
    try:
        yield daemon
    finally:
        daemon.shutdown()
        thread.join(timeout=5)
