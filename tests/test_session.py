"""Tests for session resolution (core/session.py).

The credential daemon is mocked at the :class:`CredentialStore` seam.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from orgctl.core.models import Context, Credentials, Session
from orgctl.core.session import resolve_session
from orgctl.exceptions import DaemonUnavailableError


def _context(get_result: Credentials | Exception) -> Context:
    daemon = MagicMock()
    if isinstance(get_result, Exception):
        daemon.get.side_effect = get_result
    else:
        daemon.get.return_value = get_result
    return Context(settings=MagicMock(), daemon=daemon)


class TestResolveSession:
    def test_token_present_attaches_session(self) -> None:
        context = _context(Credentials(token="this is a token", passphrase="a passphrase"))
        session = resolve_session(context)
        assert session == Session(token="this is a token", passphrase="a passphrase")
        assert context.session == session

    def test_empty_store_leaves_session_unset(self) -> None:
        context = _context(Credentials(token="", passphrase=""))
        assert resolve_session(context) is None
        assert context.session is None
        assert context.session_resolved

    def test_passphrase_alone_is_not_a_session(self) -> None:
        context = _context(Credentials(token="", passphrase="orphan"))
        assert resolve_session(context) is None

    def test_idempotent(self) -> None:
        context = _context(Credentials(token="t", passphrase="p"))
        first = resolve_session(context)
        second = resolve_session(context)
        assert first is second
        context.daemon.get.assert_called_once_with()  # type: ignore[attr-defined]

    def test_daemon_unavailable_propagates(self) -> None:
        context = _context(DaemonUnavailableError("no socket"))
        with pytest.raises(DaemonUnavailableError, match="no socket"):
            resolve_session(context)
        assert not context.session_resolved
