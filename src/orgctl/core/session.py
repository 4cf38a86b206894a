"""Session resolution — turns cached credentials into a :class:`Session`.

Runs once per invocation, before any provisioning logic.  The token is
not checked against the API here; an expired token surfaces as an
:class:`~orgctl.exceptions.ApiError` on the first authenticated call.
"""

from __future__ import annotations

import logging

from orgctl.core.models import Context, Session

logger = logging.getLogger(__name__)


def resolve_session(context: Context) -> Session | None:
    """Attach a session to *context* when the daemon holds a token.

    Idempotent: a context that was already resolved returns its existing
    session without querying the daemon again.

    Raises
    ------
    DaemonUnavailableError
        When the credential daemon cannot be reached.
    """
    if context.session_resolved:
        return context.session

    credentials = context.daemon.get()
    session: Session | None = None
    if credentials.is_authenticated:
        session = Session(
            token=credentials.token,
            passphrase=credentials.passphrase,
        )
        logger.debug("Session resolved from credential daemon")
    else:
        logger.debug("Credential daemon holds no token; continuing unauthenticated")

    context.attach_session(session)
    return session
