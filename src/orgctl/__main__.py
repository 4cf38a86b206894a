"""Allow ``python -m orgctl`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m orgctl`` behaves identically to the ``orgctl`` console
script.  The detached credential daemon is spawned through this path.
"""

from __future__ import annotations

from orgctl.cli.app import cli

if __name__ == "__main__":
    cli()
