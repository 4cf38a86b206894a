"""orgctl — command-line client for an organization/project/service control plane.

Authentication is cached by a local credential daemon so that a user logs
in once and reuses the session across invocations.
"""

from orgctl.version import __version__

__all__: list[str] = ["__version__"]
