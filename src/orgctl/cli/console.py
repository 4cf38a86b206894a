"""CLI console and logging helpers with optional Rich support.

This module avoids module-level imports of optional UI
dependencies so bootstrap paths (``--help``, ``--version``) remain
functional even when Rich is not installed.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from orgctl.exceptions import EnvironmentError


def _load_rich_console_class() -> type[Any]:
	"""Return ``rich.console.Console`` class or raise ``EnvironmentError``."""
	try:
		from rich.console import Console
	except ModuleNotFoundError as exc:
		raise EnvironmentError(
			"rich is not installed. Install with: pip install rich",
		) from exc
	return Console


def get_rich_console() -> Any:
	"""Create a Rich console instance targeting stderr."""
	console_class = _load_rich_console_class()
	return console_class(stderr=True)


class _ConsoleProxy:
	"""Minimal ``print``-compatible proxy with Rich fallback."""

	def print(self, *objects: object) -> None:
		"""Render with Rich when available, else plain stderr print."""
		try:
			rich_console = get_rich_console()
		except EnvironmentError:
			print(*objects, file=sys.stderr)
			return
		rich_console.print(*objects)


console = _ConsoleProxy()


def configure_logging(verbose: bool = False, *, rich: bool = True) -> None:
	"""Configure the root logger once per process.

	Uses ``rich.logging.RichHandler`` on stderr when Rich is importable
	and *rich* is true, a plain ``StreamHandler`` otherwise.  The level
	is ``DEBUG`` with *verbose*, ``WARNING`` otherwise.
	"""
	level = logging.DEBUG if verbose else logging.WARNING
	handler: logging.Handler
	fmt = "%(message)s"
	if rich:
		try:
			from rich.logging import RichHandler

			handler = RichHandler(console=get_rich_console(), rich_tracebacks=True)
		except (ModuleNotFoundError, EnvironmentError):
			handler = logging.StreamHandler(sys.stderr)
			fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
	else:
		handler = logging.StreamHandler(sys.stderr)
		fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"

	logging.basicConfig(
		level=level,
		format=fmt,
		datefmt="[%X]",
		handlers=[handler],
		force=True,
	)
	# httpx logs every request at INFO; keep it behind --verbose.
	logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
