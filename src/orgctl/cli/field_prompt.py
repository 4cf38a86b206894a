"""Interactive prompting for provisioning input the user left out.

:class:`QuestionaryFieldResolver` satisfies
:class:`~orgctl.core.protocols.MissingFieldResolver` and is injected
into :class:`~orgctl.core.provisioner.ServiceProvisioner` by the CLI.
Headless runs (``--no-input``) inject nothing instead.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from typing import Any

from orgctl.core.models import ServiceInput
from orgctl.core.provisioner import NAME_PATTERN
from orgctl.exceptions import EnvironmentError, ValidationError


def _import_questionary() -> Any:
    """Import questionary lazily for interactive prompts."""
    try:
        import questionary
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "questionary is not installed. Install with: pip install questionary",
        ) from exc
    return questionary


_QUESTIONS: dict[str, str] = {
    "name": "Service name:",
    "organization": "Organization name:",
}


def _validate_answer(value: str) -> bool | str:
    """questionary validator: ``True`` or an error message."""
    if NAME_PATTERN.match(value.strip()):
        return True
    return "Use lowercase letters, digits, '-' or '_' (max 64 characters)."


class QuestionaryFieldResolver:
    """Asks one question per missing field."""

    def resolve(
        self,
        missing: Sequence[str],
        current: ServiceInput,
    ) -> ServiceInput:
        """Return *current* with every field in *missing* answered.

        Raises
        ------
        ValidationError
            If the user cancels a prompt (Esc / Ctrl+C returns ``None``).
        """
        questionary = _import_questionary()

        answers: dict[str, str] = {}
        for field_name in missing:
            if field_name not in _QUESTIONS:
                raise ValidationError(
                    f"Cannot prompt for unknown field {field_name!r}",
                    fields=(field_name,),
                )
            answer: str | None = questionary.text(
                _QUESTIONS[field_name],
                validate=_validate_answer,
            ).ask()
            if answer is None:
                raise ValidationError(
                    f"No value given for {field_name}.",
                    fields=(field_name,),
                )
            answers[field_name] = answer.strip()

        return replace(current, **answers)


def prompt_credentials() -> tuple[str, str]:
    """Ask for a token and passphrase with hidden input.

    Raises
    ------
    ValidationError
        If the user cancels or leaves the token empty.
    """
    questionary = _import_questionary()

    token: str | None = questionary.password("API token:").ask()
    if not token:
        raise ValidationError("No token given.", fields=("token",))
    passphrase: str | None = questionary.password("Passphrase:").ask()
    if passphrase is None:
        raise ValidationError("No passphrase given.", fields=("passphrase",))
    return token, passphrase
