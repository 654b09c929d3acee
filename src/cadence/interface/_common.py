"""Helpers shared by CLI commands."""

import logging
from pathlib import Path
from typing import Any, NoReturn

import typer

from cadence.application.config import AppConfig, resolve_config
from cadence.domain.errors import CardNotFoundError, InvalidStateTransition, ValidationError
from cadence.infrastructure.yaml_repository import YamlCardRepository


def _resolve_with_overrides(verbose: int = 1, **overrides: Any) -> AppConfig:
    """Resolve config from CLI flags and apply the verbosity to the root logger."""
    config = resolve_config({"verbose": verbose, **overrides})
    if config.verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    elif config.verbose <= 0:
        logging.getLogger().setLevel(logging.WARNING)
    return config


def _open_repository(deck: Path | None, verbose: int = 1) -> tuple[AppConfig, YamlCardRepository]:
    config = _resolve_with_overrides(verbose=verbose, deck_path=deck)
    return config, YamlCardRepository(config.deck_path)


def humanize_error(e: Exception) -> str:
    if isinstance(e, CardNotFoundError):
        return f"{e}. Run 'cadence add' to create it, or check the deck path."
    if isinstance(e, InvalidStateTransition):
        return f"Review session error: {e}"
    if isinstance(e, ValidationError):
        return f"Invalid input: {e}"
    return str(e)


def fail(e: Exception) -> NoReturn:
    typer.secho(humanize_error(e), fg="red", err=True)
    raise typer.Exit(1) from e
