"""Consistent error handling for CLI commands."""

from __future__ import annotations

import functools
import logging
from typing import Callable

import httpx
import typer
from pydantic import ValidationError

from amazon_lunchmoney.core.errors import ConfigurationError, LunchMoneyError

logger = logging.getLogger("amazon_lunchmoney.cli")


def error_message(exc: Exception) -> str:
    """User-facing message for a fatal error."""
    if isinstance(exc, ConfigurationError):
        return str(exc)
    if isinstance(exc, LunchMoneyError):
        return f"Lunch Money API error: {exc.detail}"
    if isinstance(exc, httpx.ConnectError):
        return "Cannot connect to Lunch Money API. Check your network connection."
    if isinstance(exc, httpx.TimeoutException):
        return "Request to Lunch Money timed out. Please try again."
    if isinstance(exc, ValidationError):
        return f"Invalid data: {exc.error_count()} validation error(s). Check your input."
    return f"Unexpected error: {type(exc).__name__}: {exc}"


def exit_on_error(fn: Callable) -> Callable:
    """Decorator that turns known fatal exceptions into exit code 1.

    Everything that reaches here happened before or outside the
    per-transaction loop, so the run is aborted rather than continued.
    """

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except typer.Exit:
            raise
        except (ConfigurationError, LunchMoneyError, httpx.HTTPError, ValidationError) as e:
            logger.error("%s", error_message(e))
            raise typer.Exit(code=1) from e
        except Exception as e:
            logger.exception("Unexpected error in command %s", fn.__name__)
            raise typer.Exit(code=1) from e

    return wrapper
