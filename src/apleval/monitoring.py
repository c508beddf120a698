import importlib.util
import os
from typing import Any

import dotenv


def enable_monitoring(
    logfire_enabled: bool | Any = None,
    instrument_httpx: bool = True,
    httpx_capture_all: bool = False,
    **options,
):
    """
    Configure Logfire for apleval when LOGFIRE_ENABLED is true (or ``logfire_enabled`` is).

    Args:
        logfire_enabled: Overrides LOGFIRE_ENABLED when truthy
        instrument_httpx: Trace every query endpoint request
        httpx_capture_all: Record request and response headers and bodies. Off by
            default: the Authorization header carries the endpoint's bearer token.
        **options: Passed to ``logfire.configure``; LOGFIRE_TOKEN fills ``token``

    Returns:
        True when Logfire was configured, False when monitoring is disabled

    Raises:
        ImportError: If monitoring is enabled but logfire is not installed
    """
    dotenv.load_dotenv()
    logfire_enabled = logfire_enabled or os.getenv("LOGFIRE_ENABLED")
    available = (
        logfire_enabled
        and isinstance(logfire_enabled, bool)
        or str(logfire_enabled).lower() == "true"
    )

    if not available:
        return False

    if not importlib.util.find_spec("logfire"):
        raise ImportError(
            "LOGFIRE_ENABLED is set but logfire is not installed. "
            "Please install logfire or set LOGFIRE_ENABLED=false"
        )

    import logfire

    console = options.pop(
        "console",
        logfire.ConsoleOptions(show_project_link=False),
    )

    if "token" not in options and (token := os.getenv("LOGFIRE_TOKEN")):
        options["token"] = token

    logfire.configure(**options, console=console)

    if instrument_httpx:
        logfire.instrument_httpx(capture_all=httpx_capture_all)

    return True
