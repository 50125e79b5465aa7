"""Shared HTTP helpers used by the descriptor fetchers.

Encapsulates common request/timeout error handling so modules avoid
duplicating try/except blocks.
"""
from __future__ import annotations

import logging
import sys
from typing import Any

import requests

from constants import Constants, ExitCodes
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def safe_get(url: str, *, context: str, fatal: bool = True, **kwargs: Any) -> requests.Response:
    """Perform a GET request with consistent error handling and DEBUG traces.

    Timeouts and connection errors are retried up to
    ``Constants.HTTP_RETRY_MAX`` times. When every attempt fails and ``fatal``
    is set the process exits with ``CONNECTION_ERROR``; otherwise the last
    ``requests`` exception is raised to the caller.

    Args:
        url: Target URL.
        context: Human-readable source tag for logs (e.g., "maven").
        fatal: Exit the process on network failure instead of raising.
        **kwargs: Passed through to requests.get.

    Returns:
        requests.Response: The HTTP response object.
    """
    safe_target = safe_url(url)
    last_exc: requests.RequestException = requests.RequestException("no attempt made")
    for attempt in range(Constants.HTTP_RETRY_MAX):
        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="http_client",
                        action="GET",
                        target=safe_target,
                        context=context,
                        attempt=attempt + 1
                    )
                )
            try:
                res = requests.get(url, timeout=Constants.REQUEST_TIMEOUT, **kwargs)
            except requests.RequestException as exc:  # includes Timeout and ConnectionError
                last_exc = exc
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="timeout" if isinstance(exc, requests.Timeout) else "request_exception",
                            attempt=attempt + 1,
                            target=safe_target,
                            context=context
                        )
                    )
                continue
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response ok",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action="GET",
                        outcome="success",
                        status_code=res.status_code,
                        duration_ms=t.duration_ms(),
                        target=safe_target,
                        context=context
                    )
                )
            return res

    if not fatal:
        raise last_exc
    if isinstance(last_exc, requests.Timeout):
        logger.error(
            "%s request timed out after %s seconds",
            context,
            Constants.REQUEST_TIMEOUT,
        )
    else:
        logger.error("%s connection error: %s", context, last_exc)
    sys.exit(ExitCodes.CONNECTION_ERROR.value)
