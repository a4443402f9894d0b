"""Shared helpers for talking to the distribution backend."""

from typing import Dict, Optional, Union

import httpx


def auth_headers(access_token: Optional[str]) -> Dict[str, str]:
    """Build the bearer authorization header, or nothing without a token."""
    if not access_token:
        return {}
    return {"Authorization": f"Bearer {access_token}"}


def is_client_error(status_code: Optional[int]) -> bool:
    """True for 4xx statuses, which the backend uses for definitive rejections."""
    return status_code is not None and 400 <= status_code < 500


def response_of(error: Exception) -> Optional[httpx.Response]:
    """Return the HTTP response attached to an httpx error, if any."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response
    return None


def error_message(
    source: Union[httpx.Response, Exception, None],
    default: str,
) -> str:
    """Pick the most useful error message.

    Prefers the backend's JSON ``message``, then its ``error`` field, then
    the exception text, then ``default``.

    Args:
        source: Response or exception to inspect
        default: Fallback message

    Returns:
        Human readable error message
    """
    response = source if isinstance(source, httpx.Response) else None
    if isinstance(source, Exception):
        response = response_of(source)

    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("message", "error"):
                value = body.get(key)
                if isinstance(value, str) and value:
                    return value

    if isinstance(source, Exception) and not isinstance(source, httpx.HTTPStatusError):
        text = str(source)
        if text:
            return text

    return default


def server_message(response: Optional[httpx.Response]) -> Optional[str]:
    """Return the backend-supplied message of a response, if it sent one."""
    if response is None:
        return None
    message = error_message(response, default="")
    return message or None
