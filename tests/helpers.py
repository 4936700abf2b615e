"""Helpers for reading Set-Cookie headers in tests."""
from __future__ import annotations


def set_cookies(response) -> list[str]:
    """Raw Set-Cookie header values of a starlette or httpx response."""
    headers = response.headers
    if hasattr(headers, "get_list"):
        return headers.get_list("set-cookie")
    return headers.getlist("set-cookie")


def cookie_header(response, name: str) -> str | None:
    for value in set_cookies(response):
        if value.startswith(f"{name}="):
            return value
    return None


def cookie_value(response, name: str) -> str | None:
    header = cookie_header(response, name)
    if header is None:
        return None
    return header.split(";", 1)[0].split("=", 1)[1].strip('"')
