# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Credential-safe views of database connection URLs.

A connection URL is a secret. The only projection that may reach a log
line or an exception is host, port and database name.
"""

from urllib.parse import parse_qs, unquote, urlparse

DEFAULT_PG_PORT = 5432
INVALID_URL = "[invalid URL]"


def describe_connection(database_url: str | None) -> str:
    """
    Describe a PostgreSQL URL as ``host:port/database``.

    Handles unix socket URLs such as ``postgresql:///app?host=/run/postgresql``.
    Never raises; unparseable input yields ``[invalid URL]``.
    """
    if not database_url:
        return INVALID_URL
    try:
        parsed = urlparse(database_url)
        if not parsed.scheme:
            return INVALID_URL
        database = unquote(parsed.path.lstrip("/"))

        socket_host = parse_qs(parsed.query).get("host")
        if socket_host and socket_host[0]:
            return f"{socket_host[0]}:{DEFAULT_PG_PORT}/{database}"

        host = parsed.hostname or "localhost"
        port = parsed.port or DEFAULT_PG_PORT
        return f"{host}:{port}/{database}"
    except ValueError:
        # urlparse raises on malformed ports and IPv6 literals
        return INVALID_URL


def mask_password(url: str) -> str:
    """Mask password in connection URL for logging."""
    try:
        parsed = urlparse(url)
        password = parsed.password
    except ValueError:
        return INVALID_URL
    if password:
        return url.replace(f":{password}@", ":***@")
    return url


def scrub_secrets(text: str, database_url: str | None) -> str:
    """
    Remove a connection URL and its password from free-form text.

    Used on tool diagnostics before they are logged or attached to errors.
    """
    if not text or not database_url:
        return text

    scrubbed = text.replace(database_url, mask_password(database_url))
    try:
        password = urlparse(database_url).password
    except ValueError:
        password = None
    if password:
        scrubbed = scrubbed.replace(password, "***")
        decoded = unquote(password)
        if decoded != password:
            scrubbed = scrubbed.replace(decoded, "***")
    return scrubbed
