"""DSN parsing and redaction utilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, unquote, urlencode, urlsplit


@dataclass
class DSNConfig:
    scheme: str
    username: Optional[str]
    password: Optional[str]
    hosts: str
    database: Optional[str]
    query: dict[str, str]

    @property
    def is_memory(self) -> bool:
        return self.scheme == "memory"

    def redacted(self) -> str:
        """
        Return the DSN with credentials redacted but structure preserved.
        """

        netloc = ""
        if self.username:
            netloc += self.username
            if self.password:
                netloc += ":***"
            netloc += "@"
        netloc += self.hosts

        query_string = urlencode(self.query) if self.query else ""

        result = f"{self.scheme}://{netloc}"
        if self.database:
            result += f"/{self.database}"
        if query_string:
            result += f"?{query_string}"
        return result


def parse_dsn(dsn: str) -> DSNConfig:
    """
    Parse ``mongodb://``, ``mongodb+srv://`` and ``memory://`` DSNs.

    Replica-set host lists (``h1:27017,h2:27017``) are kept verbatim since
    :func:`urllib.parse.urlsplit` cannot parse a port out of them.
    """

    parsed = urlsplit(dsn)
    if not parsed.scheme:
        raise ValueError(f"DSN {dsn!r} is missing a scheme")
    query = {k: v[0] for k, v in parse_qs(parsed.query).items()}

    userinfo, _, hosts = parsed.netloc.rpartition("@")
    username: Optional[str] = None
    password: Optional[str] = None
    if userinfo:
        user, sep, secret = userinfo.partition(":")
        username = unquote(user) or None
        password = unquote(secret) if sep else None

    database = parsed.path.lstrip("/") or None
    return DSNConfig(
        scheme=parsed.scheme,
        username=username,
        password=password,
        hosts=hosts,
        database=database,
        query=query,
    )
