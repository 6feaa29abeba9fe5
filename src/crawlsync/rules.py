"""Per-site URL allow rules applied to seeds and to every discovered link."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

if TYPE_CHECKING:
    from crawlsync.config import SiteSettings

_ALLOWED_SCHEMES = frozenset({"http", "https"})


@dataclass(frozen=True)
class UrlRules:
    """Compiled allow rules for one site.

    A URL is allowed when its scheme is http(s), its host is in
    ``allowed_hosts`` (if any are configured), it fully matches ``include``
    (if set) and does not fully match ``exclude`` (if set).
    """

    allowed_hosts: frozenset[str]
    include: re.Pattern[str] | None = None
    exclude: re.Pattern[str] | None = None

    @classmethod
    def from_site(cls, site: SiteSettings) -> UrlRules:
        return cls(
            allowed_hosts=frozenset(h.strip().lower() for h in site.allowed_hosts if h.strip()),
            include=re.compile(site.include_url_regex) if site.include_url_regex else None,
            exclude=re.compile(site.exclude_url_regex) if site.exclude_url_regex else None,
        )

    def is_allowed(self, url: str) -> bool:
        try:
            parts = urlsplit(url)
            host = parts.hostname
        except ValueError:
            return False

        if parts.scheme.lower() not in _ALLOWED_SCHEMES:
            return False
        if not host:
            return False
        if self.allowed_hosts and host.lower() not in self.allowed_hosts:
            return False
        if self.include is not None and not self.include.fullmatch(url):
            return False
        return not (self.exclude is not None and self.exclude.fullmatch(url))
