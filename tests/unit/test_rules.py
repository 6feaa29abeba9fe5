"""Unit tests for crawlsync.rules."""

from __future__ import annotations

from crawlsync.config import SiteSettings
from crawlsync.rules import UrlRules


def _rules(**kwargs: object) -> UrlRules:
    return UrlRules.from_site(SiteSettings(name="site", seeds=["https://example.com/"], **kwargs))


class TestHostFiltering:
    def test_any_host_when_list_empty(self) -> None:
        assert _rules().is_allowed("https://anything.org/page")

    def test_host_in_list(self) -> None:
        rules = _rules(allowed_hosts=["example.com"])
        assert rules.is_allowed("https://example.com/docs")

    def test_host_match_is_case_insensitive(self) -> None:
        rules = _rules(allowed_hosts=["Example.COM"])
        assert rules.is_allowed("https://EXAMPLE.com/docs")

    def test_host_not_in_list(self) -> None:
        rules = _rules(allowed_hosts=["example.com"])
        assert not rules.is_allowed("https://other.com/docs")

    def test_subdomain_not_implied(self) -> None:
        rules = _rules(allowed_hosts=["example.com"])
        assert not rules.is_allowed("https://www.example.com/docs")


class TestSchemeAndParsing:
    def test_http_and_https_allowed(self) -> None:
        rules = _rules()
        assert rules.is_allowed("http://example.com/")
        assert rules.is_allowed("https://example.com/")

    def test_other_schemes_rejected(self) -> None:
        rules = _rules()
        assert not rules.is_allowed("ftp://example.com/file")
        assert not rules.is_allowed("mailto:someone@example.com")

    def test_missing_host_rejected(self) -> None:
        assert not _rules().is_allowed("https:///path")

    def test_unparseable_rejected(self) -> None:
        assert not _rules().is_allowed("http://[::1")


class TestPatterns:
    def test_include_must_match_whole_url(self) -> None:
        rules = _rules(include_url_regex=r"https://example\.com/docs/.*")
        assert rules.is_allowed("https://example.com/docs/intro")
        assert not rules.is_allowed("https://example.com/blog/post")

    def test_exclude_wins(self) -> None:
        rules = _rules(
            include_url_regex=r"https://example\.com/.*",
            exclude_url_regex=r".*\.(jpg|png|zip)",
        )
        assert rules.is_allowed("https://example.com/page")
        assert not rules.is_allowed("https://example.com/photo.jpg")

    def test_exclude_is_full_match(self) -> None:
        rules = _rules(exclude_url_regex=r"/private")
        # Partial occurrence does not count as a match
        assert rules.is_allowed("https://example.com/private/area")
