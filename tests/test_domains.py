"""
Tests for Domain Normalization

Covers URLs, bare hostnames, Search Console property identifiers and the
identifiers that must be rejected before any network call.
"""

import pytest

from src.gap.domains import normalize_domain, normalize_domains
from src.gap.errors import InvalidDomainError, UnsupportedIdentifier


class TestNormalizeDomain:
    """Tests for normalize_domain."""

    @pytest.mark.parametrize("identifier,expected", [
        ("example.com", "example.com"),
        ("www.example.com", "example.com"),
        ("https://www.Example.com/blog?page=2", "example.com"),
        ("http://sub.example.co.uk:8080/path", "sub.example.co.uk"),
        ("https://example.com/", "example.com"),
        ("sc-domain:example.com", "example.com"),
        ("SC-DOMAIN:WWW.Example.COM", "example.com"),
        ("  example.com  ", "example.com"),
        ("example.com.", "example.com"),
        ("bücher.de", "bücher.de"),
    ])
    def test_canonical_hostname(self, identifier, expected):
        """Every identifier form reduces to a lowercase hostname without www."""
        assert normalize_domain(identifier) == expected

    def test_subdomains_other_than_www_are_kept(self):
        assert normalize_domain("https://blog.example.com") == "blog.example.com"

    def test_property_set_rejected(self):
        """Aggregate property sets have no single domain."""
        with pytest.raises(UnsupportedIdentifier):
            normalize_domain("sc-set:a1b2c3")

    def test_unsupported_identifier_is_input_error(self):
        with pytest.raises(InvalidDomainError) as exc_info:
            normalize_domain("sc-set:a1b2c3")
        assert exc_info.value.identifier == "sc-set:a1b2c3"

    @pytest.mark.parametrize("identifier", [
        None,
        "",
        "   ",
        "https://",
        "example",
        "exa mple.com",
        "-bad.com",
        "sc-domain:",
    ])
    def test_invalid_identifiers(self, identifier):
        with pytest.raises(InvalidDomainError):
            normalize_domain(identifier)


class TestNormalizeDomains:
    """Tests for normalize_domains."""

    def test_duplicates_dropped_in_order(self):
        domains = normalize_domains([
            "rival.com",
            "https://www.rival.com/",
            "other.com",
            "sc-domain:rival.com",
        ])
        assert domains == ["rival.com", "other.com"]

    def test_first_invalid_raises(self):
        with pytest.raises(InvalidDomainError):
            normalize_domains(["rival.com", "not a domain"])

    def test_empty_input(self):
        assert normalize_domains([]) == []
