"""
Test Suite for URL Normalization

Tests canonical URL and domain extraction:
- Equivalent forms collapse to one canonical URL
- Idempotence
- Query parameter allow-list
- Port handling
- Error cases
"""

import pytest
from searchable.utils.url_normalizer import (
    UrlNormalizationError,
    normalize_url,
    normalize_domain,
    strip_www,
    is_valid_url,
)


# =============================================================================
# CANONICAL FORM TESTS
# =============================================================================


class TestCanonicalForm:
    """Test that equivalent inputs collapse to the same key."""

    CANONICAL = "https://example.com/path"

    @pytest.mark.parametrize("url", [
        "http://WWW.Example.com/Path/",
        "example.com/path",
        "https://example.com/path?x=1",
        "https://example.com/path",
        "  https://example.com/path/  ",
        "//example.com/path",
        "https://example.com/path#section",
        "https://example.com:443/path",
    ])
    def test_equivalent_forms(self, url):
        """All variants normalize to the same canonical URL."""
        assert normalize_url(url) == self.CANONICAL

    def test_scheme_always_https(self):
        """http is upgraded to https."""
        assert normalize_url("http://example.com/a").startswith("https://")

    def test_root_has_no_trailing_slash(self):
        """A bare host keeps no trailing slash."""
        assert normalize_url("https://www.example.com/") == "https://example.com"

    def test_credentials_dropped(self):
        """User info never ends up in the key."""
        assert normalize_url("https://user:pw@example.com/a") == "https://example.com/a"

    def test_subdomain_kept(self):
        """Only leading www. labels are removed."""
        assert normalize_url("https://docs.example.com/a") == "https://docs.example.com/a"

    @pytest.mark.parametrize("url", [
        "http://WWW.Example.com/Path/",
        "example.com/a/b/?utm_source=x",
        "https://docs.example.com:8443/Guide",
        "https://example.com/p?b=2&a=1",
        "https://www.www.example.com/a",
        "www.com",
    ])
    def test_idempotent(self, url):
        """normalize(normalize(x)) == normalize(x)."""
        once = normalize_url(url)
        assert normalize_url(once) == once


# =============================================================================
# QUERY PARAMETER TESTS
# =============================================================================


class TestQueryParameters:
    """Test the query parameter allow-list."""

    def test_query_dropped_by_default(self):
        """Tracking variants collapse to one identity."""
        assert normalize_url("https://example.com/a?utm_source=x&ref=y") == "https://example.com/a"

    def test_kept_params_sorted(self):
        """Kept parameters survive in sorted order, others are dropped."""
        url = normalize_url("https://example.com/p?b=2&utm=1&a=1", keep_params=["a", "b"])
        assert url == "https://example.com/p?a=1&b=2"

    def test_kept_params_case_insensitive_names(self):
        """Allow-list matching ignores parameter name case."""
        url = normalize_url("https://example.com/p?ID=7", keep_params=["id"])
        assert url == "https://example.com/p?ID=7"

    def test_kept_params_idempotent(self):
        """Re-normalizing with the same allow-list is stable."""
        once = normalize_url("https://example.com/p?b=2&a=1", keep_params=["a", "b"])
        assert normalize_url(once, keep_params=["a", "b"]) == once


# =============================================================================
# PORT TESTS
# =============================================================================


class TestPorts:
    """Test default port removal."""

    def test_https_default_port_removed(self):
        assert normalize_url("https://example.com:443/a") == "https://example.com/a"

    def test_http_default_port_removed(self):
        assert normalize_url("http://example.com:80/a") == "https://example.com/a"

    def test_custom_port_kept(self):
        assert normalize_url("example.com:8080/x") == "https://example.com:8080/x"


# =============================================================================
# DOMAIN TESTS
# =============================================================================


class TestDomainExtraction:
    """Test registrable domain extraction."""

    def test_www_stripped(self):
        assert normalize_domain("https://www.nike.com/page") == "nike.com"

    def test_without_scheme(self):
        assert normalize_domain("Acme.com/page") == "acme.com"

    def test_strip_www_only_leading_label(self):
        assert strip_www("www.example.com") == "example.com"
        assert strip_www("example.www.com") == "example.www.com"

    def test_repeated_www_labels_stripped(self):
        """URL host and domain agree after repeated www. labels."""
        url = normalize_url("https://www.www.example.com/a")
        assert url == "https://example.com/a"
        assert normalize_domain(url) == "example.com"

    def test_www_kept_when_only_tld_remains(self):
        assert strip_www("www.com") == "www.com"
        assert strip_www("www.www.com") == "www.com"
        assert normalize_domain("https://www.com/about") == "www.com"
        assert normalize_url("www.com") == "https://www.com"


# =============================================================================
# ERROR TESTS
# =============================================================================


class TestErrors:
    """Test that unparseable input raises UrlNormalizationError."""

    @pytest.mark.parametrize("url", [
        "",
        "   ",
        "https://",
        "not a url",
        "https://exa mple.com/a",
        "https://example.com:99999/a",
        "https://bad_host!.com",
    ])
    def test_invalid_input_raises(self, url):
        with pytest.raises(UrlNormalizationError):
            normalize_url(url)

    def test_error_carries_input(self):
        """The raw input is kept on the exception."""
        with pytest.raises(UrlNormalizationError) as exc_info:
            normalize_url("   ")
        assert exc_info.value.input == "   "

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            normalize_url("")

    def test_is_valid_url(self):
        assert is_valid_url("example.com")
        assert not is_valid_url("")
