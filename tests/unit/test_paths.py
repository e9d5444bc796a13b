"""Unit tests for artifact naming and the .url sidecar."""

from __future__ import annotations

import pytest

from silverscreen.capture.paths import (
    QUERY_MAX_CHARS,
    URL_SIDECAR_NAME,
    artifact_filename,
    page_directory_name,
    write_url_sidecar,
)
from silverscreen.exceptions import InvalidUrlError


class TestPageDirectoryName:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://example.com", "example-com"),
            ("https://example.com/", "example-com"),
            ("https://example.com/about", "example-com_about"),
            ("https://example.com/about/", "example-com_about"),
            ("https://example.com/x/y", "example-com_x-y"),
            ("https://example.com//a//b//", "example-com_a-b"),
            ("https://example.com/a.b/c~d", "example-com_a-b-c-d"),
            ("https://example.com/snake_case", "example-com_snake_case"),
            ("https://example.com/x/y?z=1", "example-com_x-y_z=1"),
            ("https://example.com/?a=1&b=2", "example-com_a=1-b=2"),
            ("https://sub.example.co.uk:8443/p", "sub-example-co-uk_p"),
            ("https://example.com/a b", "example-com_a-20b"),
            ("https://example.com/?q=a b", "example-com_q=a-20b"),
            ("https://example.com/a/../b", "example-com_b"),
            ("https://example.com/a/./b/.", "example-com_a-b"),
            ("https://b\u00fccher.de/", "xn--bcher-kva-de"),
            ("https://example.com/caf\u00e9", "example-com_caf-C3-A9"),
            ("https://example.com/a%20b", "example-com_a-20b"),
        ],
    )
    def test_derivation(self, url: str, expected: str) -> None:
        assert page_directory_name(url) == expected

    def test_deterministic(self) -> None:
        url = "https://a.com/x/y?z=1"
        assert page_directory_name(url) == page_directory_name(url)

    def test_hostname_is_case_folded(self) -> None:
        """URL parsing lower-cases hostnames, so both spellings share a directory."""
        assert page_directory_name("https://A.com") == page_directory_name("https://a.com") == "a-com"

    def test_path_case_is_preserved(self) -> None:
        assert page_directory_name("https://a.com/About") == "a-com_About"

    def test_query_not_collapsed_but_truncated(self) -> None:
        query = "q=" + "a&&b" * 30
        name = page_directory_name(f"https://a.com/?{query}")
        _, _, query_part = name.partition("_")
        assert len(query_part) == QUERY_MAX_CHARS
        assert "--" in query_part

    @pytest.mark.parametrize("url", ["example.com", "", "/relative/path", "mailto:"])
    def test_invalid_url_rejected(self, url: str) -> None:
        with pytest.raises(InvalidUrlError):
            page_directory_name(url)


class TestArtifactFilename:
    def test_format(self) -> None:
        assert artifact_filename("mobile", 1700000000000, 7) == "mobile_1700000000000_0007.png"

    def test_extension(self) -> None:
        assert artifact_filename("desktop", 1, 12345, "jpg") == "desktop_1_12345.jpg"


class TestUrlSidecar:
    def test_written_once(self, tmp_path) -> None:
        assert write_url_sidecar(tmp_path, "https://first.example") is True
        assert write_url_sidecar(tmp_path, "https://second.example") is False
        assert (tmp_path / URL_SIDECAR_NAME).read_text(encoding="utf-8") == "https://first.example"
