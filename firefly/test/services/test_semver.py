"""Tests for firefly.services.semver module."""

from __future__ import annotations

import pytest

from firefly.services.semver import SemVer, parse_prerelease, parse_version


class TestParseVersion:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1.2.3", SemVer(1, 2, 3)),
            ("v1.2.3", SemVer(1, 2, 3)),
            ("0.1.0-beta.0", SemVer(0, 1, 0, "beta.0")),
            ("2.0.0-rc.1+build.7", SemVer(2, 0, 0, "rc.1")),
            (" 1.0.0 \n", SemVer(1, 0, 0)),
        ],
    )
    def test_valid(self, text: str, expected: SemVer) -> None:
        assert parse_version(text) == expected

    @pytest.mark.parametrize("text", ["", "1.2", "01.2.3", "1.2.3.4", "latest", "1.2.3-"])
    def test_invalid(self, text: str) -> None:
        assert parse_version(text) is None

    def test_parse_prerelease(self) -> None:
        assert parse_prerelease("beta.3") == ("beta", 3)
        assert parse_prerelease("beta") is None


class TestFormatting:
    def test_str(self) -> None:
        assert str(SemVer(1, 2, 3)) == "1.2.3"
        assert str(SemVer(1, 2, 3, "alpha.1")) == "1.2.3-alpha.1"

    def test_to_tag(self) -> None:
        assert SemVer(1, 0, 0).to_tag() == "v1.0.0"
        assert SemVer(1, 0, 0).to_tag(prefix="release-") == "release-1.0.0"


class TestBump:
    @pytest.mark.parametrize(
        ("kind", "expected"),
        [("major", "2.0.0"), ("minor", "1.3.0"), ("patch", "1.2.4")],
    )
    def test_stable(self, kind: str, expected: str) -> None:
        assert str(SemVer(1, 2, 3).bump(kind)) == expected  # type: ignore[arg-type]

    def test_prerelease_on_target_line_releases(self) -> None:
        assert str(SemVer(1, 3, 0, "beta.2").bump("minor")) == "1.3.0"
        assert str(SemVer(2, 0, 0, "rc.0").bump("major")) == "2.0.0"
        assert str(SemVer(1, 2, 4, "beta.0").bump("patch")) == "1.2.4"

    def test_prerelease_off_target_line_moves_on(self) -> None:
        assert str(SemVer(1, 2, 4, "beta.0").bump("minor")) == "1.3.0"


class TestBumpPrerelease:
    def test_increments_same_identifier(self) -> None:
        assert str(SemVer(1, 2, 0, "beta.1").bump_prerelease("beta")) == "1.2.0-beta.2"

    def test_starts_from_stable(self) -> None:
        assert str(SemVer(1, 2, 0).bump_prerelease("beta", "minor")) == "1.3.0-beta.0"
        assert str(SemVer(1, 2, 0).bump_prerelease("rc")) == "1.2.1-rc.0"

    def test_switches_identifier_on_same_base(self) -> None:
        assert str(SemVer(1, 3, 0, "alpha.4").bump_prerelease("beta")) == "1.3.0-beta.0"


class TestOrdering:
    def test_prerelease_sorts_before_release(self) -> None:
        assert SemVer(1, 0, 0, "beta.0") < SemVer(1, 0, 0)

    def test_numeric_prerelease_parts(self) -> None:
        assert SemVer(1, 0, 0, "beta.2") < SemVer(1, 0, 0, "beta.10")

    def test_sorting(self) -> None:
        versions = [SemVer(1, 10, 0), SemVer(1, 2, 0), SemVer(1, 2, 0, "rc.1"), SemVer(0, 9, 9)]
        assert [str(v) for v in sorted(versions)] == ["0.9.9", "1.2.0-rc.1", "1.2.0", "1.10.0"]
