"""包 URI 结构化解析测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from hpkl.core.dep.uri import PROJECT_PACKAGE_SCHEME, PackageUri
from hpkl.core.exceptions import PackageUriError


class TestParse:
    def test_fields(self) -> None:
        uri = PackageUri.parse("package://example.com/pkl/birds@0.5.0")
        assert uri.scheme == "package"
        assert uri.host == "example.com"
        assert uri.path == "/pkl/birds"
        assert uri.version == "0.5.0"
        assert str(uri) == "package://example.com/pkl/birds@0.5.0"

    def test_host_with_port(self) -> None:
        uri = PackageUri.parse("package://localhost:5000/birds@1.0.0")
        assert uri.host == "localhost:5000"
        assert uri.registry_ref() == "localhost:5000/birds:1.0.0"

    @pytest.mark.parametrize("raw", [
        "example.com/birds@1.0.0",
        "package:///birds@1.0.0",
        "package://example.com/birds",
        "package://example.com/birds@",
        "package://example.com@1.0.0",
        "package://example.com/../../../escaped@1.0.0",
        "package://example.com/pkl/./birds@1.0.0",
        "package://example.com/pkl//birds@1.0.0",
        "package://../birds@1.0.0",
        "package://example.com/birds@1.0.0/../../x",
        "package://example.com/pkl\\..\\birds@1.0.0",
    ])
    def test_malformed_rejected(self, raw: str) -> None:
        with pytest.raises(PackageUriError):
            PackageUri.parse(raw)


class TestDerivedForms:
    def test_major_identity(self) -> None:
        uri = PackageUri.parse("package://example.com/birds@1.4.2")
        assert uri.major_identity() == "package://example.com/birds@1"

    def test_major_identity_prerelease(self) -> None:
        uri = PackageUri.parse("package://example.com/birds@2.0.0-rc.1")
        assert uri.major_identity() == "package://example.com/birds@2"

    def test_major_is_decimal(self) -> None:
        uri = PackageUri.parse("package://example.com/birds@10.0.0")
        assert uri.major_identity() == "package://example.com/birds@10"

    def test_with_scheme(self) -> None:
        uri = PackageUri.parse("package://example.com/birds@1.4.2")
        assert str(uri.with_scheme(PROJECT_PACKAGE_SCHEME)) == (
            "projectpackage://example.com/birds@1.4.2"
        )

    def test_identity_ignores_version(self) -> None:
        a = PackageUri.parse("package://example.com/birds@1.0.0")
        b = PackageUri.parse("package://example.com/birds@2.3.4")
        assert a.identity == b.identity

    def test_cache_path_is_version_free(self, tmp_path: Path) -> None:
        uri = PackageUri.parse("package://example.com/pkl/birds@1.0.0")
        assert uri.cache_path(tmp_path) == tmp_path / "example.com" / "pkl" / "birds"

    def test_invalid_version(self) -> None:
        uri = PackageUri.parse("package://example.com/birds@latest")
        with pytest.raises(PackageUriError, match="语义化版本"):
            _ = uri.major
