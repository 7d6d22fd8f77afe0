"""包 URI 解析

将 ``scheme://host/path@version`` 拆分为结构化字段，再按需重新序列化，
替代在 URI 字符串上直接做版本后缀替换。

派生形式:
  - 主版本标识:  package://example.com/birds@0     （锁文件键）
  - 锁文件 URI:  projectpackage://example.com/birds@0.5.0
  - OCI 引用:    example.com/birds:0.5.0
  - 缓存目录:    <root>/example.com/birds          （与版本无关）
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

import semantic_version

from hpkl.core.exceptions import PackageUriError

PACKAGE_SCHEME = "package"
PROJECT_PACKAGE_SCHEME = "projectpackage"


def parse_version(version: str) -> semantic_version.Version:
    """按语义化版本规则解析版本号"""
    try:
        return semantic_version.Version(version)
    except ValueError as e:
        raise PackageUriError(f"版本号不符合语义化版本规范: '{version}'") from e


@dataclass(frozen=True)
class PackageUri:
    """结构化包 URI"""

    scheme: str
    host: str
    path: str  # 以 / 开头，不含版本段
    version: str

    @classmethod
    def parse(cls, uri: str) -> PackageUri:
        parts = urlsplit(uri)
        if not parts.scheme or not parts.netloc:
            raise PackageUriError(f"包 URI 缺少协议或主机: '{uri}'")
        base, sep, version = parts.path.rpartition("@")
        if not sep or not version:
            raise PackageUriError(f"包 URI 缺少版本号: '{uri}'")
        if not base or base == "/":
            raise PackageUriError(f"包 URI 缺少路径: '{uri}'")
        # 路径会映射为内容缓存下的目录，不允许跳出缓存根目录
        if parts.netloc in (".", "..") or "\\" in uri or "/" in version or any(
            seg in ("", ".", "..") for seg in base.split("/")[1:]
        ):
            raise PackageUriError(f"包 URI 含非法路径段: '{uri}'")
        return cls(
            scheme=parts.scheme, host=parts.netloc, path=base, version=version,
        )

    @property
    def semver(self) -> semantic_version.Version:
        return parse_version(self.version)

    @property
    def major(self) -> int:
        return self.semver.major

    @property
    def identity(self) -> tuple[str, str]:
        """包标识: (host, path)，与版本无关"""
        return (self.host, self.path)

    def major_identity(self, scheme: str | None = None) -> str:
        """主版本标识，如 package://example.com/birds@0"""
        return f"{scheme or self.scheme}://{self.host}{self.path}@{self.major}"

    def with_scheme(self, scheme: str) -> PackageUri:
        return PackageUri(
            scheme=scheme, host=self.host, path=self.path, version=self.version,
        )

    def registry_ref(self) -> str:
        """OCI 引用: host/path:version"""
        return f"{self.host}{self.path}:{self.version}"

    def cache_path(self, root: Path) -> Path:
        """内容缓存目录，按包而非按版本划分"""
        return root / self.host / self.path.lstrip("/")

    def __str__(self) -> str:
        return f"{self.scheme}://{self.host}{self.path}@{self.version}"
