"""依赖包数据模型

数据类:
- RemoteKind: 远程协议类型（OCI 制品仓库 / 普通 HTTP）
- Checksums: 包归档校验和
- Dependency: 依赖声明（名称 + URI + 协议类型）
- Metadata: 已解析的单个包版本描述
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from hpkl.core.exceptions import MetadataError

# 以该后缀结尾的依赖名走 OCI 制品仓库
OCI_NAME_SUFFIX = ".oci"

_UNSAFE_SEGMENT = re.compile(r"[/\\]|\.\.")


def _expect(data: dict, key: str, kind: type) -> Any:
    """读取可选字段，缺省为空容器，类型不符时报 MetadataError"""
    value = data.get(key)
    if value is None:
        return kind()
    if not isinstance(value, kind):
        raise MetadataError(
            f"元数据字段 {key} 类型错误: 期望 {kind.__name__}，实际 {type(value).__name__}"
        )
    return value


class RemoteKind(str, Enum):
    """远程协议类型"""
    OCI = "oci"
    HTTP = "http"

    @classmethod
    def for_name(cls, name: str) -> RemoteKind:
        return cls.OCI if name.endswith(OCI_NAME_SUFFIX) else cls.HTTP


@dataclass(frozen=True)
class Checksums:
    sha256: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"sha256": self.sha256}


@dataclass(frozen=True)
class Dependency:
    """依赖声明，协议类型在声明时确定并随值传递"""

    name: str
    uri: str
    kind: RemoteKind = RemoteKind.HTTP
    checksums: Checksums | None = None

    @classmethod
    def declare(
        cls, name: str, uri: str, checksums: Checksums | None = None,
    ) -> Dependency:
        return cls(
            name=name, uri=uri, kind=RemoteKind.for_name(name),
            checksums=checksums,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"uri": self.uri}
        if self.checksums is not None:
            data["checksums"] = self.checksums.to_dict()
        return data


@dataclass(frozen=True)
class Metadata:
    """单个包版本的元数据

    resolver_kind 记录产出该元数据的拉取器，下载归档时据此选择同一拉取器；
    不写入磁盘上的元数据 JSON。
    """

    name: str
    version: str
    package_uri: str
    package_zip_url: str = ""
    package_zip_checksums: Checksums = field(default_factory=Checksums)
    authors: tuple[str, ...] = ()
    dependencies: Mapping[str, Dependency] = field(default_factory=dict)
    description: str = ""
    source_code: str = ""
    license: str = ""
    resolver_kind: RemoteKind = RemoteKind.HTTP

    @classmethod
    def from_dict(cls, data: Any, kind: RemoteKind) -> Metadata:
        if not isinstance(data, dict):
            raise MetadataError(
                f"元数据必须是 JSON 对象，实际类型: {type(data).__name__}"
            )
        missing = [k for k in ("name", "version", "packageUri") if not data.get(k)]
        if missing:
            raise MetadataError(f"元数据缺少必填字段: {', '.join(missing)}")
        for key in ("name", "version", "packageUri"):
            if not isinstance(data[key], str):
                raise MetadataError(f"元数据字段 {key} 必须是字符串")
        # name 与 version 会拼进缓存文件名
        for key in ("name", "version"):
            if _UNSAFE_SEGMENT.search(data[key]):
                raise MetadataError(f"元数据字段 {key} 不合法: {data[key]!r}")
        name = data["name"]

        raw_deps = _expect(data, "dependencies", dict)
        deps: dict[str, Dependency] = {}
        for dep_name, info in raw_deps.items():
            if not isinstance(info, dict) or not info.get("uri") or not isinstance(info["uri"], str):
                raise MetadataError(f"依赖 '{dep_name}' 缺少 uri")
            sums = info.get("checksums")
            if sums is not None and not isinstance(sums, dict):
                raise MetadataError(f"依赖 '{dep_name}' 的 checksums 必须是对象")
            deps[dep_name] = Dependency.declare(
                dep_name, info["uri"],
                Checksums(sha256=sums.get("sha256", "")) if sums else None,
            )

        zip_sums = _expect(data, "packageZipChecksums", dict)
        return cls(
            name=name,
            version=data["version"],
            package_uri=data["packageUri"],
            package_zip_url=data.get("packageZipUrl", ""),
            package_zip_checksums=Checksums(sha256=zip_sums.get("sha256", "")),
            authors=tuple(_expect(data, "authors", list)),
            dependencies=deps,
            description=data.get("description", ""),
            source_code=data.get("sourceCode", ""),
            license=data.get("license", ""),
            resolver_kind=kind,
        )

    @classmethod
    def from_json(cls, raw: bytes | str, kind: RemoteKind) -> Metadata:
        try:
            data = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MetadataError(f"元数据 JSON 解析失败: {e}") from e
        return cls.from_dict(data, kind)

    def to_dict(self) -> dict[str, Any]:
        """序列化为 Pkl 元数据 JSON 文档"""
        data: dict[str, Any] = {
            "name": self.name,
            "packageUri": self.package_uri,
            "version": self.version,
            "packageZipUrl": self.package_zip_url,
            "packageZipChecksums": self.package_zip_checksums.to_dict(),
            "dependencies": {
                n: d.to_dict() for n, d in sorted(self.dependencies.items())
            },
            "authors": list(self.authors),
        }
        for key, value in (
            ("description", self.description),
            ("sourceCode", self.source_code),
            ("license", self.license),
        ):
            if value:
                data[key] = value
        return data
