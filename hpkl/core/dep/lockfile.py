"""锁文件构建与读写

PklProject.deps.json 格式:
    {
      "resolvedDependencies": {
        "package://example.com/birds@0": {
          "checksums": {"sha256": "..."},
          "type": "remote",
          "uri": "projectpackage://example.com/birds@0.5.0"
        },
        "package://example.com/sibling@1": {
          "path": "../sibling",
          "type": "local",
          "uri": "projectpackage://example.com/sibling@1.2.0"
        }
      },
      "schemaVersion": 1
    }

键为主版本标识，同一主版本只能占一个槽位；键按字典序输出，保证字节级可复现。
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from hpkl.core.dep.models import Metadata
from hpkl.core.dep.uri import PROJECT_PACKAGE_SCHEME, PackageUri
from hpkl.core.exceptions import LockFileError
from hpkl.utils.yaml_io import atomic_write

if TYPE_CHECKING:
    from hpkl.core.project import Project

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = "PklProject.deps.json"
SCHEMA_VERSION = 1


@dataclass(frozen=True)
class ResolvedDependency:
    """锁文件条目"""

    dependency_type: str  # "remote" | "local"
    uri: str
    path: str | None = None
    checksums: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.dependency_type, "uri": self.uri}
        if self.path is not None:
            data["path"] = self.path
        if self.checksums is not None:
            data["checksums"] = dict(self.checksums)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> ResolvedDependency:
        if not isinstance(data, dict) or data.get("type") not in ("remote", "local"):
            raise LockFileError(f"锁文件条目无效: {data!r}")
        return cls(
            dependency_type=data["type"],
            uri=data.get("uri", ""),
            path=data.get("path"),
            checksums=data.get("checksums"),
        )


@dataclass
class ProjectDeps:
    schema_version: int = SCHEMA_VERSION
    resolved_dependencies: dict[str, ResolvedDependency] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "schemaVersion": self.schema_version,
            "resolvedDependencies": {
                k: v.to_dict() for k, v in self.resolved_dependencies.items()
            },
        }

    def dumps(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def remote_entry(metadata: Metadata) -> tuple[str, ResolvedDependency]:
    """远程条目: 键为主版本标识，uri 为 projectpackage 协议的精确版本"""
    parsed = PackageUri.parse(metadata.package_uri)
    return parsed.major_identity(), ResolvedDependency(
        dependency_type="remote",
        uri=str(parsed.with_scheme(PROJECT_PACKAGE_SCHEME)),
        checksums={"sha256": metadata.package_zip_checksums.sha256},
    )


def local_entry(project: Project, root_dir: Path) -> tuple[str, ResolvedDependency]:
    """本地条目: path 为相对根项目目录的 POSIX 路径，不记录校验和"""
    parsed = PackageUri.parse(project.uri)
    rel = Path(os.path.relpath(project.project_dir, root_dir)).as_posix()
    return parsed.major_identity(), ResolvedDependency(
        dependency_type="local",
        uri=str(parsed.with_scheme(PROJECT_PACKAGE_SCHEME)),
        path=rel,
    )


def build_lock(resolved: Mapping[str, Metadata], project: Project) -> ProjectDeps:
    """由去重后的解析结果与项目本地依赖构建锁文件内容"""
    entries: dict[str, ResolvedDependency] = {}

    for _, metadata in sorted(resolved.items()):
        key, entry = remote_entry(metadata)
        existing = entries.get(key)
        if existing is not None and existing != entry:
            raise LockFileError(
                f"锁文件键冲突 {key}: {existing.uri} 与 {entry.uri}"
            )
        entries[key] = entry

    for local in project.walk_local():
        key, entry = local_entry(local, project.project_dir)
        if key in entries and entries[key].dependency_type == "remote":
            logger.warning("本地项目覆盖远程依赖: %s -> %s", key, entry.path)
        entries[key] = entry

    return ProjectDeps(resolved_dependencies=dict(sorted(entries.items())))


def write_lock(working_dir: str | Path, deps: ProjectDeps, file_name: str = LOCK_FILE_NAME) -> Path:
    """原子写入锁文件，返回文件路径"""
    path = Path(working_dir) / file_name
    atomic_write(path, deps.dumps())
    logger.info("锁文件已写入: %s (%d 个条目)", path, len(deps.resolved_dependencies))
    return path


def read_lock(path: str | Path) -> ProjectDeps:
    """读取已有锁文件"""
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise LockFileError(f"锁文件不是合法 JSON: {p}: {e}") from e
    if not isinstance(data, dict):
        raise LockFileError(f"锁文件格式无效: {p}")
    entries = data.get("resolvedDependencies") or {}
    return ProjectDeps(
        schema_version=data.get("schemaVersion", SCHEMA_VERSION),
        resolved_dependencies={
            k: ResolvedDependency.from_dict(v) for k, v in entries.items()
        },
    )
