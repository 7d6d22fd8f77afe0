"""项目描述加载

读取求值后的项目描述文件（PklProject.yml，即 ``pkl eval -f yaml PklProject`` 的输出），
构建由远程依赖和本地子项目组成的依赖树。

描述文件格式:
    package:
      name: birds
      baseUri: package://example.com/birds
      version: 0.5.0
    dependencies:
      fruit:
        uri: package://example.com/fruit@1.0.5
      tools.oci:
        uri: package://registry.example.com/tools@2.1.0
      sibling:
        path: ../sibling          # 本地子项目，递归加载
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from hpkl.core.dep.models import Dependency
from hpkl.core.exceptions import ProjectError
from hpkl.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_FILE = "PklProject.yml"


@dataclass
class Project:
    """项目依赖树中的一个节点"""

    name: str
    uri: str  # package://host/path@version，未声明 package 的根项目为空
    project_dir: Path
    remote_dependencies: dict[str, Dependency] = field(default_factory=dict)
    local_dependencies: dict[str, Project] = field(default_factory=dict)

    def walk_local(self) -> Iterator[Project]:
        """遍历全部传递性本地子项目，每个目录只出现一次"""
        seen: set[Path] = set()
        stack = [p for _, p in sorted(self.local_dependencies.items(), reverse=True)]
        while stack:
            project = stack.pop()
            if project.project_dir in seen:
                continue
            seen.add(project.project_dir)
            yield project
            stack.extend(
                p for _, p in sorted(project.local_dependencies.items(), reverse=True)
            )

    def all_remote_dependencies(self) -> dict[str, Dependency]:
        """收集根项目及全部本地子项目声明的远程依赖，按 URI 去重"""
        collected: dict[str, Dependency] = {}
        for project in (self, *self.walk_local()):
            for dep in project.remote_dependencies.values():
                collected.setdefault(dep.uri, dep)
        return collected


def _package_uri(data: dict, descriptor: Path) -> tuple[str, str]:
    package = data.get("package")
    if not package:
        return "", ""
    if not isinstance(package, dict):
        raise ProjectError(f"package 段必须是字典: {descriptor}")
    missing = [k for k in ("name", "baseUri", "version") if not package.get(k)]
    if missing:
        raise ProjectError(f"package 段缺少字段 {', '.join(missing)}: {descriptor}")
    return package["name"], f"{package['baseUri']}@{package['version']}"


def load_project(
    project_dir: str | Path,
    project_file: str = DEFAULT_PROJECT_FILE,
    _stack: tuple[Path, ...] = (),
) -> Project:
    """加载项目描述，本地子项目递归加载

    异常:
        ProjectError: 描述文件不存在、格式错误、子项目未声明 package 或存在循环引用
    """
    root = Path(project_dir).resolve()
    if root in _stack:
        chain = " -> ".join(str(p) for p in (*_stack, root))
        raise ProjectError(f"本地项目存在循环引用: {chain}")

    descriptor = root / project_file
    if not descriptor.is_file():
        raise ProjectError(f"项目描述文件不存在: {descriptor}")
    try:
        data = load_yaml(descriptor)
    except (yaml.YAMLError, ValueError) as e:
        raise ProjectError(f"项目描述文件无效: {descriptor}: {e}") from e

    name, uri = _package_uri(data, descriptor)
    project = Project(name=name or root.name, uri=uri, project_dir=root)

    dependencies = data.get("dependencies") or {}
    if not isinstance(dependencies, dict):
        raise ProjectError(f"dependencies 段必须是字典: {descriptor}")

    for dep_name, info in dependencies.items():
        if isinstance(info, str):
            info = {"uri": info}
        if not isinstance(info, dict):
            raise ProjectError(f"依赖 '{dep_name}' 定义无效: {descriptor}")
        for key in ("path", "uri"):
            if key in info and not isinstance(info[key], str):
                raise ProjectError(f"依赖 '{dep_name}' 的 {key} 必须是字符串: {descriptor}")

        if info.get("path"):
            child = load_project(root / info["path"], project_file, (*_stack, root))
            if not child.uri:
                raise ProjectError(
                    f"本地依赖 '{dep_name}' 未声明 package: {child.project_dir}"
                )
            project.local_dependencies[dep_name] = child
        elif info.get("uri"):
            project.remote_dependencies[dep_name] = Dependency.declare(dep_name, info["uri"])
        else:
            raise ProjectError(f"依赖 '{dep_name}' 需要 uri 或 path: {descriptor}")

    logger.debug(
        "已加载项目 %s: %d 个远程依赖, %d 个本地依赖",
        project.name, len(project.remote_dependencies), len(project.local_dependencies),
    )
    return project
