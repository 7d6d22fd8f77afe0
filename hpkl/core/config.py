"""集中配置管理

提供统一的配置入口，支持从 YAML 文件加载 + 编程式覆盖。
配置由 CLI 入口构造一次，通过 ServiceContainer 显式传递，不设全局单例。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path

import yaml

from hpkl.core.exceptions import ConfigError
from hpkl.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "~/.hpkl/config.yml"

# 与 pkl 自身的缓存布局保持一致
PACKAGE_CACHE_SUBDIR = "package-2"


def _default_cache_dir() -> str:
    return str(Path.home() / ".pkl" / "cache")


@dataclass
class Config:
    """hpkl 全局配置"""

    # 目录
    cache_dir: str = field(default_factory=_default_cache_dir)
    project_file: str = "PklProject.yml"
    lock_file: str = "PklProject.deps.json"

    # 网络
    plain_http: bool = False
    http_timeout: int = 30

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @property
    def package_root(self) -> Path:
        """内容缓存根目录: <cache_dir>/package-2"""
        return Path(self.cache_dir).expanduser() / PACKAGE_CACHE_SUBDIR

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(Path(path).expanduser())
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigError(f"配置文件无效: {path}: {e}") from e
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()} - {"extra"}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        logger.info("配置已加载: %s", path)
        return cfg

    def to_dict(self) -> dict:
        return asdict(self)
