"""配置加载测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from hpkl.core.config import Config
from hpkl.core.exceptions import ConfigError


class TestConfig:
    def test_defaults(self) -> None:
        cfg = Config()
        assert cfg.project_file == "PklProject.yml"
        assert cfg.lock_file == "PklProject.deps.json"
        assert cfg.plain_http is False
        assert cfg.package_root == Path.home() / ".pkl" / "cache" / "package-2"

    def test_missing_file_returns_defaults(self, tmp_path: Path) -> None:
        assert Config.from_file(str(tmp_path / "none.yml")) == Config()

    def test_from_file(self, tmp_path: Path) -> None:
        p = tmp_path / "config.yml"
        p.write_text(
            f"cache_dir: {tmp_path / 'cache'}\nplain_http: true\nmirror: internal\n",
            encoding="utf-8",
        )
        cfg = Config.from_file(str(p))
        assert cfg.plain_http is True
        assert cfg.package_root == tmp_path / "cache" / "package-2"
        assert cfg.extra == {"mirror": "internal"}
        assert cfg.to_dict()["plain_http"] is True

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        p = tmp_path / "config.yml"
        p.write_text("cache_dir: [", encoding="utf-8")
        with pytest.raises(ConfigError):
            Config.from_file(str(p))

    def test_top_level_not_a_mapping(self, tmp_path: Path) -> None:
        p = tmp_path / "config.yml"
        p.write_text("- plain_http\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            Config.from_file(str(p))
