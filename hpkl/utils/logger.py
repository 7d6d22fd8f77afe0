"""hpkl 日志配置

日志统一输出到 stderr，stdout 只留给命令结果。支持文本与 JSON 两种格式，
由环境变量控制:

  HPKL_LOG_LEVEL  日志级别，默认 INFO
  HPKL_LOG_JSON   为 1 时输出 JSON 行

依赖解析相关日志可通过 ``extra={"dependency": ..., "uri": ...}`` 附带出错依赖，
JSON 格式下会作为独立字段输出。
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Mapping
from datetime import datetime, timezone

LEVEL_ENV = "HPKL_LOG_LEVEL"
JSON_ENV = "HPKL_LOG_JSON"

# 通过 logging extra 传入、需要原样输出的依赖上下文字段
_CONTEXT_FIELDS = ("dependency", "uri")


class JSONFormatter(logging.Formatter):
    """JSON 行格式器，便于 CI 流水线消费

    输出示例:
        {"timestamp": "...", "level": "ERROR", "logger": "hpkl.core.dep.resolver",
         "message": "...", "dependency": "birds", "uri": "package://..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value:
                entry[name] = value
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """配置根日志器，重复调用时替换之前的 handler"""
    reset_logging()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)-7s %(name)s: %(message)s"))
    root.addHandler(handler)


def setup_logging_from_env(environ: Mapping[str, str] | None = None) -> None:
    """按 HPKL_LOG_LEVEL / HPKL_LOG_JSON 配置日志"""
    env = os.environ if environ is None else environ
    setup_logging(
        level=env.get(LEVEL_ENV, "INFO"),
        json_output=env.get(JSON_ENV, "") == "1",
    )


def reset_logging() -> None:
    """移除并关闭根日志器上的全部 handler"""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
