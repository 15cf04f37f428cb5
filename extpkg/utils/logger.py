"""extpkg 日志配置

文本格式给人看，JSON 格式给编辑器插件 / CI 采集。
包相关日志通过 extra= 附带 spec、stage、code，JSON 输出时作为独立字段，
采集端可以直接按包或失败阶段过滤。
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

# 通过 logger.xxx(..., extra={...}) 附带的包上下文字段
CONTEXT_FIELDS = ("spec", "stage", "code")


class JSONFormatter(logging.Formatter):
    """每条日志一行 JSON

    固定字段: timestamp, level, logger, message, line
    可选字段: spec, stage, code（记录上带了才输出）, exception
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value:
                entry[name] = value
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """配置根日志器，输出到 stderr（stdout 留给命令结果）

    重复调用会先清掉旧 handler；未知级别按 INFO 处理。
    """
    reset_logging()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        JSONFormatter() if json_output
        else logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"),
    )
    root.addHandler(handler)


def reset_logging() -> None:
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
