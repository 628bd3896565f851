"""文件操作指标记录

记录方式为"发出即忘"：
- 调用方通过 record_file_operation_metric() 上报
- 记录失败只打日志，绝不向调用方抛出
"""

import json
import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

logger = logging.getLogger(__name__)

FILE_OPERATION_METRIC = "file_operation"


class FileOperation(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"


class MetricsSink(Protocol):
    """指标接收端"""

    def record(self, event: Dict[str, Any]) -> None:
        ...


class JsonlMetricsSink:
    """
    追加写入 JSONL 文件的指标接收端

    使用方式：
    1. 创建实例：sink = JsonlMetricsSink(metrics_dir)
    2. 记录事件：sink.record({...})
    3. 结束时：sink.close()
    """

    def __init__(self, metrics_dir: Union[str, Path], enabled: bool = True, filename: str = "metrics.jsonl"):
        self.metrics_dir = Path(metrics_dir)
        self.enabled = enabled
        self._filepath: Optional[Path] = None
        self._file_handle = None
        # 线程锁（保证文件写入安全）
        self._lock = threading.Lock()

        if self.enabled:
            self._init_file(filename)

    def _init_file(self, filename: str) -> None:
        try:
            self.metrics_dir.mkdir(parents=True, exist_ok=True)
            self._filepath = self.metrics_dir / filename
            self._file_handle = open(self._filepath, "a", encoding="utf-8")
        except OSError as e:
            logger.warning("JsonlMetricsSink init failed: %s", e)
            self.enabled = False

    @property
    def filepath(self) -> Optional[Path]:
        return self._filepath

    def record(self, event: Dict[str, Any]) -> None:
        if not self.enabled or self._file_handle is None:
            return
        line = json.dumps(event, ensure_ascii=False)
        with self._lock:
            self._file_handle.write(line + "\n")
            self._file_handle.flush()

    def close(self) -> None:
        with self._lock:
            if self._file_handle:
                self._file_handle.close()
                self._file_handle = None
        self.enabled = False


def record_file_operation_metric(
    sink: Optional[MetricsSink],
    operation: FileOperation,
    lines: Optional[int] = None,
    mimetype: Optional[str] = None,
    extension: Optional[str] = None,
) -> None:
    """上报一次文件操作指标；sink 为 None 时不做任何事，sink 异常被吞掉并记录警告"""
    if sink is None:
        return
    event = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "metric": FILE_OPERATION_METRIC,
        "operation": operation.value,
        "lines": lines,
        "mimetype": mimetype,
        "extension": extension,
    }
    try:
        sink.record(event)
    except Exception as e:
        logger.warning("Failed to record %s metric: %s", FILE_OPERATION_METRIC, e)
