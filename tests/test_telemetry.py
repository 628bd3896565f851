"""测试文件操作指标记录

测试内容：
1. JsonlMetricsSink 启用/禁用
2. record_file_operation_metric 事件格式
3. 接收端异常不外抛
"""

import json
import logging

from core.telemetry import (
    FILE_OPERATION_METRIC,
    FileOperation,
    JsonlMetricsSink,
    record_file_operation_metric,
)
from tests.utils.test_helpers import ExplodingSink, RecordingSink


def test_jsonl_sink_writes_events(tmp_path):
    sink = JsonlMetricsSink(tmp_path / "metrics")
    record_file_operation_metric(sink, FileOperation.READ, lines=3, mimetype="text/plain", extension=".txt")
    record_file_operation_metric(sink, FileOperation.READ, mimetype="image/png", extension=".png")
    sink.close()

    lines = sink.filepath.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["metric"] == FILE_OPERATION_METRIC
    assert first["operation"] == "read"
    assert first["lines"] == 3
    assert first["mimetype"] == "text/plain"
    assert first["extension"] == ".txt"
    assert "ts" in first
    assert json.loads(lines[1])["lines"] is None


def test_jsonl_sink_disabled(tmp_path):
    sink = JsonlMetricsSink(tmp_path / "metrics", enabled=False)
    sink.record({"metric": "x"})
    sink.close()
    assert sink.filepath is None
    assert not (tmp_path / "metrics").exists()


def test_record_after_close_is_noop(tmp_path):
    sink = JsonlMetricsSink(tmp_path)
    sink.close()
    sink.record({"metric": "x"})
    assert sink.filepath.read_text(encoding="utf-8") == ""


def test_none_sink_is_noop():
    record_file_operation_metric(None, FileOperation.READ, lines=1)


def test_sink_failure_is_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="core.telemetry"):
        record_file_operation_metric(ExplodingSink(), FileOperation.READ, lines=1)
    assert "disk full" in caplog.text


def test_operations():
    sink = RecordingSink()
    for operation in FileOperation:
        record_file_operation_metric(sink, operation)
    assert [e["operation"] for e in sink.events] == ["create", "read", "update"]
