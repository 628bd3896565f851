"""Pytest 配置和共享 fixtures"""

import pytest

from core.config import SANDBOX_ENV, SYSTEM_MD_ENV, WRITE_SYSTEM_MD_ENV
from tests.utils.test_helpers import (
    CountingReader,
    RecordingSink,
    StubContentGenerator,
    create_temp_project,
)


@pytest.fixture
def temp_project():
    """
    提供临时测试项目 fixture

    Usage:
        def test_something(temp_project):
            tool = SummarizeFileTool(temp_project.root)
    """
    with create_temp_project() as project:
        yield project


@pytest.fixture
def clean_prompt_env(monkeypatch, tmp_path):
    """清空提示词相关环境变量，并切换到一个非 git 的临时目录"""
    for key in (SYSTEM_MD_ENV, WRITE_SYSTEM_MD_ENV, SANDBOX_ENV):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def stub_generator():
    return StubContentGenerator()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def reader():
    return CountingReader()


@pytest.fixture
def summarize_tool(temp_project, stub_generator, sink, reader):
    """摘要模式的 SummarizeFileTool"""
    from tools.builtin.summarize_file import SummarizeFileTool
    return SummarizeFileTool(
        temp_project.root,
        content_generator=stub_generator,
        metrics=sink,
        content_reader=reader,
    )


@pytest.fixture
def snippet_tool(temp_project, sink, reader):
    """片段提取模式的 SummarizeFileTool"""
    from tools.builtin.summarize_file import SummarizeFileTool
    return SummarizeFileTool(
        temp_project.root,
        metrics=sink,
        content_reader=reader,
        supports_snippet_extraction=True,
        supports_summarization=False,
    )
