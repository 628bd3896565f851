"""测试辅助工具

提供测试所需的临时项目创建、响应解析、桩对象等复用函数。
"""

import json
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.file_utils import FileContentResult, process_single_file_content
from core.llm import GeneratedContent


@dataclass
class TempProject:
    """临时测试项目"""
    root: Path

    def __post_init__(self):
        self.root = Path(self.root).resolve()

    def path(self, *parts: str) -> Path:
        """获取项目内路径"""
        return self.root.joinpath(*parts)

    def create_file(self, rel_path: str, content: str = "") -> Path:
        """创建文件"""
        file_path = self.path(rel_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")
        return file_path

    def create_binary_file(self, rel_path: str, content: bytes) -> Path:
        file_path = self.path(rel_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(content)
        return file_path

    def create_dir(self, rel_path: str) -> Path:
        """创建目录"""
        dir_path = self.path(rel_path)
        dir_path.mkdir(parents=True, exist_ok=True)
        return dir_path

    def cleanup(self):
        """清理临时目录"""
        if self.root.exists():
            shutil.rmtree(self.root)


@contextmanager
def create_temp_project(structure: Optional[Dict[str, Any]] = None):
    """
    创建临时测试项目（上下文管理器）

    Args:
        structure: 项目结构字典，"xxx/" 结尾为目录，其余为文件内容

    Example:
        with create_temp_project({"src/main.py": "..."}) as project:
            tool = SummarizeFileTool(project.root)
    """
    temp_dir = Path(tempfile.mkdtemp(prefix="test_project_"))
    project = TempProject(root=temp_dir)

    try:
        if structure is None:
            structure = DEFAULT_PROJECT_STRUCTURE

        for path, content in structure.items():
            if path.endswith("/"):
                project.create_dir(path.rstrip("/"))
            else:
                project.create_file(path, content or "")

        yield project
    finally:
        project.cleanup()


# 默认测试项目结构
DEFAULT_PROJECT_STRUCTURE = {
    "src/": None,
    "src/main.py": """#!/usr/bin/env python3
\"\"\"主模块\"\"\"

class MyClass:
    \"\"\"示例类\"\"\"

    def __init__(self, name: str):
        self.name = name

    def greet(self) -> str:
        return f"Hello, {self.name}!"


def main():
    obj = MyClass("World")
    print(obj.greet())


if __name__ == "__main__":
    main()
""",
    "src/utils.py": """\"\"\"工具函数\"\"\"

def helper(items, prefix=None):
    if prefix:
        return [f"{prefix}{item}" for item in items]
    return items
""",
    "docs/": None,
    "docs/README.md": "# 文档\n\n## 用法\n\n这是测试项目的文档目录。\n",
    "build/": None,
    "build/output.txt": "generated\n",
    "secrets.env": "API_KEY=xxx\n",
    ".geminiignore": """# 构建产物与敏感文件
build/
*.env
""",
}


def parse_response(response_str: str) -> Dict[str, Any]:
    """解析工具响应 JSON"""
    try:
        return json.loads(response_str)
    except json.JSONDecodeError as e:
        raise ValueError(f"响应不是有效的 JSON: {e}")


def assert_response_status(response_str: str, expected_status: str) -> Dict[str, Any]:
    """断言响应状态并返回解析结果"""
    parsed = parse_response(response_str)
    actual_status = parsed.get("status")

    if actual_status != expected_status:
        raise AssertionError(
            f"期望 status='{expected_status}'，实际 status='{actual_status}'\n"
            f"响应: {json.dumps(parsed, ensure_ascii=False, indent=2)}"
        )
    return parsed


# =============================================================================
# 桩对象
# =============================================================================

class StubContentGenerator:
    """记录调用次数的内容生成后端"""

    def __init__(self, text: str = "A short summary."):
        self.text = text
        self.calls: List[List[Dict[str, Any]]] = []

    def generate_content(self, messages, signal=None):
        self.calls.append(messages)
        return GeneratedContent(text=self.text)


class FailingContentGenerator:
    def __init__(self):
        self.calls = 0

    def generate_content(self, messages, signal=None):
        self.calls += 1
        raise RuntimeError("backend down")


@dataclass
class RecordingSink:
    """记录所有指标事件"""
    events: List[Dict[str, Any]] = field(default_factory=list)

    def record(self, event: Dict[str, Any]) -> None:
        self.events.append(event)


class ExplodingSink:
    def record(self, event: Dict[str, Any]) -> None:
        raise OSError("disk full")


class CountingReader:
    """包装 process_single_file_content 并统计调用次数"""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, file_path, root_directory, **kwargs) -> FileContentResult:
        self.calls.append({"file_path": file_path, "root": root_directory, **kwargs})
        return process_single_file_content(file_path, root_directory, **kwargs)
