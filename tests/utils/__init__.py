"""测试工具模块"""

from .test_helpers import create_temp_project, TempProject

__all__ = [
    "create_temp_project",
    "TempProject",
]
