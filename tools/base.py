"""工具基类与响应协议支持

工具对框架暴露两层接口：
- execute(params, signal) -> ToolResult：llm_content（给模型）+ return_display（给用户）
- run(parameters) -> str：把 ToolResult 包装为《通用工具响应协议》的标准信封
"""

import json
import threading
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Any, List, Optional
from pathlib import Path

from pydantic import BaseModel


# =============================================================================
# 响应协议枚举与常量
# =============================================================================

class ToolStatus(str, Enum):
    """
    工具运行状态枚举（遵循《通用工具响应协议》）

    - SUCCESS: 任务完全按预期执行，无截断、无回退、无错误
    - PARTIAL: 结果可用但有"折扣"（截断/回退/部分失败）
    - ERROR: 无法提供有效结果
    """
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class ErrorCode(str, Enum):
    """标准错误码枚举"""
    NOT_FOUND = "NOT_FOUND"           # 文件/路径不存在
    ACCESS_DENIED = "ACCESS_DENIED"   # 路径不在工作区内或被忽略
    INVALID_PARAM = "INVALID_PARAM"   # 参数校验失败
    TIMEOUT = "TIMEOUT"               # 工具在获取有效数据前超时/被取消
    INTERNAL_ERROR = "INTERNAL_ERROR" # 未分类的内部异常
    IS_DIRECTORY = "IS_DIRECTORY"     # 路径是目录而非文件
    BINARY_FILE = "BINARY_FILE"       # 文件是二进制格式
    UNAVAILABLE = "UNAVAILABLE"       # 依赖的后端不可用


# =============================================================================
# 工具参数与结果
# =============================================================================

class ToolParameter(BaseModel):
    """工具参数定义"""
    name: str
    type: str
    description: str
    required: bool = True
    default: Any = None


class ToolResult(BaseModel):
    """
    单次工具调用结果

    Attributes:
        llm_content: 回填给模型的内容（字符串或内联数据 part）
        return_display: 给用户看的展示文本
        error_code: 非空表示这是一个错误结果
        partial: 结果可用但有折扣（例如截断）
    """
    llm_content: Any
    return_display: str = ""
    error_code: Optional[ErrorCode] = None
    partial: bool = False

    @property
    def is_error(self) -> bool:
        return self.error_code is not None


# =============================================================================
# 工具基类
# =============================================================================

class Tool(ABC):
    """
    工具基类

    Attributes:
        name: 工具名称
        description: 工具描述
        _project_root: 项目根目录（沙箱边界）
        _working_dir: 工作目录
    """

    def __init__(
        self,
        name: str,
        description: str,
        project_root: Optional[Path] = None,
        working_dir: Optional[Path] = None,
    ):
        self.name = name
        self.description = description

        if project_root is not None:
            self._project_root = Path(project_root).resolve()
        else:
            self._project_root = None

        if working_dir is not None:
            self._working_dir = Path(working_dir).resolve()
        elif self._project_root is not None:
            self._working_dir = self._project_root
        else:
            self._working_dir = None

    # -------------------------------------------------------------------------
    # 抽象方法
    # -------------------------------------------------------------------------

    @abstractmethod
    def get_parameters(self) -> List[ToolParameter]:
        """获取工具参数定义（必须实现）"""

    @abstractmethod
    def validate_tool_params(self, params: Dict[str, Any]) -> Optional[str]:
        """校验参数，合法返回 None，否则返回面向用户的错误消息（不抛异常）"""

    @abstractmethod
    def execute(self, params: Dict[str, Any], signal: Optional[threading.Event] = None) -> ToolResult:
        """执行工具（必须实现）"""

    def get_description(self, params: Dict[str, Any]) -> str:
        """调用的简短描述（用于 UI）"""
        return json.dumps(params, ensure_ascii=False)

    # -------------------------------------------------------------------------
    # 协议适配
    # -------------------------------------------------------------------------

    def run(self, parameters: Dict[str, Any]) -> str:
        """
        执行工具并返回协议信封

        Returns:
            JSON 格式的响应字符串（遵循《通用工具响应协议》）
        """
        start_time = time.monotonic()
        params_input = dict(parameters) if isinstance(parameters, dict) else {"input": parameters}

        result = self.execute(parameters)
        time_ms = int((time.monotonic() - start_time) * 1000)

        if result.is_error:
            message = result.llm_content if isinstance(result.llm_content, str) else result.return_display
            return self.create_error_response(
                error_code=result.error_code,
                message=message,
                params_input=params_input,
                time_ms=time_ms,
                extra_context={"display": result.return_display},
            )

        data = {"content": result.llm_content, "display": result.return_display}
        text = result.llm_content if isinstance(result.llm_content, str) else result.return_display
        if result.partial:
            return self.create_partial_response(data=data, text=text, params_input=params_input, time_ms=time_ms)
        return self.create_success_response(data=data, text=text, params_input=params_input, time_ms=time_ms)

    def get_cwd_rel(self) -> str:
        """工作目录相对于项目根目录的路径（失败时返回 "."）"""
        if self._working_dir is None or self._project_root is None:
            return "."
        try:
            rel = self._working_dir.relative_to(self._project_root)
            return str(rel) if str(rel) else "."
        except ValueError:
            return "."

    # -------------------------------------------------------------------------
    # 响应构建辅助方法（遵循《通用工具响应协议》）
    # -------------------------------------------------------------------------

    def create_success_response(
        self,
        data: Dict[str, Any],
        text: str,
        params_input: Dict[str, Any],
        time_ms: int,
        extra_stats: Optional[Dict[str, Any]] = None,
    ) -> str:
        """创建成功响应（status="success"）"""
        return self._build_response(ToolStatus.SUCCESS, data, text, params_input, time_ms, extra_stats)

    def create_partial_response(
        self,
        data: Dict[str, Any],
        text: str,
        params_input: Dict[str, Any],
        time_ms: int,
        extra_stats: Optional[Dict[str, Any]] = None,
    ) -> str:
        """创建部分成功响应（status="partial"），适用于截断等有折扣的结果"""
        return self._build_response(ToolStatus.PARTIAL, data, text, params_input, time_ms, extra_stats)

    def create_error_response(
        self,
        error_code: ErrorCode,
        message: str,
        params_input: Dict[str, Any],
        time_ms: int = 0,
        extra_context: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        创建错误响应（status="error"）

        注意：error 字段仅在此情况下存在，data 为空对象。
        """
        context: Dict[str, Any] = {
            "cwd": self.get_cwd_rel(),
            "params_input": params_input,
        }
        if extra_context:
            context.update(extra_context)

        payload = {
            "status": ToolStatus.ERROR.value,
            "data": {},
            "text": message,
            "error": {
                "code": error_code.value,
                "message": message,
            },
            "stats": {"time_ms": time_ms},
            "context": context,
        }
        return json.dumps(payload, ensure_ascii=False, indent=2)

    def _build_response(
        self,
        status: ToolStatus,
        data: Dict[str, Any],
        text: str,
        params_input: Dict[str, Any],
        time_ms: int,
        extra_stats: Optional[Dict[str, Any]] = None,
    ) -> str:
        """顶层字段严格限制为：status, data, text, stats, context"""
        stats: Dict[str, Any] = {"time_ms": time_ms}
        if extra_stats:
            stats.update(extra_stats)

        payload = {
            "status": status.value,
            "data": data,
            "text": text,
            "stats": stats,
            "context": {
                "cwd": self.get_cwd_rel(),
                "params_input": params_input,
            },
        }
        return json.dumps(payload, ensure_ascii=False, indent=2)

    # -------------------------------------------------------------------------
    # 其他辅助方法
    # -------------------------------------------------------------------------

    def get_parameter_schema(self) -> Dict[str, Any]:
        """参数定义 → JSON Schema 对象"""
        properties: Dict[str, Any] = {}
        required: List[str] = []
        for param in self.get_parameters():
            properties[param.name] = {"type": param.type, "description": param.description}
            if param.required:
                required.append(param.name)
        schema: Dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required
        return schema

    def __str__(self) -> str:
        return f"Tool(name={self.name})"

    def __repr__(self) -> str:
        return self.__str__()
