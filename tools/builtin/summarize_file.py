"""文件摘要工具 (summarize_file)

根据能力开关提供两种行为：
- 片段提取（supports_snippet_extraction）：支持 snippets / name_only，直接返回内容，不调用 LLM
- 摘要（supports_summarization）：读取完整内容后交给内容生成后端生成摘要

执行流程：
    校验 → name_only 快速路径 → 获取内容 → 记录指标 → 返回内容 / 生成摘要
所有预期内的失败都作为 ToolResult 返回，不抛异常。
"""

import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from core.file_utils import FileContentResult, get_specific_mime_type, process_single_file_content
from core.llm import ContentGenerator
from core.paths import make_relative, shorten_path
from core.telemetry import FileOperation, MetricsSink, record_file_operation_metric
from core.workspace import GEMINI_IGNORE_FILE_NAME, IgnorePolicy, WorkspaceContext
from prompts.tools_prompts.summarize_file_prompt import summarize_file_prompt, summarize_file_snippets_prompt
from ..base import ErrorCode, Tool, ToolParameter, ToolResult

logger = logging.getLogger(__name__)

CONTENT_GENERATOR_UNAVAILABLE = (
    "Content generator is not available. This may be due to a misconfiguration, missing dependencies, "
    "or a failed initialization. Please check your configuration settings and ensure all required "
    "dependencies are installed and properly set up."
)
NON_TEXT_SUMMARY_ERROR = "Cannot summarize non-text files."
NON_TEXT_SNIPPETS_ERROR = "Cannot extract snippets from non-text files."
SUMMARY_SUCCESS_DISPLAY = "Successfully summarized file."
SUMMARY_INSTRUCTION = "Please summarize the following file content:"
PATH_UNAVAILABLE = "Path unavailable"

# 获取内容时的错误类型 → 协议错误码
ACQUISITION_ERROR_CODES = {
    "NOT_FOUND": ErrorCode.NOT_FOUND,
    "IS_DIRECTORY": ErrorCode.IS_DIRECTORY,
    "BINARY_FILE": ErrorCode.BINARY_FILE,
    "FILE_TOO_LARGE": ErrorCode.INVALID_PARAM,
    "CANCELLED": ErrorCode.TIMEOUT,
}

ContentReader = Callable[..., FileContentResult]


class SummarizeFileParams(BaseModel):
    """summarize_file 参数（严格类型，未知字段忽略）"""
    model_config = ConfigDict(strict=True)

    absolute_path: str


class SnippetFileParams(SummarizeFileParams):
    """支持片段提取时的参数"""
    snippets: Optional[bool] = None
    name_only: Optional[bool] = None


_PYDANTIC_TYPE_NAMES = {
    "string_type": "string",
    "bool_type": "boolean",
    "model_type": "object",
    "model_attributes_type": "object",
    "dict_type": "object",
}


def format_validation_error(error: ValidationError) -> str:
    """把 pydantic 的第一个校验错误转成简短的 JSON-Schema 风格消息"""
    first = error.errors()[0]
    loc = [str(part) for part in first.get("loc", ())]
    err_type = first.get("type", "")
    if err_type == "missing" and loc:
        parent = "/".join(["params", *loc[:-1]])
        return f"{parent} must have required property '{loc[-1]}'"
    target = "/".join(["params", *loc])
    expected = _PYDANTIC_TYPE_NAMES.get(err_type)
    if expected:
        return f"{target} must be {expected}"
    return f"{target}: {first.get('msg', 'is invalid')}"


class SummarizeFileTool(Tool):
    """文件摘要 / 片段提取工具"""

    NAME = "summarize_file"

    def __init__(
        self,
        workspace: Union[WorkspaceContext, str, Path],
        ignore_policy: Optional[IgnorePolicy] = None,
        content_generator: Optional[ContentGenerator] = None,
        metrics: Optional[MetricsSink] = None,
        supports_snippet_extraction: bool = False,
        supports_summarization: bool = True,
        content_reader: ContentReader = process_single_file_content,
        name: str = NAME,
    ):
        """
        Args:
            workspace: 工作区（单根目录或 WorkspaceContext）
            ignore_policy: 忽略策略，默认读取各根目录的 .geminiignore
            content_generator: 内容生成后端（摘要模式需要）
            metrics: 指标接收端（None 则不记录）
            supports_snippet_extraction: 是否支持 snippets / name_only
            supports_summarization: 是否对完整内容生成摘要
            content_reader: 内容获取函数
            name: 工具名称
        """
        if not isinstance(workspace, WorkspaceContext):
            workspace = WorkspaceContext(workspace)
        self._workspace = workspace
        self._ignore_policy = ignore_policy if ignore_policy is not None else IgnorePolicy.from_workspace(workspace)
        self._content_generator = content_generator
        self._metrics = metrics
        self._content_reader = content_reader
        self.supports_snippet_extraction = supports_snippet_extraction
        self.supports_summarization = supports_summarization

        description = summarize_file_prompt
        if supports_snippet_extraction:
            description = description.rstrip("\n") + "\n" + summarize_file_snippets_prompt
        super().__init__(name=name, description=description, project_root=workspace.target_dir)

    @property
    def params_model(self) -> type:
        return SnippetFileParams if self.supports_snippet_extraction else SummarizeFileParams

    # -------------------------------------------------------------------------
    # 校验
    # -------------------------------------------------------------------------

    def validate_tool_params(self, params: Dict[str, Any]) -> Optional[str]:
        failure = self._check_params(params)
        return failure[1] if failure else None

    def _check_params(self, params: Any) -> Optional[Tuple[ErrorCode, str]]:
        """按顺序校验，遇到第一个失败即返回 (错误码, 消息)"""
        try:
            self.params_model.model_validate(params)
        except ValidationError as e:
            return ErrorCode.INVALID_PARAM, format_validation_error(e)

        file_path = params["absolute_path"]
        if not os.path.isabs(file_path):
            return (
                ErrorCode.INVALID_PARAM,
                f"File path must be absolute, but was relative: {file_path}. You must provide an absolute path.",
            )

        if not self._workspace.is_path_within_workspace(file_path):
            directories = self._workspace.get_directories()
            if len(directories) == 1:
                message = f"File path must be within the root directory ({directories[0]}): {file_path}"
            else:
                joined = ", ".join(str(d) for d in directories)
                message = f"File path must be within one of the workspace directories: {joined}"
            return ErrorCode.ACCESS_DENIED, message

        if self._ignore_policy.should_ignore_file(file_path):
            return (
                ErrorCode.ACCESS_DENIED,
                f"File path '{file_path}' is ignored by {GEMINI_IGNORE_FILE_NAME} pattern(s).",
            )
        return None

    def get_description(self, params: Dict[str, Any]) -> str:
        if not isinstance(params, dict):
            return PATH_UNAVAILABLE
        file_path = params.get("absolute_path")
        if not isinstance(file_path, str) or not file_path.strip():
            return PATH_UNAVAILABLE
        return shorten_path(make_relative(file_path, self._workspace.target_dir))

    # -------------------------------------------------------------------------
    # 执行
    # -------------------------------------------------------------------------

    def execute(self, params: Dict[str, Any], signal: Optional[threading.Event] = None) -> ToolResult:
        failure = self._check_params(params)
        if failure:
            code, message = failure
            logger.debug("summarize_file rejected params: %s", message)
            return ToolResult(
                llm_content=f"Error: Invalid parameters provided. Reason: {message}",
                return_display=message,
                error_code=code,
            )

        file_path = params["absolute_path"]
        root = self._workspace.root_for(file_path) or self._workspace.target_dir
        relative = make_relative(file_path, root)

        if self.supports_snippet_extraction and params.get("name_only"):
            return self._describe_file(file_path, relative)

        snippets = self.supports_snippet_extraction and bool(params.get("snippets"))
        result = self._content_reader(file_path, root, snippets=snippets, signal=signal)
        if result.error:
            logger.debug("Content acquisition failed for %s: %s", relative, result.error_type)
            return ToolResult(
                llm_content=result.error,
                return_display=result.return_display,
                error_code=ACQUISITION_ERROR_CODES.get(result.error_type, ErrorCode.INTERNAL_ERROR),
            )

        record_file_operation_metric(
            self._metrics,
            FileOperation.READ,
            lines=result.line_count if result.is_text else None,
            mimetype=get_specific_mime_type(file_path),
            extension=Path(file_path).suffix,
        )

        if snippets:
            if not result.is_text or result.snippet_count is None:
                return ToolResult(
                    llm_content=NON_TEXT_SNIPPETS_ERROR,
                    return_display=NON_TEXT_SNIPPETS_ERROR,
                    error_code=ErrorCode.BINARY_FILE,
                )
            header = f"--- Snippets from {relative} ({result.snippet_count} of {result.line_count} lines) ---"
            return ToolResult(
                llm_content=f"{header}\n{result.llm_content}",
                return_display=f"Extracted {result.snippet_count} snippet(s) from {shorten_path(relative)}",
            )

        if not self.supports_summarization:
            return ToolResult(
                llm_content=result.llm_content,
                return_display=result.return_display,
                partial=result.is_truncated,
            )

        return self._summarize(result, signal)

    def _describe_file(self, file_path: str, relative: str) -> ToolResult:
        """name_only 快速路径：不读文件、不记指标、不调用后端"""
        path = Path(file_path)
        metadata = "\n".join([
            f"Path: {relative}",
            f"Name: {path.name}",
            f"Extension: {path.suffix or '(none)'}",
        ])
        return ToolResult(llm_content=metadata, return_display=shorten_path(relative))

    def _summarize(self, result: FileContentResult, signal: Optional[threading.Event]) -> ToolResult:
        if not result.is_text:
            return ToolResult(
                llm_content=NON_TEXT_SUMMARY_ERROR,
                return_display=NON_TEXT_SUMMARY_ERROR,
                error_code=ErrorCode.BINARY_FILE,
            )

        if self._content_generator is None:
            return ToolResult(
                llm_content=CONTENT_GENERATOR_UNAVAILABLE,
                return_display=CONTENT_GENERATOR_UNAVAILABLE,
                error_code=ErrorCode.UNAVAILABLE,
            )

        messages: List[Dict[str, Any]] = [
            {"role": "user", "parts": [{"text": f"{SUMMARY_INSTRUCTION}\n\n{result.llm_content}"}]}
        ]
        try:
            summary = self._content_generator.generate_content(messages, signal=signal)
        except Exception as e:
            logger.warning("summarize_file backend call failed: %s", e)
            message = f"Error summarizing file: {e}"
            return ToolResult(llm_content=message, return_display=message, error_code=ErrorCode.INTERNAL_ERROR)

        return ToolResult(llm_content=summary.text, return_display=SUMMARY_SUCCESS_DISPLAY)

    def get_parameters(self) -> List[ToolParameter]:
        parameters = [
            ToolParameter(
                name="absolute_path",
                type="string",
                description="The absolute path to the file to summarize (e.g., '/home/user/project/file.txt'). "
                            "Relative paths are not supported. You must provide an absolute path.",
                required=True,
            ),
        ]
        if self.supports_snippet_extraction:
            parameters.extend([
                ToolParameter(
                    name="snippets",
                    type="boolean",
                    description="Return only the relevant excerpts of the file instead of its full content.",
                    required=False,
                    default=False,
                ),
                ToolParameter(
                    name="name_only",
                    type="boolean",
                    description="Return only the file's relative path, name and extension without reading it.",
                    required=False,
                    default=False,
                ),
            ])
        return parameters
