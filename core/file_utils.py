"""文件内容获取

为 summarize_file 等工具提供统一的"读取单个文件"能力：
- 存在性 / 目录 / 大小检查
- 文件类型检测（text / image / pdf / svg / binary）
- 文本读取（编码回退、单行截断、行数上限）
- 片段提取（只返回声明/标题等关键行）

所有预期内的失败都以 FileContentResult.error 返回，不抛异常。
"""

import base64
import logging
import mimetypes
import re
import threading
from pathlib import Path
from typing import Any, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel

from core.paths import make_relative

logger = logging.getLogger(__name__)

# 文本文件默认最多读取的行数
DEFAULT_MAX_LINES_TEXT_FILE = 2000
# 单行最大字符数，超过则截断
MAX_LINE_LENGTH_TEXT_FILE = 2000
# 文件大小硬上限（20MB）
MAX_FILE_SIZE_BYTES = 20 * 1024 * 1024
# SVG 作为文本读取的上限（1MB）
MAX_SVG_SIZE_BYTES = 1 * 1024 * 1024
# 二进制检测的采样大小
BINARY_CHECK_SIZE = 4096
# 非打印字符占比超过该值视为二进制
NON_PRINTABLE_RATIO = 0.3
# 片段提取的默认上限
DEFAULT_MAX_SNIPPETS = 200
# 没有命中任何声明时回退返回的文件头行数
SNIPPET_FALLBACK_LINES = 50

FileType = Literal["text", "image", "pdf", "svg", "binary"]

BINARY_EXTENSIONS = {
    ".zip", ".tar", ".gz", ".tgz", ".bz2", ".xz", ".7z", ".rar",
    ".exe", ".dll", ".so", ".dylib", ".o", ".a", ".lib", ".bin", ".dat",
    ".class", ".jar", ".war", ".pyc", ".pyo", ".wasm",
    ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".odt", ".ods", ".odp",
    ".sqlite", ".db", ".mp3", ".mp4", ".mov", ".avi", ".wav", ".flac", ".ogg",
    ".woff", ".woff2", ".ttf", ".otf", ".eot",
}

# mimetypes 会把这些源码扩展名误判为媒体类型
TEXT_MIME_OVERRIDES = {
    ".ts": "text/x-typescript",
    ".tsx": "text/x-typescript",
    ".mts": "text/x-typescript",
    ".cts": "text/x-typescript",
}

# 片段提取：声明、导入、Markdown 标题
SNIPPET_PATTERNS = [
    re.compile(r"^\s*(async\s+def|def|class)\s+\w+"),
    re.compile(r"^\s*(export\s+)?(default\s+)?(async\s+)?(function|class|interface|enum|type)\s+\w+"),
    re.compile(r"^\s*(export\s+)?(const|let|var)\s+\w+\s*=\s*(async\s+)?(\(|function)"),
    re.compile(r"^\s*(pub(\([^)]*\))?\s+)?(fn|struct|enum|trait|impl|mod)\b"),
    re.compile(r"^\s*func\s+(\([^)]*\)\s*)?\w+"),
    re.compile(r"^\s*((public|private|protected|static|abstract|final)\s+)+[\w<>\[\], ]+\s+\w+\s*\("),
    re.compile(r"^#{1,6}\s+\S"),
]


class FileContentResult(BaseModel):
    """单文件内容获取结果，error 与 llm_content 二者只有一个有效"""

    llm_content: Any = None
    return_display: str = ""
    error: Optional[str] = None
    error_type: Optional[str] = None
    file_type: Optional[FileType] = None
    line_count: Optional[int] = None
    is_truncated: bool = False
    lines_shown: Optional[Tuple[int, int]] = None
    snippet_count: Optional[int] = None

    @property
    def is_text(self) -> bool:
        return self.error is None and isinstance(self.llm_content, str)


def get_specific_mime_type(file_path: Union[str, Path]) -> Optional[str]:
    """根据扩展名推断 MIME 类型（无法推断时返回 None）"""
    suffix = Path(file_path).suffix.lower()
    if suffix in TEXT_MIME_OVERRIDES:
        return TEXT_MIME_OVERRIDES[suffix]
    mime_type, _ = mimetypes.guess_type(str(file_path))
    return mime_type


def is_binary_file(file_path: Union[str, Path]) -> bool:
    """读取文件头部采样：含 null byte 或非打印字符过多则判定为二进制"""
    try:
        with open(file_path, "rb") as f:
            chunk = f.read(BINARY_CHECK_SIZE)
    except OSError:
        return False
    if not chunk:
        return False
    if b"\x00" in chunk:
        return True
    non_printable = sum(1 for byte in chunk if byte < 9 or (13 < byte < 32))
    return non_printable / len(chunk) > NON_PRINTABLE_RATIO


def detect_file_type(file_path: Union[str, Path]) -> FileType:
    """检测文件类型：扩展名优先，其次内容采样"""
    suffix = Path(file_path).suffix.lower()
    if suffix in TEXT_MIME_OVERRIDES:
        return "text"
    if suffix == ".svg":
        return "svg"

    mime_type = get_specific_mime_type(file_path) or ""
    if mime_type.startswith("image/"):
        return "image"
    if mime_type == "application/pdf":
        return "pdf"
    if suffix in BINARY_EXTENSIONS:
        return "binary"
    if is_binary_file(file_path):
        return "binary"
    return "text"


def extract_snippets(text: str, max_snippets: int = DEFAULT_MAX_SNIPPETS) -> Tuple[str, int]:
    """
    提取关键行（函数/类/类型声明、Markdown 标题）

    每个片段形如 "L<行号>: <原始行>"。没有命中任何模式时回退为文件开头若干行。

    Returns:
        (snippet_text, snippet_count)
    """
    lines = text.splitlines()
    snippets: List[str] = []
    for lineno, line in enumerate(lines, start=1):
        if any(pattern.match(line) for pattern in SNIPPET_PATTERNS):
            snippets.append(f"L{lineno}: {_clip_line(line.rstrip())}")
            if len(snippets) >= max_snippets:
                break

    if not snippets:
        head = lines[:SNIPPET_FALLBACK_LINES]
        snippets = [f"L{lineno}: {_clip_line(line.rstrip())}" for lineno, line in enumerate(head, start=1)]

    return "\n".join(snippets), len(snippets)


def _clip_line(line: str) -> str:
    if len(line) > MAX_LINE_LENGTH_TEXT_FILE:
        return line[:MAX_LINE_LENGTH_TEXT_FILE] + "... [truncated]"
    return line


def _read_text(path: Path) -> str:
    """UTF-8 严格读取，失败回退到 errors="replace" """
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        logger.debug("UTF-8 decode failed for %s, falling back to replacement", path)
        return path.read_text(encoding="utf-8", errors="replace")


def _error(message: str, display: str, error_type: str = "READ_ERROR") -> FileContentResult:
    return FileContentResult(llm_content=message, return_display=display, error=message, error_type=error_type)


def process_single_file_content(
    file_path: Union[str, Path],
    root_directory: Union[str, Path],
    snippets: bool = False,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
    signal: Optional[threading.Event] = None,
) -> FileContentResult:
    """
    读取单个文件并按类型整理为可交给 LLM 的内容

    Args:
        file_path: 绝对路径
        root_directory: 用于计算相对路径显示
        snippets: True 时只返回关键片段（仅对文本文件生效）
        offset: 起始行（0-based），仅文本文件
        limit: 最多读取的行数，仅文本文件
        signal: 取消信号（已 set 则直接返回取消错误）

    Returns:
        FileContentResult
    """
    path = Path(file_path)
    relative = make_relative(path, root_directory)

    if signal is not None and signal.is_set():
        return _error("Operation cancelled.", "Operation cancelled.", "CANCELLED")

    try:
        if not path.exists():
            return _error(f"File not found: {path}", "File not found.", "NOT_FOUND")
        if path.is_dir():
            return _error(
                f"Path is a directory, not a file: {path}",
                "Path is a directory.",
                "IS_DIRECTORY",
            )
        file_size = path.stat().st_size
    except OSError as e:
        return _error(f"Error accessing file {path}: {e}", f"Error accessing file: {e}")

    if file_size > MAX_FILE_SIZE_BYTES:
        size_mb = file_size / (1024 * 1024)
        return _error(
            f"File size exceeds the 20MB limit: {path} ({size_mb:.2f}MB)",
            f"File size exceeds the 20MB limit ({size_mb:.2f}MB).",
            "FILE_TOO_LARGE",
        )

    file_type = detect_file_type(path)
    logger.debug("Detected file type %s for %s", file_type, relative)

    try:
        if file_type == "binary":
            return _error(
                f"Cannot display content of binary file: {relative}",
                f"Skipped binary file: {relative}",
                "BINARY_FILE",
            )

        if file_type == "svg":
            if file_size > MAX_SVG_SIZE_BYTES:
                return _error(
                    f"Cannot display content of SVG file larger than 1MB: {relative}",
                    f"Skipped large SVG file (>1MB): {relative}",
                    "FILE_TOO_LARGE",
                )
            content = _read_text(path)
            if snippets:
                snippet_text, count = extract_snippets(content)
                return FileContentResult(
                    llm_content=snippet_text,
                    file_type="svg",
                    line_count=len(content.splitlines()),
                    snippet_count=count,
                )
            return FileContentResult(
                llm_content=content,
                return_display=f"Read SVG as text: {relative}",
                file_type="svg",
                line_count=len(content.splitlines()),
            )

        if file_type in ("image", "pdf"):
            data = base64.b64encode(path.read_bytes()).decode("ascii")
            mime_type = get_specific_mime_type(path) or "application/octet-stream"
            return FileContentResult(
                llm_content={"inline_data": {"mime_type": mime_type, "data": data}},
                return_display=f"Read {file_type} file: {relative}",
                file_type=file_type,
            )

        return _process_text(path, relative, snippets, offset, limit)
    except OSError as e:
        return _error(f"Error reading file {path}: {e}", f"Error reading file: {e}")


def _process_text(
    path: Path,
    relative: str,
    snippets: bool,
    offset: Optional[int],
    limit: Optional[int],
) -> FileContentResult:
    text = _read_text(path)
    lines = text.splitlines()
    total = len(lines)

    if snippets:
        snippet_text, count = extract_snippets(text)
        return FileContentResult(
            llm_content=snippet_text,
            return_display="",
            file_type="text",
            line_count=total,
            snippet_count=count,
        )

    start = max(0, offset or 0)
    max_lines = limit if limit and limit > 0 else DEFAULT_MAX_LINES_TEXT_FILE
    end = min(start + max_lines, total)
    selected = lines[start:end]

    lines_clipped = False
    formatted: List[str] = []
    for line in selected:
        clipped = _clip_line(line)
        if clipped != line:
            lines_clipped = True
        formatted.append(clipped)

    range_truncated = start > 0 or end < total
    is_truncated = range_truncated or lines_clipped
    content = "\n".join(formatted)

    if range_truncated:
        content = (
            f"[File content truncated: showing lines {start + 1}-{end} of {total} total lines.]\n" + content
        )
    elif lines_clipped:
        content = (
            f"[File content partially truncated: some lines exceeded maximum length of "
            f"{MAX_LINE_LENGTH_TEXT_FILE} characters.]\n" + content
        )

    display = ""
    if range_truncated:
        display = f"Read lines {start + 1}-{end} of {total} from {relative}"
    elif lines_clipped:
        display = f"Read all {total} lines from {relative} (some lines were shortened)"

    return FileContentResult(
        llm_content=content,
        return_display=display,
        file_type="text",
        line_count=total,
        is_truncated=is_truncated,
        lines_shown=(start + 1, end) if total else (0, 0),
    )
