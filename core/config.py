"""配置管理"""

import os
from pathlib import Path
from typing import Optional, Literal, Tuple
from pydantic import BaseModel

from core.env import load_env, env_flag
from core.git_utils import is_git_repository

load_env()

# Agent 的配置目录（相对于进程工作目录）
GEMINI_CONFIG_DIR = ".gemini"
SYSTEM_MD_FILENAME = "system.md"

# 系统提示词覆盖/导出开关
SYSTEM_MD_ENV = "GEMINI_SYSTEM_MD"
WRITE_SYSTEM_MD_ENV = "GEMINI_WRITE_SYSTEM_MD"
SANDBOX_ENV = "SANDBOX"
SEATBELT_SANDBOX_VALUE = "sandbox-exec"

SandboxMode = Literal["seatbelt", "container", "none"]


def default_system_md_path() -> Path:
    """默认覆盖文件路径：<cwd>/.gemini/system.md"""
    return (Path.cwd() / GEMINI_CONFIG_DIR / SYSTEM_MD_FILENAME).resolve()


def parse_switch(value: Optional[str], default_path: Path) -> Tuple[bool, Path]:
    """
    解析三态开关

    - 未设置 / "" / "0" / "false" → 关闭
    - "1" / "true" → 开启，使用默认路径
    - 其他任意字符串 → 开启，并把该字符串当作自定义路径

    大小写只影响比较，自定义路径保留原始大小写。

    Returns:
        (enabled, path)
    """
    if value is None:
        return False, default_path
    raw = value.strip()
    lowered = raw.lower()
    if lowered in {"", "0", "false"}:
        return False, default_path
    if lowered in {"1", "true"}:
        return True, default_path
    return True, Path(raw).expanduser().resolve()


def detect_sandbox_mode(value: Optional[str]) -> SandboxMode:
    """SANDBOX=sandbox-exec → seatbelt；其他非空值 → container；未设置 → none"""
    if value == SEATBELT_SANDBOX_VALUE:
        return "seatbelt"
    if value:
        return "container"
    return "none"


class PromptEnvironment(BaseModel):
    """系统提示词构建所需的环境快照（每次构建解析一次，不缓存）"""

    override_enabled: bool = False
    override_path: Path
    write_enabled: bool = False
    write_path: Path
    sandbox_mode: SandboxMode = "none"
    in_git_repo: bool = False

    @classmethod
    def from_env(cls, cwd: Optional[Path] = None) -> "PromptEnvironment":
        """从环境变量与当前目录状态解析"""
        load_env()
        override_enabled, override_path = parse_switch(
            os.getenv(SYSTEM_MD_ENV), default_system_md_path()
        )
        # 写入开关为 1/true 时写到读取路径（可被 GEMINI_SYSTEM_MD 自定义）
        write_enabled, write_path = parse_switch(os.getenv(WRITE_SYSTEM_MD_ENV), override_path)
        return cls(
            override_enabled=override_enabled,
            override_path=override_path,
            write_enabled=write_enabled,
            write_path=write_path,
            sandbox_mode=detect_sandbox_mode(os.getenv(SANDBOX_ENV)),
            in_git_repo=is_git_repository(cwd or Path.cwd()),
        )


class Config(BaseModel):
    """Agent 运行配置"""

    # 系统配置
    debug: bool = False
    log_level: str = "INFO"

    # 工作区
    workspace_dirs: list[str] = []

    # summarize_file 工具能力开关
    summarize_snippets: bool = False
    summarize_with_llm: bool = True

    # 指标记录
    metrics_enabled: bool = True
    metrics_dir: str = "memory/metrics"

    @classmethod
    def from_env(cls) -> "Config":
        """从环境变量创建配置"""
        workspace_raw = os.getenv("WORKSPACE_DIRS", "")
        workspace_dirs = [p for p in workspace_raw.split(os.pathsep) if p.strip()]
        return cls(
            debug=env_flag("DEBUG"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            workspace_dirs=workspace_dirs,
            summarize_snippets=env_flag("SUMMARIZE_SNIPPETS"),
            summarize_with_llm=env_flag("SUMMARIZE_WITH_LLM", default=True),
            metrics_enabled=env_flag("METRICS_ENABLED", default=True),
            metrics_dir=os.getenv("METRICS_DIR", "memory/metrics"),
        )
