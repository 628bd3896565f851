"""系统提示词组装

- get_core_system_prompt：内置模板（或 GEMINI_SYSTEM_MD 指定的覆盖文件）+ 用户记忆
- get_compression_prompt：历史压缩提示词（固定文本）

每次调用都重新解析环境，不做缓存。
"""

import logging
from pathlib import Path
from typing import Optional

from core.config import PromptEnvironment
from core.exceptions import SystemPromptConfigError
from prompts.agents_prompts.compression_prompt import COMPRESSION_PROMPT
from prompts.agents_prompts.core_system_prompt import ToolNames, build_core_system_prompt

logger = logging.getLogger(__name__)

MEMORY_SEPARATOR = "\n\n---\n\n"


def load_base_prompt(env: PromptEnvironment, tool_names: Optional[ToolNames] = None) -> str:
    """
    计算基础提示词

    覆盖开启时返回覆盖文件原文（文件缺失直接抛 SystemPromptConfigError），
    否则返回内置模板。
    """
    if env.override_enabled:
        if not env.override_path.exists():
            raise SystemPromptConfigError(env.override_path)
        logger.debug("Using system prompt override from %s", env.override_path)
        return env.override_path.read_text(encoding="utf-8")

    return build_core_system_prompt(
        tools=tool_names or ToolNames(),
        sandbox_mode=env.sandbox_mode,
        in_git_repo=env.in_git_repo,
    )


def write_base_prompt(path: Path, base_prompt: str) -> None:
    """把基础提示词导出到文件（供操作者在此基础上修改后通过 GEMINI_SYSTEM_MD 加载）"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(base_prompt, encoding="utf-8")
    logger.info("Wrote system prompt to %s", path)


def get_core_system_prompt(
    user_memory: Optional[str] = None,
    env: Optional[PromptEnvironment] = None,
    tool_names: Optional[ToolNames] = None,
) -> str:
    """
    构建系统提示词

    Args:
        user_memory: 追加在末尾的用户记忆（去除首尾空白后为空则忽略）
        env: 环境快照，默认 PromptEnvironment.from_env()
        tool_names: 模板中引用的工具名

    Returns:
        完整的系统提示词

    Raises:
        SystemPromptConfigError: 覆盖开启但文件不存在
    """
    env = env or PromptEnvironment.from_env()
    base_prompt = load_base_prompt(env, tool_names)

    if env.write_enabled:
        write_base_prompt(env.write_path, base_prompt)

    memory = user_memory.strip() if user_memory else ""
    if memory:
        return f"{base_prompt}{MEMORY_SEPARATOR}{memory}"
    return base_prompt


def get_compression_prompt() -> str:
    """历史压缩提示词"""
    return COMPRESSION_PROMPT
