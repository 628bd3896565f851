"""系统提示词组装测试

运行方式：
    python -m pytest tests/test_system_prompt.py -v
"""

from pathlib import Path

import pytest

from core.config import (
    GEMINI_CONFIG_DIR,
    SANDBOX_ENV,
    SYSTEM_MD_ENV,
    SYSTEM_MD_FILENAME,
    WRITE_SYSTEM_MD_ENV,
    PromptEnvironment,
    detect_sandbox_mode,
    parse_switch,
)
from core.exceptions import SystemPromptConfigError
from core.prompts import get_compression_prompt, get_core_system_prompt
from prompts.agents_prompts.compression_prompt import STATE_SNAPSHOT_SECTIONS
from prompts.agents_prompts.core_system_prompt import (
    GIT_COMMIT_OFFER,
    GIT_SECTION,
    OUTSIDE_SANDBOX_SECTION,
    SANDBOX_SECTION,
    SEATBELT_SECTION,
    ToolNames,
)

SANDBOX_FRAGMENTS = {
    "seatbelt": SEATBELT_SECTION,
    "container": SANDBOX_SECTION,
    "none": OUTSIDE_SANDBOX_SECTION,
}


def _env(tmp_path: Path, **overrides) -> PromptEnvironment:
    values = {
        "override_path": tmp_path / "system.md",
        "write_path": tmp_path / "system.md",
    }
    values.update(overrides)
    return PromptEnvironment(**values)


# ============================================================================
# 开关解析
# ============================================================================

@pytest.mark.parametrize("value", [None, "", "0", "false", "FALSE", " False "])
def test_parse_switch_disabled(value, tmp_path):
    enabled, path = parse_switch(value, tmp_path / "default.md")
    assert enabled is False
    assert path == tmp_path / "default.md"


@pytest.mark.parametrize("value", ["1", "true", "TRUE"])
def test_parse_switch_enabled_default_path(value, tmp_path):
    enabled, path = parse_switch(value, tmp_path / "default.md")
    assert enabled is True
    assert path == tmp_path / "default.md"


def test_parse_switch_custom_path_keeps_case(tmp_path):
    custom = tmp_path / "Prompts" / "My.md"
    enabled, path = parse_switch(str(custom), tmp_path / "default.md")
    assert enabled is True
    assert path == custom.resolve()


def test_detect_sandbox_mode():
    assert detect_sandbox_mode("sandbox-exec") == "seatbelt"
    assert detect_sandbox_mode("docker") == "container"
    assert detect_sandbox_mode(None) == "none"
    assert detect_sandbox_mode("") == "none"


def test_prompt_environment_from_env(clean_prompt_env, monkeypatch):
    monkeypatch.setenv(SANDBOX_ENV, "sandbox-exec")
    env = PromptEnvironment.from_env()
    assert env.override_enabled is False
    assert env.write_enabled is False
    assert env.sandbox_mode == "seatbelt"
    assert env.in_git_repo is False
    assert env.override_path == (clean_prompt_env / GEMINI_CONFIG_DIR / SYSTEM_MD_FILENAME).resolve()


def test_prompt_environment_detects_git(clean_prompt_env):
    (clean_prompt_env / ".git").mkdir()
    assert PromptEnvironment.from_env().in_git_repo is True


# ============================================================================
# 内置模板
# ============================================================================

@pytest.mark.parametrize("mode", ["seatbelt", "container", "none"])
def test_exactly_one_sandbox_fragment(mode, tmp_path):
    prompt = get_core_system_prompt(env=_env(tmp_path, sandbox_mode=mode))
    present = [name for name, fragment in SANDBOX_FRAGMENTS.items() if fragment.strip() in prompt]
    assert present == [mode]


def test_git_fragment_toggles_only_git_text(tmp_path):
    without_git = get_core_system_prompt(env=_env(tmp_path, in_git_repo=False))
    with_git = get_core_system_prompt(env=_env(tmp_path, in_git_repo=True))

    assert "# Git Repository" not in without_git
    assert GIT_COMMIT_OFFER not in without_git
    assert "# Git Repository" in with_git
    assert GIT_COMMIT_OFFER in with_git
    assert with_git.replace(GIT_SECTION, "").replace(GIT_COMMIT_OFFER, "") == without_git


def test_builtin_prompt_is_stripped_and_mentions_tools(tmp_path):
    prompt = get_core_system_prompt(env=_env(tmp_path))
    assert prompt == prompt.strip()
    assert prompt.startswith("You are an interactive CLI agent")
    assert "'run_shell_command'" in prompt
    assert "'summarize_file'" in prompt


def test_tool_names_are_parameters(tmp_path):
    names = ToolNames(shell="bash", read_file="Read", ls="LS")
    prompt = get_core_system_prompt(env=_env(tmp_path), tool_names=names)
    assert "'bash'" in prompt
    assert "'Read'" in prompt
    assert "[tool_call: LS for path" in prompt
    assert "run_shell_command" not in prompt


def test_prompt_is_deterministic(clean_prompt_env):
    assert get_core_system_prompt("memo") == get_core_system_prompt("memo")


# ============================================================================
# 用户记忆
# ============================================================================

def test_whitespace_memory_is_ignored(tmp_path):
    env = _env(tmp_path)
    assert get_core_system_prompt("  ", env=env) == get_core_system_prompt(env=env)
    assert get_core_system_prompt("", env=env) == get_core_system_prompt(None, env=env)


def test_memory_is_appended_after_rule(tmp_path):
    env = _env(tmp_path)
    base = get_core_system_prompt(env=env)
    prompt = get_core_system_prompt("  note\n", env=env)
    assert prompt == base + "\n\n---\n\nnote"
    assert prompt.endswith("\n\n---\n\nnote")


# ============================================================================
# 覆盖文件
# ============================================================================

def test_override_missing_file_is_fatal(clean_prompt_env, monkeypatch):
    missing = clean_prompt_env / "nope.md"
    monkeypatch.setenv(SYSTEM_MD_ENV, str(missing))
    with pytest.raises(SystemPromptConfigError) as excinfo:
        get_core_system_prompt()
    assert str(missing) in str(excinfo.value)


def test_override_default_path_missing_is_fatal(clean_prompt_env, monkeypatch):
    monkeypatch.setenv(SYSTEM_MD_ENV, "true")
    with pytest.raises(SystemPromptConfigError):
        get_core_system_prompt()


def test_override_custom_file_replaces_template(clean_prompt_env, monkeypatch):
    custom = clean_prompt_env / "custom.md"
    custom.write_text("Be terse.\n", encoding="utf-8")
    monkeypatch.setenv(SYSTEM_MD_ENV, str(custom))

    assert get_core_system_prompt() == "Be terse.\n"
    assert get_core_system_prompt("memo") == "Be terse.\n\n\n---\n\nmemo"


def test_override_default_path(clean_prompt_env, monkeypatch):
    default = clean_prompt_env / GEMINI_CONFIG_DIR / SYSTEM_MD_FILENAME
    default.parent.mkdir()
    default.write_text("default override", encoding="utf-8")
    monkeypatch.setenv(SYSTEM_MD_ENV, "1")

    assert get_core_system_prompt() == "default override"


@pytest.mark.parametrize("value", ["0", "false"])
def test_override_disabled_values(clean_prompt_env, monkeypatch, value):
    monkeypatch.setenv(SYSTEM_MD_ENV, value)
    assert get_core_system_prompt().startswith("You are an interactive CLI agent")


# ============================================================================
# 导出模板
# ============================================================================

def test_write_switch_writes_default_path(clean_prompt_env, monkeypatch):
    monkeypatch.setenv(WRITE_SYSTEM_MD_ENV, "1")
    prompt = get_core_system_prompt("memo")

    written = (clean_prompt_env / GEMINI_CONFIG_DIR / SYSTEM_MD_FILENAME).read_text(encoding="utf-8")
    assert prompt == written + "\n\n---\n\nmemo"


def test_write_switch_custom_path(clean_prompt_env, monkeypatch):
    target = clean_prompt_env / "out" / "prompt.md"
    monkeypatch.setenv(WRITE_SYSTEM_MD_ENV, str(target))
    prompt = get_core_system_prompt()

    assert target.read_text(encoding="utf-8") == prompt


def test_write_switch_disabled_writes_nothing(clean_prompt_env, monkeypatch):
    monkeypatch.setenv(WRITE_SYSTEM_MD_ENV, "false")
    get_core_system_prompt()
    assert not (clean_prompt_env / GEMINI_CONFIG_DIR).exists()


def test_write_then_read_round_trip(clean_prompt_env, monkeypatch):
    target = clean_prompt_env / "system.md"
    monkeypatch.setenv(WRITE_SYSTEM_MD_ENV, str(target))
    builtin = get_core_system_prompt("memo")

    monkeypatch.delenv(WRITE_SYSTEM_MD_ENV)
    monkeypatch.setenv(SYSTEM_MD_ENV, str(target))
    assert get_core_system_prompt("memo") == builtin


# ============================================================================
# 压缩提示词
# ============================================================================

def test_compression_prompt_sections_in_order():
    prompt = get_compression_prompt()
    positions = [prompt.index(f"<{section}>") for section in STATE_SNAPSHOT_SECTIONS]
    assert positions == sorted(positions)
    assert len(STATE_SNAPSHOT_SECTIONS) == 5
    assert prompt.index("<state_snapshot>") < positions[0]
    assert prompt.rindex("</state_snapshot>") > prompt.index("</current_plan>")


def test_compression_prompt_step_status_tags():
    prompt = get_compression_prompt()
    for tag in ("[DONE]", "[IN PROGRESS]", "[TODO]"):
        assert tag in prompt
    assert "<scratchpad>" in prompt
    assert prompt == get_compression_prompt()
