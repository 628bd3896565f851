"""工作区上下文与忽略策略

- WorkspaceContext：允许访问的根目录集合（单根或多根），回答"路径是否在工作区内"
- IgnorePolicy：读取各根目录下的 .geminiignore，回答"路径是否被忽略"
"""

import fnmatch
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from core.paths import is_within_root, normalize_root

logger = logging.getLogger(__name__)

GEMINI_IGNORE_FILE_NAME = ".geminiignore"


class WorkspaceContext:
    """允许文件操作的根目录集合"""

    def __init__(self, directories: Union[str, Path, Sequence[Union[str, Path]]]):
        if isinstance(directories, (str, Path)):
            directories = [directories]
        self._directories: List[Path] = []
        for directory in directories:
            self.add_directory(directory)
        if not self._directories:
            raise ValueError("WorkspaceContext requires at least one directory")

    def add_directory(self, directory: Union[str, Path]) -> None:
        """添加根目录（规范化为绝对路径并去重，不解析符号链接，与 is_within_root 一致）"""
        normalized = normalize_root(Path(directory).expanduser())
        if normalized not in self._directories:
            self._directories.append(normalized)

    def get_directories(self) -> List[Path]:
        return list(self._directories)

    @property
    def target_dir(self) -> Path:
        """主根目录（第一个添加的目录），用于计算相对路径"""
        return self._directories[0]

    def is_path_within_workspace(self, path: Union[str, Path]) -> bool:
        return any(is_within_root(path, root) for root in self._directories)

    def root_for(self, path: Union[str, Path]) -> Optional[Path]:
        """返回包含 path 的根目录（未命中返回 None）"""
        for root in self._directories:
            if is_within_root(path, root):
                return root
        return None

    def __repr__(self) -> str:
        return f"WorkspaceContext({[str(d) for d in self._directories]})"


@dataclass(frozen=True)
class IgnoreRule:
    """单条忽略规则（.gitignore 风格子集）"""
    pattern: str
    negated: bool = False
    dir_only: bool = False
    anchored: bool = False

    @classmethod
    def parse(cls, line: str) -> Optional["IgnoreRule"]:
        text = line.strip()
        if not text or text.startswith("#"):
            return None
        negated = text.startswith("!")
        if negated:
            text = text[1:]
        dir_only = text.endswith("/")
        text = text.rstrip("/")
        # 含 / 的模式相对根目录锚定
        anchored = "/" in text
        text = text.lstrip("/")
        if text.startswith("**/"):
            text = text[3:]
            anchored = "/" in text
        if not text:
            return None
        return cls(pattern=text, negated=negated, dir_only=dir_only, anchored=anchored)

    def matches(self, rel_path: str) -> bool:
        """rel_path 为相对根目录的 posix 路径（指向文件）"""
        parts = rel_path.split("/")
        # 候选：每一级祖先目录；dir_only 规则不匹配文件本身
        limit = len(parts) - 1 if self.dir_only else len(parts)
        for i in range(limit):
            if self.anchored:
                candidate = "/".join(parts[: i + 1])
            else:
                candidate = parts[i]
            if fnmatch.fnmatch(candidate, self.pattern):
                return True
        return False


class IgnorePolicy:
    """基于 .geminiignore 的路径忽略策略"""

    def __init__(self, rules_by_root: Optional[dict] = None):
        self._rules_by_root: dict[Path, List[IgnoreRule]] = {
            normalize_root(root): list(rules) for root, rules in (rules_by_root or {}).items()
        }

    @classmethod
    def from_patterns(cls, root: Union[str, Path], patterns: Iterable[str]) -> "IgnorePolicy":
        rules = [rule for rule in (IgnoreRule.parse(p) for p in patterns) if rule]
        return cls({Path(root): rules})

    @classmethod
    def from_workspace(cls, workspace: WorkspaceContext) -> "IgnorePolicy":
        """读取每个根目录下的 .geminiignore（不存在则该根目录无规则）"""
        rules_by_root = {}
        for root in workspace.get_directories():
            ignore_file = root / GEMINI_IGNORE_FILE_NAME
            if not ignore_file.is_file():
                continue
            try:
                lines = ignore_file.read_text(encoding="utf-8").splitlines()
            except OSError as e:
                logger.warning("Failed to read %s: %s", ignore_file, e)
                continue
            rules = [rule for rule in (IgnoreRule.parse(line) for line in lines) if rule]
            logger.debug("Loaded %d ignore rule(s) from %s", len(rules), ignore_file)
            rules_by_root[root] = rules
        return cls(rules_by_root)

    def should_ignore_file(self, path: Union[str, Path]) -> bool:
        """最后一条命中的规则决定结果（! 规则可取消忽略）"""
        absolute = str(normalize_root(path))
        for root, rules in self._rules_by_root.items():
            if not rules or not is_within_root(absolute, root):
                continue
            rel_path = Path(os.path.relpath(absolute, root)).as_posix()
            if rel_path == ".":
                continue
            ignored = False
            for rule in rules:
                if rule.matches(rel_path):
                    ignored = not rule.negated
            if ignored:
                return True
        return False
