"""路径辅助函数"""

import os
from pathlib import Path
from typing import Union

PathLike = Union[str, Path]

# shorten_path 默认的最大显示长度
SHORTEN_MAX_LEN = 35


def normalize_root(path: PathLike) -> Path:
    """绝对路径 + normpath，不解析符号链接（工作区根目录与待检查路径用同一种规范化）"""
    return Path(os.path.normpath(os.path.abspath(str(path))))


def is_within_root(path: PathLike, root: PathLike) -> bool:
    """
    判断 path 是否位于 root 之内（root 本身也算）

    两者都先规范化为绝对路径；不解析符号链接，避免对不存在的路径做 IO。
    """
    normalized_path = str(normalize_root(path))
    normalized_root = str(normalize_root(root))
    if normalized_path == normalized_root:
        return True
    root_with_sep = normalized_root if normalized_root.endswith(os.sep) else normalized_root + os.sep
    return normalized_path.startswith(root_with_sep)


def make_relative(target: PathLike, root: PathLike) -> str:
    """target 相对 root 的路径；二者相同时返回 "."，不在 root 内时返回 ../ 形式"""
    rel = os.path.relpath(os.path.abspath(str(target)), os.path.abspath(str(root)))
    return rel or "."


def shorten_path(path: str, max_len: int = SHORTEN_MAX_LEN) -> str:
    """
    缩短过长的路径用于 UI 显示

    保留首段和尾部若干段，中间用 "..." 代替，例如：
        src/very/long/nested/dir/file.py -> src/.../dir/file.py
    """
    if len(path) <= max_len:
        return path
    parts = path.split(os.sep)
    if len(parts) <= 2:
        return path[: max_len // 2 - 2] + "..." + path[-(max_len // 2 - 1):]

    head = parts[0]
    tail: list[str] = []
    length = len(head) + len(os.sep) + 3
    for part in reversed(parts[1:]):
        if length + len(os.sep) + len(part) > max_len and tail:
            break
        tail.insert(0, part)
        length += len(os.sep) + len(part)
    if len(tail) == len(parts) - 1:
        return path
    return os.sep.join([head, "...", *tail])
