#!/usr/bin/env python3
"""Operator CLI: print the system/compression prompts and run summarize_file."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from core.config import Config
from core.exceptions import SystemPromptConfigError
from core.llm import create_content_generator
from core.prompts import get_compression_prompt, get_core_system_prompt
from core.telemetry import JsonlMetricsSink
from core.workspace import WorkspaceContext
from tools.builtin.summarize_file import SummarizeFileTool

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="summarize-agent", description=__doc__)
    sub = parser.add_subparsers(dest="command", required=True)

    prompt = sub.add_parser("prompt", help="Print the core system prompt.")
    prompt.add_argument("--memory", default=None, help="User memory appended to the prompt.")
    prompt.add_argument("--memory-file", default=None, help="Read user memory from this file.")

    sub.add_parser("compression-prompt", help="Print the history compression prompt.")

    summarize = sub.add_parser("summarize", help="Run summarize_file on a file.")
    summarize.add_argument("path", help="File to summarize (made absolute).")
    summarize.add_argument("--root", action="append", default=None, help="Workspace root (repeatable).")
    summarize.add_argument("--snippets", action="store_true", help="Extract snippets instead of full content.")
    summarize.add_argument("--name-only", action="store_true", help="Only print path metadata.")
    summarize.add_argument("--no-llm", action="store_true", help="Return content without summarizing.")
    summarize.add_argument("--json", action="store_true", help="Print the protocol response envelope.")
    return parser


def _cmd_prompt(args: argparse.Namespace) -> int:
    memory = args.memory
    if args.memory_file:
        memory = Path(args.memory_file).read_text(encoding="utf-8")
    try:
        print(get_core_system_prompt(memory))
    except SystemPromptConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def _cmd_summarize(args: argparse.Namespace, config: Config) -> int:
    roots = args.root or config.workspace_dirs or [str(Path.cwd())]
    workspace = WorkspaceContext(roots)

    snippet_mode = config.summarize_snippets or args.snippets or args.name_only
    summarize = config.summarize_with_llm and not args.no_llm
    generator = create_content_generator() if summarize else None
    metrics = JsonlMetricsSink(config.metrics_dir, enabled=config.metrics_enabled)

    tool = SummarizeFileTool(
        workspace,
        content_generator=generator,
        metrics=metrics,
        supports_snippet_extraction=snippet_mode,
        supports_summarization=summarize,
    )
    params = {"absolute_path": str(Path(args.path).expanduser().absolute())}
    if snippet_mode:
        params["snippets"] = args.snippets
        params["name_only"] = args.name_only

    try:
        if args.json:
            response = tool.run(params)
            print(response)
            return 1 if json.loads(response)["status"] == "error" else 0
        result = tool.execute(params)
    finally:
        metrics.close()

    content = result.llm_content if isinstance(result.llm_content, str) else result.return_display
    print(content, file=sys.stderr if result.is_error else sys.stdout)
    return 1 if result.is_error else 0


def main(argv: Optional[List[str]] = None) -> int:
    config = Config.from_env()
    logging.basicConfig(
        level=logging.DEBUG if config.debug else config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = _build_parser().parse_args(argv)

    if args.command == "prompt":
        return _cmd_prompt(args)
    if args.command == "compression-prompt":
        print(get_compression_prompt())
        return 0
    return _cmd_summarize(args, config)


if __name__ == "__main__":
    sys.exit(main())
