"""summarize_file 工具提示词

提供给 LLM 的工具描述。
"""

summarize_file_prompt = """
Tool name: summarize_file
Tool description:
Summarizes the content of a specified file from the local filesystem.

Usage
- Use summarize_file to get the gist of a file (especially a large one) without pulling its full text into context.
- The path MUST be absolute and inside the workspace; files matched by .geminiignore are refused.
- Binary files cannot be summarized.

Parameters (JSON object)
- absolute_path (string, required)
  The absolute path to the file to summarize (e.g., '/home/user/project/file.txt'). Relative paths are not supported.
"""

summarize_file_snippets_prompt = """
- snippets (boolean, optional, default false)
  Return only the relevant excerpts of the file (declarations and headings, with line numbers) instead of its full text.
- name_only (boolean, optional, default false)
  Return only the file's relative path, name and extension. The file is not read.
"""
