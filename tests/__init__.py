"""summarize-agent 测试

运行方式：
    # 运行所有测试
    python -m pytest tests/ -v

    # 仅运行 summarize_file 工具测试
    python -m pytest tests/test_summarize_file_tool.py -v
"""
