"""Agent 异常定义"""


class AgentException(Exception):
    """Agent 基础异常"""


class SystemPromptConfigError(AgentException):
    """系统提示词配置错误（启用覆盖但文件缺失），属于致命错误，不在本地恢复"""

    def __init__(self, path):
        self.path = str(path)
        super().__init__(f"missing system prompt file '{self.path}'")


class LLMException(AgentException):
    """LLM 调用失败"""
