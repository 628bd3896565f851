"""统一LLM接口 - 基于OpenAI原生API

对外提供两种调用方式：
- invoke(messages)：OpenAI chat 格式（role/content）
- generate_content(messages)：role/parts 格式，供工具作为"内容生成后端"使用
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Protocol

from dotenv import dotenv_values, find_dotenv, load_dotenv
from openai import OpenAI

from .exceptions import AgentException, LLMException

logger = logging.getLogger(__name__)

# 支持的LLM提供商
SUPPORTED_PROVIDERS = Literal["openai", "deepseek", "qwen", "ollama", "vllm", "local", "auto"]

# provider -> (专属 API key 环境变量, 默认 base_url, 默认模型)
PROVIDER_DEFAULTS: Dict[str, tuple] = {
    "openai": (["OPENAI_API_KEY"], "https://api.openai.com/v1", "gpt-4o-mini"),
    "deepseek": (["DEEPSEEK_API_KEY"], "https://api.deepseek.com", "deepseek-chat"),
    "qwen": (["DASHSCOPE_API_KEY"], "https://dashscope.aliyuncs.com/compatible-mode/v1", "qwen-plus"),
    "ollama": (["OLLAMA_API_KEY"], "http://localhost:11434/v1", "llama3.2"),
    "vllm": (["VLLM_API_KEY"], "http://localhost:8000/v1", "meta-llama/Llama-2-7b-chat-hf"),
    "local": ([], "http://localhost:8000/v1", "local-model"),
}

# 本地服务不需要真实密钥
PLACEHOLDER_KEYS = {"ollama": "ollama", "vllm": "vllm", "local": "local"}


@dataclass(frozen=True)
class GeneratedContent:
    """内容生成结果"""
    text: str
    raw: Any = None


class ContentGenerator(Protocol):
    """内容生成后端：接收 role/parts 消息列表，返回生成文本"""

    def generate_content(
        self,
        messages: List[Dict[str, Any]],
        signal: Optional[threading.Event] = None,
    ) -> GeneratedContent:
        ...


def parts_to_text(parts: List[Dict[str, Any]]) -> str:
    """拼接 parts 中的文本片段（忽略非文本 part）"""
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


def to_chat_messages(messages: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """role/parts → OpenAI chat 消息（model 角色映射为 assistant）"""
    chat_messages = []
    for message in messages:
        role = message.get("role", "user")
        if role == "model":
            role = "assistant"
        if "parts" in message:
            content = parts_to_text(message["parts"])
        else:
            content = str(message.get("content", ""))
        chat_messages.append({"role": role, "content": content})
    return chat_messages


class AgentLLM:
    """
    调用任何兼容OpenAI接口服务的LLM客户端

    - 参数优先，环境变量兜底（.env 优先于系统环境变量）
    - 失败自动重试（指数退避）
    """

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        provider: Optional[SUPPORTED_PROVIDERS] = None,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        timeout: Optional[int] = None,
        client: Optional[OpenAI] = None,
    ):
        """
        Args:
            model: 模型名称，未提供则读取 LLM_MODEL_ID
            api_key: API密钥，未提供则按 provider 读取环境变量
            base_url: 服务地址，未提供则读取 LLM_BASE_URL
            provider: LLM提供商，未提供则读取 LLM_PROVIDER 或自动检测
            temperature: 温度参数
            max_tokens: 最大token数
            timeout: 超时时间（秒），默认读取 LLM_TIMEOUT（120）
            client: 预先构造好的 OpenAI 客户端（测试注入用）
        """
        self._dotenv_values: Dict[str, str] = {}
        self._load_dotenv_first()

        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout or int(self._get_env("LLM_TIMEOUT", "120"))
        self.max_retries = int(self._get_env("LLM_MAX_RETRIES", "2"))
        self.retry_backoff = float(self._get_env("LLM_RETRY_BACKOFF", "1.0"))

        self.provider = self._resolve_provider(provider, base_url)
        self.api_key, resolved_base_url = self._resolve_credentials(api_key, base_url)
        self.base_url = self._normalize_base_url(resolved_base_url)
        self.model = model or self._get_env("LLM_MODEL_ID") or self._get_default_model()

        if client is None and not all([self.api_key, self.base_url]):
            raise LLMException("API key and base URL must be provided or defined in .env.")

        self._client = client or self._create_client()

    def _load_dotenv_first(self) -> None:
        """读取 .env（不覆盖系统环境变量，优先级由 _get_env 控制）"""
        dotenv_path = find_dotenv(usecwd=True)
        if not dotenv_path:
            return
        values = dotenv_values(dotenv_path)
        self._dotenv_values = {
            k: v for k, v in values.items() if v is not None and str(v).strip() != ""
        }
        load_dotenv(dotenv_path, override=False)

    def _get_env(self, key: str, default: Optional[str] = None) -> Optional[str]:
        if key in self._dotenv_values:
            return self._dotenv_values.get(key)
        return os.getenv(key, default)

    def _resolve_provider(self, provider: Optional[str], base_url: Optional[str]) -> str:
        """
        解析 provider：
        1) 显式参数 provider
        2) 环境变量/ .env 中的 LLM_PROVIDER
        3) 自动探测
        """
        if provider:
            return provider.strip().lower()
        env_provider = self._get_env("LLM_PROVIDER")
        if env_provider:
            return env_provider.strip().lower()
        return self._auto_detect_provider(base_url)

    def _auto_detect_provider(self, base_url: Optional[str]) -> str:
        hits = []
        for prov, (keys, _, _) in PROVIDER_DEFAULTS.items():
            if any(self._get_env(key) for key in keys):
                hits.append(prov)
        if self._get_env("OLLAMA_HOST") and "ollama" not in hits:
            hits.append("ollama")
        if len(hits) > 1:
            providers = ", ".join(sorted(set(hits)))
            raise LLMException(
                f"Multiple provider configurations detected: {providers}. Set provider or LLM_PROVIDER explicitly."
            )
        if len(hits) == 1:
            return hits[0]

        actual_base_url = (base_url or self._get_env("LLM_BASE_URL") or "").lower()
        if "api.openai.com" in actual_base_url:
            return "openai"
        if "api.deepseek.com" in actual_base_url:
            return "deepseek"
        if "dashscope.aliyuncs.com" in actual_base_url:
            return "qwen"
        if ":11434" in actual_base_url or "ollama" in actual_base_url:
            return "ollama"
        if "localhost" in actual_base_url or "127.0.0.1" in actual_base_url:
            return "local"
        return "auto"

    def _resolve_credentials(self, api_key: Optional[str], base_url: Optional[str]) -> tuple:
        """根据provider解析API密钥和base_url"""
        if self.provider not in PROVIDER_DEFAULTS:
            # auto：通用配置，支持任何OpenAI兼容的服务
            return api_key or self._get_env("LLM_API_KEY"), base_url or self._get_env("LLM_BASE_URL")

        keys, default_base_url, _ = PROVIDER_DEFAULTS[self.provider]
        resolved_api_key = api_key
        for key in keys + ["LLM_API_KEY"]:
            if resolved_api_key:
                break
            resolved_api_key = self._get_env(key)
        resolved_api_key = resolved_api_key or PLACEHOLDER_KEYS.get(self.provider)

        host_env = self._get_env("OLLAMA_HOST") if self.provider == "ollama" else None
        resolved_base_url = base_url or host_env or self._get_env("LLM_BASE_URL") or default_base_url
        return resolved_api_key, resolved_base_url

    def _normalize_base_url(self, base_url: Optional[str]) -> Optional[str]:
        """将误填的完整接口路径归一化为 OpenAI 客户端所需的 base_url。"""
        if not base_url:
            return base_url
        normalized = base_url.strip().rstrip("/")
        for suffix in ("/chat/completions", "/completions"):
            if normalized.lower().endswith(suffix):
                normalized = normalized[: -len(suffix)]
                break
        return normalized

    def _get_default_model(self) -> str:
        if self.provider in PROVIDER_DEFAULTS:
            return PROVIDER_DEFAULTS[self.provider][2]
        return "gpt-4o-mini"

    def _create_client(self) -> OpenAI:
        return OpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)

    @staticmethod
    def _compact_request_kwargs(kwargs: dict) -> dict:
        """Drop None-valued fields for provider compatibility."""
        return {k: v for k, v in kwargs.items() if v is not None}

    def invoke(
        self,
        messages: List[Dict[str, str]],
        signal: Optional[threading.Event] = None,
        **kwargs,
    ) -> str:
        """非流式调用LLM，返回完整响应文本（失败按指数退避重试）"""
        request_kwargs = {
            "model": self.model,
            "messages": messages,
            "temperature": kwargs.pop("temperature", self.temperature),
            "max_tokens": kwargs.pop("max_tokens", self.max_tokens),
            **kwargs,
        }
        request_kwargs = self._compact_request_kwargs(request_kwargs)

        for attempt in range(self.max_retries + 1):
            if signal is not None and signal.is_set():
                raise LLMException("LLM call cancelled.")
            try:
                logger.debug("Calling model %s (attempt %d)", self.model, attempt + 1)
                response = self._client.chat.completions.create(**request_kwargs)
                return response.choices[0].message.content or ""
            except Exception as e:
                if attempt >= self.max_retries:
                    raise LLMException(f"LLM call failed: {e}") from e
                wait_s = self.retry_backoff * (2 ** attempt)
                logger.warning(
                    "LLM call failed, retrying in %.1fs (%d/%d): %s",
                    wait_s,
                    attempt + 1,
                    self.max_retries,
                    e,
                )
                if signal is not None:
                    signal.wait(wait_s)
                else:
                    time.sleep(wait_s)
        raise LLMException("LLM call failed")

    def generate_content(
        self,
        messages: List[Dict[str, Any]],
        signal: Optional[threading.Event] = None,
    ) -> GeneratedContent:
        """role/parts 消息 → 生成文本"""
        text = self.invoke(to_chat_messages(messages), signal=signal)
        return GeneratedContent(text=text)


def create_content_generator(**kwargs) -> Optional[AgentLLM]:
    """构造内容生成后端；缺少配置时返回 None（由调用方决定如何降级）"""
    try:
        return AgentLLM(**kwargs)
    except AgentException as e:
        logger.info("Content generator unavailable: %s", e)
        return None
