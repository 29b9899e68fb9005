"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。
优先级：显式参数 > 环境变量 > .env > config.yaml。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("TUTOR_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


# 各厂商 key 的常见前缀，仅用于提示，不做强校验
# 与 providers.PROVIDER_CLASSES 保持一致
KNOWN_PROVIDERS = ("groq", "huggingface", "openrouter")

_KEY_PREFIXES = {
    "groq_api_key": "gsk_",
    "huggingface_token": "hf_",
    "openrouter_api_key": "sk-or-",
}


class TutorSettings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- Provider 凭证 ----
    groq_api_key: Optional[str] = Field(default=None, description="Groq API 密钥")
    huggingface_token: Optional[str] = Field(default=None, description="HuggingFace 访问令牌")
    openrouter_api_key: Optional[str] = Field(default=None, description="OpenRouter API 密钥")

    # ---- Provider 地址 ----
    groq_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        description="Groq OpenAI 兼容接口基础URL",
    )
    huggingface_base_url: str = Field(
        default="https://router.huggingface.co/v1",
        description="HuggingFace 推理路由基础URL",
    )
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="OpenRouter API 基础URL",
    )

    # ---- 调度 ----
    provider_order: List[str] = Field(
        default_factory=lambda: ["groq", "huggingface", "openrouter"],
        description="Provider 尝试顺序，进程生命周期内固定",
    )
    default_model: str = Field(
        default="tutor-chat",
        description="逻辑模型名，由 registry 映射为具体厂商模型",
    )
    default_max_tokens: int = Field(default=500, ge=1, description="默认生成 token 上限")
    default_temperature: float = Field(default=0.8, ge=0.0, le=2.0, description="默认生成温度")
    http_timeout: float = Field(default=30.0, ge=1.0, description="HTTP 超时时间（秒）")

    # OpenRouter 要求的来源标识
    app_url: str = Field(default="http://localhost:3001", description="HTTP-Referer 头")
    app_title: str = Field(default="TutorByAI", description="X-Title 头")

    # ---- 上下文窗口 ----
    max_context_messages: int = Field(default=10, ge=1, le=100, description="最大上下文消息数")
    max_context_tokens: int = Field(default=2000, ge=1, description="上下文 token 预算")
    summary_recent_messages: int = Field(default=5, ge=1, description="摘要模式下保留的最近消息数")

    # ---- 存储与日志 ----
    storage_root: str = Field(default=".storage", description="存储根目录")
    log_dir: str = Field(default="logs", description="日志目录")
    log_level: str = Field(default="INFO", description="日志级别")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("groq_api_key", "huggingface_token", "openrouter_api_key")
    @classmethod
    def warn_unusual_key(cls, v: Optional[str], info) -> Optional[str]:
        prefix = _KEY_PREFIXES.get(info.field_name)
        if v and prefix and not v.startswith(prefix):
            warnings.warn(f"{info.field_name.upper()} should start with {prefix!r}")
        return v or None

    @field_validator("provider_order")
    @classmethod
    def normalize_order(cls, v: List[str]) -> List[str]:
        order: List[str] = []
        for name in v:
            key = name.strip().lower()
            if not key or key in order:
                continue
            if key not in KNOWN_PROVIDERS:
                warnings.warn(f"PROVIDER_ORDER entry {key!r} is not a known provider and is ignored")
                continue
            order.append(key)
        if not order:
            raise ValueError("provider_order must name at least one provider")
        return order

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = TutorSettings()

# 类型别名，让外部代码可以使用 Settings 类型
Settings = TutorSettings
