"""
Configuration for TopicMind.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = "ollama"  # ollama, openai
    model: str = "llama3.1:8b"
    base_url: str = "http://localhost:11434"
    api_key: str | None = None
    temperature: float = 0.0
    max_tokens: int = 2000
    timeout: float = 120.0


class EmbedderConfig(BaseModel):
    """Embedder configuration."""

    provider: str = "ollama"  # ollama, openai
    model: str = "nomic-embed-text"
    base_url: str = "http://localhost:11434"
    api_key: str | None = None
    timeout: float = 120.0
    # Optional: embedding dimension (fallback to auto-detect)
    dimension: int | None = None


class TokenizerConfig(BaseModel):
    """Token estimation configuration."""

    provider: str = "approximate"  # approximate, tiktoken
    model: str = "cl100k_base"
    chars_per_token: float = 4.0


class MemoryConfig(BaseModel):
    """Hierarchical node memory configuration."""

    turn_threshold: int = 20
    token_budget: int = 4000
    context_max_facts: int = 10
    context_min_confidence: float = 0.3
    context_recent_messages: int = 5
    summary_timeout: float = 120.0


class FactStoreConfig(BaseModel):
    """Long-term fact store configuration."""

    similarity_threshold: float = 0.75
    min_confidence: float = 0.2
    max_facts: int = 50
    max_candidates: int = 5
    merge_boost: float = 0.1
    weekly_decay: float = 0.95
    timeout: float = 60.0  # per extraction or embedding call, in seconds


class AdjudicationConfig(BaseModel):
    """Adjudication engine configuration."""

    max_facts: int = 10
    timeout: float = 60.0


class PipelineConfig(BaseModel):
    """Consumer loop configuration."""

    poll_interval: float = 1.0
    generate_replies: bool = True
    reply_timeout: float = 120.0


class StoreConfig(BaseModel):
    """Persistent node/message store configuration."""

    backend: str = "memory"  # memory, sqlite
    sqlite_path: str = "data/topicmind.db"


class QueueConfig(BaseModel):
    """Transport configuration."""

    backend: str = "memory"
    delivery_mode: str = "at_least_once"  # at_least_once, at_most_once
    wait_seconds: float = 10.0
    dedup_window: float = 300.0  # seconds a message id stays deduplicated


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class Config(BaseModel):
    """Main configuration."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    embedder: EmbedderConfig = Field(default_factory=EmbedderConfig)
    tokenizer: TokenizerConfig = Field(default_factory=TokenizerConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    fact_store: FactStoreConfig = Field(default_factory=FactStoreConfig)
    adjudication: AdjudicationConfig = Field(default_factory=AdjudicationConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in project root)

        Returns:
            Config instance

        Environment variables:
            TOPICMIND_LLM_PROVIDER: LLM provider (ollama, openai)
            TOPICMIND_LLM_MODEL: Default LLM model name
            TOPICMIND_LLM_BASE_URL: LLM base URL
            TOPICMIND_LLM_API_KEY: LLM API key (for OpenAI)
            TOPICMIND_EMBEDDER_PROVIDER: Embedder provider
            TOPICMIND_EMBEDDER_MODEL: Embedder model name
            TOPICMIND_EMBEDDER_API_KEY: Embedder API key (for OpenAI)
            TOPICMIND_MEMORY_TURN_THRESHOLD: Turns before compression
            TOPICMIND_MEMORY_TOKEN_BUDGET: Working memory token budget
            TOPICMIND_FACTS_SIMILARITY_THRESHOLD: Duplicate fact similarity
            TOPICMIND_FACTS_MAX: Maximum key facts per node
            TOPICMIND_ADJUDICATION_TIMEOUT: Adjudication call timeout (seconds)
            TOPICMIND_STORE_BACKEND: Store backend (memory, sqlite)
            TOPICMIND_STORE_SQLITE_PATH: SQLite database path
            TOPICMIND_QUEUE_DELIVERY_MODE: at_least_once or at_most_once
            TOPICMIND_QUEUE_DEDUP_WINDOW: Seconds a message id stays deduplicated
        """
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None:
                return default
            if value == "":
                return default
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            return value

        dimension = get_env("TOPICMIND_EMBEDDER_DIMENSION")

        return cls(
            llm=LLMConfig(
                provider=get_env("TOPICMIND_LLM_PROVIDER", "ollama"),
                model=get_env("TOPICMIND_LLM_MODEL", "llama3.1:8b"),
                base_url=get_env("TOPICMIND_LLM_BASE_URL", "http://localhost:11434"),
                api_key=get_env("TOPICMIND_LLM_API_KEY"),
                temperature=get_env("TOPICMIND_LLM_TEMPERATURE", 0.0),
                max_tokens=get_env("TOPICMIND_LLM_MAX_TOKENS", 2000),
                timeout=get_env("TOPICMIND_LLM_TIMEOUT", 120.0),
            ),
            embedder=EmbedderConfig(
                provider=get_env("TOPICMIND_EMBEDDER_PROVIDER", "ollama"),
                model=get_env("TOPICMIND_EMBEDDER_MODEL", "nomic-embed-text"),
                base_url=get_env("TOPICMIND_EMBEDDER_BASE_URL", "http://localhost:11434"),
                api_key=get_env("TOPICMIND_EMBEDDER_API_KEY"),
                timeout=get_env("TOPICMIND_EMBEDDER_TIMEOUT", 120.0),
                dimension=int(dimension) if dimension else None,
            ),
            tokenizer=TokenizerConfig(
                provider=get_env("TOPICMIND_TOKENIZER_PROVIDER", "approximate"),
                model=get_env("TOPICMIND_TOKENIZER_MODEL", "cl100k_base"),
                chars_per_token=get_env("TOPICMIND_TOKENIZER_CHARS_PER_TOKEN", 4.0),
            ),
            memory=MemoryConfig(
                turn_threshold=get_env("TOPICMIND_MEMORY_TURN_THRESHOLD", 20),
                token_budget=get_env("TOPICMIND_MEMORY_TOKEN_BUDGET", 4000),
                context_max_facts=get_env("TOPICMIND_MEMORY_CONTEXT_MAX_FACTS", 10),
                context_min_confidence=get_env("TOPICMIND_MEMORY_CONTEXT_MIN_CONFIDENCE", 0.3),
                context_recent_messages=get_env("TOPICMIND_MEMORY_CONTEXT_RECENT_MESSAGES", 5),
                summary_timeout=get_env("TOPICMIND_MEMORY_SUMMARY_TIMEOUT", 120.0),
            ),
            fact_store=FactStoreConfig(
                similarity_threshold=get_env("TOPICMIND_FACTS_SIMILARITY_THRESHOLD", 0.75),
                min_confidence=get_env("TOPICMIND_FACTS_MIN_CONFIDENCE", 0.2),
                max_facts=get_env("TOPICMIND_FACTS_MAX", 50),
                max_candidates=get_env("TOPICMIND_FACTS_MAX_CANDIDATES", 5),
                merge_boost=get_env("TOPICMIND_FACTS_MERGE_BOOST", 0.1),
                weekly_decay=get_env("TOPICMIND_FACTS_WEEKLY_DECAY", 0.95),
                timeout=get_env("TOPICMIND_FACTS_TIMEOUT", 60.0),
            ),
            adjudication=AdjudicationConfig(
                max_facts=get_env("TOPICMIND_ADJUDICATION_MAX_FACTS", 10),
                timeout=get_env("TOPICMIND_ADJUDICATION_TIMEOUT", 60.0),
            ),
            pipeline=PipelineConfig(
                poll_interval=get_env("TOPICMIND_PIPELINE_POLL_INTERVAL", 1.0),
                generate_replies=get_env("TOPICMIND_PIPELINE_GENERATE_REPLIES", True),
                reply_timeout=get_env("TOPICMIND_PIPELINE_REPLY_TIMEOUT", 120.0),
            ),
            store=StoreConfig(
                backend=get_env("TOPICMIND_STORE_BACKEND", "memory"),
                sqlite_path=get_env("TOPICMIND_STORE_SQLITE_PATH", "data/topicmind.db"),
            ),
            queue=QueueConfig(
                backend=get_env("TOPICMIND_QUEUE_BACKEND", "memory"),
                delivery_mode=get_env("TOPICMIND_QUEUE_DELIVERY_MODE", "at_least_once"),
                wait_seconds=get_env("TOPICMIND_QUEUE_WAIT_SECONDS", 10.0),
                dedup_window=get_env("TOPICMIND_QUEUE_DEDUP_WINDOW", 300.0),
            ),
            logging=LoggingConfig(
                level=get_env("TOPICMIND_LOG_LEVEL", "INFO"),
                log_to_file=get_env("TOPICMIND_LOG_TO_FILE", True),
                log_dir=get_env("TOPICMIND_LOG_DIR", "logs"),
                file_rotation=get_env("TOPICMIND_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("TOPICMIND_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("TOPICMIND_LOG_COMPRESSION", "zip"),
                serialize=get_env("TOPICMIND_LOG_SERIALIZE", True),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f)

        return cls(**(data or {}))

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Args:
            yaml_path: Optional path to YAML config
            env_file: Optional path to .env file

        Returns:
            Config instance
        """
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            config_dict = {}

        env_config = cls.from_env(env_file=env_file)

        final_dict = {**config_dict}

        # Only sections whose env values differ from defaults override YAML
        default = cls()
        for section in (
            "llm",
            "embedder",
            "tokenizer",
            "memory",
            "fact_store",
            "adjudication",
            "pipeline",
            "store",
            "queue",
            "logging",
        ):
            env_section = getattr(env_config, section)
            if env_section != getattr(default, section):
                final_dict[section] = env_section.model_dump()

        return cls(**final_dict) if final_dict else env_config


# Default config instance
default_config = Config()
