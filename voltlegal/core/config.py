"""
VOLT Legal Central Configuration
Contains model names, API endpoints, input limits and other configurable parameters
"""

from dataclasses import dataclass
from typing import Optional
import logging
import os

import yaml


@dataclass
class LLMConfig:
    """Configuration for the language model backend"""

    # OpenRouter speaks the OpenAI chat-completions protocol
    model: str = "gpt-4o-mini"
    base_url: str = "https://openrouter.ai/api/v1"
    api_key: Optional[str] = None

    # Local fallback when no API key is configured
    ollama_model: str = "llama3"

    temperature: float = 0.7
    max_tokens: int = 2000
    chat_max_tokens: int = 500
    timeout: int = 120

    # Sent to OpenRouter for attribution
    referer: str = "https://volt-legal.com"
    app_title: str = "V.O.L.T Legal Analysis"


@dataclass
class APIConfig:
    """Configuration for request limits and the HTTP server"""

    # Content limits
    min_text_chars: int = 10
    max_text_chars: int = 2800
    max_question_chars: int = 500
    min_max_tokens: int = 100
    max_max_tokens: int = 4000

    # Chat context
    chat_context_chars: int = 1500

    # Timeouts
    request_timeout: int = 30

    # Security
    block_internal_ips: bool = True
    max_download_bytes: int = 2 * 1024 * 1024

    # Server
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class GlossaryConfig:
    """Configuration for the glossary and contract example stores"""

    glossary_path: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    glossary_table: str = "legal_glossary"
    examples_table: str = "contract_chunks"
    examples_limit: int = 5


@dataclass
class SpeechConfig:
    """Configuration for ElevenLabs speech synthesis"""

    api_key: Optional[str] = None
    base_url: str = "https://api.elevenlabs.io/v1"
    model_id: str = "eleven_multilingual_v2"
    stability: float = 0.5
    similarity_boost: float = 0.75
    timeout: int = 60


@dataclass
class VoltConfig:
    """Main configuration class combining all settings"""

    llm: LLMConfig
    api: APIConfig
    glossary: GlossaryConfig
    speech: SpeechConfig

    # Logging
    log_level: str = "INFO"

    def __init__(self,
                 llm: Optional[LLMConfig] = None,
                 api: Optional[APIConfig] = None,
                 glossary: Optional[GlossaryConfig] = None,
                 speech: Optional[SpeechConfig] = None):
        """Initialize with optional custom configurations"""
        self.llm = llm or LLMConfig()
        self.api = api or APIConfig()
        self.glossary = glossary or GlossaryConfig()
        self.speech = speech or SpeechConfig()
        self.log_level = "INFO"

        # Override with environment variables if present
        self._load_env_overrides()

    def _load_env_overrides(self):
        """Load configuration overrides from environment variables"""
        # Provider keys
        api_key = os.getenv("OPENROUTER_API_KEY") or os.getenv("OPENAI_API_KEY")
        if api_key and not self.llm.api_key:
            self.llm.api_key = api_key

        if os.getenv("ELEVENLABS_API_KEY") and not self.speech.api_key:
            self.speech.api_key = os.getenv("ELEVENLABS_API_KEY")

        if os.getenv("SUPABASE_URL"):
            self.glossary.supabase_url = os.getenv("SUPABASE_URL")

        supabase_key = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")
        if supabase_key:
            self.glossary.supabase_key = supabase_key

        # Model overrides
        if os.getenv("VOLT_LLM_MODEL"):
            self.llm.model = os.getenv("VOLT_LLM_MODEL")

        if os.getenv("VOLT_LLM_BASE_URL"):
            self.llm.base_url = os.getenv("VOLT_LLM_BASE_URL")

        if os.getenv("VOLT_OLLAMA_MODEL"):
            self.llm.ollama_model = os.getenv("VOLT_OLLAMA_MODEL")

        # Path overrides
        if os.getenv("VOLT_GLOSSARY_PATH"):
            self.glossary.glossary_path = os.getenv("VOLT_GLOSSARY_PATH")

        if os.getenv("VOLT_PORT"):
            self.api.port = int(os.getenv("VOLT_PORT"))

        # Debug override
        if os.getenv("VOLT_DEBUG", "").lower() in ("true", "1", "yes"):
            self.log_level = "DEBUG"

    def configure_logging(self):
        """Apply the configured log level to the root logger"""
        logging.basicConfig(
            level=getattr(logging, self.log_level.upper(), logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )

    @classmethod
    def load_from_file(cls, config_path: str) -> 'VoltConfig':
        """Load configuration from YAML file"""
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}

            llm = LLMConfig(**config_data.get('llm', {}))
            api = APIConfig(**config_data.get('api', {}))
            glossary = GlossaryConfig(**config_data.get('glossary', {}))
            speech = SpeechConfig(**config_data.get('speech', {}))

            config = cls(llm=llm, api=api, glossary=glossary, speech=speech)

            if 'log_level' in config_data:
                config.log_level = config_data['log_level']

            return config

        except (OSError, TypeError, yaml.YAMLError) as e:
            raise ValueError(f"Failed to load config from {config_path}: {e}")

    def save_to_file(self, config_path: str):
        """Save configuration to YAML file (secrets are never written)"""
        config_data = {
            'llm': {
                'model': self.llm.model,
                'base_url': self.llm.base_url,
                'ollama_model': self.llm.ollama_model,
                'temperature': self.llm.temperature,
                'max_tokens': self.llm.max_tokens,
                'chat_max_tokens': self.llm.chat_max_tokens,
                'timeout': self.llm.timeout
            },
            'api': {
                'min_text_chars': self.api.min_text_chars,
                'max_text_chars': self.api.max_text_chars,
                'max_question_chars': self.api.max_question_chars,
                'min_max_tokens': self.api.min_max_tokens,
                'max_max_tokens': self.api.max_max_tokens,
                'chat_context_chars': self.api.chat_context_chars,
                'request_timeout': self.api.request_timeout,
                'block_internal_ips': self.api.block_internal_ips,
                'max_download_bytes': self.api.max_download_bytes,
                'host': self.api.host,
                'port': self.api.port
            },
            'glossary': {
                'glossary_path': self.glossary.glossary_path,
                'supabase_url': self.glossary.supabase_url,
                'glossary_table': self.glossary.glossary_table,
                'examples_table': self.glossary.examples_table,
                'examples_limit': self.glossary.examples_limit
            },
            'speech': {
                'base_url': self.speech.base_url,
                'model_id': self.speech.model_id,
                'stability': self.speech.stability,
                'similarity_boost': self.speech.similarity_boost,
                'timeout': self.speech.timeout
            },
            'log_level': self.log_level
        }

        with open(config_path, 'w') as f:
            yaml.dump(config_data, f, default_flow_style=False, indent=2)


# Default global configuration instance
default_config = VoltConfig()
