import pytest
import yaml

from voltlegal.core.config import LLMConfig, VoltConfig

ENV_VARS = [
    "OPENROUTER_API_KEY", "OPENAI_API_KEY", "ELEVENLABS_API_KEY", "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_ANON_KEY", "VOLT_LLM_MODEL", "VOLT_LLM_BASE_URL",
    "VOLT_OLLAMA_MODEL", "VOLT_GLOSSARY_PATH", "VOLT_PORT", "VOLT_DEBUG",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    config = VoltConfig()
    assert config.llm.api_key is None
    assert config.api.max_text_chars == 2800
    assert config.api.port == 8000
    assert config.api.max_download_bytes == 2 * 1024 * 1024
    assert config.glossary.glossary_table == "legal_glossary"
    assert config.log_level == "INFO"


def test_env_overrides(clean_env):
    clean_env.setenv("OPENROUTER_API_KEY", "sk-or")
    clean_env.setenv("ELEVENLABS_API_KEY", "xi")
    clean_env.setenv("SUPABASE_URL", "https://db.example.com")
    clean_env.setenv("SUPABASE_ANON_KEY", "anon")
    clean_env.setenv("VOLT_LLM_MODEL", "anthropic/claude-3-haiku")
    clean_env.setenv("VOLT_PORT", "9001")
    clean_env.setenv("VOLT_DEBUG", "true")

    config = VoltConfig()
    assert config.llm.api_key == "sk-or"
    assert config.speech.api_key == "xi"
    assert config.glossary.supabase_url == "https://db.example.com"
    assert config.glossary.supabase_key == "anon"
    assert config.llm.model == "anthropic/claude-3-haiku"
    assert config.api.port == 9001
    assert config.log_level == "DEBUG"


def test_explicit_key_wins_over_env(clean_env):
    clean_env.setenv("OPENAI_API_KEY", "from-env")
    config = VoltConfig(llm=LLMConfig(api_key="explicit"))
    assert config.llm.api_key == "explicit"


def test_save_and_load_roundtrip(clean_env, tmp_path):
    config = VoltConfig()
    config.llm.model = "openai/gpt-4o"
    config.llm.api_key = "secret"
    config.api.max_text_chars = 5000
    config.glossary.glossary_path = "glossary.yaml"
    config.log_level = "WARNING"

    path = tmp_path / "volt.yaml"
    config.save_to_file(str(path))

    assert "secret" not in path.read_text()

    loaded = VoltConfig.load_from_file(str(path))
    assert loaded.llm.model == "openai/gpt-4o"
    assert loaded.llm.api_key is None
    assert loaded.api.max_text_chars == 5000
    assert loaded.glossary.glossary_path == "glossary.yaml"
    assert loaded.log_level == "WARNING"


def test_load_rejects_unknown_keys(clean_env, tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.dump({"llm": {"flavour": "vanilla"}}))
    with pytest.raises(ValueError, match="Failed to load config"):
        VoltConfig.load_from_file(str(path))


def test_load_missing_file(clean_env, tmp_path):
    with pytest.raises(ValueError):
        VoltConfig.load_from_file(str(tmp_path / "missing.yaml"))
