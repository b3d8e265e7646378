"""Tests for configuration defaults and API key loading."""

import pytest

import clea_iso.config as config_module
import clea_iso.matching.oracle as oracle_module
from clea_iso.config import LinkageConfig, get_openai_key


@pytest.fixture
def clean_env(monkeypatch):
    """No .env file and no OpenAI keys in the environment."""
    monkeypatch.setattr(config_module, "load_dotenv", lambda *args, **kwargs: False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_PROJECT_KEY", raising=False)
    return monkeypatch


class TestLinkageConfig:
    def test_paths_derive_from_data_dir(self, tmp_path):
        cfg = LinkageConfig(data_dir=tmp_path)

        assert cfg.raw_archive_path == tmp_path / "raw" / "clea" / "clea_lc.parquet"
        assert cfg.reference_path == tmp_path / "raw" / "ISO.csv"
        assert cfg.output_dir == tmp_path / "output"
        assert cfg.validated_path == tmp_path / "temp" / "validated.parquet"

    def test_string_paths_accepted(self, tmp_path):
        cfg = LinkageConfig(data_dir=str(tmp_path), reference_path=str(tmp_path / "iso.csv"))
        assert cfg.reference_path == tmp_path / "iso.csv"


class TestGetOpenaiKey:
    def test_api_key_preferred(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "sk-api")
        clean_env.setenv("OPENAI_PROJECT_KEY", "sk-project")

        assert get_openai_key() == "sk-api"

    def test_project_key_fallback(self, clean_env):
        clean_env.setenv("OPENAI_PROJECT_KEY", "sk-project")

        assert get_openai_key() == "sk-project"

    def test_missing_key(self, clean_env):
        with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
            get_openai_key()


class TestBuildOracle:
    def test_settings_passed_through(self, clean_env, tmp_path):
        created = {}

        class FakeOpenAI:
            def __init__(self, api_key):
                created["api_key"] = api_key

        class FakeSentenceTransformer:
            def __init__(self, name):
                created["embedding_model"] = name

        clean_env.setenv("OPENAI_PROJECT_KEY", "sk-project")
        clean_env.setattr(oracle_module, "OpenAI", FakeOpenAI)
        clean_env.setattr(oracle_module, "SentenceTransformer", FakeSentenceTransformer)

        cfg = LinkageConfig(data_dir=tmp_path, chat_model="gpt-test", top_k=3, min_probability=0.25)
        oracle = oracle_module.build_oracle(cfg)

        assert created == {"api_key": "sk-project", "embedding_model": "all-MiniLM-L6-v2"}
        assert isinstance(oracle.client, FakeOpenAI)
        assert oracle.chat_model == "gpt-test"
        assert oracle.top_k == 3
        assert oracle.min_probability == 0.25

    def test_missing_key_fails_before_loading_models(self, clean_env, tmp_path):
        clean_env.setattr(oracle_module, "SentenceTransformer", pytest.fail)

        with pytest.raises(RuntimeError):
            oracle_module.build_oracle(LinkageConfig(data_dir=tmp_path))
