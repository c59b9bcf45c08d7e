"""Tests for configuration loading."""

from unittest.mock import patch

from graphitegit.config import Config
from graphitegit.constants import DEFAULT_MODEL


def _load(temp_dir, env):
    with patch.dict("os.environ", env, clear=True), patch("graphitegit.config.load_dotenv"):
        return Config.load(temp_dir)


def test_load_from_environment(temp_dir):
    """Test reading credentials and tuning from the environment."""
    config = _load(temp_dir, {
        "ANTHROPIC_API_KEY": "sk-test",
        "GITHUB_TOKEN": "ghp-test",
        "GRAPHITE_REQUEST_TIMEOUT": "10",
        "GRAPHITE_PAGE_DELAY_MS": "0",
    })

    assert config.anthropic_api_key == "sk-test"
    assert config.github_token == "ghp-test"
    assert config.default_model == DEFAULT_MODEL
    assert config.request_timeout == 10
    assert config.page_delay_ms == 0
    assert config.home_dir == temp_dir


def test_settings_override_environment(temp_dir):
    """Test that persisted choices win over the environment."""
    saved = Config(home_dir=temp_dir, default_model="anthropic:claude-haiku-4-5",
                   include_file_content=False, anthropic_api_key="stored-key")
    saved.save()

    config = _load(temp_dir, {"ANTHROPIC_API_KEY": "env-key"})

    assert config.default_model == "anthropic:claude-haiku-4-5"
    assert config.include_file_content is False
    assert config.include_repo_map is True
    assert config.anthropic_api_key == "stored-key"


def test_policy_round_trip(mock_config):
    """Test converting to and from a disclosure policy."""
    policy = mock_config.policy().merged(include_repo_map=False)

    mock_config.set_policy(policy)

    assert mock_config.include_repo_map is False
    assert mock_config.policy() == policy


def test_validate(mock_config):
    """Test configuration validation."""
    assert mock_config.validate() == []

    mock_config.default_model = "openai:gpt-4o"
    mock_config.request_timeout = 0
    errors = mock_config.validate()

    assert len(errors) == 2
    assert "Unsupported model" in errors[0]


def test_missing_credentials_are_valid(temp_dir):
    """Test that credentials are optional at startup."""
    config = Config(home_dir=temp_dir)

    assert config.validate() == []


def test_to_dict_hides_secrets(mock_config):
    """Test that secrets are not displayed."""
    data = mock_config.to_dict()

    assert data["has_anthropic_key"] is True
    assert "test_key" not in data.values()
    assert "test_token" not in data.values()


def test_load_reports_settings_backup(temp_dir):
    """Test that a damaged settings file is surfaced after loading."""
    (temp_dir / "settings.json").write_text("not json at all")

    config = _load(temp_dir, {"ANTHROPIC_API_KEY": "env-key"})

    assert config.settings_backup == temp_dir / "settings.json.bak"
    assert config.anthropic_api_key == "env-key"
