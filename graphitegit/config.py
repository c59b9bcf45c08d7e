"""Configuration loading and management."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from graphitegit.constants import (
    DEFAULT_HOME,
    DEFAULT_MODEL,
    DEFAULT_PAGE_DELAY_MS,
    DEFAULT_REQUEST_TIMEOUT,
    SETTING_ANTHROPIC_KEY,
    SETTING_GITHUB_TOKEN,
    SETTING_INCLUDE_FILE_CONTENT,
    SETTING_INCLUDE_REPO_MAP,
    SETTING_INCLUDE_SELECTION,
    SETTING_MODEL,
    SETTINGS_FILENAME,
    SUPPORTED_MODELS,
)
from graphitegit.context import ContextDisclosurePolicy
from graphitegit.settings import SettingsStore


@dataclass
class Config:
    """graphite-git configuration.

    Loads from .env and the environment, then from the persisted settings
    file, which holds the user's own choices and wins.
    """

    # Credentials
    anthropic_api_key: Optional[str] = None
    github_token: Optional[str] = None

    # Model settings
    default_model: str = DEFAULT_MODEL

    # Context disclosure
    include_repo_map: bool = True
    include_file_content: bool = True
    include_selection: bool = True

    # Local state and HTTP
    home_dir: Path = DEFAULT_HOME
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT
    page_delay_ms: int = DEFAULT_PAGE_DELAY_MS

    # Where an unreadable settings file was moved aside on load, if anywhere
    settings_backup: Optional[Path] = None

    @classmethod
    def load(cls, home_dir: Optional[Path] = None) -> "Config":
        """Load configuration from environment and the settings store.

        Args:
            home_dir: Override for the state directory

        Returns:
            Config instance
        """
        # Load .env file
        load_dotenv()

        home = home_dir or Path(os.getenv("GRAPHITE_HOME", str(DEFAULT_HOME))).expanduser()

        config = cls(
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            github_token=os.getenv("GITHUB_TOKEN"),
            default_model=os.getenv("GRAPHITE_DEFAULT_MODEL", DEFAULT_MODEL),
            home_dir=home,
            request_timeout=int(os.getenv("GRAPHITE_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)),
            page_delay_ms=int(os.getenv("GRAPHITE_PAGE_DELAY_MS", DEFAULT_PAGE_DELAY_MS)),
        )

        store = config.settings_store()
        config.apply_settings(store)
        config.settings_backup = store.backup_path
        return config

    @property
    def settings_path(self) -> Path:
        return self.home_dir / SETTINGS_FILENAME

    def settings_store(self) -> SettingsStore:
        return SettingsStore(self.settings_path)

    def apply_settings(self, store: SettingsStore) -> None:
        """Overlay persisted values onto this config."""
        self.anthropic_api_key = store.get(SETTING_ANTHROPIC_KEY) or self.anthropic_api_key
        self.github_token = store.get(SETTING_GITHUB_TOKEN) or self.github_token
        self.default_model = store.get(SETTING_MODEL) or self.default_model
        self.include_repo_map = store.get_bool(SETTING_INCLUDE_REPO_MAP, self.include_repo_map)
        self.include_file_content = store.get_bool(
            SETTING_INCLUDE_FILE_CONTENT, self.include_file_content
        )
        self.include_selection = store.get_bool(SETTING_INCLUDE_SELECTION, self.include_selection)

    def save(self, store: Optional[SettingsStore] = None) -> None:
        """Persist user-chosen values to the settings store."""
        store = store or self.settings_store()
        store.set(SETTING_MODEL, self.default_model)
        store.set(SETTING_ANTHROPIC_KEY, self.anthropic_api_key)
        store.set(SETTING_GITHUB_TOKEN, self.github_token)
        store.set_bool(SETTING_INCLUDE_REPO_MAP, self.include_repo_map)
        store.set_bool(SETTING_INCLUDE_FILE_CONTENT, self.include_file_content)
        store.set_bool(SETTING_INCLUDE_SELECTION, self.include_selection)
        store.save()

    def policy(self) -> ContextDisclosurePolicy:
        return ContextDisclosurePolicy(
            include_repo_map=self.include_repo_map,
            include_file_content=self.include_file_content,
            include_selection=self.include_selection,
        )

    def set_policy(self, policy: ContextDisclosurePolicy) -> None:
        self.include_repo_map = policy.include_repo_map
        self.include_file_content = policy.include_file_content
        self.include_selection = policy.include_selection

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors.

        Missing credentials are not errors here: the engine key is reported
        when a message is sent, and tools report a missing GitHub connection.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if self.default_model not in SUPPORTED_MODELS:
            errors.append(f"Unsupported model: {self.default_model}")

        if self.request_timeout <= 0:
            errors.append("request_timeout must be positive")

        if self.page_delay_ms < 0:
            errors.append("page_delay_ms must not be negative")

        return errors

    def to_dict(self) -> dict:
        """Convert config to dictionary (for logging/display)."""
        return {
            "default_model": self.default_model,
            "include_repo_map": self.include_repo_map,
            "include_file_content": self.include_file_content,
            "include_selection": self.include_selection,
            "home_dir": str(self.home_dir),
            "request_timeout": self.request_timeout,
            "page_delay_ms": self.page_delay_ms,
            "has_anthropic_key": bool(self.anthropic_api_key),
            "has_github_token": bool(self.github_token),
        }
