"""Constants and default values for graphite-git."""

from pathlib import Path

# Default model configuration
DEFAULT_MODEL = "anthropic:claude-sonnet-4-5"

# Local state
DEFAULT_HOME = Path.home() / ".graphite-git"
SETTINGS_FILENAME = "settings.json"
SETTINGS_VERSION = 1

# Keys in the persisted settings store
SETTING_MODEL = "agent_model"
SETTING_ANTHROPIC_KEY = "anthropic_api_key"
SETTING_GITHUB_TOKEN = "github_token"
SETTING_INCLUDE_REPO_MAP = "include_repo_map"
SETTING_INCLUDE_FILE_CONTENT = "include_file_content"
SETTING_INCLUDE_SELECTION = "include_selection"

# GitHub REST API
GITHUB_API_BASE = "https://api.github.com"
GITHUB_ACCEPT = "application/vnd.github+json"
DEFAULT_REQUEST_TIMEOUT = 30  # seconds

# Bulk scans (followers/following)
PAGE_SIZE = 100
MAX_SCAN_PAGES = 50
DEFAULT_PAGE_DELAY_MS = 300
RATE_LIMIT_STATUSES = (403, 429)

# Tool names declared to the reasoning engine
TOOL_LIST_FILES = "list_files"
TOOL_READ_FILE = "read_file"
TOOL_CREATE_OR_UPDATE_FILE = "create_or_update_file"
TOOL_REPLACE_IN_FILE = "replace_in_file"
TOOL_DELETE_FILE = "delete_file"

MUTATING_TOOLS = frozenset({
    TOOL_CREATE_OR_UPDATE_FILE,
    TOOL_REPLACE_IN_FILE,
    TOOL_DELETE_FILE,
})

# Fixed result strings handed back to the engine
MISSING_CONTEXT_MESSAGE = "Context (owner/repo) is missing and not provided."
NO_SERVICE_MESSAGE = "No GitHub service connection."
EMPTY_FILE_MESSAGE = "File is empty or a directory."
PATCH_MISMATCH_MESSAGE = (
    "Could not find the 'search' text in the file. "
    "Ensure the search block matches the file content exactly."
)
MISSING_ENGINE_KEY_MESSAGE = "Anthropic API key not configured. Set ANTHROPIC_API_KEY or use /key."
CANCELLED_MESSAGE = "Tool execution cancelled by user."
DEFERRED_CALL_MESSAGE = "Skipped: only the first tool call of a response is actionable."

# Model descriptors - Anthropic Claude models only
SUPPORTED_MODELS = {
    # Claude Sonnet 4.5 - Latest flagship model (best for coding and agents)
    "anthropic:claude-sonnet-4-5": {
        "provider": "anthropic",
        "name": "claude-sonnet-4-5-20250929",
        "max_output_tokens": 8192,
    },
    # Claude Haiku 4.5 - Fast and cost-effective
    "anthropic:claude-haiku-4-5": {
        "provider": "anthropic",
        "name": "claude-haiku-4-5-20251001",
        "max_output_tokens": 8192,
    },
    # Claude Opus 4.1 - Most capable for complex reasoning
    "anthropic:claude-opus-4-1": {
        "provider": "anthropic",
        "name": "claude-opus-4-1-20250805",
        "max_output_tokens": 8192,
    },
}
