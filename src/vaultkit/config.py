"""Configuration management for vaultkit.

This module contains all configurable constants for the vault index.
Magic numbers are documented here rather than scattered throughout the codebase.
"""

import os
from pathlib import Path

CONFIG_FILENAME = ".vaultkit.yaml"


class ConfigurationError(Exception):
    """Raised when required configuration is missing."""

    pass


def get_vault_root() -> Path:
    """Get the vault root directory.

    Discovery order:
    1. VAULTKIT_VAULT_PATH environment variable (explicit override)
    2. VAULT_PATH environment variable
    3. Walk up from cwd looking for .vaultkit.yaml with a vault_path field
    4. Error with helpful message

    Raises:
        ConfigurationError: If no vault can be found.
    """
    for var in ("VAULTKIT_VAULT_PATH", "VAULT_PATH"):
        root = os.environ.get(var)
        if root:
            return Path(root).expanduser()

    project_config = _discover_project_config()
    if project_config:
        _, data, base = project_config
        if "vault_path" in data:
            vault_path = (base / str(data["vault_path"])).expanduser().resolve()
            if vault_path.is_dir():
                return vault_path

    raise ConfigurationError(
        "No vault configured. Options:\n"
        "  1. Set VAULTKIT_VAULT_PATH (or VAULT_PATH) to your vault directory\n"
        f"  2. Add a {CONFIG_FILENAME} with 'vault_path: ...' to this project\n"
        "  3. Pass --vault to the vk command"
    )


def _discover_project_config(
    start_dir: Path | None = None, max_depth: int = 10
) -> tuple[Path, dict, Path] | None:
    """Walk up from start_dir looking for a .vaultkit.yaml file.

    Args:
        start_dir: Directory to start from (defaults to cwd)
        max_depth: Maximum directories to traverse up

    Returns:
        Tuple of (config_path, parsed_data, containing_dir) if found, None otherwise.
    """
    import yaml

    current = Path(start_dir or os.getcwd()).resolve()

    for _ in range(max_depth):
        config_file = current / CONFIG_FILENAME
        if config_file.exists():
            try:
                data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            except (OSError, yaml.YAMLError):
                data = {}
            if isinstance(data, dict):
                return (config_file, data, current)

        parent = current.parent
        if parent == current:  # Reached filesystem root
            break
        current = parent

    return None


def _config_list(project_config: tuple[Path, dict, Path] | None, key: str) -> list[str]:
    if not project_config:
        return []
    value = project_config[1].get(key) or []
    if isinstance(value, str):
        value = [value]
    return [str(v) for v in value if v]


def get_exclusions() -> tuple[frozenset[str], tuple[str, ...]]:
    """Excluded directory names and vault-relative path prefixes.

    Both are the defaults plus whatever the project config adds; the config
    file is discovered once per call.
    """
    project_config = _discover_project_config()
    dirs = frozenset(EXCLUDED_DIRS) | frozenset(_config_list(project_config, "exclude_dirs"))
    extra = [
        p if p.endswith("/") else f"{p}/"
        for p in _config_list(project_config, "exclude_prefixes")
    ]
    return dirs, tuple(EXCLUDED_PREFIXES) + tuple(extra)


# =============================================================================
# Vault Scanning
# =============================================================================

# Directory names skipped anywhere in the vault. These hold app state,
# plugin output or templates whose placeholder links would show up as broken.
EXCLUDED_DIRS = (
    ".obsidian",
    "smart-chats",
    "templates",
    ".claude",
    "Excalidraw",
    ".trash",
)

# Vault-relative prefixes skipped entirely (generated reports).
EXCLUDED_PREFIXES = ("TagsRoutes/reports/",)

# Only files with this suffix are treated as notes.
NOTE_SUFFIX = ".md"


# =============================================================================
# Query Limits
# =============================================================================

# Default page size for every list-shaped result
DEFAULT_LIMIT = 50

# Default BFS depth for link traversal
DEFAULT_TRAVERSE_DEPTH = 2

# Maximum names accepted by one batch call (resolve / backlinks)
MAX_BATCH_NAMES = 50


# =============================================================================
# Search
# =============================================================================

# Edit-distance cut-off for near-duplicate note names.
# 3 catches typos and pluralisation without pairing unrelated short names.
SIMILAR_NAME_MAX_DISTANCE = 3

# Text of the synthetic line-0 match emitted for a note whose name matches
NAME_MATCH_MARKER = "[name match]"


# =============================================================================
# Watcher
# =============================================================================

# Quiet period after the last .md change before a full rebuild is run.
# Editors write several events per save; 2s collapses them into one rebuild.
WATCH_DEBOUNCE_SECONDS = 2.0
