"""Configuration management for Upgrade Migrator."""

import fnmatch
import logging
from pathlib import Path
from typing import Any

import toml

logger = logging.getLogger(__name__)

RN_DIFF_PURGE = "https://raw.githubusercontent.com/react-native-community/rn-diff-purge"


class Config:
    """Application configuration."""
    
    def __init__(self, config_file: Path | None = None) -> None:
        """Initialize configuration.
        
        Args:
            config_file: Optional path to configuration file
        """
        self.config_file = config_file
        self._config: dict[str, Any] = self._load_config()
    
    def _load_config(self) -> dict[str, Any]:
        """Load configuration from file or defaults."""
        config: dict[str, Any] = self._get_defaults()
        
        if self.config_file and self.config_file.exists():
            try:
                file_config = toml.load(self.config_file)
                _deep_update(config, file_config)
                logger.debug(f"Loaded config from {self.config_file}")
            except toml.TomlDecodeError as e:
                logger.warning(f"Invalid TOML in config file {self.config_file}: {e}")
            except OSError as e:
                logger.warning(f"Error loading config file {self.config_file}: {e}")
        
        return config
    
    @staticmethod
    def _get_defaults() -> dict[str, Any]:
        """Get default configuration values."""
        cache_dir = Path.home() / ".upgrade_migrator" / "cache"
        
        return {
            "diff": {
                "base_url": f"{RN_DIFF_PURGE}/diffs/diffs",
                "release_base_url": f"{RN_DIFF_PURGE}/release",
                "releases_url": f"{RN_DIFF_PURGE}/master/RELEASES",
                "root_prefix": "RnDiffApp/",
            },
            "http": {
                "timeout": 30.0,
                "max_retries": 3,
                "base_delay": 1.0,
            },
            "cache": {
                "directory": str(cache_dir),
                "enabled": True,
                "diff_ttl_hours": 0,  # Diffs between tagged releases never change
                "releases_ttl_hours": 24,
            },
            "backup": {
                "suffix": ".backup",
            },
            "analysis": {
                "surface_unclassified": False,
            },
            # Ecosystem allow-list: regex pattern -> label
            "ecosystem": {
                "version": 1,
                "patterns": {
                    r"^react-native$": "core",
                    r"^@react-native/": "core",
                    r"^react$": "core",
                    r"^@react-native-community/": "community",
                    r"^metro": "bundler",
                    r"^hermes": "engine",
                    r"^@babel/": "tooling",
                    r"^@types/react": "types",
                },
            },
            "ci": {
                "fail_on_high_risk": True,
            },
        }
    
    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.
        
        Args:
            key: Configuration key (e.g., "diff.base_url")
            default: Default value if key not found
            
        Returns:
            Configuration value
        """
        value: Any = self._config
        
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        
        return value
    
    @property
    def diff_base_url(self) -> str:
        """Base URL of the release-to-release diff files."""
        return str(self.get("diff.base_url")).rstrip("/")
    
    @property
    def release_base_url(self) -> str:
        """Base URL of the release asset tree."""
        return str(self.get("diff.release_base_url")).rstrip("/")
    
    @property
    def releases_url(self) -> str:
        """URL of the list of known releases."""
        return str(self.get("diff.releases_url"))
    
    @property
    def root_prefix(self) -> str:
        """Synthetic path prefix every diff path starts with."""
        return str(self.get("diff.root_prefix", ""))
    
    @property
    def http_timeout(self) -> float:
        """Request timeout in seconds."""
        return float(self.get("http.timeout", 30.0))
    
    @property
    def cache_dir(self) -> Path:
        """Get cache directory path."""
        cache_path = Path(self.get("cache.directory", "~/.upgrade_migrator/cache"))
        return cache_path.expanduser()
    
    @property
    def cache_enabled(self) -> bool:
        """Check if caching is enabled."""
        return bool(self.get("cache.enabled", True))
    
    @property
    def backup_suffix(self) -> str:
        """Suffix appended to a path to form its backup sibling."""
        return str(self.get("backup.suffix", ".backup"))
    
    @property
    def surface_unclassified(self) -> bool:
        """Whether files matching no classifier rule are kept in the plan."""
        return bool(self.get("analysis.surface_unclassified", False))
    
    @property
    def ecosystem_patterns(self) -> dict[str, str]:
        """Get the ecosystem allow-list table."""
        return dict(self.get("ecosystem.patterns", {}))


def _deep_update(base: dict[str, Any], overrides: dict[str, Any]) -> None:
    """Merge nested dictionaries in place."""
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_update(base[key], value)
        else:
            base[key] = value


def load_ignore_file(project_root: Path) -> list[str]:
    """Load diff path globs to ignore from a .migrationignore file.
    
    Args:
        project_root: Root directory of the project
        
    Returns:
        List of glob patterns
    """
    ignore_file = project_root / ".migrationignore"
    patterns: list[str] = []
    
    if not ignore_file.exists():
        return patterns
    
    try:
        with open(ignore_file, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                
                # Skip comments and empty lines
                if not line or line.startswith("#"):
                    continue
                
                patterns.append(line)
    
    except PermissionError as e:
        logger.warning(f"Cannot read ignore file {ignore_file}: {e}")
    except OSError as e:
        logger.warning(f"Error reading ignore file {ignore_file}: {e}")
    
    return patterns


def is_ignored(path: str, patterns: list[str], root_prefix: str = "") -> bool:
    """Check a diff path against ignore globs.
    
    Patterns match either the raw diff path or the path with the
    synthetic root prefix removed.
    """
    candidates = {path}
    if root_prefix and path.startswith(root_prefix):
        candidates.add(path[len(root_prefix):])
    
    return any(
        fnmatch.fnmatch(candidate, pattern)
        for candidate in candidates
        for pattern in patterns
    )


# Global config instance
_config: Config | None = None


def get_config(config_file: Path | None = None) -> Config:
    """Get or create global configuration instance.
    
    Args:
        config_file: Optional path to configuration file
        
    Returns:
        Config instance
    """
    global _config
    
    if _config is None:
        _config = Config(config_file)
    
    return _config


def reset_config() -> None:
    """Drop the global configuration so the next call reloads it."""
    global _config
    _config = None
