"""Configuration management for surveyforge."""

import json
from pathlib import Path
from typing import Any, Optional

import yaml

from surveyforge.core.logging import get_logger

logger = get_logger("surveyforge.config")

APP_DIR_NAME = ".surveyforge"
PROJECT_CONFIG_NAME = ".surveyforge.yaml"

# Market codes the feasibility estimator treats as harder to field in
DEFAULT_HARDER_ACCESS_MARKETS = ["cn", "jp", "br", "in"]


class Config:
    """Configuration manager with hierarchy: CLI args > project config > user config > defaults."""

    def __init__(self):
        """Initialize configuration with default values."""
        self.provider: str = "auto"
        self.model: Optional[str] = None
        self.temperature: float = 0.2
        self.seed: Optional[int] = None
        self.base_url: Optional[str] = None
        self.api_key: Optional[str] = None
        self.verbose: bool = False
        self.output_format: str = "text"
        self.cache_dir: Optional[str] = None
        self.store_dir: Optional[str] = None
        self.profile_path: Optional[str] = None
        self.sample_size: int = 100
        self.harder_access_markets: list[str] = list(DEFAULT_HARDER_ACCESS_MARKETS)

    @classmethod
    def load(
        cls,
        cli_args: Optional[dict[str, Any]] = None,
        config_file: Optional[Path] = None,
    ) -> "Config":
        """
        Load configuration from hierarchy: CLI args > explicit file > project config > user config > defaults.

        Args:
            cli_args: Dictionary of CLI arguments to override config
            config_file: Optional explicit config file (e.g. from --config)

        Returns:
            Config instance with loaded values
        """
        config = cls()

        user_config_path = Path.home() / APP_DIR_NAME / "config.yaml"
        if user_config_path.exists():
            config._load_file(user_config_path)

        project_config_path = Path.cwd() / PROJECT_CONFIG_NAME
        if project_config_path.exists():
            config._load_file(project_config_path)

        if config_file is not None:
            config._load_file(Path(config_file))

        if cli_args:
            for key, value in cli_args.items():
                if value is not None and hasattr(config, key):
                    setattr(config, key, value)

        return config

    def _load_file(self, config_path: Path) -> None:
        """Load configuration from a YAML or JSON file; unreadable files are skipped."""
        try:
            content = config_path.read_text(encoding="utf-8")
            if config_path.suffix in [".yaml", ".yml"]:
                data = yaml.safe_load(content)
            elif config_path.suffix == ".json":
                data = json.loads(content)
            else:
                logger.warning(f"Ignoring config file with unknown format: {config_path}")
                return
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read config file {config_path}: {e}")
            return

        if not isinstance(data, dict):
            return

        for key, value in data.items():
            if hasattr(self, key) and value is not None:
                setattr(self, key, value)

        if isinstance(self.harder_access_markets, str):
            self.harder_access_markets = [
                code.strip().lower() for code in self.harder_access_markets.split(",") if code.strip()
            ]

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "provider": self.provider,
            "model": self.model,
            "temperature": self.temperature,
            "seed": self.seed,
            "base_url": self.base_url,
            "api_key": self.api_key,
            "verbose": self.verbose,
            "output_format": self.output_format,
            "cache_dir": self.cache_dir,
            "store_dir": self.store_dir,
            "profile_path": self.profile_path,
            "sample_size": self.sample_size,
            "harder_access_markets": list(self.harder_access_markets),
        }

    def save(self, path: Path, format: str = "yaml") -> None:
        """
        Save configuration to file.

        Args:
            path: Path to save config file
            format: Format to save as ('yaml' or 'json')
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {k: v for k, v in self.to_dict().items() if v is not None}
        # Never write secrets to disk
        data.pop("api_key", None)

        if format == "yaml":
            content = yaml.dump(data, default_flow_style=False, sort_keys=False)
        else:
            content = json.dumps(data, indent=2)

        path.write_text(content, encoding="utf-8")

    def _app_subdir(self, override: Optional[str], name: str) -> Path:
        dir_path = Path(override) if override else Path.home() / APP_DIR_NAME / name
        dir_path.mkdir(parents=True, exist_ok=True)
        return dir_path

    def get_cache_dir(self) -> Path:
        """Get AI response cache directory, creating it if needed."""
        return self._app_subdir(self.cache_dir, "cache")

    def get_store_dir(self) -> Path:
        """Get submission store directory, creating it if needed."""
        return self._app_subdir(self.store_dir, "store")

    def get_profile_path(self) -> Path:
        """Get the local key-value file holding the user profile."""
        if self.profile_path:
            return Path(self.profile_path)
        return Path.home() / APP_DIR_NAME / "local_state.json"
