import json
import os
from pathlib import Path
from string import Template
from typing import Any, Dict, Optional, Union

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from photo_judge.models.config import CompetitionConfig, ScorerSettings
from photo_judge.utils.exceptions import ConfigValidationError

logger = structlog.get_logger()

# Looked up in this order inside a project directory
CONFIG_FILENAMES = ("open-call.json", "open-call.yaml", "open-call.yml")


class ConfigManager:
    """Loads the competition config of a project"""

    def __init__(
        self,
        project_dir: Union[str, Path] = ".",
        config_path: Optional[Union[str, Path]] = None,
    ):
        self.project_dir = Path(project_dir)
        self.config_path = Path(config_path) if config_path else None
        self.env_loaded = False
        self._config: Optional[CompetitionConfig] = None

    def find_config_file(self) -> Path:
        """Locate the open-call file, explicit path first"""
        if self.config_path is not None:
            if not self.config_path.exists():
                raise FileNotFoundError(
                    f"Configuration file not found: {self.config_path}"
                )
            return self.config_path

        for name in CONFIG_FILENAMES:
            candidate = self.project_dir / name
            if candidate.exists():
                return candidate

        raise FileNotFoundError(
            f"No open-call config ({', '.join(CONFIG_FILENAMES)}) "
            f"found in {self.project_dir}"
        )

    def load_config(self) -> CompetitionConfig:
        """Load and validate the competition config"""
        if self._config:
            return self._config

        # 1. Load environment
        self._load_env()

        # 2. Locate file
        path = self.find_config_file()

        # 3. Read
        try:
            raw_content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigValidationError(f"Failed to read config file: {e}") from e

        # 4. Substitute env vars and parse
        data = self._parse(raw_content, path)

        # 5. Validate with Pydantic
        try:
            self._config = CompetitionConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid configuration: {e}") from e

        logger.info(
            "config_loaded",
            path=str(path),
            title=self._config.title,
            custom_criteria=bool(self._config.custom_criteria),
            set_mode=bool(self._config.set_mode and self._config.set_mode.enabled),
        )
        return self._config

    def load_scorer_settings(self) -> ScorerSettings:
        """Scorer connection settings from the environment (.env included)"""
        self._load_env()
        return ScorerSettings.from_env()

    def _load_env(self) -> None:
        if not self.env_loaded:
            load_dotenv()
            self.env_loaded = True

    @staticmethod
    def _parse(raw_content: str, path: Path) -> Dict[str, Any]:
        try:
            # safe_substitute leaves unknown ${VAR} references untouched
            substituted = Template(raw_content).safe_substitute(os.environ)
            if path.suffix == ".json":
                data = json.loads(substituted)
            else:
                data = yaml.safe_load(substituted)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigValidationError(
                f"Failed to parse {path.name} or substitute variables: {e}"
            ) from e

        if not isinstance(data, dict):
            raise ConfigValidationError(
                f"{path.name} must contain a mapping at the top level"
            )
        return data
