"""Configuration and rule loading with YAML parsing and environment variable substitution."""

import yaml
import os
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..utils.errors import InvalidRule
from .models import CollectRule, ExporterSystemConfig


class ConfigLoader:
    """Load and validate exporter configuration and collection rules."""

    @staticmethod
    def load_from_file(config_path: str) -> ExporterSystemConfig:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            ExporterSystemConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
            pydantic.ValidationError: If configuration validation fails
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        # Substitute environment variables
        raw_config = ConfigLoader._substitute_env_vars(raw_config)

        # Validate with Pydantic
        return ExporterSystemConfig(**raw_config)

    @staticmethod
    def load_rule_file(rule_path: str) -> CollectRule:
        """
        Load, validate and compile a collection rule document.

        Args:
            rule_path: Path to YAML rule file

        Returns:
            CollectRule: Compiled rule ready for traversal and collection

        Raises:
            FileNotFoundError: If rule file doesn't exist
            InvalidRule: If the document is malformed or misses mandatory fields
            UnknownConverter: If a property uses an unknown Type
        """
        rule_file = Path(rule_path)
        if not rule_file.exists():
            raise FileNotFoundError(f"Rule file not found: {rule_path}")

        with open(rule_file, 'r') as f:
            return ConfigLoader.parse_rule(f.read())

    @staticmethod
    def parse_rule(text: str) -> CollectRule:
        """
        Parse, validate and compile a rule document given as YAML text.

        Raises:
            InvalidRule: If the document is malformed or misses mandatory fields
            UnknownConverter: If a property uses an unknown Type
        """
        try:
            raw_rule = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise InvalidRule(f"rule is not valid YAML: {e}") from e

        if not isinstance(raw_rule, dict):
            raise InvalidRule("rule document must be a mapping")

        try:
            rule = CollectRule.model_validate(raw_rule)
        except ValidationError as e:
            raise InvalidRule(f"malformed rule document: {e}") from e

        rule.validate_rule()
        rule.compile()
        return rule

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """
        Recursively substitute ${ENV_VAR} placeholders with environment values.

        Args:
            obj: Object to process (str, dict, list, or primitive)

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, str):
            # Replace ${VAR_NAME} with os.getenv('VAR_NAME')
            pattern = r'\$\{(\w+)\}'
            return re.sub(pattern, lambda m: os.getenv(m.group(1), ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item) for item in obj]

        return obj
