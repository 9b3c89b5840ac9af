"""Configuration loader with YAML support and environment variable substitution."""

import copy
import os
import re
from typing import Any, Dict

import yaml

from models import normalize_id

DEFAULT_STATUS_TAG = 'Publish'
DEFAULT_NOTION_VERSION = '2022-06-28'


class ConfigLoader:
    """Handles loading and validation of configuration files."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    @classmethod
    def load(cls, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            config_data = {}

        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a dictionary")

        return cls._substitute_env_vars_recursive(config_data)

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration for required fields and correct values.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ValueError: If validation fails
        """
        cls._validate_required_field(config, 'notion.token')
        cls._validate_required_field(config, 'pull.root_page')
        cls._validate_required_field(config, 'export.markdown_output_path')

        root_page = str(get_nested(config, 'pull.root_page'))
        try:
            normalize_id(root_page)
        except ValueError:
            raise ValueError(
                f"pull.root_page must be a Notion page id or page URL, got '{root_page}'"
            ) from None

        status_tag = get_nested(config, 'pull.status_tag', DEFAULT_STATUS_TAG)
        if not isinstance(status_tag, str) or not status_tag:
            raise ValueError("pull.status_tag must be a non-empty string ('*' disables filtering)")

        output_dir = get_nested(config, 'export.markdown_output_path')
        if os.path.exists(output_dir) and not os.path.isdir(output_dir):
            raise ValueError(f"export.markdown_output_path '{output_dir}' is not a directory")

        image_dir = get_nested(config, 'export.image_output_path')
        if image_dir and os.path.exists(image_dir) and not os.path.isdir(image_dir):
            raise ValueError(f"export.image_output_path '{image_dir}' is not a directory")

        frontmatter = get_nested(config, 'export.frontmatter', False)
        if not isinstance(frontmatter, bool):
            raise ValueError("export.frontmatter must be a boolean")

        timeout = get_nested(config, 'advanced.request_timeout', 30)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError("advanced.request_timeout must be a positive number")

        max_retries = get_nested(config, 'advanced.max_retries', 3)
        if not isinstance(max_retries, int) or max_retries < 0:
            raise ValueError("advanced.max_retries must be a non-negative integer")

        rate_limit = get_nested(config, 'advanced.rate_limit', 0.35)
        if not isinstance(rate_limit, (int, float)) or rate_limit < 0:
            raise ValueError("advanced.rate_limit must be a non-negative number")

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Merge configuration file with CLI arguments.
        CLI arguments take precedence over config file values.

        Args:
            config: Base configuration dictionary
            args: CLI arguments with attributes matching config keys

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(config)

        for section in ('notion', 'pull', 'export', 'logging'):
            if not isinstance(merged.get(section), dict):
                merged[section] = {}

        if getattr(args, 'notion_token', None):
            merged['notion']['token'] = args.notion_token

        if getattr(args, 'root_page', None):
            merged['pull']['root_page'] = args.root_page

        if getattr(args, 'status_tag', None):
            merged['pull']['status_tag'] = args.status_tag

        if getattr(args, 'dry_run', None) is not None:
            merged['pull']['dry_run'] = args.dry_run

        if getattr(args, 'output_dir', None):
            merged['export']['markdown_output_path'] = args.output_dir

        if getattr(args, 'image_dir', None):
            merged['export']['image_output_path'] = args.image_dir

        if getattr(args, 'image_prefix', None):
            merged['export']['image_prefix_in_markdown'] = args.image_prefix

        verbose = getattr(args, 'verbose', 0) or 0
        if verbose >= 2:
            merged['logging']['level'] = 'DEBUG'
        elif verbose == 1:
            merged['logging']['level'] = 'INFO'

        return merged

    @classmethod
    def _substitute_env_vars_recursive(cls, data: Any) -> Any:
        """Recursively substitute environment variables in data structure."""
        if isinstance(data, dict):
            return {key: cls._substitute_env_vars_recursive(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [cls._substitute_env_vars_recursive(item) for item in data]
        elif isinstance(data, str):
            return cls._substitute_env_vars(data)
        else:
            return data

    @classmethod
    def _substitute_env_vars(cls, value: str) -> str:
        """Substitute environment variables in a string value."""
        def replace_match(match):
            env_value = os.getenv(match.group(1))
            return env_value if env_value is not None else match.group(0)

        return cls.ENV_VAR_PATTERN.sub(replace_match, value)

    @staticmethod
    def _validate_required_field(config: dict, field: str) -> None:
        """Validate that a required field exists and has a value."""
        value = get_nested(config, field)
        if value is None or value == '':
            raise ValueError(f"Missing required configuration: {field}")

        if isinstance(value, str) and '${' in value:
            match = ConfigLoader.ENV_VAR_PATTERN.search(value)
            var_name = match.group(1) if match else value
            raise ValueError(
                f"Configuration field '{field}' contains unsubstituted environment variable: {value}. "
                f"Please set the {var_name} environment variable or provide a value in config file."
            )


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "notion.token")
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default
    """
    value = config

    for key in path.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


__all__ = ['ConfigLoader', 'get_nested', 'DEFAULT_STATUS_TAG', 'DEFAULT_NOTION_VERSION']
