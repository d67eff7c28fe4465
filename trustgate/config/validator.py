"""Configuration validator utilities for trustgate.

Checks configuration dictionaries before they are saved, reporting errors
and risky-but-valid settings as warnings.
"""

from typing import Dict, List, Tuple

from pydantic import ValidationError

from trustgate.hooks.models import HookEventName

from .schema import Config, HookDefinition


class ConfigValidator:
    """Utility class for validating trustgate configurations."""

    @staticmethod
    def validate_config(config_dict: Dict) -> Tuple[bool, List[str]]:
        """Validate a configuration dictionary.

        Args:
            config_dict: Configuration dictionary to validate

        Returns:
            Tuple of (is_valid, error_messages)
        """
        errors: List[str] = []

        try:
            Config(**config_dict)
        except ValidationError as e:
            for error in e.errors():
                field = '.'.join(str(x) for x in error['loc'])
                msg = error['msg']
                errors.append(f"{field}: {msg}")
            return False, errors

        valid, event_errors = ConfigValidator.validate_event_names(
            list(config_dict.get("hooks", {}).get("definitions", {}).keys())
        )
        return valid, event_errors

    @staticmethod
    def validate_event_names(names: List[str]) -> Tuple[bool, List[str]]:
        """Only the lifecycle events the agent loop fires may carry hooks."""
        known = {e.value for e in HookEventName}
        errors = [
            f"hooks.definitions.{name}: unknown event (expected one of {', '.join(sorted(known))})"
            for name in names if name not in known
        ]
        return not errors, errors

    @staticmethod
    def validate_hook_definition(definition: Dict) -> Tuple[bool, List[str]]:
        """Validate a single hook definition.

        Returns:
            Tuple of (is_valid, warnings/errors)
        """
        issues: List[str] = []

        try:
            hook = HookDefinition(**definition)
        except ValidationError as e:
            for error in e.errors():
                issues.append(f"Error: {error['msg']}")
            return False, issues

        if hook.timeout > 300:
            issues.append("Warning: hook timeout is very high (>5 minutes). A slow hook delays every turn.")

        if hook.type == "http" and hook.url and hook.url.startswith("http://") \
                and not hook.url.startswith(("http://localhost", "http://127.0.0.1")):
            issues.append("Warning: hook URL is not HTTPS. Prompts will be sent unencrypted.")

        if not hook.enabled:
            issues.append("Warning: hook is disabled and will not run.")

        return True, issues

    @staticmethod
    def validate_trust_config(trust_config: Dict, workspace_trusted=None) -> Tuple[bool, List[str]]:
        """Validate folder trust settings."""
        issues: List[str] = []

        if trust_config.get("folder_trust_enabled") and workspace_trusted is not True:
            issues.append(
                "Warning: folder trust is enabled but the workspace is not trusted. "
                "Directories will be added without asking."
            )

        return True, issues
