"""
Option resolution for printpolicy.

Hook callers pass a partial set of options; everything they leave out falls
back to the defaults declared on RuleConfig. Merging is structural:

    - Plain mappings merge key by key, recursively
    - Everything else (scalars, lists, false) replaces the default outright
    - Lists are never merged element-wise

Example:
    config = resolve_options({"siteRestrictUsers": {"restrictGroupName": "Lab"}})
    config.site_restrict_users.group_name_template  # default kept
"""

import copy
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from printpolicy.errors import ConfigNotFoundError, ConfigParseError, ConfigurationError
from printpolicy.schema import RuleConfig


def merge_options(target: Any, source: Any) -> Any:
    """
    Deep-merge ``source`` onto ``target`` and return the merged value.

    Only ``target`` is mutated. Nested mappings from ``source`` are copied
    into fresh dicts so later edits to the result never reach the caller's
    override object.

    Args:
        target: Defaults to merge into (usually a dict)
        source: Overrides; None means "no overrides"

    Returns:
        The merged target, or ``source`` if ``target`` is falsy
    """
    if not target:
        return source
    if source is None:
        return target

    for key, value in source.items():
        # Prevent never-ending loop
        if target is value:
            continue

        if isinstance(value, Mapping):
            current = target.get(key)
            base = current if isinstance(current, dict) else {}
            target[key] = merge_options(base, value) if base else _copy_mapping(value)
        else:
            target[key] = value

    return target


def _copy_mapping(value: Mapping[str, Any]) -> dict[str, Any]:
    """Copy nested mappings into plain dicts; other values are shared."""
    return {
        k: _copy_mapping(v) if isinstance(v, Mapping) else v
        for k, v in value.items()
    }


def default_options() -> dict[str, Any]:
    """Return the built-in defaults as a plain, alias-keyed dict."""
    return RuleConfig().model_dump(by_alias=True)


def resolve_options(
    overrides: Mapping[str, Any] | RuleConfig | None = None,
    source: str = "<inline>",
) -> RuleConfig:
    """
    Merge caller overrides onto the defaults and validate the result.

    Args:
        overrides: Partial options, an already resolved RuleConfig, or None
        source: Label used in error messages

    Returns:
        Validated, immutable RuleConfig

    Raises:
        ConfigurationError: If the merged options fail validation
    """
    if isinstance(overrides, RuleConfig):
        return overrides
    if overrides is not None and not isinstance(overrides, Mapping):
        raise ConfigurationError(
            source=source,
            errors=[f"options must be a mapping, got {type(overrides).__name__}"],
        )

    merged = merge_options(copy.deepcopy(default_options()), overrides)

    try:
        return RuleConfig.model_validate(merged)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigurationError(source=source, errors=errors) from e


def load_options(path: Path | str) -> RuleConfig:
    """
    Load option overrides from a YAML file and resolve them.

    An empty file means "all defaults".

    Raises:
        ConfigNotFoundError: If the file doesn't exist
        ConfigParseError: If the file isn't a YAML mapping
        ConfigurationError: If the options are invalid
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigNotFoundError(source=str(path))

    with path.open() as f:
        return _resolve_yaml(f.read(), str(path))


def load_options_from_string(content: str) -> RuleConfig:
    """Load option overrides from a YAML string."""
    return _resolve_yaml(content, "<string>")


def _resolve_yaml(content: str, source: str) -> RuleConfig:
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigParseError(source=source, errors=[str(e)]) from e

    if data is not None and not isinstance(data, Mapping):
        raise ConfigParseError(
            source=source,
            errors=[f"top level must be a mapping, got {type(data).__name__}"],
        )

    return resolve_options(data, source=source)
