"""
Unit tests for option resolution.

Tests cover:
- Deep merge semantics (mappings merge, lists and scalars replace)
- Aliasing and self-reference safety
- Resolving onto RuleConfig defaults
- YAML loading and error reporting
"""

from pathlib import Path

import pytest

from printpolicy.config import (
    default_options,
    load_options,
    load_options_from_string,
    merge_options,
    resolve_options,
)
from printpolicy.errors import ConfigNotFoundError, ConfigParseError, ConfigurationError
from printpolicy.schema import RuleConfig, SiteRestrictConfig


class TestMergeOptions:
    """Tests for the structural deep merge."""

    def test_none_source_returns_target(self) -> None:
        """No overrides leaves the defaults untouched."""
        defaults = {"a": 1, "b": {"c": 2}}
        assert merge_options(defaults, None) is defaults
        assert defaults == {"a": 1, "b": {"c": 2}}

    def test_falsy_target_returns_source(self) -> None:
        """Nothing to merge into means the overrides win outright."""
        source = {"a": 1}
        assert merge_options(None, source) is source
        assert merge_options({}, source) is source

    def test_disjoint_keys_union(self) -> None:
        """Disjoint keys produce the union."""
        assert merge_options({"a": 1}, {"b": 2}) == {"a": 1, "b": 2}

    def test_nested_mappings_merge(self) -> None:
        """Nested mappings merge key by key."""
        merged = merge_options(
            {"site": {"group": "G", "template": "T"}},
            {"site": {"group": "H"}},
        )
        assert merged == {"site": {"group": "H", "template": "T"}}

    def test_lists_are_replaced(self) -> None:
        """Lists are never merged element-wise."""
        merged = merge_options({"names": ["a", "b", "c"]}, {"names": ["z"]})
        assert merged == {"names": ["z"]}

    def test_scalar_replaces_mapping(self) -> None:
        """False disables a nested option group."""
        merged = merge_options({"site": {"group": "G"}}, {"site": False})
        assert merged == {"site": False}

    def test_mapping_replaces_scalar(self) -> None:
        """A mapping onto a scalar default becomes a fresh mapping."""
        merged = merge_options({"discount": False}, {"discount": {"Staff": {"bw": 1}}})
        assert merged == {"discount": {"Staff": {"bw": 1}}}

    def test_override_mapping_not_aliased(self) -> None:
        """Edits to the merged result never reach the caller's overrides."""
        overrides = {"discount": {"Staff": {"bw": 1}}}
        merged = merge_options({"discount": False}, overrides)

        merged["discount"]["Staff"]["bw"] = 99

        assert overrides == {"discount": {"Staff": {"bw": 1}}}

    def test_self_reference_skipped(self) -> None:
        """A source value that is the target itself is skipped."""
        target = {"a": 1}
        source = {"loop": target, "b": 2}
        merged = merge_options(target, source)
        assert merged == {"a": 1, "b": 2}


class TestResolveOptions:
    """Tests for resolving overrides onto RuleConfig."""

    def test_no_overrides_is_defaults(self) -> None:
        """resolve(None) equals the built-in defaults."""
        assert resolve_options(None) == RuleConfig()
        assert resolve_options({}) == RuleConfig()

    def test_defaults(self) -> None:
        """Documented defaults."""
        config = resolve_options()
        assert config.discount_groups is False
        assert config.free_groups == "auto"
        assert config.notify_printed is False
        assert config.no_client_account == "[personal]"
        assert config.check_account_printer_group is True
        assert config.site_restrict_users == SiteRestrictConfig()
        assert config.external_account.check_balance is True
        assert config.external_account.enable_user_groups == [
            "CITES-PaperCut-ExternalAccountUsers"
        ]
        assert config.personal_accounts.names == []
        assert config.personal_accounts.add_defaults is True

    def test_partial_nested_override(self) -> None:
        """Overriding one sub-option keeps its siblings."""
        config = resolve_options({"siteRestrictUsers": {"restrictGroupName": "Lab"}})
        assert config.site_restrict_users.restrict_group_name == "Lab"
        assert config.site_restrict_users.group_name_template == (
            "CITES-PaperCut-SiteUsers-%site%"
        )

    def test_disable_group(self) -> None:
        """Option groups can be switched off with false."""
        config = resolve_options({"siteRestrictUsers": False, "externalAccount": False})
        assert config.site_restrict_users is False
        assert config.external_account is False

    def test_list_override_replaces(self) -> None:
        """List options are replaced wholesale."""
        config = resolve_options({"externalAccount": {"enableUserGroups": ["A", "B"]}})
        assert config.external_account.enable_user_groups == ["A", "B"]

    def test_defaults_not_shared_between_calls(self) -> None:
        """Resolving never mutates the defaults seen by later calls."""
        resolve_options({"externalAccount": {"printerGroups": ["X"]}})
        assert default_options()["externalAccount"]["printerGroups"] == ["Account:External"]

    def test_resolved_config_passes_through(self) -> None:
        """An already resolved config is returned as is."""
        config = resolve_options({"notifyPrinted": True})
        assert resolve_options(config) is config

    def test_unknown_option_rejected(self) -> None:
        """Typos surface as configuration errors."""
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_options({"notifyPrinteed": True})
        assert any("notifyPrinteed" in e for e in exc_info.value.errors)

    def test_bad_regexp_rejected(self) -> None:
        """The site pattern must compile."""
        with pytest.raises(ConfigurationError):
            resolve_options({"siteRestrictUsers": {"printerNameRegexp": "(unclosed"}})

    def test_non_mapping_rejected(self) -> None:
        """Options must be a mapping."""
        with pytest.raises(ConfigurationError):
            resolve_options(["notifyPrinted"])  # type: ignore[arg-type]


class TestLoadOptions:
    """Tests for YAML loading."""

    def test_load_from_string(self, sample_options_yaml: str) -> None:
        """YAML overrides are merged onto the defaults."""
        config = load_options_from_string(sample_options_yaml)
        assert config.notify_printed is True
        assert config.discount_groups == {"CITES-ICS-Staff": {"bw": 0.05, "color": 0.20}}
        assert config.site_restrict_users.restrict_group_name == "Lab-SiteUsers"
        assert config.site_restrict_users.printer_name_regexp == r"^([a-z0-9]+)[_-]"

    def test_empty_file_means_defaults(self, temp_dir: Path) -> None:
        """An empty options file resolves to the defaults."""
        path = temp_dir / "empty.yaml"
        path.write_text("")
        assert load_options(path) == RuleConfig()

    def test_load_from_file(self, temp_dir: Path, sample_options_yaml: str) -> None:
        """Options load from a file path."""
        path = temp_dir / "site.yaml"
        path.write_text(sample_options_yaml)
        assert load_options(path).notify_printed is True

    def test_missing_file(self, temp_dir: Path) -> None:
        """A missing file raises ConfigNotFoundError."""
        with pytest.raises(ConfigNotFoundError):
            load_options(temp_dir / "nope.yaml")

    def test_invalid_yaml(self) -> None:
        """Broken YAML raises ConfigParseError."""
        with pytest.raises(ConfigParseError):
            load_options_from_string("notifyPrinted: [unclosed")

    def test_top_level_list(self) -> None:
        """The top level must be a mapping."""
        with pytest.raises(ConfigParseError):
            load_options_from_string("- notifyPrinted")
