"""Tests for svcreg.toml loading and config-driven container construction."""

from __future__ import annotations

import textwrap

import pytest
from pydantic import ValidationError

from svcreg.config import SvcRegConfig, load_config
from svcreg.errors import ConfigValidationError
from svcreg.runtime.container import ServiceContainer
from svcreg.runtime.identity import ReferenceIdentity, TypeEquivalence


class TestLoadConfig:
    def test_missing_config_uses_defaults(self, tmp_path):
        cfg = load_config(tmp_path / "nonexistent.toml")
        assert cfg.registry.identity == "type-equivalence"
        assert cfg.registry.name is None
        assert cfg.runtime.log_level == "INFO"
        assert cfg.runtime.log_json is False

    def test_reads_values(self, tmp_path):
        config_file = tmp_path / "svcreg.toml"
        config_file.write_text(textwrap.dedent("""\
            [registry]
            identity = "reference"
            name = "  designer  "

            [runtime]
            log_level = "DEBUG"
            module_levels = { "svcreg.runtime.container" = "WARNING" }
        """))
        cfg = load_config(config_file)
        assert cfg.registry.identity == "reference"
        assert cfg.registry.name == "designer"
        assert cfg.runtime.log_level == "DEBUG"
        assert cfg.runtime.module_levels == {"svcreg.runtime.container": "WARNING"}

    def test_partial_sections_fill_defaults(self, tmp_path):
        config_file = tmp_path / "svcreg.toml"
        config_file.write_text('[runtime]\nlog_json = true\n')
        cfg = load_config(config_file)
        assert cfg.runtime.log_json is True
        assert cfg.registry.identity == "type-equivalence"

    def test_invalid_identity(self, tmp_path):
        config_file = tmp_path / "svcreg.toml"
        config_file.write_text('[registry]\nidentity = "structural"\n')
        with pytest.raises(ValidationError):
            load_config(config_file)

    def test_invalid_log_bytes(self, tmp_path):
        config_file = tmp_path / "svcreg.toml"
        config_file.write_text('[runtime]\nmax_log_bytes = 0\n')
        with pytest.raises(ValidationError):
            load_config(config_file)

    def test_malformed_toml(self, tmp_path):
        config_file = tmp_path / "svcreg.toml"
        config_file.write_text("[registry\nidentity = \n")
        with pytest.raises(ConfigValidationError) as excinfo:
            load_config(config_file)
        assert excinfo.value.context["path"] == str(config_file)

    def test_blank_name_is_none(self):
        cfg = SvcRegConfig.model_validate({"registry": {"name": "   "}})
        assert cfg.registry.name is None


class TestContainerFromConfig:
    def test_default_config(self):
        c = ServiceContainer.from_config(SvcRegConfig())
        assert isinstance(c.policy, TypeEquivalence)
        assert c.parent is None

    def test_reference_policy_and_name(self):
        cfg = SvcRegConfig.model_validate(
            {"registry": {"identity": "reference", "name": "designer"}}
        )
        parent = ServiceContainer()
        c = ServiceContainer.from_config(cfg, parent)
        assert isinstance(c.policy, ReferenceIdentity)
        assert c.name == "designer"
        assert c.parent is parent
