# tests/test_config.py
"""
Tests for compiler configuration.
"""

import dataclasses

import pytest

from stencil.config import ENV_NAMESPACE, ENV_RUNTIME_MODULE, CompilerConfig


class TestDefaults:

    def test_defaults(self):
        config = CompilerConfig()
        assert config.namespace == ""
        assert config.runtime_module == "stencil.runtime"
        assert config.indent == "    "
        assert config.emit_header is True
        assert config.source_map is False

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            CompilerConfig().namespace = "x"


class TestFromEnv:

    def test_reads_environment(self):
        config = CompilerConfig.from_env({ENV_NAMESPACE: "app.pages",
                                          ENV_RUNTIME_MODULE: "app.rt"})
        assert config.namespace == "app.pages"
        assert config.runtime_module == "app.rt"

    def test_empty_values_ignored(self):
        assert CompilerConfig.from_env({ENV_NAMESPACE: ""}) == CompilerConfig()

    def test_overrides_win(self):
        config = CompilerConfig.from_env({ENV_NAMESPACE: "env"}, namespace="flag")
        assert config.namespace == "flag"

    def test_none_overrides_ignored(self):
        config = CompilerConfig.from_env({ENV_NAMESPACE: "env"}, namespace=None,
                                         emit_header=None)
        assert config.namespace == "env"
        assert config.emit_header is True

    def test_process_environment(self, monkeypatch):
        monkeypatch.setenv(ENV_NAMESPACE, "from.process")
        assert CompilerConfig.from_env().namespace == "from.process"


class TestOverridesAndValidation:

    def test_with_overrides(self):
        base = CompilerConfig(namespace="a")
        changed = base.with_overrides(namespace="b", indent=None)
        assert changed.namespace == "b"
        assert changed.indent == "    "
        assert base.namespace == "a"

    def test_valid_config_has_no_warnings(self):
        assert CompilerConfig(namespace="app.pages", indent="\t").validate() == []

    @pytest.mark.parametrize("kwargs, fragment", [
        ({"namespace": "app pages"}, "namespace"),
        ({"runtime_module": "1rt"}, "runtime module"),
        ({"indent": ""}, "indent must be"),
        ({"indent": "--"}, "indent must be"),
        ({"indent": " \t"}, "mixes tabs and spaces"),
    ])
    def test_warnings(self, kwargs, fragment):
        warnings = CompilerConfig(**kwargs).validate()
        assert len(warnings) == 1
        assert fragment in warnings[0]
