"""Tests for settings loading from pyproject.toml and the environment."""
import pytest

from deadwood.analyzer.symbols import SymbolKind
from deadwood.config import Config, Settings, get_config, load_settings, parse_settings
from deadwood.errors import ConfigurationError


def write_pyproject(root, body: str):
    (root / "pyproject.toml").write_text(body, encoding="utf-8")


class TestLoadSettings:
    """Reading [tool.deadwood]."""

    def test_defaults_without_pyproject(self, tmp_path):
        settings = load_settings(tmp_path)
        assert settings == Settings()
        assert list(settings.rules) == ["classes", "methods"]

    def test_reads_tool_table(self, tmp_path):
        write_pyproject(tmp_path, """
[tool.deadwood]
entry_point_tags = ["*EventListener"]
structural_methods = ["equals"]
exempt_interface_methods = false
include_tests = true
packages = ["com.example"]
baseline_dir = "quality/baselines"
""")
        settings = load_settings(tmp_path)
        assert settings.entry_point_tags == ("*EventListener",)
        assert settings.structural_methods == ("equals",)
        assert settings.exempt_interface_methods is False
        assert settings.import_options().include_tests is True
        assert settings.import_options().packages == ("com.example",)
        assert settings.baseline_path(tmp_path) == tmp_path / "quality" / "baselines"

    def test_rule_tables(self, tmp_path):
        write_pyproject(tmp_path, """
[tool.deadwood.rules.methods]
exempt = "is_structural_method"
because = "we keep the tree clean"

[tool.deadwood.rules.services]
kind = "class"
exempt = "not has_tag('*Service')"
frozen = false
priority = "HIGH"
""")
        rules = load_settings(tmp_path).rules
        assert list(rules) == ["methods", "services"]
        assert rules["methods"].kind is SymbolKind.METHOD
        assert rules["methods"].because == "we keep the tree clean"
        assert rules["services"].kind is SymbolKind.CLASS
        assert rules["services"].frozen is False
        assert rules["services"].because is None

    def test_unparseable_toml(self, tmp_path):
        write_pyproject(tmp_path, "[tool.deadwood\n")
        with pytest.raises(ConfigurationError, match="Cannot parse"):
            load_settings(tmp_path)


class TestValidation:
    """Invalid configuration is rejected up front."""

    @pytest.mark.parametrize("table, message", [
        ({"entry_point_tags": []}, "must not be empty"),
        ({"entry_point_tags": "*Listener"}, "list of strings"),
        ({"include_tests": "yes"}, "true or false"),
        ({"priority": "URGENT"}, "Invalid priority"),
        ({"baseline_dir": ""}, "non-empty string"),
        ({"colour": "blue"}, "Unknown setting"),
        ({"rules": {}}, "non-empty table"),
        ({"rules": {"custom": {"exempt": "True"}}}, "kind must be"),
        ({"rules": {"classes": {"exempt": 3}}}, "must be a string"),
        ({"rules": {"classes": {"frozen": "no"}}}, "true or false"),
        ({"rules": {"classes": {"severity": "LOW"}}}, "Unknown key"),
        ({"rules": {"../x": {"kind": "class"}}}, "Rule name"),
    ])
    def test_rejects(self, table, message):
        with pytest.raises(ConfigurationError, match=message):
            parse_settings(table)


class TestEnvironment:
    """Environment and .env overrides."""

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEADWOOD_BASELINE_DIR", "/tmp/elsewhere")
        monkeypatch.setenv("DEADWOOD_PRIORITY", "low")
        monkeypatch.setenv("DEADWOOD_SHRINK_BASELINE", "false")
        settings = load_settings(tmp_path, Config(tmp_path))
        assert settings.baseline_dir == "/tmp/elsewhere"
        assert settings.priority == "LOW"
        assert settings.shrink_baseline is False

    def test_dotenv_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DEADWOOD_GRAPH")
        (tmp_path / ".env").write_text("DEADWOOD_GRAPH=build/graph.json\n", encoding="utf-8")
        assert Config(tmp_path).graph_path == "build/graph.json"

    def test_invalid_boolean(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEADWOOD_SHRINK_BASELINE", "maybe")
        with pytest.raises(ConfigurationError, match="DEADWOOD_SHRINK_BASELINE"):
            Config(tmp_path).shrink_baseline

    def test_get_config_is_cached_per_root(self, tmp_path):
        assert get_config(tmp_path) is get_config(tmp_path)
        assert get_config(tmp_path / ".") is get_config(tmp_path)
