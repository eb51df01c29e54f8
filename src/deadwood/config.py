"""Configuration management for Deadwood.

Rule settings live in ``[tool.deadwood]`` of the analyzed project's
``pyproject.toml``. Run-level switches can be overridden from environment
variables, including a ``.env`` file in the project root.
"""
import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

from .analyzer.graph_provider import ImportOptions
from .analyzer.predicates import (
    DEFAULT_CLASS_EXEMPTION,
    DEFAULT_COMPONENT_PATTERNS,
    DEFAULT_CONFIGURATION_PATTERNS,
    DEFAULT_CONTROLLER_PATTERNS,
    DEFAULT_FRAMEWORK_ENTRY_METHODS,
    DEFAULT_FRAMEWORK_ENTRY_PATTERNS,
    DEFAULT_METHOD_EXEMPTION,
    DEFAULT_STRUCTURAL_METHODS,
)
from .analyzer.symbols import SymbolKind
from .analyzer.tag_rules import DEFAULT_ENTRY_POINT_PATTERNS
from .errors import ConfigurationError
from .freeze.baseline import is_valid_rule_name
from .rules.rule import Priority, RuleSpec, default_rule_specs

__version__ = "1.0.0"

DEFAULT_BASELINE_DIR = "deadwood_store"


@dataclass(frozen=True)
class Settings:
    """Everything a run needs to know besides the graph itself."""
    entry_point_tags: Tuple[str, ...] = DEFAULT_ENTRY_POINT_PATTERNS
    component_tags: Tuple[str, ...] = DEFAULT_COMPONENT_PATTERNS
    configuration_tags: Tuple[str, ...] = DEFAULT_CONFIGURATION_PATTERNS
    controller_tags: Tuple[str, ...] = DEFAULT_CONTROLLER_PATTERNS
    framework_entry_tags: Tuple[str, ...] = DEFAULT_FRAMEWORK_ENTRY_PATTERNS
    framework_entry_methods: Tuple[str, ...] = DEFAULT_FRAMEWORK_ENTRY_METHODS
    structural_methods: Tuple[str, ...] = DEFAULT_STRUCTURAL_METHODS
    exempt_superclass_overrides: bool = True
    exempt_interface_methods: bool = True
    priority: str = Priority.MEDIUM.value
    baseline_dir: str = DEFAULT_BASELINE_DIR
    shrink_baseline: bool = True
    include_tests: bool = False
    include_archives: bool = False
    packages: Tuple[str, ...] = ()
    rules: Dict[str, RuleSpec] = field(default_factory=default_rule_specs)

    def import_options(self) -> ImportOptions:
        return ImportOptions(
            include_tests=self.include_tests,
            include_archives=self.include_archives,
            packages=self.packages,
        )

    def baseline_path(self, project_root: str | Path) -> Path:
        path = Path(self.baseline_dir)
        return path if path.is_absolute() else Path(project_root) / path


_LIST_KEYS = {
    'entry_point_tags', 'component_tags', 'configuration_tags', 'controller_tags',
    'framework_entry_tags', 'framework_entry_methods', 'structural_methods', 'packages',
}
_BOOL_KEYS = {
    'exempt_superclass_overrides', 'exempt_interface_methods', 'shrink_baseline',
    'include_tests', 'include_archives',
}
_STR_KEYS = {'priority', 'baseline_dir'}
_RULE_KEYS = {'kind', 'exempt', 'description', 'because', 'frozen', 'priority'}

_TRUE = {'1', 'true', 'yes', 'on'}
_FALSE = {'0', 'false', 'no', 'off'}


class Config:
    """Environment-backed run configuration."""

    def __init__(self, project_root: str | Path = "."):
        """Initialize config by loading the project's .env file."""
        self.project_root = Path(project_root).resolve()
        load_dotenv(self.project_root / ".env")

    @property
    def baseline_dir(self) -> Optional[str]:
        """Baseline directory override (DEADWOOD_BASELINE_DIR)."""
        return os.getenv("DEADWOOD_BASELINE_DIR")

    @property
    def priority(self) -> Optional[str]:
        """Report priority override (DEADWOOD_PRIORITY)."""
        return os.getenv("DEADWOOD_PRIORITY")

    @property
    def shrink_baseline(self) -> Optional[bool]:
        """Whether resolved violations are dropped from baselines (DEADWOOD_SHRINK_BASELINE)."""
        return _env_bool("DEADWOOD_SHRINK_BASELINE")

    @property
    def graph_path(self) -> Optional[str]:
        """Default graph document (DEADWOOD_GRAPH)."""
        return os.getenv("DEADWOOD_GRAPH")

    @property
    def verbose(self) -> bool:
        return bool(_env_bool("DEADWOOD_VERBOSE"))


_configs: Dict[Path, Config] = {}


def get_config(project_root: str | Path = ".") -> Config:
    """Get or create the Config for a project root."""
    key = Path(project_root).resolve()
    if key not in _configs:
        _configs[key] = Config(key)
    return _configs[key]


def load_settings(project_root: str | Path = ".", config: Optional[Config] = None) -> Settings:
    """Load settings from pyproject.toml and the environment.

    Args:
        project_root: Project whose pyproject.toml holds ``[tool.deadwood]``
        config: Environment config (defaults to get_config(project_root))

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    project_root = Path(project_root)
    table = _read_tool_table(project_root / "pyproject.toml")
    settings = parse_settings(table)

    config = config or get_config(project_root)
    overrides = {}
    if config.baseline_dir:
        overrides['baseline_dir'] = config.baseline_dir
    if config.priority:
        overrides['priority'] = Priority.parse(config.priority).value
    if config.shrink_baseline is not None:
        overrides['shrink_baseline'] = config.shrink_baseline
    return replace(settings, **overrides) if overrides else settings


def parse_settings(table: dict) -> Settings:
    """Validate a ``[tool.deadwood]`` table and turn it into Settings."""
    if not isinstance(table, dict):
        raise ConfigurationError("[tool.deadwood] must be a table")

    values = {}
    for key, value in table.items():
        if key == 'rules':
            continue
        if key in _LIST_KEYS:
            if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                raise ConfigurationError(f"tool.deadwood.{key} must be a list of strings")
            values[key] = tuple(value)
        elif key in _BOOL_KEYS:
            if not isinstance(value, bool):
                raise ConfigurationError(f"tool.deadwood.{key} must be true or false")
            values[key] = value
        elif key in _STR_KEYS:
            if not isinstance(value, str) or not value:
                raise ConfigurationError(f"tool.deadwood.{key} must be a non-empty string")
            values[key] = value
        else:
            raise ConfigurationError(f"Unknown setting tool.deadwood.{key}")

    if 'rules' in table:
        values['rules'] = _parse_rules(table['rules'])

    settings = Settings(**values)
    if not settings.entry_point_tags:
        raise ConfigurationError("tool.deadwood.entry_point_tags must not be empty")
    Priority.parse(settings.priority)
    return settings


def _parse_rules(rules_table) -> Dict[str, RuleSpec]:
    if not isinstance(rules_table, dict) or not rules_table:
        raise ConfigurationError("tool.deadwood.rules must be a non-empty table of rules")

    defaults = default_rule_specs()
    specs = {}
    for name, rule in rules_table.items():
        if not is_valid_rule_name(name):
            raise ConfigurationError(
                f"Rule name {name!r} may only contain letters, digits, '.', '-' and '_'"
            )
        if not isinstance(rule, dict):
            raise ConfigurationError(f"tool.deadwood.rules.{name} must be a table")
        unknown = set(rule) - _RULE_KEYS
        if unknown:
            raise ConfigurationError(
                f"Unknown key(s) in tool.deadwood.rules.{name}: {', '.join(sorted(unknown))}"
            )

        kind_value = rule.get('kind', defaults[name].kind.value if name in defaults else None)
        try:
            kind = SymbolKind(kind_value)
        except ValueError:
            raise ConfigurationError(
                f"tool.deadwood.rules.{name}.kind must be 'class' or 'method'"
            ) from None

        default_exempt = DEFAULT_CLASS_EXEMPTION if kind is SymbolKind.CLASS else DEFAULT_METHOD_EXEMPTION
        frozen = rule.get('frozen', True)
        if not isinstance(frozen, bool):
            raise ConfigurationError(f"tool.deadwood.rules.{name}.frozen must be true or false")
        for key in ('exempt', 'description', 'because', 'priority'):
            if key in rule and not isinstance(rule[key], str):
                raise ConfigurationError(f"tool.deadwood.rules.{name}.{key} must be a string")

        specs[name] = RuleSpec(
            name=name,
            kind=kind,
            exempt=rule.get('exempt', default_exempt),
            description=rule.get('description'),
            because=rule.get('because', defaults[name].because if name in defaults else None),
            frozen=frozen,
            priority=rule.get('priority'),
        )
    return specs


def _read_tool_table(pyproject: Path) -> dict:
    if not pyproject.exists():
        return {}
    try:
        with open(pyproject, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Cannot parse {pyproject}: {e}") from e
    return data.get("tool", {}).get("deadwood", {})


def _env_bool(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    if value.lower() in _TRUE:
        return True
    if value.lower() in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")
