"""
Tests for loading and validating the skoria configuration file.
"""

import pytest

from detectors import default_registry
from skoria_config import CONFIG_ENV_VAR, ConfigError, ConfigManager, SkoriaConfig
from traversal import CONCURRENCY_LIMIT, DEFAULT_SKIP_DIRS, MAX_RECURSION_DEPTH, RESULT_BUFFER_SIZE


@pytest.fixture(autouse=True)
def no_env_config(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


def write_config(tmp_path, text: str):
    path = tmp_path / "skoria.toml"
    path.write_text(text)
    return path


def test_defaults_match_traversal_constants():
    config = SkoriaConfig.default()

    assert config.max_depth == MAX_RECURSION_DEPTH
    assert config.concurrency == CONCURRENCY_LIMIT
    assert config.buffer_size == RESULT_BUFFER_SIZE
    assert config.effective_skip_dirs() == DEFAULT_SKIP_DIRS


def test_missing_file_yields_defaults(tmp_path):
    manager = ConfigManager(kosmos_dir=tmp_path / ".kosmos")

    assert manager.config_file == tmp_path / ".kosmos" / "skoria.toml"
    assert manager.load() == SkoriaConfig.default()
    assert not manager.config_file.exists()


def test_load_from_file(tmp_path):
    path = write_config(
        tmp_path,
        """
[traversal]
max_depth = 12
concurrency = 4
extra_skip_dirs = [".venv", "vendor"]

[detectors]
disabled = ["unity", "unreal"]
""",
    )

    config = ConfigManager(config_file=path).load()

    assert config.max_depth == 12
    assert config.concurrency == 4
    assert config.buffer_size == RESULT_BUFFER_SIZE
    assert config.effective_skip_dirs() == DEFAULT_SKIP_DIRS | {".venv", "vendor"}
    assert config.disabled_detectors == ["unity", "unreal"]


def test_skip_dirs_replaces_defaults(tmp_path):
    path = write_config(tmp_path, '[traversal]\nskip_dirs = ["target"]\n')

    config = ConfigManager(config_file=path).load()

    assert config.effective_skip_dirs() == frozenset({"target"})


def test_env_var_points_at_config(tmp_path, monkeypatch):
    path = write_config(tmp_path, "[traversal]\nconcurrency = 0\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

    manager = ConfigManager(kosmos_dir=tmp_path / "elsewhere")

    assert manager.config_file == path
    assert manager.load().concurrency == 0


def test_explicit_file_wins_over_env_var(tmp_path, monkeypatch):
    explicit = write_config(tmp_path, "[traversal]\nmax_depth = 3\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "other.toml"))

    assert ConfigManager(config_file=explicit).load().max_depth == 3


def test_undecodable_file_falls_back_to_defaults(tmp_path, caplog):
    path = write_config(tmp_path, "[traversal\nmax_depth = ")

    config = ConfigManager(config_file=path).load()

    assert config == SkoriaConfig.default()
    assert "Ignoring unreadable config" in caplog.text


@pytest.mark.parametrize(
    "text",
    [
        "[traversal]\nmax_depth = -1\n",
        '[traversal]\nconcurrency = "many"\n',
        "[traversal]\nconcurrency = true\n",
        "[traversal]\nbuffer_size = 0\n",
        '[traversal]\nskip_dirs = "target"\n',
        "[traversal]\nextra_skip_dirs = [1, 2]\n",
        'traversal = "flat"\n',
        "[detectors]\ndisabled = [true]\n",
    ],
)
def test_invalid_values_raise(tmp_path, text):
    path = write_config(tmp_path, text)

    with pytest.raises(ConfigError):
        ConfigManager(config_file=path).load()


def test_load_never_writes(tmp_path):
    manager = ConfigManager(kosmos_dir=tmp_path / ".kosmos")

    manager.load()

    assert not (tmp_path / ".kosmos").exists()


class TestToTraversalConfig:
    def test_disabled_detectors_are_removed(self):
        config = SkoriaConfig(disabled_detectors=["unity"])

        traversal_config = config.to_traversal_config(default_registry())

        assert "unity" not in traversal_config.registry
        assert len(traversal_config.registry) == len(default_registry()) - 1

    def test_unknown_disabled_detector(self):
        config = SkoriaConfig(disabled_detectors=["cobol"])

        with pytest.raises(ConfigError, match="cobol"):
            config.to_traversal_config(default_registry())

    def test_invalid_override_becomes_config_error(self):
        config = SkoriaConfig(max_depth=-5)

        with pytest.raises(ConfigError):
            config.to_traversal_config(default_registry())

    def test_round_trip_of_settings(self):
        config = SkoriaConfig(max_depth=7, concurrency=2, extra_skip_dirs=["x"])

        traversal_config = config.to_traversal_config(default_registry())

        assert traversal_config.max_depth == 7
        assert traversal_config.concurrency == 2
        assert "x" in traversal_config.skip_dirs
        assert "target" in traversal_config.skip_dirs
