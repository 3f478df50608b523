"""
Test recognizer configuration loading.

Covers the YAML loading path (load_recognizer_config / load_pesel_recognizers),
including ReDoS screening of configured patterns BEFORE they are compiled
into recognizers.
"""

import logging
import os
import tempfile

import pytest
import yaml

from pesel_validator.recognizer import (
    CONFIG_PATH_ENV,
    DEFAULT_CONFIG_PATH,
    build_pesel_recognizers,
    check_pattern_safety,
    load_pesel_recognizers,
    load_recognizer_config,
    resolve_config_path,
)


def _write_config(config) -> str:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump(config, f)
        return f.name


def _recognizer_config(regex_str: str, name: str = "PESEL_TEST") -> dict:
    return {
        "recognizers": [
            {
                "name": name,
                "supported_entity": "PL_PESEL",
                "patterns": [{"name": "test_pattern", "regex": regex_str, "score": 0.5}],
            }
        ]
    }


@pytest.fixture
def config_file():
    paths = []

    def _make(config) -> str:
        path = _write_config(config)
        paths.append(path)
        return path

    yield _make

    for path in paths:
        os.unlink(path)


class TestConfigPath:
    """Test configuration path resolution"""

    def test_default_path(self, monkeypatch):
        monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
        assert resolve_config_path() == DEFAULT_CONFIG_PATH
        assert DEFAULT_CONFIG_PATH.exists()

    def test_env_override(self, monkeypatch, config_file):
        path = config_file(_recognizer_config(r"\b[0-9]{11}\b", name="FROM_ENV"))
        monkeypatch.setenv(CONFIG_PATH_ENV, path)

        recognizers = load_pesel_recognizers()
        assert [r.name for r in recognizers] == ["FROM_ENV"]

    def test_explicit_path_wins_over_env(self, monkeypatch, config_file):
        monkeypatch.setenv(CONFIG_PATH_ENV, "/nonexistent/recognizers.yaml")
        path = config_file(_recognizer_config(r"\b[0-9]{11}\b", name="EXPLICIT"))

        assert load_recognizer_config(path)["recognizers"][0]["name"] == "EXPLICIT"


class TestConfigErrors:
    """Test malformed configuration handling"""

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_recognizer_config("/nonexistent/recognizers.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("recognizers: [\n", encoding="utf-8")
        with pytest.raises(yaml.YAMLError):
            load_recognizer_config(str(path))

    @pytest.mark.parametrize("config", [None, [], {"recognizers": "PL_PESEL"}, {"other": []}])
    def test_missing_recognizers_list(self, config_file, config):
        with pytest.raises(ValueError, match="recognizers"):
            load_recognizer_config(config_file(config))

    def test_recognizer_without_patterns(self, config_file):
        path = config_file({"recognizers": [{"name": "EMPTY", "patterns": []}]})
        with pytest.raises(ValueError, match="no patterns"):
            load_pesel_recognizers(path)

    def test_recognizer_without_name(self, config_file):
        path = config_file({"recognizers": [{"patterns": []}]})
        with pytest.raises(ValueError, match="required field"):
            load_pesel_recognizers(path)

    @pytest.mark.parametrize(
        "pattern_config",
        [
            {"name": "p", "score": 0.5},  # no regex
            {"regex": r"\b[0-9]{11}\b", "score": 0.5},  # no name
            {"name": "p", "regex": r"\b[0-9]{11}\b"},  # no score
            {"name": "p", "regex": r"\b[0-9]{11}\b", "score": "high"},
            "pesel_bare",
        ],
    )
    def test_malformed_pattern_entry(self, pattern_config):
        config = {"recognizers": [{"name": "PESEL_TEST", "patterns": [pattern_config]}]}
        with pytest.raises(ValueError, match="PESEL_TEST"):
            build_pesel_recognizers(config)

    @pytest.mark.parametrize("pattern_configs", ["pesel_bare", 11, {"name": "p"}])
    def test_patterns_not_a_list(self, pattern_configs):
        config = {"recognizers": [{"name": "PESEL_TEST", "patterns": pattern_configs}]}
        with pytest.raises(ValueError, match="must be a list"):
            build_pesel_recognizers(config)

    def test_non_string_regex(self):
        config = {"recognizers": [{"name": "PESEL_TEST", "patterns": [{"name": "p", "regex": 11, "score": 0.5}]}]}
        with pytest.raises(ValueError, match="non-string regex"):
            build_pesel_recognizers(config)

    @pytest.mark.parametrize(
        "config",
        [
            {"recognizers": [{"patterns": []}]},
            {"recognizers": [{"name": "EMPTY", "patterns": []}]},
            {"recognizers": [{"name": "PESEL_TEST", "patterns": [{"name": "p", "score": 0.5}]}]},
        ],
    )
    def test_structure_errors_are_logged(self, caplog, config):
        caplog.set_level(logging.ERROR, logger="pesel_validator.recognizer")
        with pytest.raises(ValueError):
            build_pesel_recognizers(config)
        assert any(record.levelno == logging.ERROR for record in caplog.records)


class TestReDoSProtection:
    """Test ReDoS protection in the recognizer loading path"""

    def test_recognizer_loading_rejects_redos_pattern(self, config_file):
        # (a+)+$ causes exponential backtracking on input like 'aaa...!'
        path = config_file(_recognizer_config(r"(a+)+$"))
        with pytest.raises(ValueError, match=r"(timeout|ReDoS)"):
            load_pesel_recognizers(path)

    def test_rejects_overlong_pattern(self):
        with pytest.raises(ValueError, match="maximum length"):
            check_pattern_safety("[0-9]" * 101)

    def test_rejects_invalid_regex(self):
        with pytest.raises(ValueError, match="Invalid regex"):
            check_pattern_safety("[0-9")

    @pytest.mark.parametrize(
        "regex_str",
        [
            r"\b[0-9]{11}\b",
            r"\b[0-9]{6}[ -][0-9]{5}\b",
        ],
    )
    def test_accepts_safe_patterns(self, regex_str):
        check_pattern_safety(regex_str)

    def test_packaged_patterns_are_safe(self):
        config = load_recognizer_config(str(DEFAULT_CONFIG_PATH))
        for rec_config in config["recognizers"]:
            for pattern_config in rec_config["patterns"]:
                check_pattern_safety(pattern_config["regex"])
