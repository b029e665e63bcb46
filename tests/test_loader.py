from __future__ import annotations

import textwrap

import pytest

from promptise.errors import ConfigLoadError, DuplicateCompositionError
from promptise.loader import load_config
from promptise.registry import Promptise

VALID_CONFIG = textwrap.dedent(
    """
    from promptise.composition import PromptComponent, PromptComposition
    from promptise.registry import Promptise

    simple = PromptComposition(id="simple-prompt", components=[PromptComponent("task", "Do {{task}}")])

    registry = Promptise(compositions=[{"composition": simple, "fixtures": {"basic": {"task": "x"}}}])
    """
)


def test_load_config_given_valid_module_when_loaded_then_registry_is_returned(tmp_path) -> None:
    # Given
    config_path = tmp_path / "promptise.config.py"
    config_path.write_text(VALID_CONFIG, encoding="utf-8")

    # When
    registry = load_config(config_path)

    # Then
    assert isinstance(registry, Promptise)
    assert [entry.composition_id for entry in registry.resolve()] == ["simple-prompt"]


def test_load_config_given_relative_default_path_when_loaded_then_cwd_is_used(tmp_path, monkeypatch) -> None:
    # Given
    (tmp_path / "promptise.config.py").write_text(VALID_CONFIG, encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    # When
    registry = load_config()

    # Then
    assert len(registry) == 1


def test_load_config_given_missing_file_when_loaded_then_config_load_error_is_raised(tmp_path) -> None:
    with pytest.raises(ConfigLoadError, match="Config file not found"):
        load_config(tmp_path / "missing.py")


def test_load_config_given_module_that_raises_when_loaded_then_error_is_wrapped(tmp_path) -> None:
    # Given
    config_path = tmp_path / "broken.py"
    config_path.write_text("raise RuntimeError('kaboom')\n", encoding="utf-8")

    # When
    with pytest.raises(ConfigLoadError) as excinfo:
        load_config(config_path)

    # Then
    assert "Failed to load config file" in str(excinfo.value)
    assert "kaboom" in str(excinfo.value)


def test_load_config_given_module_without_registry_when_loaded_then_config_load_error_is_raised(tmp_path) -> None:
    # Given
    config_path = tmp_path / "empty.py"
    config_path.write_text("value = 1\n", encoding="utf-8")

    # When / Then
    with pytest.raises(ConfigLoadError, match="must define `registry`"):
        load_config(config_path)


def test_load_config_given_wrong_registry_type_when_loaded_then_config_load_error_is_raised(tmp_path) -> None:
    # Given
    config_path = tmp_path / "wrong.py"
    config_path.write_text("registry = {'compositions': []}\n", encoding="utf-8")

    # When / Then
    with pytest.raises(ConfigLoadError, match="must be a Promptise instance"):
        load_config(config_path)


def test_load_config_given_duplicate_ids_when_loaded_then_duplicate_error_is_kept(tmp_path) -> None:
    # Given
    config_path = tmp_path / "dupes.py"
    config_path.write_text(
        textwrap.dedent(
            """
            from promptise.composition import PromptComponent, PromptComposition
            from promptise.registry import Promptise

            a = PromptComposition(id="same", components=[PromptComponent("task", "{{task}}")])
            registry = Promptise(compositions=[a, a])
            """
        ),
        encoding="utf-8",
    )

    # When / Then
    with pytest.raises(DuplicateCompositionError):
        load_config(config_path)
