"""Load a registry from a user-authored Python configuration module."""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path

from promptise.errors import ConfigLoadError
from promptise.registry import Promptise

DEFAULT_CONFIG_PATH = Path("promptise.config.py")
REGISTRY_ATTRIBUTE = "registry"


def load_config(config_path: Path | str | None = None) -> Promptise:
    """Import the configuration module and return the registry it defines.

    The module must assign a ``Promptise`` instance to a top-level ``registry``
    name, for example::

        registry = Promptise(compositions=[...])

    Args:
        config_path: Path to the config module, relative to the working
            directory or absolute. Defaults to ``promptise.config.py``.

    Returns:
        The registry exposed by the module.

    Raises:
        ConfigLoadError: If the file is missing, fails to import, or does not
            expose a ``Promptise`` registry.
    """
    final_path = Path(config_path or DEFAULT_CONFIG_PATH).resolve()
    if not final_path.is_file():
        raise ConfigLoadError(
            f"Config file not found: {final_path}\n"
            "Create a promptise.config.py file or specify a custom path with --config."
        )

    module_name = f"_promptise_config_{abs(hash(str(final_path)))}"
    spec = importlib.util.spec_from_file_location(module_name, final_path)
    if spec is None or spec.loader is None:
        raise ConfigLoadError(f"Failed to load config file: {final_path}\nError: not an importable module")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except ConfigLoadError:
        raise
    except Exception as exc:
        raise ConfigLoadError(f"Failed to load config file: {final_path}\nError: {exc}") from exc
    finally:
        sys.modules.pop(module_name, None)

    registry = getattr(module, REGISTRY_ATTRIBUTE, None)
    if registry is None:
        raise ConfigLoadError(
            f"Config file {final_path} must define `{REGISTRY_ATTRIBUTE}`.\n"
            "Example: registry = Promptise(compositions=[...])"
        )
    if not isinstance(registry, Promptise):
        raise ConfigLoadError(
            f"`{REGISTRY_ATTRIBUTE}` in {final_path} must be a Promptise instance, "
            f"got {type(registry).__name__}."
        )
    return registry
