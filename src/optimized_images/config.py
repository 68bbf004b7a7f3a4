from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

from .errors import ConfigurationError
from .models import VariantSpec, validate_variants

logger = logging.getLogger(__name__)

ENV_PREFIX = "OPTIMIZED_IMAGES_"
_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class GeneralConfig:
    """Process-wide settings shared by every generation run."""

    generate_transforms_before_page_load: bool = False
    output_dir: Path = field(default_factory=lambda: Path("transforms"))
    base_url: str = "/transforms"
    webp_siblings: bool = False


def _read_env_file(env_path: Path) -> Dict[str, str]:
    values: Dict[str, str] = {}
    if not env_path.exists():
        return values
    try:
        for line in env_path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if "=" not in stripped:
                continue
            key, raw_value = stripped.split("=", 1)
            key = key.strip()
            if key.startswith(ENV_PREFIX):
                value = raw_value.strip().strip('"').strip("'")
                if value:
                    values[key] = value
    except OSError:
        logger.debug("Unable to read %s", env_path, exc_info=True)
    return values


def load_general_config(env_path: Path | None = None) -> GeneralConfig:
    """Read ``OPTIMIZED_IMAGES_*`` settings from the environment, then a ``.env`` file."""

    file_values = _read_env_file(env_path or Path(".env"))

    def lookup(name: str) -> Optional[str]:
        key = ENV_PREFIX + name
        value = os.getenv(key)
        if value is not None and value.strip():
            return value.strip()
        return file_values.get(key)

    config = GeneralConfig()
    eager = lookup("EAGER")
    if eager is not None:
        config.generate_transforms_before_page_load = eager.lower() in _TRUE_VALUES
    output_dir = lookup("OUTPUT_DIR")
    if output_dir is not None:
        config.output_dir = Path(output_dir).expanduser()
    base_url = lookup("BASE_URL")
    if base_url is not None:
        config.base_url = base_url
    webp = lookup("WEBP_SIBLINGS")
    if webp is not None:
        config.webp_siblings = webp.lower() in _TRUE_VALUES
    return config


general_config: Optional[GeneralConfig] = None


def get_general_config() -> GeneralConfig:
    """Return the process-wide config, reading the environment on first use."""

    global general_config
    if general_config is None:
        general_config = load_general_config()
    return general_config


@contextmanager
def eager_transforms(config: GeneralConfig | None = None) -> Iterator[GeneralConfig]:
    """Force eager transform generation for the duration of the block."""

    target = config if config is not None else get_general_config()
    previous = target.generate_transforms_before_page_load
    target.generate_transforms_before_page_load = True
    try:
        yield target
    finally:
        target.generate_transforms_before_page_load = previous


def load_variants(path: Path) -> Tuple[VariantSpec, ...]:
    """Load field settings from a JSON file: a variant list or ``{"variants": [...]}``."""

    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Unable to read variants file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Variants file {path} is not valid JSON: {exc}") from exc
    if isinstance(data, dict) and "variants" in data:
        data = data["variants"]
    return validate_variants(data)