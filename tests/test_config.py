from __future__ import annotations

import json
from pathlib import Path

import pytest

from optimized_images import config as config_module
from optimized_images.config import GeneralConfig, eager_transforms, get_general_config, load_general_config, load_variants
from optimized_images.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("EAGER", "OUTPUT_DIR", "BASE_URL", "WEBP_SIBLINGS"):
        monkeypatch.delenv(f"OPTIMIZED_IMAGES_{name}", raising=False)


def test_defaults_without_environment(tmp_path: Path) -> None:
    config = load_general_config(tmp_path / ".env")
    assert config == GeneralConfig()


def test_environment_overrides_env_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# transforms\n"
        "OPTIMIZED_IMAGES_BASE_URL='https://cdn.test/from-file'\n"
        "OPTIMIZED_IMAGES_WEBP_SIBLINGS=yes\n"
        "UNRELATED=1\n"
        "garbage line\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("OPTIMIZED_IMAGES_BASE_URL", "https://cdn.test/from-env")
    monkeypatch.setenv("OPTIMIZED_IMAGES_OUTPUT_DIR", str(tmp_path / "out"))
    monkeypatch.setenv("OPTIMIZED_IMAGES_EAGER", "true")

    config = load_general_config(env_file)

    assert config.base_url == "https://cdn.test/from-env"
    assert config.output_dir == tmp_path / "out"
    assert config.webp_siblings is True
    assert config.generate_transforms_before_page_load is True


@pytest.mark.parametrize("initial", [True, False])
def test_eager_transforms_restores_previous_value(initial: bool) -> None:
    config = GeneralConfig(generate_transforms_before_page_load=initial)
    with eager_transforms(config) as active:
        assert active is config
        assert config.generate_transforms_before_page_load is True
    assert config.generate_transforms_before_page_load is initial


def test_eager_transforms_restores_on_error() -> None:
    config = GeneralConfig()
    with pytest.raises(RuntimeError):
        with eager_transforms(config):
            raise RuntimeError("codec exploded")
    assert config.generate_transforms_before_page_load is False


@pytest.mark.parametrize("wrap", [False, True])
def test_load_variants_from_file(tmp_path: Path, wrap: bool) -> None:
    records = [{"width": 320, "aspectRatioX": 4, "aspectRatioY": 3, "retinaSizes": [], "quality": 60, "format": ""}]
    path = tmp_path / "variants.json"
    path.write_text(json.dumps({"variants": records} if wrap else records), encoding="utf-8")

    (spec,) = load_variants(path)
    assert spec.width == 320
    assert spec.retina_multipliers == (1.0,)
    assert spec.format is None


@pytest.mark.parametrize("content", [None, "{oops", '{"width": 320}'])
def test_load_variants_rejects_bad_files(tmp_path: Path, content) -> None:
    path = tmp_path / "variants.json"
    if content is not None:
        path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_variants(path)


def test_process_wide_config_is_loaded_on_first_use(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "general_config", None)
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("OPTIMIZED_IMAGES_BASE_URL=https://cdn.test/lazy\n", encoding="utf-8")

    loaded = get_general_config()

    assert loaded.base_url == "https://cdn.test/lazy"
    assert get_general_config() is loaded
    with eager_transforms() as active:
        assert active is loaded
        assert loaded.generate_transforms_before_page_load is True
    assert loaded.generate_transforms_before_page_load is False
