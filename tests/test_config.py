"""Tests for renderer settings loading."""

from __future__ import annotations

import typing as typ
from textwrap import dedent

import pytest

from pkgmark.config import RendererSettings, SettingsError, load_settings

if typ.TYPE_CHECKING:
    from pathlib import Path

SECRET_ENV = {"PKGMARK_IMAGE_PROXY_SECRET": "env-secret"}


def _write_config(tmp_path: Path, body: str) -> Path:
    config_path = tmp_path / "pkgmark.yaml"
    config_path.write_text(dedent(body).lstrip(), encoding="utf-8")
    return config_path


def test_defaults_with_secret_from_environment() -> None:
    """Without a file the defaults apply and the secret comes from the env."""
    settings = load_settings(environ=SECRET_ENV)

    assert settings.image_proxy_secret == "env-secret"
    assert settings.proxy_endpoint == "/api/registry/image-proxy"
    assert settings.heading_base_level == 2
    assert settings.first_party_host == "npmx.dev"


def test_yaml_values_are_merged(tmp_path: Path) -> None:
    """File values override defaults while the environment wins for the secret."""
    config_path = _write_config(
        tmp_path,
        """
        renderer:
          image_proxy_secret: file-secret
          proxy_endpoint: https://img.example.com/proxy
          heading_base_level: "1"
          pygments_style: friendly
        """,
    )

    from_file = load_settings(config_path, environ={})
    from_env = load_settings(config_path, environ=SECRET_ENV)

    assert from_file.image_proxy_secret == "file-secret"
    assert from_file.proxy_endpoint == "https://img.example.com/proxy"
    assert from_file.heading_base_level == 1
    assert from_file.pygments_style == "friendly"
    assert from_env.image_proxy_secret == "env-secret", (
        "expected the environment secret to take precedence"
    )


def test_missing_secret_is_an_error() -> None:
    """Rendering cannot sign images without a secret."""
    with pytest.raises(SettingsError, match="secret"):
        load_settings(environ={})


def test_missing_file_raises(tmp_path: Path) -> None:
    """An explicit but absent config path is reported."""
    with pytest.raises(FileNotFoundError, match="not found"):
        load_settings(tmp_path / "absent.yaml", environ=SECRET_ENV)


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ("- a\n- b\n", "Top-level"),
        ("renderer: [1, 2]\n", "'renderer' section"),
        ("renderer:\n  colour: red\n", "Unknown renderer setting"),
        ("renderer:\n  heading_base_level: deep\n", "must be an integer"),
        ("renderer:\n  heading_base_level: 9\n", "between 0 and 5"),
    ],
)
def test_invalid_yaml_is_rejected(tmp_path: Path, body: str, message: str) -> None:
    """Structural and value errors raise SettingsError."""
    config_path = _write_config(tmp_path, body)

    with pytest.raises(SettingsError, match=message):
        load_settings(config_path, environ=SECRET_ENV)


def test_settings_are_immutable() -> None:
    """Settings are shared between threads and must not change."""
    settings = RendererSettings(image_proxy_secret="s")

    with pytest.raises(AttributeError):
        settings.cdn_base = "https://unpkg.com"  # type: ignore[misc]
