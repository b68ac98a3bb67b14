"""Load renderer settings from YAML and the environment."""

from __future__ import annotations

import os
import typing as typ

from ruamel.yaml import YAML

from pkgmark._constants import SECRET_ENV_VAR

from .models import RendererSettings, SettingsError

if typ.TYPE_CHECKING:
    from pathlib import Path

_INT_KEYS = frozenset({"heading_base_level"})
_STR_KEYS = frozenset(
    {
        "image_proxy_secret",
        "proxy_endpoint",
        "cdn_base",
        "first_party_host",
        "pygments_style",
    }
)


def load_settings(
    path: Path | None = None, *, environ: typ.Mapping[str, str] | None = None
) -> RendererSettings:
    """Load renderer settings, merging the YAML file with environment values.

    Parameters
    ----------
    path : Path, optional
        YAML file holding a ``renderer`` mapping. When omitted only defaults
        and environment variables are used.
    environ : Mapping[str, str], optional
        Environment to read the HMAC secret from; defaults to ``os.environ``.

    Returns
    -------
    RendererSettings
        Validated settings.

    Raises
    ------
    FileNotFoundError
        If ``path`` is given but does not exist.
    SettingsError
        If the YAML structure is invalid or the proxy secret is missing.

    Examples
    --------
    >>> from pkgmark.config import load_settings
    >>> load_settings(environ={"PKGMARK_IMAGE_PROXY_SECRET": "s3cret"}).cdn_base
    'https://cdn.jsdelivr.net/npm'
    """
    env = os.environ if environ is None else environ
    values: dict[str, typ.Any] = {}
    if path is not None:
        values.update(_read_renderer_section(path))

    secret = env.get(SECRET_ENV_VAR)
    if secret:
        values["image_proxy_secret"] = secret
    values.setdefault("image_proxy_secret", "")
    return RendererSettings(**values)


def _read_renderer_section(path: Path) -> dict[str, typ.Any]:
    """Return the validated ``renderer`` mapping of the YAML file at ``path``."""
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise SettingsError(msg)

    section = loaded.get("renderer") or {}
    if not isinstance(section, dict):
        msg = "The 'renderer' section must be a mapping."
        raise SettingsError(msg)

    values: dict[str, typ.Any] = {}
    for key, value in section.items():
        match key:
            case str() if key in _STR_KEYS:
                values[key] = str(value).strip()
            case str() if key in _INT_KEYS:
                try:
                    values[key] = int(value)
                except (TypeError, ValueError) as exc:
                    msg = f"Setting '{key}' must be an integer, got {value!r}"
                    raise SettingsError(msg) from exc
            case _:
                msg = f"Unknown renderer setting '{key}'."
                raise SettingsError(msg)
    return values


__all__ = ["load_settings"]
