"""Shared fixtures for the pkgmark test suite."""

from __future__ import annotations

import pytest

from pkgmark.config import RendererSettings
from pkgmark.image_proxy import ImageProxySigner
from pkgmark.models import RepositoryInfo, RepositoryProvider
from pkgmark.render import ReadmeRenderer

TEST_SECRET = "test-secret"


@pytest.fixture
def settings() -> RendererSettings:
    """Renderer settings with a fixed proxy secret."""
    return RendererSettings(image_proxy_secret=TEST_SECRET)


@pytest.fixture
def renderer(settings: RendererSettings) -> ReadmeRenderer:
    """Renderer using the default Pygments highlighter."""
    return ReadmeRenderer(settings)


@pytest.fixture
def signer() -> ImageProxySigner:
    """Signer sharing the fixture secret with ``renderer``."""
    return ImageProxySigner(TEST_SECRET)


@pytest.fixture
def repo_info() -> RepositoryInfo:
    """GitHub repository context at ``HEAD``."""
    return RepositoryInfo.for_provider(
        RepositoryProvider.GITHUB, "test-owner", "test-repo"
    )
