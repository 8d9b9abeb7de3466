from __future__ import annotations

import pytest

from wpsync.wordpress.site import PLUGIN, THEME, ProjectLayout


@pytest.fixture
def layout(tmp_path):
    """Project with the default wordpress/ and content/ directories."""
    lay = ProjectLayout.from_manifest(tmp_path, {})
    for module_type in (PLUGIN, THEME):
        lay.module_dirs(module_type).project.mkdir(parents=True, exist_ok=True)
    return lay


@pytest.fixture
def plugin_dirs(layout):
    return layout.module_dirs(PLUGIN)


@pytest.fixture
def theme_dirs(layout):
    return layout.module_dirs(THEME)
