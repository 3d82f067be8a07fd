from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.script_builder import ScriptBuilder


@pytest.fixture
def scripts(tmp_path: Path) -> ScriptBuilder:
    """Provide a project builder rooted at the pytest tmp_path."""
    return ScriptBuilder(tmp_path)
