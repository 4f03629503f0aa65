"""
Tests to verify that the example scripts run without errors.
"""

import subprocess
import sys
from pathlib import Path

import pytest

EXAMPLES_DIR = Path(__file__).parent.parent / "examples"

EXAMPLE_SCRIPTS = [
    "backup_hub.py",
]


@pytest.mark.slow
@pytest.mark.parametrize("script", EXAMPLE_SCRIPTS)
def test_example_script(script):
    script_path = EXAMPLES_DIR / script
    assert script_path.exists(), f"Example script {script} not found"

    result = subprocess.run([sys.executable, str(script_path)], capture_output=True, text=True, timeout=120)
    assert result.returncode == 0, f"{script} failed:\n{result.stderr}"
    assert "project.git" in result.stdout
