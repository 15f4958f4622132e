import subprocess
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@pytest.mark.unit
@pytest.mark.parametrize("module", [
    "romsync.storage.manifest_store",
    "romsync.storage.playlist_store",
    "romsync.storage.json_store",
    "romsync.storage.file_ops",
    "romsync.pipeline.validator",
    "romsync.pipeline.orchestrator",
    "romsync.ingestion.batch_processor",
    "romsync.cli",
])
def test_module_imports_in_a_fresh_interpreter(module):
    # Each module must import first, before anything else has loaded
    result = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
    )

    assert result.returncode == 0, result.stderr
