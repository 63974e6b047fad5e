"""The command line entry points must not drag in the web stack."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]


@pytest.mark.parametrize(
    "statement",
    [
        "import accounts.users",
        "import main; main._parse_args(['admin'])",
        "import runpy; runpy.run_path('scripts/create_user.py', run_name='create_user')",
    ],
)
def test_cli_entry_points_import_without_fastapi(statement: str) -> None:
    script = (
        "import sys\n"
        "sys.modules['fastapi'] = None\n"
        f"{statement}\n"
        "assert 'accounts.api' not in sys.modules\n"
    )
    result = subprocess.run(
        [sys.executable, "-c", script],
        cwd=ROOT,
        capture_output=True,
        text=True,
        check=False,
    )

    assert result.returncode == 0, result.stderr
