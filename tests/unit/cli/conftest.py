"""
Fixtures for CLI command tests: CSV inputs and a runner helper.
"""

from typing import Dict, List

import pytest
from click.testing import CliRunner

from revenue_engine.cli import cli

ENTRIES_CSV = """work_date,project_id,client_id,user_id,user_name,task_name,total_minutes
2026-01-15,P-1,C-1,U-1,Alice,Development,2700
2026-01-16,P-2,C-2,U-2,Bob,Design,90
2026-01-17,P-404,C-9,U-1,Alice,Support,60
2026-02-03,P-1,C-1,U-1,Alice,Development,120
"""

OVERRIDES_CSV = """project_id,attribute,effective_month,value
P-1,rate,2026-01,100
P-1,minimum_hours,2026-01,10
P-1,maximum_hours,2026-01,40
P-1,carryover,2026-01,yes
P-2,rate,2026-01,80
"""

CATALOG_CSV = """project_id,project_name,client_id,client_name
P-1,Website,C-1,Acme Corp
P-2,Mobile App,C-2,Beta Industries
"""


@pytest.fixture
def csv_inputs(tmp_path, mock_env, monkeypatch) -> Dict[str, str]:
    """Write entries, overrides and catalog CSVs; return their paths."""
    for name in (
        "TIMESHEET_SPREADSHEET_ID",
        "OVERRIDES_SPREADSHEET_ID",
        "CATALOG_SPREADSHEET_ID",
    ):
        monkeypatch.delenv(name, raising=False)

    paths = {}
    for name, content in (
        ("entries", ENTRIES_CSV),
        ("overrides", OVERRIDES_CSV),
        ("catalog", CATALOG_CSV),
    ):
        path = tmp_path / f"{name}.csv"
        path.write_text(content)
        paths[name] = str(path)
    paths["ledger"] = str(tmp_path / "ledger.json")
    return paths


@pytest.fixture
def source_args(csv_inputs) -> List[str]:
    return [
        "--entries",
        csv_inputs["entries"],
        "--overrides",
        csv_inputs["overrides"],
        "--catalog",
        csv_inputs["catalog"],
    ]


@pytest.fixture
def run_cli():
    """Invoke the CLI with logging limited to critical messages."""
    runner = CliRunner()

    def run(*args: str):
        return runner.invoke(cli, ["--log-level", "CRITICAL", *args])

    return run


@pytest.fixture
def billing_args(source_args, csv_inputs) -> List[str]:
    """Source options plus the test ledger file."""
    return [*source_args, "--ledger", csv_inputs["ledger"]]
