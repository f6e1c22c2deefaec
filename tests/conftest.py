import io
import json

import pytest
from openpyxl import Workbook

from engagement.database import get_db, init_db


HEADER_ROWS = [
    ["BALANCE GENERALE"],
    ["Entite", "Client SA"],
    ["Exercice", "2024"],
    [],
    ["Compte", "Libelle", "Solde"],
]


def build_workbook(sheets):
    """Workbook with a cover sheet followed by ``sheets`` (name -> data rows from row 6)."""
    workbook = Workbook()
    workbook.active.title = "Garde"
    for name, rows in sheets.items():
        worksheet = workbook.create_sheet(name)
        for header in HEADER_ROWS:
            worksheet.append(header)
        for index, row in enumerate(rows, start=6):
            for column, value in enumerate(row, start=1):
                if value is not None:
                    worksheet.cell(row=index, column=column, value=value)
    return workbook


def workbook_bytes(sheets):
    buffer = io.BytesIO()
    build_workbook(sheets).save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_workbook(tmp_path):
    def _make(sheets, name="balances.xlsm"):
        path = tmp_path / name
        build_workbook(sheets).save(path)
        return path

    return _make


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "engagement.db"
    with get_db(str(path)) as conn:
        init_db(conn)
    return path


@pytest.fixture
def credentials(tmp_path, monkeypatch):
    path = tmp_path / "service-account.json"
    path.write_text(json.dumps({"type": "service_account", "project_id": "demo"}), encoding="utf-8")
    monkeypatch.setenv("GOOGLE_APPLICATION_CREDENTIALS", str(path))
    return path


@pytest.fixture
def make_workbook_bytes():
    return workbook_bytes
