import pytest
from PyPDF2 import PdfWriter

from engagement.chart_of_accounts import (
    build_parent_map,
    build_rules,
    build_template,
    build_tree,
    chunk,
    classify_accounts,
    count_nodes,
    extract_accounts,
    extract_pdf_text,
    import_chart_of_accounts,
)
from engagement.config import load_ingestion_config
from engagement.database import get_db, get_document, list_documents
from engagement.utils import EngagementError


PCM_TEXT = """PLAN COMPTABLE MAURITANIEN
Classe 1 - Comptes de capitaux
1 Comptes de capitaux
10   Capital et reserves
101 Capital social
1011 Capital souscrit non appele
12 Report a nouveau
2 Comptes d'immobilisations
21 Immobilisations corporelles
4 Comptes de tiers
40 Fournisseurs
401 - Fournisseurs d'exploitation
6 Comptes de charges
60 Achats
601 Achats de marchandises
7 Comptes de produits
70 Ventes
701 Ventes de marchandises
8 Comptes speciaux
12 3
101 Capital duplique
"""


def _accounts():
    accounts = classify_accounts(extract_accounts(PCM_TEXT))
    parents = build_parent_map([account.code for account in accounts])
    for account in accounts:
        account.parent_code = parents.get(account.code)
    return accounts


def test_extract_accounts():
    entries = extract_accounts(PCM_TEXT)
    codes = [entry["code"] for entry in entries]
    labels = {entry["code"]: entry["label"] for entry in entries}

    assert codes[:4] == ["1", "10", "101", "1011"]
    assert "8" not in codes
    assert labels["10"] == "Capital et reserves"
    assert labels["101"] == "Capital social"
    assert labels["401"] == "Fournisseurs d'exploitation"
    assert labels["12"] == "Report a nouveau"


def test_dashed_label_drops_the_dash():
    assert extract_accounts("101 - Capital\n102 – Primes\n") == [
        {"code": "101", "label": "Capital"},
        {"code": "102", "label": "Primes"},
    ]


def test_classify_accounts():
    accounts = {account.code: account for account in classify_accounts(extract_accounts(PCM_TEXT))}
    assert accounts["401"].account_class == 4
    assert accounts["401"].type == "BS"
    assert accounts["601"].type == "IS"
    assert accounts["701"].account_class == 7


def test_parent_is_longest_existing_prefix():
    parents = build_parent_map(["1", "10", "101", "1011", "10115", "2", "215"])
    assert parents == {"10": "1", "101": "10", "1011": "101", "10115": "1011", "215": "2"}

    for account in _accounts():
        if account.parent_code is not None:
            assert account.code.startswith(account.parent_code)
            assert len(account.parent_code) < len(account.code)


def test_tree_is_sorted_by_length_then_code():
    accounts = [account for account in _accounts() if account.code.startswith("1")]
    tree = build_tree(accounts, build_parent_map([account.code for account in accounts]))
    assert [node["code"] for node in tree] == ["1"]
    assert [node["code"] for node in tree[0]["children"]] == ["10", "12"]
    assert tree[0]["children"][0]["children"][0]["children"][0]["code"] == "1011"
    assert tree[0]["children"][0]["children"][0]["children"][0]["parentCode"] == "101"


def test_template_sections():
    template = build_template(_accounts())
    actif, passif = template["bs"]["children"]
    charges, produits = template["is"]["children"]

    assert actif["label"] == "ACTIF"
    assert [node["code"] for node in actif["children"]] == ["1", "2"]
    assert [node["code"] for node in passif["children"]] == ["4"]
    assert [node["code"] for node in charges["children"]] == ["6"]
    assert [node["code"] for node in produits["children"]] == ["7"]
    assert count_nodes(template["bs"]["children"]) == 12
    assert count_nodes(template["is"]["children"]) == 8


def test_rules_longest_prefix_first():
    rules = build_rules(_accounts())
    lengths = [len(rule["prefix"]) for rule in rules]
    assert lengths == sorted(lengths, reverse=True)
    assert rules[0] == {
        "prefix": "1011",
        "targetCode": "1011",
        "label": "Capital souscrit non appele",
        "type": "BS",
    }


def test_chunk_and_count():
    assert chunk(list(range(5)), 2) == [[0, 1], [2, 3], [4]]
    assert chunk([], 400) == []
    with pytest.raises(ValueError):
        chunk([1], 0)
    assert count_nodes(None) == 0
    assert count_nodes({"children": [{"children": []}, {}]}) == 3


def test_dry_run_writes_nothing(db_path):
    with get_db(str(db_path)) as conn:
        summary = import_chart_of_accounts(conn, PCM_TEXT, "p1", "kb1")
        assert list_documents(conn, "chart_of_accounts") == []
        assert get_document(conn, "fs_templates/kb1") is None

    assert summary["dryRun"] is True
    assert summary["accounts"] == 16
    assert summary["rules"] == 16
    assert summary["bsNodes"] == 12
    assert summary["isNodes"] == 8
    assert len(summary["sampleMappings"]) == 5


def test_apply_writes_accounts_template_and_rules(db_path):
    config = {**load_ingestion_config(), "coa_batch_size": 5}
    with get_db(str(db_path)) as conn:
        summary = import_chart_of_accounts(conn, PCM_TEXT, "p1", "kb1", apply=True, config=config)
        account = get_document(conn, "chart_of_accounts/1011")
        template = get_document(conn, "fs_templates/kb1")
        rules = get_document(conn, "fs_rules/kb1")
        stored = list_documents(conn, "chart_of_accounts")

    assert summary["batches"] == 4
    assert len(stored) == 16
    assert account["parentCode"] == "101"
    assert account["class"] == 1
    assert account["type"] == "BS"
    assert account["updatedAt"].endswith("Z")
    assert template["name"] == "PC Mauritanien"
    assert template["projectId"] == "p1"
    assert template["tree"]["is"]["label"] == "Income Statement"
    assert rules["templateId"] == "kb1"
    assert len(rules["rules"]) == 16


def test_project_is_required(db_path):
    with get_db(str(db_path)) as conn:
        with pytest.raises(EngagementError) as exc_info:
            import_chart_of_accounts(conn, PCM_TEXT, "", "kb1")
    assert exc_info.value.code == "ARGUMENT_MISSING"


def test_extract_pdf_text(tmp_path):
    path = tmp_path / "blank.pdf"
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    with open(path, "wb") as handle:
        writer.write(handle)

    assert extract_pdf_text(str(path)).strip() == ""
    with pytest.raises(EngagementError) as exc_info:
        extract_pdf_text(str(tmp_path / "missing.pdf"))
    assert exc_info.value.code == "FILE_NOT_FOUND"
