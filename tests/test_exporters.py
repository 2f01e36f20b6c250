"""
Unit tests for text/Excel exports and archival file names.
"""
from datetime import date

import pytest

from conftest import make_record
from core.exporters import (
    build_archival_filename,
    build_export_filename,
    export_to_excel,
    format_currency,
    format_total,
    sanitize_merchant_name,
    to_csv,
    to_delimited_text,
    to_tsv,
)
from core.schema import ReceiptRecord

ACME = ReceiptRecord(date="2024-03-01", merchant="Acme, Inc.", description="coffee", total=-4.5)


def test_csv_quotes_field_with_comma():
    text = to_delimited_text([ACME], ",")
    assert text.split("\n") == [
        "Date,Merchant,Description,Total",
        '2024-03-01,"Acme, Inc.",coffee,-4.5',
    ]


def test_tsv_leaves_comma_unescaped():
    text = to_delimited_text([ACME], "\t")
    assert text.split("\n")[1] == "2024-03-01\tAcme, Inc.\tcoffee\t-4.5"


def test_csv_doubles_quotes_and_quotes_newlines():
    record = make_record('Bob\'s "Best"', description="two\nlines")
    row = to_csv([record]).split("\n", 1)[1]
    assert row == '2024-03-01,"Bob\'s ""Best""","two\nlines",10'


def test_tsv_and_csv_helpers_keep_store_order():
    records = [make_record("A"), make_record("B"), make_record("C")]
    assert [line.split("\t")[1] for line in to_tsv(records).split("\n")[1:]] == ["A", "B", "C"]
    assert to_csv(records).count("\n") == 3


def test_empty_export_is_header_only():
    assert to_csv([]) == "Date,Merchant,Description,Total"


@pytest.mark.parametrize("total, expected", [
    (12.0, "12"),
    (-4.5, "-4.5"),
    (0.1 + 0.2, "0.30000000000000004"),
    (0.0, "0"),
])
def test_format_total(total, expected):
    assert format_total(total) == expected


def test_format_currency():
    assert format_currency(12.4) == "+$12.40"
    assert format_currency(-4.5) == "-$4.50"


def test_build_export_filename():
    assert build_export_filename(date(2024, 3, 1)) == "receipts-2024-03-01.csv"


def test_archival_filename_strips_punctuation_and_accents():
    record = ReceiptRecord(date="2024-03-01", merchant="Joe's Café!", description="", total=12.4)
    assert build_archival_filename(record, "scan.PDF") == "2024-03-01_Joes_Caf_$12.PDF"


def test_archival_filename_with_card_and_refund():
    record = make_record("Whole  Foods   Market", total=-25.5, card_last4="4242")
    assert build_archival_filename(record, "IMG_001.jpeg") == "2024-03-01_Whole_Foods_Market_$25_4242.jpeg"


def test_archival_filename_without_extension():
    assert build_archival_filename(make_record("Acme", total=3.49), "receipt") == "2024-03-01_Acme_$3"


def test_archival_filename_uses_last_extension():
    assert build_archival_filename(make_record("Acme"), "scan.final.png").endswith("$10.png")


def test_archival_filename_fills_missing_date_parts():
    record = make_record("Acme", date="2024")
    name = build_archival_filename(record, "a.pdf", today=date(2025, 7, 9))
    assert name.startswith("2024-07-09_")


@pytest.mark.parametrize("merchant, expected", [
    ("123 !!!", "Unknown"),
    ("", "Unknown"),
    ("  Trader Joe's  ", "Trader_Joes"),
    ("A__B", "AB"),
])
def test_sanitize_merchant_name(merchant, expected):
    assert sanitize_merchant_name(merchant) == expected


def test_export_to_excel_returns_workbook():
    content = export_to_excel([ACME, make_record("B", card_last4="1234")])
    assert content[:2] == b"PK"


def test_export_to_excel_empty():
    assert export_to_excel([])[:2] == b"PK"


@pytest.mark.parametrize("total, expected", [
    (25.5, "$26"),
    (-25.5, "$25"),
    (-25.6, "$26"),
    (12.4, "$12"),
    (-0.4, "$0"),
])
def test_archival_amount_rounds_before_dropping_sign(total, expected):
    assert build_archival_filename(make_record("Acme", total=total), "a.pdf") == f"2024-03-01_Acme_{expected}.pdf"


def test_archival_filename_with_huge_total():
    name = build_archival_filename(make_record("Acme", total=1e30), "a.pdf")
    assert name == f"2024-03-01_Acme_${int(1e30)}.pdf"
