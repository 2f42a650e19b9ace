"""Shared fixtures and record factories."""

import pytest

from invoice_recon.config import ReconConfig
from invoice_recon.matching.engine import ReconciliationEngine
from invoice_recon.models.records import FixedInvoiceRecord, GenericRecord


def make_invoice(**overrides) -> FixedInvoiceRecord:
    values = {
        "invoice_number": "F001",
        "issue_date": "2024-01-10",
        "counterparty_name": "ACME SRL",
        "counterparty_tax_id": "123",
        "vat_rate": "19",
        "vat_base": "100.00",
    }
    values.update(overrides)
    return FixedInvoiceRecord(**values)


def make_row(row_number: int = 0, **values) -> GenericRecord:
    return GenericRecord(values=dict(values), row_number=row_number)


@pytest.fixture
def config() -> ReconConfig:
    return ReconConfig()


@pytest.fixture
def engine(config) -> ReconciliationEngine:
    return ReconciliationEngine(config)


@pytest.fixture
def invoice_csvs(tmp_path):
    """A left CSV (comma) and a right CSV (semicolon) with the default headers."""
    left = tmp_path / "left.csv"
    left.write_text(
        "Invoice Number,Issue Date,Counterparty,Tax ID,VAT Rate,VAT Base\n"
        "F001,2024-01-10,ACME SRL,RO123,19,100.00\n"
        "F002,2024-01-11,Beta Logistics SRL,RO456,19,250.00\n"
        "F003,2024-01-12,Gamma Trading SA,RO789,9,50.00\n",
        encoding="utf-8",
    )
    right = tmp_path / "right.csv"
    right.write_text(
        "Invoice Number;Issue Date;Counterparty;Tax ID;VAT Rate;VAT Base\n"
        "F001;10.01.2024;ACME SRL;123;19;100,00\n"
        "F002;11.01.2024;Beta Logistics SRL;456;19;260,00\n"
        "F004;15.01.2024;Delta Foods SRL;999;19;25,00\n",
        encoding="utf-8",
    )
    return left, right
