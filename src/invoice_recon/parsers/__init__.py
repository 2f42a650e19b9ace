"""Readers for CSV and spreadsheet sources."""

from .invoice_parser import InvoiceRecordParser, parse_generic_file
from .tabular_reader import TabularData, TabularReader

__all__ = ["InvoiceRecordParser", "TabularData", "TabularReader", "parse_generic_file"]
