import csv

import pytest
import pandas as pd

from statement_ledger.normalize import build_transaction, locate_header
from statement_ledger.records import FileRecord, TRANSACTION_COLUMNS

# Raw CSV rows of a statement with two metadata rows above the header
statement_rows = [
    ['HDFC Bank Statement'],
    ['Account No: 50100123456', 'Opening Balance: 1,000.00'],
    ['Txn Date', 'Description', 'Debit', 'Credit', 'Balance'],
    ['2024-03-01', 'Salary credit ACME', '', '500.00', '1,500.00'],
    ['15/03/2024', 'Swiggy order', '200.00', '', '1,300.00']
]

# Extracted PDF text of a statement
statement_lines = [
    'State Bank Savings Account Statement',
    'A/c No : XX9876  Branch: Indiranagar',
    'Opening Balance 10,000.00',
    '15/03/2024 NEFT from ACME 5,000.00 Cr',
    '16/03/2024 ATM withdrawal 2,000.00',
    '17/03/2024 POS AMAZON 499.00 Dr',
    'Closing Balance 12,501.00'
]

@pytest.fixture
def sample_statement_rows():
    """Raw rows of a tabular statement (header at index 2)."""
    return [list(row) for row in statement_rows]

@pytest.fixture
def tabular_record():
    """Tabular FileRecord built the way the CSV loader builds it."""
    _, preamble, records = locate_header(statement_rows)
    return FileRecord.tabular('hdfc_march.csv', records, preamble=preamble)

@pytest.fixture
def textual_record():
    """Textual FileRecord built from PDF lines."""
    return FileRecord.textual('sbi_march.pdf', statement_lines)

@pytest.fixture
def make_transaction():
    """Helper fixture to build canonical transaction dicts"""
    def _make(date, description, amount, direction, source='test.csv', account_number=None, balance=None):
        return build_transaction(
            date, description, amount, direction, source,
            account_number=account_number, balance=balance
        )
    return _make

@pytest.fixture
def make_ledger(make_transaction):
    """Helper fixture to build a transactions DataFrame from tuples"""
    def _make(specs):
        return pd.DataFrame([make_transaction(*spec) for spec in specs], columns=TRANSACTION_COLUMNS)
    return _make

@pytest.fixture
def write_csv(tmp_path):
    """Write raw rows to a CSV file under tmp_path."""
    def _write(name, rows):
        path = tmp_path / name
        with open(path, 'w', encoding='utf-8', newline='') as f:
            csv.writer(f).writerows(rows)
        return path
    return _write
