"""
Statement Ledger - builds one deduplicated ledger from bank statement exports.

This package provides functionality to:
- Read statement files in CSV, Excel and PDF form without a fixed layout
- Locate header rows and normalize transactions field by field
- Detect account numbers and opening/closing balances in free text
- Validate balances against the transactions of each file
- Categorize, deduplicate and summarize transactions across files

The normalized transaction format includes:
- date: Transaction date (YYYY-MM-DD)
- description: Transaction description
- amount: Non-negative amount
- type: 'credit' or 'debit'
- category: Keyword category
- source: Source file name
- account_number: Account identifier, when found
- balance: Running balance, when present
"""

from .records import FileRecord
from .exceptions import LedgerError, UnsupportedFormatError, DecodeError
from .loaders import read_statement, load_files, import_folder
from .normalize import locate_header, normalize_records, standardize_date, parse_amount
from .balances import extract_account_number, extract_balances, validate_balances
from .categorize import categorize_transaction
from .ledger import (
    process_file,
    process_files,
    deduplicate_transactions,
    summarize_transactions,
    save_ledger,
    generate_summary_report
)

__all__ = [
    'FileRecord',
    'LedgerError',
    'UnsupportedFormatError',
    'DecodeError',
    'read_statement',
    'load_files',
    'import_folder',
    'locate_header',
    'normalize_records',
    'standardize_date',
    'parse_amount',
    'extract_account_number',
    'extract_balances',
    'validate_balances',
    'categorize_transaction',
    'process_file',
    'process_files',
    'deduplicate_transactions',
    'summarize_transactions',
    'save_ledger',
    'generate_summary_report'
]
