"""
Account and balance metadata for statement files.

Banks bury the account number and the opening/closing balances in free text:
preamble lines above the transaction table, summary rows at either end of
it, or lines of a PDF. These helpers dig them out and check that the
transactions of a file actually add up from one balance to the other.
"""

import logging
import re

import numpy as np
import pandas as pd

from statement_ledger.normalize import (
    CREDIT,
    find_balance,
    find_description,
    find_explicit_amount,
    find_generic_amount,
    first_match,
    parse_amount,
)
from statement_ledger.records import TEXTUAL, TRANSACTION_COLUMNS

logger = logging.getLogger(__name__)

BALANCE_TOLERANCE = 0.01

VALID = 'valid'
INVALID = 'invalid'
UNVERIFIABLE = 'unverifiable'

ACCOUNT_PATTERN = re.compile(
    r'(?:account\s*no|acc\s*no|a/c\s*no|account\s*number|cust\s*id)[\s:.-]*([0-9a-z]+)',
    re.IGNORECASE
)
OPENING_PATTERN = re.compile(r'(?:opening|brought|b/f).{0,20}balance|balance.{0,20}(?:brought|b/f)', re.IGNORECASE)
CLOSING_PATTERN = re.compile(r'(?:closing|carried|c/f).{0,20}balance|balance.{0,20}(?:carried|c/f)', re.IGNORECASE)
NUMBER_PATTERN = re.compile(r'[\d,]+\.\d{2}')


def _match_account(line):
    if not isinstance(line, str):
        return None
    match = ACCOUNT_PATTERN.search(line)
    return match.group(1) if match else None


def extract_account_number(file_record):
    """
    Find the account identifier of a statement file.

    Textual files are searched line by line. Tabular files are searched in
    their preamble first, then in the string cells of the first data row.

    Args:
        file_record (FileRecord): Decoded statement file

    Returns:
        str or None: Captured account token
    """
    if file_record.kind == TEXTUAL:
        candidates = list(file_record.lines)
    else:
        candidates = list(file_record.preamble)
        if file_record.rows:
            candidates.extend(value for value in file_record.rows[0].values() if isinstance(value, str))

    for line in candidates:
        found = _match_account(line)
        if found:
            logger.debug(f"Found account number {found} in {file_record.file_name}")
            return found
    return None


def _number_in_text(text):
    if not isinstance(text, str):
        return None
    match = NUMBER_PATTERN.search(text)
    return parse_amount(match.group(0)) if match else None


def _scan_lines(lines, opening=None, closing=None):
    """Scan lines for balance labels; later matches overwrite earlier ones."""
    for line in lines:
        if OPENING_PATTERN.search(line):
            value = _number_in_text(line)
            if value is not None:
                opening = value
        if CLOSING_PATTERN.search(line):
            value = _number_in_text(line)
            if value is not None:
                closing = value
    return opening, closing


def _summary_row_value(row):
    """Value of an 'Opening Balance'/'Closing Balance' row in a transaction table."""
    def _from_amount(r):
        amount = first_match([find_explicit_amount, find_generic_amount], r)
        return abs(amount) if amount is not None else None

    def _from_description(r):
        return _number_in_text(find_description(r))

    return first_match([find_balance, _from_amount, _from_description], row)


def _scan_edge_rows(rows, opening=None, closing=None):
    if not rows:
        return opening, closing

    first_row = rows[0]
    last_row = rows[-1]

    if OPENING_PATTERN.search(find_description(first_row) or ''):
        value = _summary_row_value(first_row)
        if value is not None:
            opening = value

    if CLOSING_PATTERN.search(find_description(last_row) or ''):
        value = _summary_row_value(last_row)
        if value is not None:
            closing = value

    # The label may sit in a column that was not picked as the description
    for value in last_row.values():
        if isinstance(value, str) and CLOSING_PATTERN.search(value):
            number = _number_in_text(value)
            if number is not None:
                closing = number

    return opening, closing


def _signed(txn):
    return txn['amount'] if txn['type'] == CREDIT else -txn['amount']


def derive_balances(transactions, opening=None, closing=None):
    """
    Fill missing balances from the running balance of the transactions.

    Transactions are assumed to be oldest first: the opening balance is the
    first running balance with its transaction backed out, the closing
    balance is the last running balance.
    """
    if not transactions:
        return opening, closing

    first_txn = transactions[0]
    last_txn = transactions[-1]

    if opening is None and first_txn.get('balance') is not None:
        opening = round(first_txn['balance'] - _signed(first_txn), 2)
    if closing is None and last_txn.get('balance') is not None:
        closing = last_txn['balance']

    return opening, closing


def extract_balances(file_record, transactions=None):
    """
    Resolve the opening and closing balance of a statement file.

    Args:
        file_record (FileRecord): Decoded statement file
        transactions (list, optional): Normalized transactions of that file,
            used when the file does not state its balances

    Returns:
        dict: {'opening_balance': float or None, 'closing_balance': float or None}
    """
    if file_record.kind == TEXTUAL:
        opening, closing = _scan_lines(file_record.lines)
    else:
        opening, closing = _scan_lines(file_record.preamble)
        opening, closing = _scan_edge_rows(file_record.rows, opening, closing)

    stated = (opening is not None, closing is not None)
    opening, closing = derive_balances(transactions or [], opening, closing)
    if stated != (opening is not None, closing is not None):
        logger.debug(f"Derived balances for {file_record.file_name} from running balance")

    return {'opening_balance': opening, 'closing_balance': closing}


def validate_balances(file_name, balances, transactions):
    """
    Check that opening balance plus net transactions equals closing balance.

    A mismatch is advisory: it is reported in the returned record and logged,
    but the transactions are still used.

    Args:
        file_name (str): Statement file name
        balances (dict): Output of extract_balances
        transactions (list): Normalized transactions of the file

    Returns:
        dict: Balance record with validation_status and discrepancy
    """
    opening = balances.get('opening_balance')
    closing = balances.get('closing_balance')

    record = {
        'file_name': file_name,
        'opening_balance': opening,
        'closing_balance': closing,
        'validation_status': UNVERIFIABLE,
        'discrepancy': 0.0
    }
    if opening is None or closing is None:
        return record

    df = pd.DataFrame(transactions, columns=TRANSACTION_COLUMNS)
    amounts = df['amount'].astype(float)
    net = float(np.where(df['type'] == CREDIT, amounts, -amounts).sum())
    expected = opening + net

    if np.isclose(expected, closing, rtol=0, atol=BALANCE_TOLERANCE):
        record['validation_status'] = VALID
    else:
        record['validation_status'] = INVALID
        record['discrepancy'] = round(expected - closing, 2)
        logger.warning(f"Balance mismatch for {file_name}. Expected: {expected:.2f}, Found: {closing:.2f}")

    return record
