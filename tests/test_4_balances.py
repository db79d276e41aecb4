"""
Account and Balance Tests

This module tests metadata extraction from statement text and the balance
continuity check.

Test Coverage:
- Account number detection in preamble, first row and text lines
- Opening/closing balance detection (preamble, edge rows, text lines)
- Balance derivation from running balances
- Reconciliation status and discrepancy
"""

import pytest
from statement_ledger.balances import (
    INVALID,
    UNVERIFIABLE,
    VALID,
    derive_balances,
    extract_account_number,
    extract_balances,
    validate_balances
)
from statement_ledger.normalize import CREDIT, DEBIT, normalize_records
from statement_ledger.records import FileRecord

class TestAccountNumber:
    """Test suite for account number detection."""

    @pytest.mark.parametrize("line, expected", [
        ('Account No: 50100123456', '50100123456'),
        ('ACC NO. 998877', '998877'),
        ('A/c No : XX9876 Branch: Indiranagar', 'XX9876'),
        ('Account Number - 1234567890', '1234567890'),
        ('Cust ID:CUST42', 'CUST42'),
    ])
    def test_label_variants(self, line, expected):
        record = FileRecord.textual('s.pdf', ['Welcome', line])
        assert extract_account_number(record) == expected

    def test_textual_first_match_wins(self):
        record = FileRecord.textual('s.pdf', ['Account No: 111', 'Account No: 222'])
        assert extract_account_number(record) == '111'

    def test_tabular_preamble(self, tabular_record):
        assert extract_account_number(tabular_record) == '50100123456'

    def test_tabular_first_row(self):
        """Account numbers printed inside the first data row are found too."""
        rows = [
            {'Date': '', 'Description': 'Statement for A/c No 00112233', 'Amount': ''},
            {'Date': '2024-03-01', 'Description': 'Account No: 999', 'Amount': '1.00'}
        ]
        record = FileRecord.tabular('s.csv', rows)
        assert extract_account_number(record) == '00112233'

    def test_missing_account(self):
        record = FileRecord.tabular('s.csv', [{'Date': '2024-03-01', 'Amount': 5.0}], preamble=['Savings'])
        assert extract_account_number(record) is None

class TestBalanceExtraction:
    """Test suite for opening/closing balance detection."""

    def test_textual_lines(self, textual_record):
        balances = extract_balances(textual_record)
        assert balances == {'opening_balance': 10000.0, 'closing_balance': 12501.0}

    def test_brought_and_carried_forward(self):
        record = FileRecord.textual('s.pdf', [
            'Balance B/F 500.00',
            '01/03/2024 Coffee 20.00',
            'Balance C/F 480.00'
        ])
        assert extract_balances(record) == {'opening_balance': 500.0, 'closing_balance': 480.0}

    def test_label_without_number_ignored(self):
        record = FileRecord.textual('s.pdf', ['Opening balance as shown below', 'Closing balance'])
        assert extract_balances(record) == {'opening_balance': None, 'closing_balance': None}

    def test_preamble(self):
        record = FileRecord.tabular('s.csv', [], preamble=[
            'Opening Balance: 1,000.00',
            'Closing Balance: 1,300.00'
        ])
        assert extract_balances(record) == {'opening_balance': 1000.0, 'closing_balance': 1300.0}

    def test_edge_rows(self):
        """Summary rows at either end of the table carry the balances."""
        rows = [
            {'Date': '', 'Description': 'Opening Balance', 'Amount': '', 'Balance': '2,000.00'},
            {'Date': '2024-03-02', 'Description': 'Coffee', 'Amount': '-20.00', 'Balance': '1,980.00'},
            {'Date': '', 'Description': 'Closing Balance', 'Amount': '', 'Balance': '1,980.00'}
        ]
        record = FileRecord.tabular('s.csv', rows)
        assert extract_balances(record) == {'opening_balance': 2000.0, 'closing_balance': 1980.0}

    def test_closing_label_in_any_last_row_column(self):
        rows = [
            {'Date': '2024-03-02', 'Narration': 'Coffee', 'Amount': '-20.00'},
            {'Date': '', 'Narration': '', 'Amount': '', 'Note': 'Closing balance 1,980.00'}
        ]
        record = FileRecord.tabular('s.csv', rows)
        assert extract_balances(record)['closing_balance'] == 1980.0

    def test_derived_from_running_balance(self, tabular_record):
        """The tabular fixture states its opening balance but not its closing one."""
        transactions = normalize_records(tabular_record)
        balances = extract_balances(tabular_record, transactions)
        assert balances == {'opening_balance': 1000.0, 'closing_balance': 1300.0}

class TestBalanceDerivation:
    def test_backs_out_first_transaction(self, make_transaction):
        transactions = [
            make_transaction('2024-03-01', 'Salary', 500.0, CREDIT, balance=1500.0),
            make_transaction('2024-03-02', 'Rent', 200.0, DEBIT, balance=1300.0)
        ]
        assert derive_balances(transactions) == (1000.0, 1300.0)

    def test_debit_first(self, make_transaction):
        transactions = [make_transaction('2024-03-02', 'Rent', 200.0, DEBIT, balance=800.0)]
        assert derive_balances(transactions) == (1000.0, 800.0)

    def test_stated_balances_kept(self, make_transaction):
        transactions = [make_transaction('2024-03-02', 'Rent', 200.0, DEBIT, balance=800.0)]
        assert derive_balances(transactions, opening=5.0, closing=6.0) == (5.0, 6.0)

    def test_no_running_balance(self, make_transaction):
        transactions = [make_transaction('2024-03-02', 'Rent', 200.0, DEBIT)]
        assert derive_balances(transactions) == (None, None)
        assert derive_balances([]) == (None, None)

class TestReconciliation:
    """Test suite for balance validation.

    Verifies:
    - Matching balances are valid with zero discrepancy
    - Mismatches are invalid with expected minus found as discrepancy
    - Missing balances cannot be verified
    """

    @pytest.fixture
    def transactions(self, make_transaction):
        return [
            make_transaction('2024-03-01', 'Salary', 500.0, CREDIT),
            make_transaction('2024-03-02', 'Rent', 200.0, DEBIT)
        ]

    def test_valid(self, transactions):
        record = validate_balances('s.csv', {'opening_balance': 1000.0, 'closing_balance': 1300.0}, transactions)
        assert record == {
            'file_name': 's.csv',
            'opening_balance': 1000.0,
            'closing_balance': 1300.0,
            'validation_status': VALID,
            'discrepancy': 0.0
        }

    def test_invalid(self, transactions):
        record = validate_balances('s.csv', {'opening_balance': 1000.0, 'closing_balance': 1250.0}, transactions)
        assert record['validation_status'] == INVALID
        assert record['discrepancy'] == 50.0

    def test_negative_discrepancy(self, transactions):
        record = validate_balances('s.csv', {'opening_balance': 1000.0, 'closing_balance': 1400.0}, transactions)
        assert record['validation_status'] == INVALID
        assert record['discrepancy'] == -100.0

    def test_within_tolerance(self, transactions):
        record = validate_balances('s.csv', {'opening_balance': 1000.0, 'closing_balance': 1300.005}, transactions)
        assert record['validation_status'] == VALID
        assert record['discrepancy'] == 0.0

    @pytest.mark.parametrize("balances", [
        {'opening_balance': None, 'closing_balance': 1300.0},
        {'opening_balance': 1000.0, 'closing_balance': None},
        {'opening_balance': None, 'closing_balance': None}
    ])
    def test_unverifiable(self, transactions, balances):
        record = validate_balances('s.csv', balances, transactions)
        assert record['validation_status'] == UNVERIFIABLE
        assert record['discrepancy'] == 0.0

    def test_no_transactions(self):
        record = validate_balances('s.csv', {'opening_balance': 10.0, 'closing_balance': 10.0}, [])
        assert record['validation_status'] == VALID

    def test_mismatch_logged(self, transactions, caplog):
        validate_balances('s.csv', {'opening_balance': 1000.0, 'closing_balance': 1250.0}, transactions)
        assert "Balance mismatch for s.csv" in caplog.text
