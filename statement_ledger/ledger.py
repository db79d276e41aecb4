"""
Statement Ledger Pipeline

Builds one deduplicated ledger out of any number of bank statement files.

Pipeline:
1. Each FileRecord is normalized on its own (account number, transactions,
   opening/closing balances, balance validation). Files are independent, so
   this step runs on a thread pool.
2. The per-file transaction lists are concatenated in the caller's file
   order and deduplicated by fingerprint; a later duplicate replaces an
   earlier one.
3. The ledger is summarized by category, by month and overall.

The pipeline keeps no state between calls: callers pass every file they know
about and get the whole result recomputed.

Ledger Columns:
- id, date, description, amount, type, category, source, account_number, balance

Export Columns:
- date, description, category, accountNumber, amount, type, source
"""

import argparse
import csv
import logging
import pathlib
from concurrent.futures import ThreadPoolExecutor

import pandas as pd

from statement_ledger.balances import (
    INVALID,
    extract_account_number,
    extract_balances,
    validate_balances,
)
from statement_ledger.loaders import import_folder
from statement_ledger.normalize import CREDIT, normalize_records
from statement_ledger.records import BALANCE_COLUMNS, TRANSACTION_COLUMNS
from statement_ledger.utils import ensure_directory, setup_logging

logger = logging.getLogger(__name__)

# Ledger column -> exported column
EXPORT_COLUMNS = {
    'date': 'date',
    'description': 'description',
    'category': 'category',
    'account_number': 'accountNumber',
    'amount': 'amount',
    'type': 'type',
    'source': 'source'
}


def process_file(file_record):
    """
    Normalize a single decoded statement file.

    Args:
        file_record (FileRecord): Decoded statement file

    Returns:
        tuple: (transactions, balance_record) where transactions is a list of
        transaction dicts in file order
    """
    logger.info(f"Processing file: {file_record.file_name}")

    account_number = extract_account_number(file_record)
    logger.info(f"Extracted account number for {file_record.file_name}: {account_number}")

    transactions = normalize_records(file_record, account_number)
    balances = extract_balances(file_record, transactions)
    balance_record = validate_balances(file_record.file_name, balances, transactions)

    return transactions, balance_record


def deduplicate_transactions(transactions: pd.DataFrame) -> pd.DataFrame:
    """
    Collapse transactions that share a fingerprint.

    Each id keeps the position of its first occurrence and the values of its
    last one, so true duplicates across overlapping statements collapse to a
    single row. Two distinct transactions with the same date, description,
    amount and account cannot be told apart and also collapse.

    Args:
        transactions (pd.DataFrame): Transactions in processing order

    Returns:
        pd.DataFrame: Deduplicated ledger
    """
    if transactions.empty:
        return transactions.reset_index(drop=True)

    order = transactions['id'].drop_duplicates(keep='first')
    latest = transactions.drop_duplicates(subset='id', keep='last').set_index('id')
    ledger = latest.loc[order.tolist()].reset_index()

    dropped = len(transactions) - len(ledger)
    if dropped:
        logger.info(f"Removed {dropped} duplicate transactions")

    return ledger[transactions.columns.tolist()]


def _empty_summary():
    return {
        'by_category': {},
        'by_month': {},
        'total_income': 0.0,
        'total_expense': 0.0,
        'net': 0.0,
        'total_opening_balance': 0.0,
        'total_closing_balance': 0.0
    }


def summarize_transactions(transactions: pd.DataFrame, balances=None) -> dict:
    """
    Aggregate the ledger.

    Args:
        transactions (pd.DataFrame): Deduplicated ledger
        balances (pd.DataFrame, optional): Per-file balance records; absent
            balances count as zero

    Returns:
        dict: by_category, by_month, total_income, total_expense, net,
        total_opening_balance, total_closing_balance
    """
    summary = _empty_summary()

    if balances is not None and not balances.empty:
        summary['total_opening_balance'] = round(float(pd.to_numeric(balances['opening_balance']).sum()), 2)
        summary['total_closing_balance'] = round(float(pd.to_numeric(balances['closing_balance']).sum()), 2)

    if transactions.empty:
        return summary

    amounts = transactions['amount'].astype(float)
    is_credit = transactions['type'] == CREDIT
    frame = pd.DataFrame({
        'category': transactions['category'],
        'month': transactions['date'].str[:7],
        'amount': amounts,
        'income': amounts.where(is_credit, 0.0),
        'expense': amounts.where(~is_credit, 0.0)
    })

    by_category = frame.groupby('category', sort=False)['amount'].sum()
    summary['by_category'] = {category: round(float(total), 2) for category, total in by_category.items()}

    by_month = frame.groupby('month')[['income', 'expense']].sum()
    summary['by_month'] = {
        month: {'income': round(float(row['income']), 2), 'expense': round(float(row['expense']), 2)}
        for month, row in by_month.iterrows()
    }

    summary['total_income'] = round(float(frame['income'].sum()), 2)
    summary['total_expense'] = round(float(frame['expense'].sum()), 2)
    summary['net'] = round(summary['total_income'] - summary['total_expense'], 2)

    return summary


def process_files(file_records, max_workers=None):
    """
    Run the whole pipeline over every known statement file.

    Args:
        file_records (list): FileRecords in a stable, caller-chosen order;
            deduplication keeps the values of the last duplicate
        max_workers (int, optional): Thread pool size for per-file work

    Returns:
        dict: {'transactions': pd.DataFrame, 'balances': pd.DataFrame, 'summary': dict}
    """
    file_records = list(file_records)
    logger.info(f"Building ledger from {len(file_records)} files")

    # map() yields results in input order, so the merge below is stable
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(process_file, file_records))

    all_transactions = []
    balance_records = []
    for transactions, balance_record in results:
        all_transactions.extend(transactions)
        balance_records.append(balance_record)

    transactions_df = pd.DataFrame(all_transactions, columns=TRANSACTION_COLUMNS)
    balances_df = pd.DataFrame(balance_records, columns=BALANCE_COLUMNS)

    ledger = deduplicate_transactions(transactions_df)
    summary = summarize_transactions(ledger, balances_df)

    logger.info(f"Ledger contains {len(ledger)} transactions")
    return {
        'transactions': ledger,
        'balances': balances_df,
        'summary': summary
    }


def save_ledger(transactions, output_path):
    """
    Export the ledger, one row per transaction in ledger order.

    Args:
        transactions (pd.DataFrame): Deduplicated ledger
        output_path (str or pathlib.Path): File or directory; directories get
            'ledger.csv'. An .xlsx suffix writes a spreadsheet.

    Returns:
        pathlib.Path: Path written
    """
    result = transactions.reindex(columns=list(EXPORT_COLUMNS)).rename(columns=EXPORT_COLUMNS)

    output_path = pathlib.Path(output_path)
    if output_path.is_dir() or not output_path.suffix:
        output_path = output_path / "ledger.csv"

    output_path.parent.mkdir(parents=True, exist_ok=True)

    if output_path.suffix.lower() == '.xlsx':
        with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
            result.to_excel(writer, sheet_name='Ledger', index=False)
    else:
        result.to_csv(output_path, index=False, quoting=csv.QUOTE_NONNUMERIC)

    logger.info(f"Saved {len(result)} transactions to {output_path}")
    return output_path


def format_summary(summary, balances=None):
    """Render a summary (and optional balance records) as report text."""
    lines = [
        f"Total Income: {summary['total_income']:.2f}",
        f"Total Expense: {summary['total_expense']:.2f}",
        f"Net: {summary['net']:.2f}",
        f"Total Opening Balance: {summary['total_opening_balance']:.2f}",
        f"Total Closing Balance: {summary['total_closing_balance']:.2f}"
    ]

    if balances is not None and not balances.empty:
        lines.append("\nBalance Validation:")
        for _, record in balances.iterrows():
            line = f"{record['file_name']}: {record['validation_status']}"
            if record['validation_status'] == INVALID:
                line += f" (discrepancy {record['discrepancy']:.2f})"
            lines.append(line)

    if summary['by_category']:
        lines.append("\nBy Category:")
        for category, total in sorted(summary['by_category'].items(), key=lambda item: -item[1]):
            lines.append(f"{category}: {total:.2f}")
    else:
        lines.append("\nNo transactions found")

    if summary['by_month']:
        lines.append("\nBy Month:")
        for month, totals in summary['by_month'].items():
            lines.append(f"{month}: income {totals['income']:.2f}, expense {totals['expense']:.2f}")

    return "\n".join(lines)


def generate_summary_report(summary, balances, output_path):
    """
    Write the summary report.

    Args:
        summary (dict): Output of summarize_transactions
        balances (pd.DataFrame): Per-file balance records
        output_path (str or pathlib.Path): File or directory; directories get
            'summary_report.txt'

    Returns:
        pathlib.Path: Path written
    """
    output_path = pathlib.Path(output_path)
    if output_path.is_dir() or not output_path.suffix:
        output_path = output_path / "summary_report.txt"

    output_path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Writing summary report to {output_path}")
    with open(output_path, 'w') as f:
        f.write(format_summary(summary, balances))
    return output_path


def main(argv=None):
    """Main execution function."""
    parser = argparse.ArgumentParser(description='Build a deduplicated ledger from bank statements')
    parser.add_argument('--statements', type=str, default='data/statements',
                        help='Path to statement files')
    parser.add_argument('--output', type=str, default=None,
                        help='Output directory (defaults to $DATA_DIR/output)')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of files processed in parallel')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')
    args = parser.parse_args(argv)

    setup_logging(debug=args.debug)

    try:
        logger.info("Starting ledger build")

        records, errors = import_folder(args.statements, max_workers=args.workers)
        for file_name, message in errors.items():
            logger.error(f"Skipped {file_name}: {message}")

        result = process_files(records, max_workers=args.workers)

        output_dir = pathlib.Path(args.output) if args.output else ensure_directory('output')
        output_dir.mkdir(parents=True, exist_ok=True)

        save_ledger(result['transactions'], output_dir)
        generate_summary_report(result['summary'], result['balances'], output_dir)

    except Exception as e:
        logger.error(f"Error during ledger build: {str(e)}")
        raise


if __name__ == '__main__':
    main()
