"""
Statement Normalization

Turns raw statement records into canonical transactions without knowing the
bank's layout in advance. Every field is resolved by an ordered chain of
independent matchers; each matcher returns a value or None and the first
value found wins.

Canonical Transaction Fields:
- id: Fingerprint of date, description, amount and account number
- date: Transaction date (YYYY-MM-DD)
- description: Transaction description
- amount: Non-negative magnitude
- type: 'credit' or 'debit'
- category: Keyword category (always set)
- source: Originating file name
- account_number: Account identifier found in the file, or None
- balance: Running balance after the transaction, or None

Rows without a resolvable date, or whose amount is zero or unreadable, are
not transactions and are dropped.
"""

import logging
import re
from datetime import date, datetime

import pandas as pd

from statement_ledger.categorize import categorize_transaction
from statement_ledger.records import TEXTUAL

logger = logging.getLogger(__name__)

CREDIT = 'credit'
DEBIT = 'debit'

# Header detection
HEADER_SCAN_ROWS = 20
HEADER_MIN_MATCHES = 2
HEADER_KEYWORDS = ['date', 'txn date', 'description', 'narration', 'amount', 'debit', 'credit', 'balance']

# Column name fragments, matched against lower-cased keys
DATE_KEYS = ['date', 'txn date', 'transaction date', 'value date', 'booking date', 'post date']
DESCRIPTION_KEYS = ['description', 'narration', 'particulars', 'details', 'remarks', 'memo', 'transaction details']
CREDIT_KEYS = ['credit', 'deposit', 'amount cr']
DEBIT_KEYS = ['debit', 'withdrawal', 'amount dr']
AMOUNT_KEYS = ['amount', 'txn amount', 'transaction amount', 'inr']
TYPE_KEYS = ['type', 'd/c', 'cr/dr', 'transaction type', 'dr / cr']
BALANCE_KEYS = ['balance', 'bal']
BALANCE_EXCLUDED_KEYS = ['opening', 'closing', 'description', 'date']

# Formats tried, in order, by the general date parser
DATE_FORMATS = [
    '%Y-%m-%d',           # ISO
    '%Y/%m/%d',
    '%m/%d/%Y',           # US
    '%m-%d-%Y',           # US with dashes
    '%m/%d/%y',           # Short year
    '%d %b %Y',           # 05 Mar 2024
    '%d-%b-%Y',           # 05-Mar-2024
    '%d %B %Y',           # 05 March 2024
    '%b %d, %Y',          # Mar 05, 2024
    '%Y%m%d'              # Compact
]

LEADING_DATE_PATTERN = re.compile(r'^(\d{2,4}[-/]\d{1,2}[-/]\d{2,4})')
TRAILING_TIME_PATTERN = re.compile(r'[\sT]+\d{1,2}:\d{2}(?::\d{2})?(?:\s*[AP]M)?$', re.IGNORECASE)
# Currency prefixes such as 'Rs.', '$' or 'INR ' before the first digit, sign or parenthesis
LEADING_NOISE_PATTERN = re.compile(r'^(?!\.\d)[^\d(\-]*')
LINE_DATE_PATTERN = re.compile(r'(\d{2}[-/]\d{2}[-/]\d{4}|\d{4}[-/]\d{2}[-/]\d{2})')
LINE_AMOUNT_PATTERN = re.compile(r'([\d,]+\.\d{2})(?:\s*(Credit|Debit|Cr|Dr)\b)?', re.IGNORECASE)
LINE_CREDIT_HINTS = re.compile(r'credit|deposit|refund|interest', re.IGNORECASE)


def first_match(matchers, *args):
    """Return the first non-None result of calling each matcher with args."""
    for matcher in matchers:
        result = matcher(*args)
        if result is not None:
            return result
    return None


def _key_matches(key, keywords):
    lower_key = str(key).lower()
    return any(keyword in lower_key for keyword in keywords)


def _is_blank(value):
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def standardize_date(date_str):
    """
    Convert a date string to YYYY-MM-DD (ISO8601) using DATE_FORMATS.

    A trailing time of day (' 10:30:00', 'T10:30', ' 10:30 AM') is ignored.

    Args:
        date_str (str): Date string to standardize

    Returns:
        str: Standardized date in YYYY-MM-DD format

    Raises:
        ValueError: If date is not a string or matches none of the known formats
    """
    if not isinstance(date_str, str):
        raise ValueError(f"Date must be a string, got {type(date_str)}")

    date_str = date_str.strip().strip('"\'')
    date_str = TRAILING_TIME_PATTERN.sub('', date_str)

    for fmt in DATE_FORMATS:
        try:
            dt = datetime.strptime(date_str, fmt)
        except ValueError:
            continue
        if dt.year < 1900 or dt.year > 2100:
            raise ValueError(f"Invalid date year: {dt.year}")
        return dt.strftime('%Y-%m-%d')

    raise ValueError(f"Invalid date format: {date_str}")


def _split_date(date_str):
    """Manual fallback: year-first when the first part has four digits, else day-first."""
    parts = re.split(r'[-/]', date_str.strip())
    if len(parts) != 3:
        return None
    if len(parts[0]) == 4:
        year, month, day = parts
    else:
        day, month, year = parts
    try:
        parsed = date(int(year), int(month), int(day))
    except ValueError:
        return None
    if parsed.year < 1900 or parsed.year > 2100:
        return None
    return parsed.isoformat()


def parse_date_value(value):
    """
    Parse a raw cell value into an ISO date string.

    Native date cells (from spreadsheets) are formatted directly. Strings have
    any trailing time component stripped, then go through the general parser
    and finally the day-first manual split.

    Returns:
        str or None: ISO date, or None when the value is not a date
    """
    if _is_blank(value):
        return None
    if isinstance(value, (datetime, date, pd.Timestamp)):
        return value.strftime('%Y-%m-%d')
    if not isinstance(value, str):
        return None

    val = TRAILING_TIME_PATTERN.sub('', value.strip())
    leading = LEADING_DATE_PATTERN.match(val)
    if leading:
        val = leading.group(1)

    try:
        return standardize_date(val)
    except ValueError:
        return _split_date(val)


def parse_amount(value):
    """
    Parse a raw cell value into a signed float.

    Currency symbols, thousands separators and any other stray characters are
    dropped. Parentheses mark a negative amount.

    Returns:
        float or None: Parsed amount, or None when the value is not numeric
    """
    if _is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    text = LEADING_NOISE_PATTERN.sub('', str(value).strip())
    negative = text.startswith('(') and text.endswith(')')
    cleaned = re.sub(r'[^0-9.\-]', '', text)
    try:
        result = float(cleaned)
    except ValueError:
        return None
    return -abs(result) if negative else result


def standardize_description(description):
    """Flatten newlines and trim surrounding whitespace; None becomes ''."""
    if _is_blank(description):
        return ''
    return str(description).replace('\n', ' ').strip()


def generate_id(date_str, description, amount, account_number=None):
    """
    Build the deterministic fingerprint of a transaction.

    The same (date, description, amount, account) always yields the same id,
    regardless of the file it came from.
    """
    key = f"{date_str}-{description}-{amount:.2f}-{account_number or 'unknown'}"
    return re.sub(r'\s+', '', key).lower()


def locate_header(rows):
    """
    Find the header row of a tabular file that has no declared header.

    Scans at most HEADER_SCAN_ROWS rows and picks the first one that mentions
    at least HEADER_MIN_MATCHES of HEADER_KEYWORDS. Falls back to row 0.

    Args:
        rows (list): Rows of raw cells

    Returns:
        tuple: (header_index, preamble, records) where preamble holds the
        joined cells of every row above the header and records maps every row
        below it by header name
    """
    rows = [list(row) for row in rows]
    if not rows:
        return 0, [], []

    header_index = 0
    for i, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        row_str = ' '.join('' if cell is None else str(cell).lower() for cell in row)
        match_count = sum(1 for keyword in HEADER_KEYWORDS if keyword in row_str)
        if match_count >= HEADER_MIN_MATCHES:
            header_index = i
            break
    else:
        logger.debug("No header row found, using first row as header")

    headers = ['' if cell is None else str(cell).strip() for cell in rows[header_index]]
    preamble = [' '.join('' if cell is None else str(cell) for cell in row) for row in rows[:header_index]]

    records = []
    for row in rows[header_index + 1:]:
        record = {}
        for index, header in enumerate(headers):
            # Empty header cells are not mapped, missing cells are left unset
            if header and index < len(row):
                record[header] = row[index]
        records.append(record)

    logger.debug(f"Header row {header_index}: {headers}")
    return header_index, preamble, records


# Tabular matchers

def find_date(row):
    for key, value in row.items():
        if not _key_matches(key, DATE_KEYS):
            continue
        result = parse_date_value(value)
        if result is not None:
            return result
    return None


def _description_from_named_column(row):
    for key, value in row.items():
        if _key_matches(key, DESCRIPTION_KEYS):
            return standardize_description(value)
    return None


def _description_from_longest_text(row):
    longest = ''
    for value in row.values():
        if isinstance(value, str) and len(value) > len(longest) and parse_date_value(value) is None:
            longest = value
    return standardize_description(longest)


def find_description(row):
    return first_match([_description_from_named_column, _description_from_longest_text], row)


def _is_credit_key(lower_key):
    if any(keyword in lower_key for keyword in CREDIT_KEYS):
        return True
    return lower_key == 'cr' or lower_key.endswith(' cr') or lower_key.startswith('cr ') or '(cr)' in lower_key


def _is_debit_key(lower_key):
    if any(keyword in lower_key for keyword in DEBIT_KEYS):
        return True
    return lower_key == 'dr' or lower_key.endswith(' dr') or lower_key.startswith('dr ') or '(dr)' in lower_key


def find_explicit_amount(row):
    """Signed amount from separate credit/debit columns; a non-zero credit wins."""
    credit = 0.0
    debit = 0.0
    for key, value in row.items():
        lower_key = str(key).lower()
        if _key_matches(lower_key, DESCRIPTION_KEYS):
            continue
        val = parse_amount(value)
        if val is None:
            continue
        if _is_credit_key(lower_key):
            credit = val
        elif _is_debit_key(lower_key):
            debit = val

    if credit != 0:
        return abs(credit)
    if debit != 0:
        return -abs(debit)
    return None


def find_generic_amount(row):
    """Signed amount from a single amount-like column."""
    for key, value in row.items():
        if _key_matches(key, AMOUNT_KEYS):
            val = parse_amount(value)
            if val is not None:
                return val
    return None


def find_type(row, amount, explicit=False):
    """
    Decide the direction of a tabular transaction.

    A negative amount is always a debit, even when a type column says
    otherwise; such columns often describe the balance, not the transaction.
    A positive amount that came from a credit column is a credit.

    Args:
        row (dict): Raw record
        amount (float): Signed amount
        explicit (bool): Whether the amount came from a credit/debit column

    Returns:
        str: 'credit' or 'debit'
    """
    if amount < 0:
        return DEBIT
    if explicit:
        return CREDIT

    for key, value in row.items():
        if not _key_matches(key, TYPE_KEYS):
            continue
        val = str(value).lower()
        if 'cr' in val or 'credit' in val or 'deposit' in val:
            return CREDIT
        if 'dr' in val or 'debit' in val or 'withdrawal' in val:
            return DEBIT

    return CREDIT


def find_balance(row):
    for key, value in row.items():
        lower_key = str(key).lower()
        if not _key_matches(lower_key, BALANCE_KEYS):
            continue
        if _key_matches(lower_key, BALANCE_EXCLUDED_KEYS):
            continue
        return parse_amount(value)
    return None


def build_transaction(date_str, description, amount, direction, source, account_number=None, balance=None):
    return {
        'id': generate_id(date_str, description, amount, account_number),
        'date': date_str,
        'description': description,
        'amount': amount,
        'type': direction,
        'category': categorize_transaction(description),
        'source': source,
        'account_number': account_number,
        'balance': balance
    }


def normalize_row(row, source, account_number=None):
    """
    Normalize one tabular record.

    Returns:
        dict or None: Transaction, or None when the row has no date or amount
    """
    date_str = find_date(row)
    description = find_description(row)

    signed = find_explicit_amount(row)
    explicit = signed is not None
    if not explicit:
        signed = find_generic_amount(row)

    if date_str is None or signed is None or signed == 0:
        logger.debug(f"Dropping row from {source}: date={date_str}, amount={signed}")
        return None

    direction = find_type(row, signed, explicit=explicit)
    return build_transaction(
        date_str,
        description,
        abs(signed),
        direction,
        source,
        account_number=account_number,
        balance=find_balance(row)
    )


# Textual matchers

def parse_line_date(line):
    """
    Extract a DD-MM-YYYY or YYYY-MM-DD date from a line of text.

    Returns:
        tuple or None: (iso_date, matched_text)
    """
    match = LINE_DATE_PATTERN.search(line)
    if not match:
        return None

    parts = match.group(0).replace('/', '-').split('-')
    if len(parts[0]) == 2:
        parts = [parts[2], parts[1], parts[0]]
    try:
        iso = datetime.strptime('-'.join(parts), '%Y-%m-%d').strftime('%Y-%m-%d')
    except ValueError:
        return None
    return iso, match.group(0)


def parse_line_amount(line):
    """
    Pick the transaction amount out of a line of text.

    An amount followed by a Cr/Dr marker is preferred. Otherwise the first
    amount is used and the line's wording decides the direction.

    Returns:
        tuple or None: (amount, direction, matched_text)
    """
    matches = list(LINE_AMOUNT_PATTERN.finditer(line))
    if not matches:
        return None

    for match in matches:
        marker = match.group(2)
        if marker:
            direction = CREDIT if marker.lower().startswith('c') else DEBIT
            return parse_amount(match.group(1)), direction, match.group(0)

    match = matches[0]
    direction = CREDIT if LINE_CREDIT_HINTS.search(line) else DEBIT
    return parse_amount(match.group(1)), direction, match.group(0)


def parse_text_line(line, source, account_number=None):
    """
    Normalize one line of statement text.

    Returns:
        dict or None: Transaction, or None when the line is not a transaction
    """
    found_date = parse_line_date(line)
    if found_date is None:
        return None
    date_str, date_text = found_date

    found_amount = parse_line_amount(line)
    if found_amount is None:
        return None
    amount, direction, amount_text = found_amount
    if not amount:
        return None

    description = line.replace(date_text, '', 1).replace(amount_text, '', 1)
    description = re.sub(r'\s+', ' ', description).strip()

    return build_transaction(date_str, description, abs(amount), direction, source, account_number=account_number)


def normalize_records(file_record, account_number=None):
    """
    Normalize every record of a decoded file, in file order.

    Args:
        file_record (FileRecord): Decoded statement file
        account_number (str, optional): Account to stamp on each transaction

    Returns:
        list: Transaction dicts
    """
    source = file_record.file_name
    if file_record.kind == TEXTUAL:
        candidates = [parse_text_line(line, source, account_number) for line in file_record.lines]
    else:
        candidates = [normalize_row(row, source, account_number) for row in file_record.rows]

    transactions = [txn for txn in candidates if txn is not None]
    logger.info(f"Normalized {len(transactions)} of {len(candidates)} records from {source}")
    return transactions
