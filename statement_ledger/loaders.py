"""
Statement file loaders.

Decode statement files into FileRecords. The file extension picks the
loader:
- .csv: rows of cells, header row located heuristically, rows above it kept
  as preamble
- .xls/.xlsx: first sheet, first row as header, empty cells filled with ''
- .pdf: text of every page, in page order, split into non-blank lines

Loaders only decode; all interpretation happens in normalize/balances.
"""

import csv
import logging
import os
import pathlib
from concurrent.futures import ThreadPoolExecutor

import pandas as pd
import pdfplumber

from statement_ledger.exceptions import DecodeError, UnsupportedFormatError
from statement_ledger.normalize import locate_header
from statement_ledger.records import FileRecord

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ['.csv', '.xls', '.xlsx', '.pdf']
# utf-8-sig also reads plain UTF-8 and drops a leading byte order mark
CSV_ENCODINGS = ['utf-8-sig', 'cp1252']


def read_csv_rows(file_path):
    """Read raw CSV rows, skipping blank lines, trying each of CSV_ENCODINGS."""
    for encoding in CSV_ENCODINGS:
        try:
            with open(file_path, 'r', encoding=encoding, newline='') as f:
                reader = csv.reader(f, delimiter=',', quotechar='"')
                rows = [row for row in reader if any(cell.strip() for cell in row)]
            logger.debug(f"Successfully read file with encoding: {encoding}")
            return rows
        except UnicodeDecodeError:
            continue
    raise DecodeError("Could not read CSV file with any supported encoding")


def load_csv(file_path):
    file_name = os.path.basename(file_path)
    rows = read_csv_rows(file_path)
    if not rows:
        raise DecodeError(f"No data rows found in {file_name}")

    header_index, preamble, records = locate_header(rows)
    logger.info(f"Using row {header_index} of {file_name} as header ({len(preamble)} preamble lines)")
    return FileRecord.tabular(file_name, records, preamble=preamble)


def load_excel(file_path):
    file_name = os.path.basename(file_path)
    df = pd.read_excel(file_path, sheet_name=0, dtype=object)
    df = df.fillna('')

    # Header cells left empty come back as 'Unnamed: n'
    df.columns = [str(col).strip() for col in df.columns]
    df = df[[col for col in df.columns if col and not col.startswith('Unnamed:')]]

    return FileRecord.tabular(file_name, df.to_dict('records'))


def load_pdf(file_path):
    file_name = os.path.basename(file_path)
    full_text = ''
    with pdfplumber.open(file_path) as pdf:
        for i, page in enumerate(pdf.pages):
            text = page.extract_text() or ''
            full_text += text + '\n'
            logger.debug(f"Extracted text from page {i + 1} of {file_name}")

    lines = [line for line in full_text.split('\n') if line.strip()]
    if not lines:
        logger.warning(f"No text extracted from {file_name} - may need OCR")

    return FileRecord.textual(file_name, lines)


LOADERS = {
    '.csv': load_csv,
    '.xls': load_excel,
    '.xlsx': load_excel,
    '.pdf': load_pdf
}


def read_statement(file_path):
    """
    Decode a statement file into a FileRecord.

    Args:
        file_path (str or pathlib.Path): Path to the statement file

    Returns:
        FileRecord: Decoded file

    Raises:
        UnsupportedFormatError: If the extension has no loader
        FileNotFoundError: If the file does not exist
        DecodeError: If the file cannot be decoded
    """
    file_path = pathlib.Path(file_path)
    ext = file_path.suffix.lower()
    if ext not in LOADERS:
        raise UnsupportedFormatError(f"Unsupported file format: {ext or file_path.name}")

    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    if file_path.is_dir():
        raise DecodeError("Path is a directory")

    logger.debug(f"Reading file: {file_path}")
    try:
        return LOADERS[ext](file_path)
    except DecodeError:
        raise
    except Exception as e:
        raise DecodeError(f"Error decoding {file_path.name}: {str(e)}") from e


def load_files(file_paths, max_workers=None):
    """
    Decode several statement files independently.

    A failing file does not stop the others; its error is reported instead.

    Args:
        file_paths (list): Paths in the order the ledger should merge them
        max_workers (int, optional): Thread pool size

    Returns:
        tuple: (records, errors) where records keeps input order and errors
        maps file name to error message
    """
    file_paths = [pathlib.Path(path) for path in file_paths]

    def _load(path):
        try:
            return read_statement(path), None
        except (ValueError, OSError) as e:
            logger.error(f"Error importing {path}: {str(e)}")
            return None, str(e)

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        outcomes = list(pool.map(_load, file_paths))

    records = []
    errors = {}
    for path, (record, error) in zip(file_paths, outcomes):
        if error is not None:
            errors[path.name] = error
        else:
            records.append(record)

    return records, errors


def import_folder(folder_path, max_workers=None):
    """
    Import all statement files from a folder, in sorted file name order.

    Args:
        folder_path (str or Path): Path to the folder containing statements
        max_workers (int, optional): Thread pool size

    Returns:
        tuple: (records, errors) as returned by load_files

    Raises:
        FileNotFoundError: If the folder does not exist
        ValueError: If the path is not a directory or holds no statements
    """
    folder_path = pathlib.Path(folder_path)

    if not folder_path.exists():
        raise FileNotFoundError(f"Folder not found: {folder_path}")
    if not folder_path.is_dir():
        raise ValueError(f"Path is not a directory: {folder_path}")

    files = sorted(
        path for path in folder_path.iterdir()
        if path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS
    )
    if not files:
        raise ValueError(f"No statement files found in {folder_path}")

    logger.info(f"Importing folder: {folder_path}")
    return load_files(files, max_workers=max_workers)
