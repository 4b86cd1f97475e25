"""
Utility functions for upload handling, archive extraction and CSV parsing.
"""
import io
import os
import asyncio
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Dict, Optional

import aiofiles
import pandas as pd
from fastapi import UploadFile

from .errors import ExtractionError, TableParseError
from .logger import logger

ZIP_EXTENSION = '.zip'
CSV_EXTENSION = '.csv'

# Only this many rows are ever forwarded to the text-generation service
SAMPLE_ROW_LIMIT = 10

# Questions containing this phrase can be answered straight from the data
DIRECT_ANSWER_MARKER = '"answer" column'
DIRECT_ANSWER_FIELD = 'answer'


@dataclass
class FileIntakeResult:
    """Outcome of processing one uploaded file."""

    dataset: Optional[List[Dict[str, str]]] = None
    direct_answer: Optional[str] = None

    @property
    def sample_rows(self) -> Optional[List[Dict[str, str]]]:
        if self.dataset is None:
            return None
        return self.dataset[:SAMPLE_ROW_LIMIT]


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent path traversal and invalid characters.

    Args:
        filename: Original client-supplied filename

    Returns:
        Sanitized filename
    """
    filename = os.path.basename(filename.replace('\\', '/'))

    invalid_chars = '<>:"|?*'
    for char in invalid_chars:
        filename = filename.replace(char, '_')

    # Remove leading/trailing spaces and dots
    filename = filename.strip(' .')

    if not filename:
        filename = "unnamed_file"

    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        filename = name[:250] + ext

    return filename


async def save_uploaded_file(file: UploadFile, request_dir: Path) -> Path:
    """
    Save an uploaded file into its request-scoped directory.

    Args:
        file: Uploaded file
        request_dir: Directory owned by the current request

    Returns:
        Path to the saved file
    """
    request_dir.mkdir(parents=True, exist_ok=True)
    file_path = request_dir / sanitize_filename(file.filename or "")

    async with aiofiles.open(file_path, 'wb') as f:
        content = await file.read()
        await f.write(content)

    return file_path


def extract_zip_file(zip_path: Path) -> Path:
    """
    Extract a ZIP archive into a sibling ``extract_<name>`` directory.

    Existing entries in the target directory are overwritten.

    Args:
        zip_path: Path to ZIP file

    Returns:
        Path of the extraction directory

    Raises:
        ExtractionError: If the archive is corrupt/unreadable or the
            directory cannot be created
    """
    zip_path = Path(zip_path)
    extract_dir = zip_path.parent / f"extract_{zip_path.stem}"

    try:
        extract_dir.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(zip_path, 'r') as zip_ref:
            zip_ref.extractall(extract_dir)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, NotImplementedError, RuntimeError, OSError) as e:
        # NotImplementedError: unsupported compression; RuntimeError: encrypted entry
        raise ExtractionError(f"Could not extract {zip_path.name}: {e}") from e

    return extract_dir


def find_csv_files(directory: Path) -> List[Path]:
    """Return the CSV files directly inside ``directory``, sorted by name."""
    return sorted(
        entry for entry in Path(directory).iterdir()
        if entry.is_file() and entry.suffix.lower() == CSV_EXTENSION
    )


async def read_csv_file(file_path: Path) -> List[Dict[str, str]]:
    """
    Parse a CSV file into row records.

    The first line is the header; every following line becomes a dict
    mapping column name to the raw string value. Nothing is type-coerced.
    Header names are kept as written: when a name repeats, the rightmost
    column's value is the one kept.

    Args:
        file_path: Path to the CSV file

    Returns:
        Rows in file order (empty list for an empty or header-only file)

    Raises:
        TableParseError: If the file cannot be read or parsed
    """
    lines = []
    try:
        async with aiofiles.open(file_path, 'r', encoding='utf-8-sig', newline='') as f:
            async for line in f:
                lines.append(line)
    except (OSError, UnicodeDecodeError) as e:
        raise TableParseError(f"Could not read {Path(file_path).name}: {e}") from e

    text = ''.join(lines)
    if not text.strip():
        return []

    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            index_col=False,
        )
        header = pd.read_csv(
            io.StringIO(text),
            header=None,
            nrows=1,
            dtype=str,
            keep_default_na=False,
        ).iloc[0].tolist()
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, ValueError) as e:
        raise TableParseError(f"Could not parse {Path(file_path).name}: {e}") from e

    # read_csv renames duplicate headers ("a", "a.1"); rebuild rows from the raw names
    return [dict(zip(header, row)) for row in df.fillna('').itertuples(index=False, name=None)]


def find_direct_answer(question: str, dataset: Optional[List[Dict[str, str]]]) -> Optional[str]:
    """
    Look up an answer that can be copied straight from the data.

    Only applies when the question mentions the ``"answer" column`` and the
    first row carries a non-empty ``answer`` field. Other rows are ignored.
    """
    if not dataset or DIRECT_ANSWER_MARKER not in question:
        return None

    value = dataset[0].get(DIRECT_ANSWER_FIELD)
    return value or None


async def dispatch_file(
    file_path: Path,
    question: str,
    request_id: str = "unknown"
) -> FileIntakeResult:
    """
    Route an uploaded file to the right parser based on its extension.

    ZIP archives are extracted and the first CSV inside is parsed; CSV files
    are parsed directly; anything else is ignored.

    Args:
        file_path: Path of the stored upload
        question: The caller's question
        request_id: Request ID for logging

    Returns:
        Parsed dataset (if any) and a direct answer (if one applies)
    """
    file_path = Path(file_path)
    extension = file_path.suffix.lower()
    dataset = None

    if extension == ZIP_EXTENSION:
        extract_dir = await asyncio.to_thread(extract_zip_file, file_path)
        logger.info(f"Request {request_id}: Extracted {file_path.name} to {extract_dir}")

        csv_files = find_csv_files(extract_dir)
        if csv_files:
            logger.info(f"Request {request_id}: Using {csv_files[0].name} from archive")
            dataset = await read_csv_file(csv_files[0])
        else:
            logger.info(f"Request {request_id}: No CSV file found in {file_path.name}")
    elif extension == CSV_EXTENSION:
        dataset = await read_csv_file(file_path)
    else:
        logger.info(f"Request {request_id}: Ignoring unsupported file type {extension or '(none)'}")

    if dataset is not None:
        logger.info(f"Request {request_id}: Parsed {len(dataset)} rows")

    return FileIntakeResult(
        dataset=dataset,
        direct_answer=find_direct_answer(question, dataset)
    )
