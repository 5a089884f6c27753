"""
CSV input and output for note series.

Training and held-out files hold a single numeric column, one note index
per row. When ``header`` is true the first row is a header (or a count)
and is skipped. Results are written as one comma-separated row.
"""

from pathlib import Path
from typing import Sequence, Union

import numpy as np
import pandas as pd

from note_rnn.errors import DataFormatError, ExportError


def load_series(path: Union[str, Path], header: bool = True) -> np.ndarray:
    """
    Load a single-column note series from CSV.

    Args:
        path: CSV file path
        header: Skip the first row

    Returns:
        1-D float64 array

    Raises:
        FileNotFoundError: If the file doesn't exist
        DataFormatError: If the file is empty, has more than one column,
            or holds non-numeric values
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    try:
        df = pd.read_csv(path, header=0 if header else None)
    except pd.errors.EmptyDataError as e:
        raise DataFormatError(f"No data in {path}") from e
    except pd.errors.ParserError as e:
        raise DataFormatError(f"Could not parse {path}: {e}") from e

    if df.shape[1] != 1:
        raise DataFormatError(f"Expected one column in {path}, found {df.shape[1]}")
    if df.empty:
        raise DataFormatError(f"No data rows in {path}")

    column = pd.to_numeric(df.iloc[:, 0], errors="coerce")
    if column.isna().any():
        row = int(column.isna().to_numpy().argmax())
        raise DataFormatError(
            f"Non-numeric value {df.iloc[row, 0]!r} in {path} (data row {row + 1})"
        )

    return column.to_numpy(dtype=np.float64)


def save_result_row(values: Sequence[float], path: Union[str, Path]) -> Path:
    """
    Write predictions as a single CSV row.

    Args:
        values: One prediction per held-out point
        path: Output CSV path (parent directories are created)

    Returns:
        The path written

    Raises:
        ExportError: If the file can't be written
    """
    path = Path(path)
    row = np.asarray(values, dtype=np.float64).reshape(1, -1)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        pd.DataFrame(row).to_csv(path, header=False, index=False)
    except OSError as e:
        raise ExportError(f"Could not write results to {path}: {e}") from e
    return path
