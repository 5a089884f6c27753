"""
Sliding Windows for Next-Note Training
======================================

Turns a flat series of note indices into the two arrays the trainer
consumes:

    inputs  [1, num_windows, L]        window i = series[i : i + L]
    targets [num_windows - 1, classes] row i is one-hot of series[i + L]

Windows slide by one step, so a series of length N gives N - L + 1
windows. The last window has no following note, which is why there is
one target row fewer than there are windows. Nothing past the end of the
series is ever read.

Class columns are 0-based: a note index k sets column k. The number of
classes is ``max(series) + 1`` so every observed note has a column.

Example:
    >>> series = np.array([0, 1, 2, 3, 4, 5], dtype=float)
    >>> build_input_windows(series, 3)[0]
    array([[0., 1., 2.],
           [1., 2., 3.],
           [2., 3., 4.],
           [3., 4., 5.]])
    >>> build_targets(series, 3, count_classes(series)).argmax(axis=1)
    array([3, 4, 5])
"""

from typing import Sequence, Union

import numpy as np

from note_rnn.errors import DataFormatError


ArrayLike = Union[np.ndarray, Sequence[float]]


def as_series(series: ArrayLike) -> np.ndarray:
    """Validate and convert a series to a 1-D float64 array."""
    values = np.asarray(series, dtype=np.float64)
    if values.ndim == 2 and 1 in values.shape:
        values = values.reshape(-1)
    if values.ndim != 1:
        raise DataFormatError(
            f"Expected a single-feature series, got array of shape {values.shape}"
        )
    if values.size == 0:
        raise DataFormatError("Series is empty")
    if not np.all(np.isfinite(values)):
        raise DataFormatError("Series contains NaN or infinite values")
    if np.any(values < 0):
        bad = int(np.argmax(values < 0))
        raise DataFormatError(f"Negative note index {values[bad]} at position {bad}")
    return values


def _check_window_length(n: int, window_length: int):
    if window_length <= 0:
        raise DataFormatError(f"Window length must be positive. Got: {window_length}")
    if n < window_length:
        raise DataFormatError(
            f"Series of length {n} is shorter than the window length {window_length}"
        )


def count_classes(series: ArrayLike) -> int:
    """
    Number of one-hot columns needed for a series.

    Columns cover note indices 0..max(series), so this is max + 1.
    """
    values = as_series(series)
    return int(np.rint(values.max())) + 1


def build_input_windows(series: ArrayLike, window_length: int) -> np.ndarray:
    """
    Build the input tensor of sliding windows.

    Args:
        series: Note indices, one per time step
        window_length: Time steps per window (L)

    Returns:
        Array of shape [1, N - L + 1, L]; entry [0, i, t] is series[i + t]

    Raises:
        DataFormatError: If the series is malformed or shorter than L
    """
    values = as_series(series)
    n = values.shape[0]
    _check_window_length(n, window_length)

    # [N - L + 1, L]
    windows = np.lib.stride_tricks.sliding_window_view(values, window_length)

    # Copy so callers never hold a view into the raw series
    return np.ascontiguousarray(windows[np.newaxis, :, :])


def build_targets(series: ArrayLike, window_length: int, num_classes: int) -> np.ndarray:
    """
    Build the one-hot target matrix aligned with the windows.

    Row i encodes series[L + i], the note right after window i.

    Args:
        series: Note indices, one per time step
        window_length: Time steps per window (L)
        num_classes: Width of each one-hot row

    Returns:
        Array of shape [N - L, num_classes]

    Raises:
        DataFormatError: If any target note is negative, not a whole
            number, or >= num_classes
    """
    values = as_series(series)
    n = values.shape[0]
    _check_window_length(n, window_length)
    if num_classes <= 0:
        raise DataFormatError(f"Number of classes must be positive. Got: {num_classes}")

    following = values[window_length:]
    notes = np.rint(following)
    if np.any(notes != following):
        bad = int(np.argmax(notes != following))
        raise DataFormatError(
            f"Note index {following[bad]} at position {window_length + bad} is not a whole number"
        )

    notes = notes.astype(np.int64)
    out_of_range = notes >= num_classes
    if np.any(out_of_range):
        bad = int(np.argmax(out_of_range))
        raise DataFormatError(
            f"Note index {notes[bad]} at position {window_length + bad} "
            f"is out of range for {num_classes} classes"
        )

    targets = np.zeros((notes.shape[0], num_classes), dtype=np.float64)
    targets[np.arange(notes.shape[0]), notes] = 1.0
    return targets


def targets_to_tensor(targets: np.ndarray) -> np.ndarray:
    """
    Ground-truth tensor [1, num_targets, 1] holding each row's class index.

    This is the shape the accuracy metric reads: feature 0, time step 0.
    """
    targets = np.asarray(targets)
    if targets.ndim != 2:
        raise DataFormatError(f"Target matrix must be 2-D, got shape {targets.shape}")
    labels = targets.argmax(axis=1).astype(np.float64)
    return labels.reshape(1, -1, 1)
