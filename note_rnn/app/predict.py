"""
Held-out prediction export.

The inference tensor is shaped differently from the training windows:
each held-out note becomes its own sequence of ``length`` time steps with
the note in step 0 and zeros elsewhere. The model's value at the last
time step, feature 0, is taken as the prediction for that note. Training
windows, by contrast, are full slices of consecutive notes.
"""

from pathlib import Path
from typing import Optional, Union

import numpy as np

from note_rnn.data.loader import save_result_row
from note_rnn.data.windowing import as_series
from note_rnn.errors import DataFormatError, NoteRNNError, TrainingError


def build_inference_tensor(held_out, length: int) -> np.ndarray:
    """
    Build the [1, M, length] inference tensor for M held-out notes.

    Only time step 0 of each sequence is populated; steps 1..length-1
    stay zero.
    """
    values = as_series(held_out)
    if length <= 0:
        raise DataFormatError(f"Inference length must be positive. Got: {length}")

    tensor = np.zeros((1, values.shape[0], length), dtype=np.float64)
    tensor[0, :, 0] = values
    return tensor


def export_predictions(
    model,
    held_out,
    length: int,
    output_path: Optional[Union[str, Path]] = None
) -> np.ndarray:
    """
    Predict one value per held-out note and optionally write them out.

    Args:
        model: Trained model exposing predict()
        held_out: Held-out note series of length M
        length: Time steps per inference sequence
        output_path: If given, write the result row here as CSV

    Returns:
        1-D array of M predictions, in held-out order

    Raises:
        DataFormatError: If the held-out series is malformed
        TrainingError: If inference fails
        ExportError: If the result file can't be written; the model is
            untouched, so the call can simply be retried
    """
    tensor = build_inference_tensor(held_out, length)

    try:
        predicted = np.asarray(model.predict(tensor))
    except NoteRNNError:
        raise
    except Exception as e:
        raise TrainingError(f"Inference on held-out data failed: {e}") from e

    if predicted.ndim != 3 or predicted.shape[1] != tensor.shape[1]:
        raise TrainingError(
            f"Model returned shape {predicted.shape} for {tensor.shape[1]} sequences"
        )

    row = predicted[0, :, -1].copy()

    if output_path is not None:
        save_result_row(row, output_path)

    return row
