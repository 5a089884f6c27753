"""
Training accuracy for next-note prediction.

Both tensors use the features-first layout [features, sequences, time].

Two metrics are available:

    "channel"  rounds feature 0 of the prediction at the *last* time step
               and compares it with the rounded ground truth at feature 0,
               *first* time step. This is the long-standing metric used to
               report training progress; it reads a single output channel
               rather than choosing a class.
    "argmax"   takes the highest-scoring class at the last time step and
               compares it with the same ground truth value.
"""

import numpy as np

from note_rnn.errors import DataFormatError


METRICS = ("channel", "argmax")


def _round_half_away(values: np.ndarray) -> np.ndarray:
    """Round to nearest integer, halves away from zero (2.5 -> 3)."""
    return np.sign(values) * np.floor(np.abs(values) + 0.5)


def accuracy(predicted, actual, metric: str = "channel") -> float:
    """
    Percentage of sequences whose prediction matches the ground truth.

    Args:
        predicted: [output_size, sequences, time] model output
        actual: [features, sequences, time] ground truth; only
                [0, j, 0] is read for sequence j
        metric: "channel" or "argmax"

    Returns:
        matches / sequences * 100, in [0, 100]. Sequences are counted
        from ``actual``; extra predicted sequences are ignored.

    Raises:
        DataFormatError: On rank or size mismatch, or no sequences
        ValueError: On an unknown metric name
    """
    if metric not in METRICS:
        raise ValueError(f"Metric must be one of {METRICS}. Got: '{metric}'")

    predicted = np.asarray(predicted, dtype=np.float64)
    actual = np.asarray(actual, dtype=np.float64)

    if predicted.ndim != 3 or actual.ndim != 3:
        raise DataFormatError(
            f"Expected rank-3 tensors, got {predicted.shape} and {actual.shape}"
        )

    num_sequences = actual.shape[1]
    if num_sequences == 0:
        raise DataFormatError("No ground-truth sequences to score")
    if predicted.shape[1] < num_sequences:
        raise DataFormatError(
            f"{predicted.shape[1]} predicted sequences for {num_sequences} ground-truth sequences"
        )

    if metric == "channel":
        guesses = _round_half_away(predicted[0, :num_sequences, -1])
    else:
        guesses = predicted[:, :num_sequences, -1].argmax(axis=0).astype(np.float64)

    truth = _round_half_away(actual[0, :, 0])
    matches = int(np.count_nonzero(guesses == truth))

    return matches / num_sequences * 100.0
