"""
Tests for the training accuracy metric.

Run with: pytest tests/test_metrics.py -v
"""

import numpy as np
import pytest

from note_rnn.errors import DataFormatError
from note_rnn.evaluation.metrics import accuracy


def make_predicted(last_step_channel0, num_classes=4, steps=3, fill=-7.0):
    """Prediction tensor whose feature 0 at the last step holds the given values."""
    values = np.asarray(last_step_channel0, dtype=float)
    predicted = np.full((num_classes, values.shape[0], steps), fill)
    predicted[0, :, -1] = values
    return predicted


def make_truth(notes):
    return np.asarray(notes, dtype=float).reshape(1, -1, 1)


class TestChannelMetric:

    def test_all_match(self):
        """Every sequence matching scores 100%."""
        predicted = make_predicted([1.2, 2.0, 0.4, 3.49])
        assert accuracy(predicted, make_truth([1, 2, 0, 3])) == 100.0

    def test_none_match(self):
        """No sequence matching scores 0%."""
        predicted = make_predicted([0.0, 0.0, 0.0])
        assert accuracy(predicted, make_truth([1, 2, 3])) == 0.0

    def test_partial_match(self):
        """Accuracy is the percentage of matching sequences."""
        predicted = make_predicted([1.0, 5.0, 2.0, 9.0])
        assert accuracy(predicted, make_truth([1, 2, 2, 3])) == 50.0

    def test_halves_round_away_from_zero(self):
        """Halves round away from zero before comparing."""
        predicted = make_predicted([2.5, 0.5])
        assert accuracy(predicted, make_truth([3, 1])) == 100.0

    def test_only_last_time_step_is_read(self):
        """Only the last predicted time step is compared."""
        predicted = make_predicted([1.0, 2.0], fill=1.0)
        predicted[0, :, 0] = [2.0, 1.0]
        assert accuracy(predicted, make_truth([1, 2])) == 100.0

    def test_ground_truth_first_time_step(self):
        """Ground truth is read from the first time step."""
        truth = np.zeros((1, 2, 3))
        truth[0, :, 0] = [1, 2]
        truth[0, :, 1:] = 9
        assert accuracy(make_predicted([1.0, 2.0]), truth) == 100.0

    def test_extra_predicted_sequences_ignored(self):
        """Predicted sequences beyond the ground truth are ignored."""
        predicted = make_predicted([1.0, 2.0, 99.0])
        assert accuracy(predicted, make_truth([1, 2])) == 100.0

    def test_result_in_range(self):
        """Accuracy always lies in [0, 100]."""
        rng = np.random.default_rng(1)
        predicted = rng.normal(size=(5, 30, 4))
        result = accuracy(predicted, make_truth(rng.integers(0, 3, size=30)))
        assert 0.0 <= result <= 100.0


class TestArgmaxMetric:

    def test_highest_class_at_last_step(self):
        """Argmax over classes at the last step is compared."""
        predicted = np.zeros((3, 2, 2))
        predicted[2, 0, -1] = 1.0
        predicted[1, 1, -1] = 1.0
        # Earlier steps would point elsewhere
        predicted[0, :, 0] = 5.0
        assert accuracy(predicted, make_truth([2, 1]), metric="argmax") == 100.0

    def test_mismatch(self):
        """A wrong argmax class counts as a miss."""
        predicted = np.zeros((3, 1, 1))
        predicted[0, 0, 0] = 1.0
        assert accuracy(predicted, make_truth([2]), metric="argmax") == 0.0


class TestErrors:

    def test_unknown_metric(self):
        """An unknown metric name raises ValueError."""
        with pytest.raises(ValueError):
            accuracy(make_predicted([1.0]), make_truth([1]), metric="f1")

    def test_rank_mismatch(self):
        """Inputs that are not 3-D raise DataFormatError."""
        with pytest.raises(DataFormatError):
            accuracy(np.zeros((2, 3)), make_truth([1, 2]))

    def test_no_sequences(self):
        """Zero ground-truth sequences raise DataFormatError."""
        with pytest.raises(DataFormatError):
            accuracy(make_predicted([1.0]), np.zeros((1, 0, 1)))

    def test_fewer_predictions_than_truth(self):
        """Fewer predictions than ground-truth sequences raise DataFormatError."""
        with pytest.raises(DataFormatError):
            accuracy(make_predicted([1.0]), make_truth([1, 2]))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
