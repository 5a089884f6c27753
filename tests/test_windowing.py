"""
Tests for sliding windows and one-hot targets.

Run with: pytest tests/test_windowing.py -v
"""

import numpy as np
import pytest

from note_rnn.data.windowing import (
    build_input_windows,
    build_targets,
    count_classes,
    targets_to_tensor,
)
from note_rnn.errors import DataFormatError


class TestInputWindows:

    def test_window_count_and_contents(self):
        """Window count is N - L + 1 with consecutive notes."""
        series = np.array([4, 1, 7, 7, 2, 0, 3, 5, 6, 1], dtype=float)
        windows = build_input_windows(series, 3)

        assert windows.shape == (1, len(series) - 3 + 1, 3)
        for i in range(windows.shape[1]):
            np.testing.assert_array_equal(windows[0, i], series[i:i + 3])

    def test_small_example(self):
        """A short series produces the expected windows."""
        windows = build_input_windows([0, 1, 2, 3, 4, 5], 3)
        expected = [[0, 1, 2], [1, 2, 3], [2, 3, 4], [3, 4, 5]]
        np.testing.assert_array_equal(windows[0], expected)

    def test_series_equal_to_window_length(self):
        """A series exactly one window long gives one window."""
        windows = build_input_windows([2, 3, 4], 3)
        assert windows.shape == (1, 1, 3)

    def test_window_of_one(self):
        """Window length 1 gives one window per note."""
        windows = build_input_windows([5, 6, 7], 1)
        np.testing.assert_array_equal(windows[0, :, 0], [5, 6, 7])

    def test_output_does_not_alias_series(self):
        """Windows are copies, not views of the series."""
        series = np.array([0, 1, 2, 3], dtype=float)
        windows = build_input_windows(series, 2)
        windows[0, 0, 0] = 99
        assert series[0] == 0

    def test_column_vector_accepted(self):
        """A column vector series is accepted."""
        windows = build_input_windows(np.arange(5, dtype=float).reshape(-1, 1), 2)
        assert windows.shape == (1, 4, 2)

    def test_series_shorter_than_window(self):
        """A series shorter than the window is rejected."""
        with pytest.raises(DataFormatError):
            build_input_windows([1, 2], 3)

    def test_non_positive_window_length(self):
        """A non-positive window length is rejected."""
        with pytest.raises(DataFormatError):
            build_input_windows([1, 2, 3], 0)

    def test_empty_series(self):
        """An empty series is rejected."""
        with pytest.raises(DataFormatError):
            build_input_windows([], 1)

    def test_nan_in_series(self):
        """NaN values are rejected."""
        with pytest.raises(DataFormatError):
            build_input_windows([1, float("nan"), 3], 2)

    def test_multi_feature_series_rejected(self):
        """A multi-column series is rejected."""
        with pytest.raises(DataFormatError):
            build_input_windows(np.zeros((4, 2)), 2)


class TestTargets:

    def test_small_example(self):
        """A short series produces the expected targets."""
        series = [0, 1, 2, 3, 4, 5]
        targets = build_targets(series, 3, count_classes(series))

        assert targets.shape == (3, 6)
        np.testing.assert_array_equal(targets.argmax(axis=1), [3, 4, 5])

    def test_one_fewer_target_than_windows(self):
        """There is one target fewer than windows."""
        series = np.arange(10, dtype=float) % 4
        windows = build_input_windows(series, 4)
        targets = build_targets(series, 4, count_classes(series))
        assert targets.shape[0] == windows.shape[1] - 1

    def test_rows_are_one_hot(self):
        """Every target row is one-hot."""
        rng = np.random.default_rng(0)
        series = rng.integers(0, 12, size=200).astype(float)
        targets = build_targets(series, 5, count_classes(series))

        np.testing.assert_array_equal(targets.sum(axis=1), np.ones(targets.shape[0]))
        assert set(np.unique(targets)) <= {0.0, 1.0}

    def test_row_marks_following_note(self):
        """Each row marks the note after its window."""
        series = [3, 0, 2, 1, 3, 0]
        targets = build_targets(series, 2, 4)
        for i, row in enumerate(targets):
            assert row[int(series[i + 2])] == 1.0

    def test_note_equal_to_num_classes_rejected(self):
        """A note equal to the class count is rejected."""
        with pytest.raises(DataFormatError):
            build_targets([0, 1, 2, 3], 2, 3)

    def test_note_just_below_num_classes_accepted(self):
        """The highest valid class is accepted."""
        targets = build_targets([0, 1, 2, 3], 2, 4)
        assert targets[-1, 3] == 1.0

    def test_negative_note_rejected(self):
        """Negative notes are rejected."""
        with pytest.raises(DataFormatError):
            build_targets([0, 1, -1], 2, 4)

    def test_fractional_note_rejected(self):
        """Fractional notes are rejected."""
        with pytest.raises(DataFormatError):
            build_targets([0, 1, 2.5], 2, 4)

    def test_large_fractional_note_rejected(self):
        """Small fractions on large note values are still rejected."""
        with pytest.raises(DataFormatError):
            build_targets([0.0, 50000.4], 1, 50001)

    def test_no_targets_when_series_equals_window(self):
        """No targets when the series is one window long."""
        targets = build_targets([1, 2, 3], 3, 4)
        assert targets.shape == (0, 4)

    def test_notes_inside_first_window_not_checked_against_classes(self):
        """Notes inside the first window are not range-checked."""
        # Only notes after the first window become targets
        targets = build_targets([9, 0, 1], 1, 2)
        assert targets.shape == (2, 2)


class TestCountClasses:

    def test_max_plus_one(self):
        """Class count is the maximum note plus one."""
        assert count_classes([0, 2, 5, 1]) == 6

    def test_all_zero(self):
        """An all-zero series has one class."""
        assert count_classes([0, 0, 0]) == 1

    def test_every_note_fits(self):
        """Every note fits the class count."""
        series = [7, 3, 0, 7, 1]
        targets = build_targets(series, 1, count_classes(series))
        assert targets.shape == (4, 8)


class TestTargetsToTensor:

    def test_shape_and_values(self):
        """Targets convert to a [1, targets, 1] tensor of class indices."""
        targets = build_targets([0, 1, 2, 1, 0], 2, 3)
        truth = targets_to_tensor(targets)

        assert truth.shape == (1, 3, 1)
        np.testing.assert_array_equal(truth[0, :, 0], [2, 1, 0])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
