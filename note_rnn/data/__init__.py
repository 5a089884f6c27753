"""
Data Subpackage

    - loader.py: Read single-column note CSVs, write the result row
    - windowing.py: Sliding input windows and one-hot targets
"""

from note_rnn.data.windowing import build_input_windows, build_targets, count_classes
