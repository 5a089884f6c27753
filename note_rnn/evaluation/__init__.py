"""
Evaluation Subpackage

    - metrics.py: Training accuracy ("channel" and "argmax" metrics)
"""

from note_rnn.evaluation.metrics import accuracy
