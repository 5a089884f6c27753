"""
Note RNN - next-note prediction on note index series

Trains a recurrent network on fixed-length sliding windows of a note
series, reports training accuracy after each training cycle, and writes
predictions for a held-out series.

Subpackages:
    - note_rnn.data: CSV loading and sliding-window construction
    - note_rnn.models: Layer descriptors and the recurrent sequence model
    - note_rnn.train: Optimizer and cyclic training driver
    - note_rnn.evaluation: Accuracy metrics
    - note_rnn.app: Held-out export, end-to-end pipeline and CLI

Example usage:
    from note_rnn.config import RunConfig
    from note_rnn.app.pipeline import run_pipeline

    result = run_pipeline(RunConfig(train_path="training.csv", test_path="test.csv"))
    print(result.log.accuracies)
"""

__version__ = "0.1.0"
