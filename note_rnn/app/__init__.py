"""
App Subpackage

    - predict.py: Held-out inference tensor and prediction export
    - pipeline.py: Read, train, export in one run
    - cli.py: note-rnn command
"""
