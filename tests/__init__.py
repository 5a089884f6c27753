"""
Test Package

Contains unit tests for all modules.
Run with: pytest tests/ -v

Test files follow the pattern:
    test_<module_name>.py

Example:
    tests/test_windowing.py   - Tests for note_rnn/data/windowing.py
    tests/test_trainer.py     - Tests for note_rnn/train/trainer.py
"""
