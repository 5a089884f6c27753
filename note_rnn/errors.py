"""
Exception types for the note sequence trainer.

Every failure the library reports derives from NoteRNNError, so callers
(the CLI in particular) can catch one type. The concrete classes also
subclass the matching builtin so plain ``except ValueError`` still works.

    DataFormatError  - malformed or out-of-range input data
    TrainingError    - fatal failure inside fit/predict (e.g. NaN loss)
    ExportError      - the result artifact could not be written
    ConfigError      - invalid configuration values or files
"""


class NoteRNNError(Exception):
    """Base class for all errors raised by note_rnn."""


class DataFormatError(NoteRNNError, ValueError):
    """Input series is malformed, too short, or holds out-of-range notes."""


class TrainingError(NoteRNNError, RuntimeError):
    """The model could not be fitted or evaluated."""


class ExportError(NoteRNNError, OSError):
    """Predictions could not be written to the result file."""


class ConfigError(NoteRNNError, ValueError):
    """A configuration value or file is invalid."""
