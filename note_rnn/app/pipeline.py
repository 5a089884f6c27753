"""
End-to-End Run
==============

Reads the training series, windows it, trains a fresh model, then scores
the held-out series and writes the result row:

    training.csv -> windows/targets -> train -> predict(test.csv) -> results.csv

Malformed training data fails before any training starts. If writing the
results fails, the runner keeps the trained model so ``export()`` can be
called again with another path. The training log is written last, after
the results.

Example:
    from note_rnn.config import load_config
    from note_rnn.app.pipeline import PipelineRunner

    runner = PipelineRunner(load_config("config.yaml"))
    result = runner.run()
    print(result.predictions)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np

from note_rnn.app.predict import export_predictions
from note_rnn.config import RunConfig
from note_rnn.data.loader import load_series
from note_rnn.data.windowing import build_input_windows, build_targets, count_classes
from note_rnn.errors import ConfigError
from note_rnn.models.sequence_model import SequenceModel, create_model
from note_rnn.train.trainer import CycleTrainer, TrainingLog


@dataclass
class PipelineResult:
    """What a completed run produced."""

    model: SequenceModel
    log: TrainingLog
    predictions: np.ndarray
    output_path: Path


class PipelineRunner:
    """
    Runs the read / train / export steps, keeping intermediate state.

    Attributes:
        config: RunConfig for the run
        model: Trained model (None until train() has run)
        log: TrainingLog (None until train() has run)
    """

    def __init__(self, config: RunConfig, model: Optional[SequenceModel] = None):
        self.config = config
        self.model = model
        self.log: Optional[TrainingLog] = None

    def _say(self, message: str):
        if self.config.training.verbose:
            print(message)

    def prepare(self):
        """
        Read and window the training series.

        Returns:
            Tuple of (inputs, targets, num_classes)
        """
        if self.config.train_path is None:
            raise ConfigError("No training file configured (train_path)")

        self._say("Reading data ...")
        series = load_series(self.config.train_path, header=self.config.header)
        num_classes = count_classes(series)
        inputs = build_input_windows(series, self.config.window_length)
        targets = build_targets(series, self.config.window_length, num_classes)
        self._say(f"Loaded {series.shape[0]} notes -> {inputs.shape[1]} windows, "
                  f"{num_classes} classes")
        return inputs, targets, num_classes

    def train(self) -> TrainingLog:
        """Build a model (unless one was given) and train it."""
        inputs, targets, num_classes = self.prepare()

        training = self.config.training
        if self.model is None:
            self.model = create_model(
                num_classes,
                rho=self.config.rho,
                loss=training.loss,
                seed=training.seed,
            )

        self._say("Training ...")
        trainer = CycleTrainer(self.model, config=training)
        self.log = trainer.train(inputs, targets)
        return self.log

    def save_log(self):
        """Write the training log to config.log_path, if one is set."""
        if self.log is None or self.config.log_path is None:
            return
        self.log.save(self.config.log_path)
        self._say(f"Training log saved to {self.config.log_path}")

    def export(self, output_path: Optional[Union[str, Path]] = None) -> np.ndarray:
        """
        Predict the held-out series and write the result row.

        Args:
            output_path: Overrides config.output_path

        Returns:
            Predictions, one per held-out note
        """
        if self.model is None:
            raise ConfigError("No trained model; call train() first")
        if self.config.test_path is None:
            raise ConfigError("No held-out file configured (test_path)")

        output_path = Path(output_path) if output_path else self.config.output_path

        self._say("Predicting ...")
        held_out = load_series(self.config.test_path, header=self.config.header)
        predictions = export_predictions(
            self.model,
            held_out,
            self.config.effective_inference_length,
            output_path=output_path,
        )
        self._say(f"Results were saved to \"{output_path}\"")
        return predictions

    def run(self) -> PipelineResult:
        """Train, export, and return everything the run produced."""
        log = self.train()
        predictions = self.export()
        # Log goes out after the result row
        self.save_log()
        self._say("Finished")
        return PipelineResult(
            model=self.model,
            log=log,
            predictions=predictions,
            output_path=self.config.output_path,
        )


def run_pipeline(config: RunConfig) -> PipelineResult:
    """Run a full train-and-export pass for ``config``."""
    return PipelineRunner(config).run()
