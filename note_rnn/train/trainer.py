"""
Cyclic Training Driver
======================

Trains a SequenceModel as a sequence of observable cycles. Each cycle:

1. runs one optimizer run (``iterations_per_cycle`` Adam steps, or fewer
   if the tolerance is met)
2. runs inference on the training windows
3. scores the prediction with the configured accuracy metric

The optimizer's reset policy is an explicit value passed into every
cycle and recorded in the log. The first cycle starts from fresh Adam
state; after it, the policy becomes "keep" so all cycles together form
one long optimization split into checkpoints. Setting
``warm_restart=False`` resets the state at every cycle instead.

There is no early stopping: exactly ``cycles`` cycles run. Any failure
inside fit/predict ends the run with TrainingError.

Example:
    from note_rnn.config import TrainingConfig
    from note_rnn.train.trainer import train

    log = train(model, inputs, targets, TrainingConfig(cycles=3, iterations_per_cycle=50))
    print(log.accuracies)
"""

import json
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np
from tqdm import tqdm

from note_rnn.config import TrainingConfig
from note_rnn.data.windowing import targets_to_tensor
from note_rnn.errors import DataFormatError, ExportError, NoteRNNError, TrainingError
from note_rnn.evaluation.metrics import accuracy
from note_rnn.models.sequence_model import SequenceModel
from note_rnn.train.optimizer import CycleOptimizer


# =============================================================================
# TRAINING LOG
# =============================================================================

@dataclass
class CycleRecord:
    """Outcome of one training cycle."""

    cycle: int
    accuracy: float
    objective: float
    reset_policy: bool
    seconds: float = 0.0


@dataclass
class TrainingLog:
    """Per-cycle records for analysis and plotting."""

    records: List[CycleRecord] = field(default_factory=list)
    total_training_time: float = 0.0

    def __len__(self) -> int:
        return len(self.records)

    @property
    def accuracies(self) -> List[float]:
        return [r.accuracy for r in self.records]

    @property
    def objectives(self) -> List[float]:
        return [r.objective for r in self.records]

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    def save(self, path: Union[str, Path]):
        """Save log to JSON file."""
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w') as f:
                json.dump(self.to_dict(), f, indent=2)
        except OSError as e:
            raise ExportError(f"Could not write training log to {path}: {e}") from e

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'TrainingLog':
        """Load log from JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)
        records = [CycleRecord(**r) for r in data.get("records", [])]
        return cls(records=records, total_training_time=data.get("total_training_time", 0.0))


# =============================================================================
# TRAINER CLASS
# =============================================================================

class CycleTrainer:
    """
    Owns a model and its optimizer for the duration of a run.

    Attributes:
        model: SequenceModel being trained (mutated in place)
        config: TrainingConfig
        optimizer: CycleOptimizer whose state carries across cycles
        log: TrainingLog filled by train()

    Example:
        >>> trainer = CycleTrainer(model, TrainingConfig(cycles=2))
        >>> log = trainer.train(inputs, targets)
        >>> len(log)
        2
    """

    def __init__(
        self,
        model: SequenceModel,
        config: Optional[TrainingConfig] = None,
        optimizer: Optional[CycleOptimizer] = None
    ):
        self.config = config if config else TrainingConfig()
        self.model = model
        self.optimizer = optimizer if optimizer else CycleOptimizer.from_config(self.config)
        self.log = TrainingLog()

    def _print_setup_info(self, inputs: np.ndarray, targets: np.ndarray):
        """Print training setup information."""
        print("=" * 70)
        print("TRAINING SETUP")
        print("=" * 70)
        print(f"Model parameters: {self.model.get_num_parameters()['total']:,}")
        print(f"Windows: {inputs.shape[1]} x {inputs.shape[2]} steps")
        print(f"Target rows: {targets.shape[0]} | Classes: {targets.shape[1]}")
        print(f"Cycles: {self.config.cycles} x {self.config.iterations_per_cycle} iterations")
        print(f"Step size: {self.config.step_size} | Batch size: {self.config.batch_size}")
        print(f"Warm restart: {self.config.warm_restart} | Metric: {self.config.accuracy_metric}")
        print("=" * 70)

    def _check_shapes(self, inputs: np.ndarray, targets: np.ndarray):
        if inputs.ndim != 3:
            raise DataFormatError(f"Input tensor must be rank 3, got shape {inputs.shape}")
        if targets.ndim != 2:
            raise DataFormatError(f"Target matrix must be 2-D, got shape {targets.shape}")
        if targets.shape[0] > inputs.shape[1]:
            raise DataFormatError(
                f"{targets.shape[0]} target rows but only {inputs.shape[1]} windows"
            )
        if self.config.cycles > 0 and targets.shape[0] == 0:
            raise DataFormatError("Series has no note after the first window; nothing to train on")

    def run_cycle(
        self,
        cycle: int,
        inputs: np.ndarray,
        targets: np.ndarray,
        truth: np.ndarray,
        reset_policy: bool
    ) -> CycleRecord:
        """
        Fit, predict and score once.

        Args:
            cycle: 1-based cycle number
            inputs: [1, windows, L] input tensor
            targets: [targets, classes] one-hot matrix
            truth: [1, targets, 1] ground truth for the metric
            reset_policy: Discard optimizer state before fitting

        Returns:
            CycleRecord for this cycle

        Raises:
            TrainingError: If fitting or inference fails
        """
        start = time.time()
        try:
            objective = self.model.fit(inputs, targets, self.optimizer, reset_policy=reset_policy)
            predicted = self.model.predict(inputs)
        except NoteRNNError:
            raise
        except Exception as e:
            raise TrainingError(f"Cycle {cycle} failed: {e}") from e

        train_accuracy = accuracy(predicted, truth, metric=self.config.accuracy_metric)

        return CycleRecord(
            cycle=cycle,
            accuracy=train_accuracy,
            objective=objective,
            reset_policy=reset_policy,
            seconds=time.time() - start,
        )

    def train(self, inputs: np.ndarray, targets: np.ndarray) -> TrainingLog:
        """
        Run exactly ``config.cycles`` cycles.

        Args:
            inputs: [1, windows, L] input tensor
            targets: [windows - 1, classes] one-hot matrix

        Returns:
            TrainingLog with one record per cycle (empty for 0 cycles)
        """
        inputs = np.asarray(inputs, dtype=np.float64)
        targets = np.asarray(targets, dtype=np.float64)
        self._check_shapes(inputs, targets)
        truth = targets_to_tensor(targets)

        verbose = self.config.verbose
        if verbose:
            self._print_setup_info(inputs, targets)

        self.log = TrainingLog()
        training_start_time = time.time()

        # Fresh optimizer state for the first cycle only (unless configured otherwise)
        reset_policy = True

        cycles = tqdm(
            range(1, self.config.cycles + 1),
            desc="Training",
            unit="cycle",
            disable=not verbose,
        )
        for cycle in cycles:
            record = self.run_cycle(cycle, inputs, targets, truth, reset_policy)
            self.log.records.append(record)

            if verbose:
                tqdm.write(f"{cycle} - accuracy: train = {record.accuracy:.2f}%, "
                           f"objective = {record.objective:.6g}")

            if self.config.warm_restart:
                reset_policy = False

        self.log.total_training_time = time.time() - training_start_time

        if verbose:
            self._print_training_summary()

        return self.log

    def _print_training_summary(self):
        """Print a summary of training results."""
        print("\n" + "=" * 70)
        print("TRAINING COMPLETE")
        print("=" * 70)
        print(f"Total time: {self.log.total_training_time:.1f}s")
        print(f"Cycles trained: {len(self.log)}")
        if self.log.records:
            print(f"Final training accuracy: {self.log.accuracies[-1]:.2f}%")
            print(f"Best training accuracy: {max(self.log.accuracies):.2f}%")
            print(f"Final objective: {self.log.objectives[-1]:.6g}")
        print("=" * 70)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def train(
    model: SequenceModel,
    inputs: np.ndarray,
    targets: np.ndarray,
    config: Optional[TrainingConfig] = None,
    optimizer: Optional[CycleOptimizer] = None
) -> TrainingLog:
    """
    Train ``model`` in place and return the per-cycle log.

    Args:
        model: SequenceModel to train
        inputs: [1, windows, L] input tensor
        targets: [windows - 1, classes] one-hot matrix
        config: TrainingConfig (defaults if None)
        optimizer: Optional pre-built optimizer

    Returns:
        TrainingLog
    """
    trainer = CycleTrainer(model, config=config, optimizer=optimizer)
    return trainer.train(inputs, targets)
