"""
Mini-batch SGD with an Adam update and an explicit reset policy.

One call to ``optimize`` is one optimizer run: up to ``max_iterations``
gradient steps of ``batch_size`` windows each, walking the windows in
order (or a seeded permutation) and wrapping around. After every full
pass the summed pass objective is compared with the previous pass; a
change below ``tolerance`` ends the run early.

The caller decides per run whether the Adam moment estimates are kept
(``reset_policy=False``, a warm restart) or discarded
(``reset_policy=True``). The optimizer never flips this on its own.
"""

import math
from typing import List, Optional

import numpy as np
import torch

from note_rnn.config import TrainingConfig
from note_rnn.errors import DataFormatError, TrainingError


class CycleOptimizer:
    """
    Adam-updated SGD whose state can persist across optimize() calls.

    Attributes:
        step_size: Adam learning rate
        batch_size: Windows per gradient step
        max_iterations: Gradient steps per optimize() call
        tolerance: Early-stop threshold on the pass objective change
        shuffle: Visit windows in a seeded random order
        num_resets: How many times the Adam state has been (re)created
        iterations_run: Gradient steps taken by the last optimize() call
    """

    def __init__(
        self,
        step_size: float = 5e-20,
        batch_size: int = 5,
        max_iterations: int = 10000,
        tolerance: float = 1e-8,
        shuffle: bool = False,
        beta1: float = 0.9,
        beta2: float = 0.999,
        epsilon: float = 1e-8,
        seed: Optional[int] = None
    ):
        if batch_size < 1:
            raise ValueError(f"Batch size must be at least 1. Got: {batch_size}")
        if max_iterations < 0:
            raise ValueError(f"Max iterations must be non-negative. Got: {max_iterations}")

        self.step_size = step_size
        self.batch_size = batch_size
        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.shuffle = shuffle
        self.beta1 = beta1
        self.beta2 = beta2
        self.epsilon = epsilon

        self._generator = torch.Generator()
        if seed is not None:
            self._generator.manual_seed(seed)

        self._adam: Optional[torch.optim.Adam] = None
        self.num_resets = 0
        self.iterations_run = 0

    @classmethod
    def from_config(cls, config: TrainingConfig) -> "CycleOptimizer":
        return cls(
            step_size=config.step_size,
            batch_size=config.batch_size,
            max_iterations=config.iterations_per_cycle,
            tolerance=config.tolerance,
            shuffle=config.shuffle,
            beta1=config.beta1,
            beta2=config.beta2,
            epsilon=config.epsilon,
            seed=config.seed,
        )

    @property
    def has_state(self) -> bool:
        """True once an Adam instance exists to carry into the next run."""
        return self._adam is not None

    def _is_bound_to(self, params: List[torch.Tensor]) -> bool:
        bound = self._adam.param_groups[0]["params"]
        return len(bound) == len(params) and all(a is b for a, b in zip(bound, params))

    def _prepare(self, model: torch.nn.Module, reset_policy: bool):
        params = list(model.parameters())
        # State is tied to one model's parameters; a different model always resets
        if reset_policy or self._adam is None or not self._is_bound_to(params):
            self._adam = torch.optim.Adam(
                params,
                lr=self.step_size,
                betas=(self.beta1, self.beta2),
                eps=self.epsilon,
            )
            self.num_resets += 1

    def _visit_order(self, num_points: int) -> torch.Tensor:
        if self.shuffle:
            return torch.randperm(num_points, generator=self._generator)
        return torch.arange(num_points)

    def optimize(self, model, inputs, targets, reset_policy: bool = True) -> float:
        """
        Run up to max_iterations gradient steps on (inputs, targets).

        Args:
            model: SequenceModel to update in place
            inputs: [features, windows, time] array
            targets: [targets, classes] one-hot matrix; window i is fitted
                     against row i, extra windows are ignored
            reset_policy: Recreate the Adam state before running

        Returns:
            Objective over all fitted windows after the run

        Raises:
            DataFormatError: If targets don't match the inputs or model
            TrainingError: If the objective becomes NaN or infinite
        """
        x = model.to_batch(inputs)
        y = torch.as_tensor(np.asarray(targets), dtype=torch.float32)

        if y.ndim != 2:
            raise DataFormatError(f"Target matrix must be 2-D, got shape {tuple(y.shape)}")
        num_points = y.shape[0]
        if num_points == 0:
            raise DataFormatError("No target rows to fit")
        if num_points > x.shape[0]:
            raise DataFormatError(
                f"{num_points} target rows but only {x.shape[0]} input windows"
            )
        if y.shape[1] != model.output_size:
            raise DataFormatError(
                f"Targets have {y.shape[1]} classes, model outputs {model.output_size}"
            )
        x = x[:num_points]

        self._prepare(model, reset_policy)
        model.train()

        order = self._visit_order(num_points)
        position = 0
        pass_objective = 0.0
        last_pass_objective = math.inf
        self.iterations_run = 0

        for iteration in range(self.max_iterations):
            # The final batch of a pass may be short
            idx = order[position:position + self.batch_size]

            self._adam.zero_grad()
            loss = model.objective(x[idx], y[idx])
            value = loss.item()
            if not math.isfinite(value):
                raise TrainingError(f"Objective became {value} at iteration {iteration}")
            loss.backward()
            self._adam.step()

            self.iterations_run += 1
            pass_objective += value * len(idx)
            position += len(idx)

            if position >= num_points:
                if abs(last_pass_objective - pass_objective) < self.tolerance:
                    break
                last_pass_objective = pass_objective
                pass_objective = 0.0
                position = 0
                if self.shuffle:
                    order = self._visit_order(num_points)

        return self.evaluate(model, x, y)

    @torch.no_grad()
    def evaluate(self, model, x: torch.Tensor, y: torch.Tensor) -> float:
        """Objective of ``model`` on batch-first tensors, in eval mode."""
        was_training = model.training
        model.eval()
        try:
            value = model.objective(x, y).item()
        finally:
            model.train(was_training)
        if not math.isfinite(value):
            raise TrainingError(f"Objective is {value} after optimization")
        return value
