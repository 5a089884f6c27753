"""
Recurrent Sequence Model
========================

Generic executor for an ordered list of layer descriptors
(see note_rnn.models.layers). It provides the two entry points the
training driver relies on:

    fit(inputs, targets, optimizer, reset_policy) -> objective
    predict(inputs) -> output tensor

Tensors exchanged with the rest of the package are numpy arrays in the
features-first layout ``[features, sequences, time]``. Internally they are
converted to torch's batch-first ``[sequences, time, features]``.

Only the last time step of each output sequence is fitted against the
target row for that window. Windows without a target row (the final
sliding window) are not fitted.

Example:
    from note_rnn.models.layers import default_layer_stack

    model = SequenceModel(default_layer_stack(num_classes=12), seed=0)
    predicted = model.predict(inputs)   # [12, num_windows, L]
"""

from typing import Dict, List, Optional, Sequence

import numpy as np
import torch
import torch.nn as nn
import torch.nn.functional as F

from note_rnn.errors import ConfigError, DataFormatError
from note_rnn.models.layers import Dense, Dropout, LayerSpec, LogSoftmax, Recurrent, default_layer_stack


LOSSES = ("mse", "nll")


def _build_module(spec: LayerSpec) -> nn.Module:
    if isinstance(spec, Dense):
        return nn.Linear(spec.in_features, spec.out_features)
    if isinstance(spec, Recurrent):
        return nn.LSTM(spec.input_size, spec.hidden_size, batch_first=True)
    if isinstance(spec, Dropout):
        return nn.Dropout(spec.rate)
    if isinstance(spec, LogSoftmax):
        return nn.LogSoftmax(dim=-1)
    raise ConfigError(f"Unknown layer descriptor: {spec!r}")


class SequenceModel(nn.Module):
    """
    Stack of dense / recurrent / dropout / log-softmax layers.

    Attributes:
        layer_specs: The descriptors the model was built from
        layers: torch modules, one per descriptor
        input_size: Features expected per time step
        output_size: Features produced per time step
        loss: "mse" or "nll"

    Args:
        layers: Ordered layer descriptors; widths must chain
        loss: Objective used by fit
        seed: Seed for weight initialization
    """

    def __init__(
        self,
        layers: Sequence[LayerSpec],
        loss: str = "mse",
        seed: Optional[int] = None
    ):
        super().__init__()

        if loss not in LOSSES:
            raise ConfigError(f"Loss must be one of {LOSSES}. Got: '{loss}'")
        self.loss = loss

        self.layer_specs: List[LayerSpec] = list(layers)
        self.input_size, self.output_size = self._check_widths(self.layer_specs)

        if seed is None:
            self.layers = self._build_layers()
        else:
            # Seeded init must leave the global torch RNG as it was
            with torch.random.fork_rng(devices=[]):
                torch.manual_seed(seed)
                self.layers = self._build_layers()

    def _build_layers(self) -> nn.ModuleList:
        return nn.ModuleList([_build_module(spec) for spec in self.layer_specs])

    @staticmethod
    def _check_widths(specs: List[LayerSpec]):
        """Return (input_size, output_size), failing if widths don't chain."""
        width = None
        input_size = None
        for position, spec in enumerate(specs):
            if isinstance(spec, Dense):
                expected, produced = spec.in_features, spec.out_features
            elif isinstance(spec, Recurrent):
                expected, produced = spec.input_size, spec.hidden_size
            else:
                continue
            if width is None:
                input_size = expected
            elif expected != width:
                raise ConfigError(
                    f"Layer {position} ({type(spec).__name__}) expects {expected} "
                    f"inputs but the previous layer produces {width}"
                )
            width = produced

        if width is None:
            raise ConfigError("Layer stack needs at least one Dense or Recurrent layer")
        return input_size, width

    # -------------------------------------------------------------------------
    # Tensor layout helpers
    # -------------------------------------------------------------------------

    def to_batch(self, inputs) -> torch.Tensor:
        """[features, sequences, time] array -> [sequences, time, features] tensor."""
        array = np.asarray(inputs, dtype=np.float32)
        if array.ndim != 3:
            raise DataFormatError(f"Input tensor must be rank 3, got shape {array.shape}")
        if array.shape[0] != self.input_size:
            raise DataFormatError(
                f"Input tensor has {array.shape[0]} features, model expects {self.input_size}"
            )
        return torch.from_numpy(array).permute(1, 2, 0).contiguous()

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        Args:
            x: [batch, time, input_size]

        Returns:
            [batch, time, output_size]
        """
        for spec, module in zip(self.layer_specs, self.layers):
            if isinstance(spec, Recurrent):
                x, _ = module(x)
            else:
                x = module(x)
        return x

    def objective(self, x: torch.Tensor, y: torch.Tensor) -> torch.Tensor:
        """
        Loss of the last-step output against one-hot target rows.

        Args:
            x: [batch, time, input_size]
            y: [batch, output_size] one-hot rows
        """
        last = self(x)[:, -1, :]
        if self.loss == "nll":
            return F.nll_loss(last, y.argmax(dim=1))
        return F.mse_loss(last, y)

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def fit(self, inputs, targets, optimizer, reset_policy: bool = True) -> float:
        """
        Fit the model to (inputs, targets) with the given optimizer.

        Args:
            inputs: [features, windows, time] array
            targets: [targets, output_size] one-hot matrix
            optimizer: CycleOptimizer (or anything with the same optimize())
            reset_policy: Discard optimizer state before this run

        Returns:
            Objective over all fitted windows after the run
        """
        return optimizer.optimize(self, inputs, targets, reset_policy=reset_policy)

    @torch.no_grad()
    def predict(self, inputs) -> np.ndarray:
        """
        Run inference.

        Args:
            inputs: [features, sequences, time] array

        Returns:
            [output_size, sequences, time] array; time matches the input
        """
        was_training = self.training
        self.eval()
        try:
            out = self(self.to_batch(inputs))
        finally:
            self.train(was_training)
        return out.permute(2, 0, 1).cpu().numpy().astype(np.float64)

    def get_num_parameters(self) -> Dict[str, int]:
        """Count trainable parameters per layer."""
        counts = {}
        for position, (spec, module) in enumerate(zip(self.layer_specs, self.layers)):
            name = f"{position}_{type(spec).__name__.lower()}"
            counts[name] = sum(p.numel() for p in module.parameters() if p.requires_grad)
        counts["total"] = sum(counts.values())
        return counts


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def create_model(
    num_classes: int,
    rho: int = 8,
    layers: Optional[Sequence[LayerSpec]] = None,
    loss: str = "mse",
    seed: Optional[int] = None
) -> SequenceModel:
    """Create a SequenceModel, using the default stack unless layers are given."""
    if layers is None:
        layers = default_layer_stack(num_classes, rho=rho)
    return SequenceModel(layers, loss=loss, seed=seed)
