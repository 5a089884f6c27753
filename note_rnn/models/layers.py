"""
Layer descriptors for the sequence model.

A network is described by an ordered list of these small frozen
dataclasses; SequenceModel turns the list into torch modules. Keeping the
description separate from torch makes the stack easy to inspect, store in
config, and swap in tests.
"""

from dataclasses import dataclass
from typing import List, Union


@dataclass(frozen=True)
class Dense:
    """Fully connected layer applied at every time step."""
    in_features: int
    out_features: int


@dataclass(frozen=True)
class Recurrent:
    """LSTM layer returning the full output sequence."""
    input_size: int
    hidden_size: int


@dataclass(frozen=True)
class Dropout:
    rate: float


@dataclass(frozen=True)
class LogSoftmax:
    """Log-probabilities over the last (class) dimension."""


LayerSpec = Union[Dense, Recurrent, Dropout, LogSoftmax]


def default_layer_stack(
    num_classes: int,
    rho: int = 8,
    input_features: int = 1,
    hidden_size: int = 512,
    dense_size: int = 256,
    dropout: float = 0.3
) -> List[LayerSpec]:
    """
    The standard next-note network.

        Dense(1, rho) -> LSTM(rho, 512) -> Dense(512, 256)
        -> Dropout(0.3) -> Dense(256, num_classes) -> LogSoftmax

    Args:
        num_classes: Output width (one score per note index)
        rho: Width of the projection fed to the LSTM
        input_features: Features per time step of the input tensor
        hidden_size: LSTM hidden units
        dense_size: Width of the dense layer after the LSTM
        dropout: Dropout rate before the output layer

    Returns:
        Ordered list of layer descriptors
    """
    return [
        Dense(input_features, rho),
        Recurrent(rho, hidden_size),
        Dense(hidden_size, dense_size),
        Dropout(dropout),
        Dense(dense_size, num_classes),
        LogSoftmax(),
    ]
