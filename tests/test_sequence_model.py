"""
Tests for layer descriptors and the sequence model executor.

Run with: pytest tests/test_sequence_model.py -v
"""

import numpy as np
import pytest
import torch

from note_rnn.errors import ConfigError, DataFormatError
from note_rnn.models.layers import Dense, Dropout, LogSoftmax, Recurrent, default_layer_stack
from note_rnn.models.sequence_model import SequenceModel, create_model


def tiny_layers(num_classes=4):
    return [Dense(1, 3), Recurrent(3, 6), Dense(6, num_classes), LogSoftmax()]


class TestLayerStack:

    def test_default_stack_order(self):
        """Default stack is Dense, Recurrent, Dense, Dropout, Dense, LogSoftmax."""
        stack = default_layer_stack(num_classes=10)
        assert stack == [
            Dense(1, 8),
            Recurrent(8, 512),
            Dense(512, 256),
            Dropout(0.3),
            Dense(256, 10),
            LogSoftmax(),
        ]

    def test_model_widths(self):
        """Input and output widths come from the stack."""
        model = SequenceModel(tiny_layers(5))
        assert model.input_size == 1
        assert model.output_size == 5
        assert len(model.layers) == 4

    def test_mismatched_widths_rejected(self):
        """Layers whose widths don't chain are rejected."""
        with pytest.raises(ConfigError):
            SequenceModel([Dense(1, 3), Recurrent(4, 6)])

    def test_stack_without_weights_rejected(self):
        """A stack with no weighted layer is rejected."""
        with pytest.raises(ConfigError):
            SequenceModel([Dropout(0.1), LogSoftmax()])

    def test_unknown_loss_rejected(self):
        """An unknown loss name is rejected."""
        with pytest.raises(ConfigError):
            SequenceModel(tiny_layers(), loss="hinge")

    def test_parameter_count(self):
        """Parameter count matches the layer sizes."""
        counts = SequenceModel(tiny_layers()).get_num_parameters()
        assert counts["0_dense"] == 1 * 3 + 3
        assert counts["total"] == sum(v for k, v in counts.items() if k != "total")


class TestPredict:

    def test_output_layout(self):
        """predict() returns [classes, sequences, time]."""
        model = SequenceModel(tiny_layers(4), seed=0)
        inputs = np.random.default_rng(0).integers(0, 4, size=(1, 7, 5)).astype(float)

        predicted = model.predict(inputs)

        assert predicted.shape == (4, 7, 5)
        # Log-softmax over classes at every step
        np.testing.assert_allclose(np.exp(predicted).sum(axis=0), 1.0, rtol=1e-5)

    def test_default_model_output_layout(self):
        """The default model keeps the features-first layout."""
        model = create_model(num_classes=6, seed=0)
        predicted = model.predict(np.zeros((1, 3, 2)))
        assert predicted.shape == (6, 3, 2)

    def test_predict_is_deterministic_with_dropout(self):
        """Dropout is off during predict()."""
        model = SequenceModel([Dense(1, 4), Dropout(0.5), Dense(4, 2)], seed=0)
        inputs = np.ones((1, 3, 2))
        np.testing.assert_array_equal(model.predict(inputs), model.predict(inputs))

    def test_predict_keeps_training_mode(self):
        """predict() restores the previous training mode."""
        model = SequenceModel(tiny_layers())
        model.train()
        model.predict(np.zeros((1, 2, 2)))
        assert model.training

    def test_same_seed_same_weights(self):
        """The same seed builds the same weights."""
        a = SequenceModel(tiny_layers(), seed=3)
        b = SequenceModel(tiny_layers(), seed=3)
        for pa, pb in zip(a.parameters(), b.parameters()):
            assert torch.equal(pa, pb)

    def test_seed_leaves_global_rng_alone(self):
        """Seeding a model does not reseed the global torch generator."""
        torch.manual_seed(123)
        expected = torch.rand(3)

        torch.manual_seed(123)
        SequenceModel(tiny_layers(), seed=3)
        assert torch.equal(torch.rand(3), expected)

    def test_wrong_feature_count(self):
        """Inputs with the wrong feature count are rejected."""
        model = SequenceModel(tiny_layers())
        with pytest.raises(DataFormatError):
            model.predict(np.zeros((2, 3, 4)))

    def test_wrong_rank(self):
        """Inputs that are not 3-D are rejected."""
        model = SequenceModel(tiny_layers())
        with pytest.raises(DataFormatError):
            model.predict(np.zeros((3, 4)))


class TestObjective:

    def test_mse_uses_last_step(self):
        """MSE is taken on the last time step."""
        model = SequenceModel([Dense(1, 2)], loss="mse")
        with torch.no_grad():
            model.layers[0].weight.zero_()
            model.layers[0].bias.copy_(torch.tensor([1.0, 0.0]))
        x = torch.zeros(3, 4, 1)
        y = torch.tensor([[1.0, 0.0]] * 3)
        assert model.objective(x, y).item() == pytest.approx(0.0)

    def test_nll_on_log_probabilities(self):
        """NLL is taken on log-probabilities."""
        model = SequenceModel(tiny_layers(3), loss="nll", seed=0)
        x = torch.zeros(2, 3, 1)
        y = torch.eye(3)[:2]
        assert model.objective(x, y).item() > 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
