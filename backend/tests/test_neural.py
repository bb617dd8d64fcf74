"""Tests for the feedforward network and per-symbol model."""

import math

import numpy as np
import orjson
import pytest

from app.storage import MemoryStore
from core.models import ModelArchitecture, TrainingMetrics, TrainingSample
from core.neural import NeuralNetwork, SymbolModel, binary_cross_entropy, model_key


def separable_samples(n: int = 200, size: int = 15, seed: int = 7) -> list[TrainingSample]:
    """Label is 1 iff the first feature is above 0.5."""
    rng = np.random.default_rng(seed)
    samples = []
    for i in range(n):
        features = rng.uniform(0.0, 1.0, size=size).tolist()
        samples.append(
            TrainingSample(features=features, label=1 if features[0] > 0.5 else 0, timestamp=i)
        )
    return samples


class TestInitialization:
    """Tests for Xavier initialization."""

    def test_layer_shapes(self):
        net = NeuralNetwork(ModelArchitecture(), seed=1)

        assert [w.shape for w in net.weights] == [(32, 15), (16, 32), (1, 16)]
        assert [b.shape for b in net.biases] == [(32,), (16,), (1,)]

    def test_xavier_bounds_and_zero_biases(self):
        net = NeuralNetwork(ModelArchitecture(hidden_layers=[8]), seed=1)
        sizes = net.architecture.layer_sizes

        for layer, (fan_in, fan_out) in enumerate(zip(sizes[:-1], sizes[1:])):
            limit = math.sqrt(6.0 / (fan_in + fan_out))
            assert np.all(np.abs(net.weights[layer]) <= limit)
            assert np.all(net.biases[layer] == 0.0)

    def test_seed_is_reproducible(self):
        a = NeuralNetwork(seed=3)
        b = NeuralNetwork(seed=3)
        assert all(np.array_equal(x, y) for x, y in zip(a.weights, b.weights))


class TestForwardBackward:
    """Tests for propagation and gradients."""

    def test_forward_shapes(self):
        net = NeuralNetwork(ModelArchitecture(input_size=4, hidden_layers=[3]), seed=0)
        sums, activations = net.forward_propagate([0.1, 0.2, 0.3, 0.4])

        assert len(sums) == len(activations) == 3
        assert activations[0].tolist() == [0.1, 0.2, 0.3, 0.4]
        assert 0.0 < activations[-1][0] < 1.0

    @pytest.mark.parametrize("activation", ["relu", "sigmoid", "tanh"])
    def test_gradient_matches_numerical(self, activation):
        """Backprop gradients agree with central differences of the BCE loss."""
        arch = ModelArchitecture(input_size=3, hidden_layers=[4], activation=activation)
        net = NeuralNetwork(arch, seed=11)
        x = [0.3, 0.8, 0.5]
        target = 1

        sums, activations = net.forward_propagate(x)
        grads_w, grads_b = net.back_propagate(x, target, sums, activations)

        eps = 1e-6
        for layer in range(net.num_layers):
            for i, j in [(0, 0), (0, net.weights[layer].shape[1] - 1)]:
                original = net.weights[layer][i, j]
                net.weights[layer][i, j] = original + eps
                loss_plus = binary_cross_entropy(net.predict(x), target)
                net.weights[layer][i, j] = original - eps
                loss_minus = binary_cross_entropy(net.predict(x), target)
                net.weights[layer][i, j] = original

                numerical = (loss_plus - loss_minus) / (2 * eps)
                assert grads_w[layer][i, j] == pytest.approx(numerical, abs=1e-5)

            original = net.biases[layer][0]
            net.biases[layer][0] = original + eps
            loss_plus = binary_cross_entropy(net.predict(x), target)
            net.biases[layer][0] = original - eps
            loss_minus = binary_cross_entropy(net.predict(x), target)
            net.biases[layer][0] = original

            assert grads_b[layer][0] == pytest.approx((loss_plus - loss_minus) / (2 * eps), abs=1e-5)

    def test_predict_rejects_wrong_length(self):
        net = NeuralNetwork(seed=0)
        with pytest.raises(ValueError, match="Expected 15 features"):
            net.predict([0.5] * 14)


class TestTraining:
    """Tests for the training loop."""

    @pytest.fixture
    def arch(self):
        return ModelArchitecture(
            hidden_layers=[8],
            activation="tanh",
            learning_rate=0.5,
            epochs=10,
            batch_size=16,
        )

    def test_loss_decreases_on_separable_data(self, arch):
        net = NeuralNetwork(arch, seed=42)
        history = net.train(separable_samples())

        assert len(history) == 10
        assert [m.epoch for m in history] == list(range(1, 11))
        losses = [m.loss for m in history]
        assert sum(losses[5:]) / 5 < sum(losses[:5]) / 5
        assert losses[-1] < losses[0]

    def test_metrics_recorded_per_epoch(self, arch):
        net = NeuralNetwork(arch, seed=42)
        history = net.train(separable_samples(60))

        assert net.is_trained
        assert net.training_history == history
        for m in history:
            assert 0.0 <= m.accuracy <= 1.0
            assert 0.0 <= m.validation_accuracy <= 1.0
            assert m.learning_rate == 0.5

    def test_train_rejects_empty_and_bad_samples(self, arch):
        net = NeuralNetwork(arch, seed=0)
        with pytest.raises(ValueError):
            net.train([])
        with pytest.raises(ValueError):
            net.train([TrainingSample(features=[0.1] * 3, label=1, timestamp=0)])

    def test_early_stop_on_rising_validation_loss(self):
        net = NeuralNetwork(seed=0)
        net.training_history = [
            TrainingMetrics(epoch=i + 1, loss=0.5, accuracy=0.5,
                            validation_loss=0.5 + 0.01 * i, validation_accuracy=0.5,
                            learning_rate=0.001)
            for i in range(10)
        ]
        assert net.should_early_stop()

    def test_no_early_stop_on_falling_validation_loss(self):
        net = NeuralNetwork(seed=0)
        net.training_history = [
            TrainingMetrics(epoch=i + 1, loss=0.5, accuracy=0.5,
                            validation_loss=0.9 - 0.01 * i, validation_accuracy=0.5,
                            learning_rate=0.001)
            for i in range(10)
        ]
        assert not net.should_early_stop()

    def test_early_stop_needs_ten_epochs(self):
        net = NeuralNetwork(seed=0)
        assert not net.should_early_stop()


class TestSerialization:
    """Tests for to_dict / from_dict."""

    def test_round_trip_predicts_identically(self):
        net = NeuralNetwork(ModelArchitecture(hidden_layers=[6, 4], activation="tanh"), seed=5)
        features = [i / 15 for i in range(15)]

        restored = NeuralNetwork.from_dict(orjson.loads(orjson.dumps(net.to_dict())))

        assert restored.architecture == net.architecture
        assert restored.predict(features) == net.predict(features)

    def test_weights_flattened_row_major(self):
        net = NeuralNetwork(ModelArchitecture(input_size=3, hidden_layers=[2]), seed=5)
        data = net.to_dict()

        # weight from input 2 to hidden neuron 1 sits at 1 * fan_in + 2
        assert data["weights"][0][1 * 3 + 2] == net.weights[0][1, 2]

    def test_missing_fields_rejected(self):
        with pytest.raises(ValueError):
            NeuralNetwork.from_dict({"weights": []})

    def test_shape_mismatch_rejected(self):
        data = NeuralNetwork(ModelArchitecture(hidden_layers=[4]), seed=0).to_dict()
        data["weights"][0] = data["weights"][0][:-1]
        with pytest.raises(ValueError):
            NeuralNetwork.from_dict(data)


class TestSymbolModel:
    """Tests for per-symbol persistence."""

    @pytest.mark.asyncio
    async def test_save_then_load_reproduces_predictions(self):
        store = MemoryStore()
        features = [0.1 * (i % 10) for i in range(15)]

        original = SymbolModel("EURUSD", ModelArchitecture(hidden_layers=[8]), seed=1)
        await original.save(store)

        restored = SymbolModel("EURUSD", ModelArchitecture(hidden_layers=[8]), seed=99)
        assert restored.predict(features) != original.predict(features)

        assert await restored.load(store) is True
        assert restored.predict(features) == original.predict(features)
        assert await store.get(model_key("EURUSD")) is not None

    @pytest.mark.asyncio
    async def test_load_missing_returns_false(self):
        model = SymbolModel("EURJPY", seed=0)
        assert await model.load(MemoryStore()) is False

    @pytest.mark.asyncio
    async def test_load_malformed_keeps_weights(self):
        store = MemoryStore()
        await store.set(model_key("USDCHF"), "{not json")
        model = SymbolModel("USDCHF", seed=0)
        before = [w.copy() for w in model.network.weights]

        assert await model.load(store) is False
        assert all(np.array_equal(a, b) for a, b in zip(before, model.network.weights))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("blob", [
        {"architecture": {}, "weights": 5, "biases": 5},
        {"architecture": {}, "weights": None, "biases": []},
        {"architecture": {}, "weights": [{}, {}, {}], "biases": [[], [], []]},
        {"architecture": {"hidden_layers": [2]}, "weights": [[0.1] * 30, [0.1, 0.1]],
         "biases": [[0.0, 0.0], [0.0]], "training_history": [5]},
        [1, 2, 3],
    ])
    async def test_load_wrong_types_returns_false(self, blob):
        store = MemoryStore()
        await store.set(model_key("EURUSD"), orjson.dumps(blob).decode())

        assert await SymbolModel("EURUSD", seed=0).load(store) is False

    @pytest.mark.asyncio
    async def test_load_store_failure_returns_false(self):
        class BrokenStore(MemoryStore):
            async def get(self, key):
                raise ConnectionError("store down")

        model = SymbolModel("EURUSD", seed=0)
        assert await model.load(BrokenStore()) is False
