import numpy as np
import pytest

from digitnet.core.types import Sample
from digitnet.training.metrics import accuracy, compute_metrics, evaluate, labels, mean_squared_error


class _LookupNetwork:
    """Returns canned outputs keyed by the first input value."""

    def __init__(self, outputs, output_size):
        self.outputs = outputs
        self.output_size = output_size

    def query(self, inputs):
        return np.asarray(self.outputs[int(inputs[0])], dtype=float)


def test_labels_argmax_and_threshold():
    np.testing.assert_array_equal(labels([[0.1, 0.9], [0.7, 0.2]]), [1, 0])
    np.testing.assert_array_equal(labels([0.2, 0.5, 0.8]), [0, 1, 1])


def test_mse_and_accuracy():
    preds = np.array([[0.0, 1.0], [1.0, 0.0]])
    targets = np.array([[0.0, 1.0], [0.0, 1.0]])
    assert mean_squared_error(preds, targets) == pytest.approx(0.5)
    assert accuracy(preds, targets) == pytest.approx(0.5)
    assert compute_metrics(["loss", "accuracy"], preds, targets) == {
        "loss": pytest.approx(0.5),
        "accuracy": pytest.approx(0.5),
    }
    with pytest.raises(KeyError):
        compute_metrics(["f1"], preds, targets)


def test_evaluate_builds_confusion_and_per_class_stats():
    network = _LookupNetwork(
        {0: [0.9, 0.1, 0.0], 1: [0.1, 0.8, 0.1], 2: [0.1, 0.7, 0.2]}, output_size=3
    )
    samples = [
        Sample(inputs=[0], targets=[1, 0, 0]),
        Sample(inputs=[1], targets=[0, 1, 0]),
        Sample(inputs=[2], targets=[0, 0, 1]),
    ]
    report = evaluate(network, samples)
    assert (report.total, report.correct) == (3, 2)
    assert report.accuracy == pytest.approx(2 / 3)
    assert report.confusion[2, 1] == 1
    assert report.per_class[2].accuracy == 0.0
    payload = report.to_dict()
    assert payload["per_class"]["0"]["correct"] == 1
    assert payload["confusion"][0] == [1, 0, 0]


def test_evaluate_single_output_uses_two_classes():
    network = _LookupNetwork({0: [0.2], 1: [0.9]}, output_size=1)
    samples = [Sample(inputs=[0], targets=[0]), Sample(inputs=[1], targets=[1])]
    report = evaluate(network, samples)
    assert report.confusion.shape == (2, 2)
    assert report.accuracy == 1.0


def test_evaluate_empty_set():
    report = evaluate(_LookupNetwork({}, output_size=2), [])
    assert report.total == 0 and report.accuracy == 0.0
