"""Tests for the torch device context."""

import pytest

torch = pytest.importorskip("torch")

from wallrus.gpu import GPUContext


@pytest.fixture(autouse=True)
def reset_context():
    GPUContext.reset()
    yield
    GPUContext.reset()


def test_force_cpu_env(monkeypatch):
    monkeypatch.setenv("WALLRUS_FORCE_CPU", "1")
    assert GPUContext.device().type == "cpu"
    assert not GPUContext.is_available()


def test_float_dtype():
    assert GPUContext.float_dtype(torch.device("cpu")) == torch.float64


def test_to_gpu_roundtrip(monkeypatch):
    import numpy as np

    monkeypatch.setenv("WALLRUS_FORCE_CPU", "1")
    arr = np.arange(6, dtype=np.float32).reshape(2, 3)
    tensor = GPUContext.to_gpu(arr)
    assert tensor.dtype == torch.float64
    np.testing.assert_array_equal(GPUContext.to_cpu(tensor), arr)


def test_empty_cache_without_gpu(monkeypatch):
    monkeypatch.setenv("WALLRUS_FORCE_CPU", "1")
    GPUContext.device()
    GPUContext.synchronize()
    GPUContext.empty_cache()
