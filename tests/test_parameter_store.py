"""
Tests for ParameterStore: attaching a module and loading weight files.
"""

from __future__ import annotations

import pytest
import torch
from safetensors.torch import save_file
from transformers import BertConfig, BertForSequenceClassification

from models.parameter_store import ParameterStore
from seqclass.errors import WeightLoadingError


def tiny_bert(seed: int = 0, num_labels: int = 2) -> BertForSequenceClassification:
    torch.manual_seed(seed)
    config = BertConfig(
        vocab_size=30,
        hidden_size=16,
        num_hidden_layers=1,
        num_attention_heads=2,
        intermediate_size=20,
        max_position_embeddings=32,
        num_labels=num_labels,
    )
    return BertForSequenceClassification(config)


def assert_same_weights(a, b) -> None:
    sa, sb = a.state_dict(), b.state_dict()
    assert sa.keys() == sb.keys()
    for name in sa:
        assert torch.equal(sa[name], sb[name]), name


class TestAttach:
    def test_module_required(self) -> None:
        with pytest.raises(RuntimeError):
            ParameterStore("cpu").module

    def test_attach_once(self) -> None:
        store = ParameterStore("cpu")
        store.attach(tiny_bert())
        with pytest.raises(RuntimeError):
            store.attach(tiny_bert())

    def test_counts_parameters(self) -> None:
        model = tiny_bert()
        store = ParameterStore(torch.device("cpu"))
        store.attach(model)
        assert store.num_parameters() == sum(p.numel() for p in model.parameters())


class TestLoad:
    def test_loads_plain_state_dict(self, tmp_path) -> None:
        source = tiny_bert(seed=1)
        path = tmp_path / "weights.bin"
        torch.save(source.state_dict(), path)

        store = ParameterStore("cpu")
        target = store.attach(tiny_bert(seed=2))
        store.load(path)
        assert_same_weights(source, target)

    def test_loads_safetensors(self, tmp_path) -> None:
        source = tiny_bert(seed=1)
        path = tmp_path / "model.safetensors"
        save_file({k: v.contiguous() for k, v in source.state_dict().items()}, str(path))

        store = ParameterStore("cpu")
        target = store.attach(tiny_bert(seed=2))
        store.load(path)
        assert_same_weights(source, target)

    def test_loads_training_checkpoint_with_wrapper_prefix(self, tmp_path) -> None:
        source = tiny_bert(seed=1)
        path = tmp_path / "transformer.pt"
        torch.save(
            {
                "model_state_dict": {f"backbone.{k}": v for k, v in source.state_dict().items()},
                "num_classes": 2,
            },
            path,
        )

        store = ParameterStore("cpu")
        target = store.attach(tiny_bert(seed=2))
        store.load(path)
        assert_same_weights(source, target)

    def test_extra_tensors_are_ignored(self, tmp_path) -> None:
        source = tiny_bert(seed=1)
        state = dict(source.state_dict())
        state["unused.weight"] = torch.zeros(3)
        path = tmp_path / "weights.bin"
        torch.save(state, path)

        store = ParameterStore("cpu")
        target = store.attach(tiny_bert(seed=2))
        store.load(path)
        assert_same_weights(source, target)

    def test_missing_tensors(self, tmp_path) -> None:
        state = dict(tiny_bert(seed=1).state_dict())
        del state["classifier.weight"]
        path = tmp_path / "weights.bin"
        torch.save(state, path)

        store = ParameterStore("cpu")
        store.attach(tiny_bert())
        with pytest.raises(WeightLoadingError, match="missing"):
            store.load(path)

    def test_shape_mismatch(self, tmp_path) -> None:
        path = tmp_path / "weights.bin"
        torch.save(tiny_bert(num_labels=5).state_dict(), path)

        store = ParameterStore("cpu")
        store.attach(tiny_bert(num_labels=2))
        with pytest.raises(WeightLoadingError):
            store.load(path)

    def test_unreadable_file(self, tmp_path) -> None:
        store = ParameterStore("cpu")
        store.attach(tiny_bert())
        with pytest.raises(WeightLoadingError):
            store.load(tmp_path / "does-not-exist.bin")
