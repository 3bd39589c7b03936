"""Shared fixtures: tiny random-weight checkpoints written to disk.

Each checkpoint directory holds the vocabulary (vocab.txt, or vocab.json and
merges.txt for byte-level BPE), config.json and a weights file, so
the pipeline is built exactly as it would be from downloaded resources.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest
import torch
from transformers import (
    BertConfig,
    BertForSequenceClassification,
    DistilBertConfig,
    DistilBertForSequenceClassification,
    PreTrainedModel,
    RobertaConfig,
    RobertaForSequenceClassification,
)

from models.model_types import ModelType
from seqclass.config import MAX_SEQUENCE_LENGTH
from seqclass.resources import LocalResource
from seqclass.sequence_classification import SequenceClassificationConfig, SequenceClassificationModel

SPECIAL_TOKENS = ["[PAD]", "[UNK]", "[CLS]", "[SEP]", "[MASK]"]
WORDS = [
    "the", "a", "movie", "film", "was", "is", "great", "good", "terrible", "bad",
    "i", "loved", "hated", "it", "this", "story", ".", ",", "!",
]
BPE_SPECIAL_TOKENS = ["<s>", "<pad>", "</s>", "<unk>", "<mask>"]
# byte-level BPE: "Ġ" is the encoded leading space of a word
BPE_TOKENS = ["h", "i", "Ġ", "hi", "Ġhi"]
BPE_MERGES = ["h i", "Ġ hi"]
BINARY_LABELS = {0: "NEGATIVE", 1: "POSITIVE"}
EMOTION_LABELS = {0: "joy", 1: "anger", 2: "fear", 3: "surprise"}


@dataclass
class TinyCheckpoint:
    directory: Path
    model_type: ModelType
    vocab_path: Path
    config_path: Path
    weights_path: Path
    reference: PreTrainedModel
    merges_path: Optional[Path] = None

    def config(self, **overrides) -> SequenceClassificationConfig:
        kwargs = dict(
            model_type=self.model_type,
            model_resource=LocalResource(self.weights_path),
            config_resource=LocalResource(self.config_path),
            vocab_resource=LocalResource(self.vocab_path),
            merges_resource=LocalResource(self.merges_path) if self.merges_path else None,
            lower_case=True,
            device=torch.device("cpu"),
        )
        kwargs.update(overrides)
        return SequenceClassificationConfig(**kwargs)


def write_vocab(path: Path, tokens: List[str]) -> Path:
    path.write_text("\n".join(tokens) + "\n", encoding="utf-8")
    return path


def write_bpe_files(directory: Path) -> Tuple[Path, Path]:
    """Writes a RoBERTa/BART style vocab.json and merges.txt."""
    vocab_path = directory / "vocab.json"
    merges_path = directory / "merges.txt"
    tokens = BPE_SPECIAL_TOKENS + BPE_TOKENS
    vocab_path.write_text(json.dumps({token: i for i, token in enumerate(tokens)}), encoding="utf-8")
    merges_path.write_text("#version: 0.2\n" + "\n".join(BPE_MERGES) + "\n", encoding="utf-8")
    return vocab_path, merges_path



def _tiny_config(model_type: ModelType, vocab_size: int, id2label: Dict[int, str]):
    label2id = {v: k for k, v in id2label.items()}
    if model_type is ModelType.BERT:
        return BertConfig(
            vocab_size=vocab_size,
            hidden_size=32,
            num_hidden_layers=2,
            num_attention_heads=2,
            intermediate_size=37,
            max_position_embeddings=512,
            id2label=id2label,
            label2id=label2id,
        )
    if model_type is ModelType.DISTILBERT:
        return DistilBertConfig(
            vocab_size=vocab_size,
            dim=32,
            n_layers=2,
            n_heads=2,
            hidden_dim=37,
            max_position_embeddings=512,
            id2label=id2label,
            label2id=label2id,
        )
    raise ValueError(f"no tiny config for {model_type}")


@pytest.fixture
def make_checkpoint(tmp_path: Path) -> Callable[..., TinyCheckpoint]:
    """Factory writing a tiny checkpoint for BERT or DistilBERT into tmp_path."""

    def _make(
        model_type: ModelType = ModelType.DISTILBERT,
        id2label: Optional[Dict[int, str]] = None,
        vocab: Optional[List[str]] = None,
        seed: int = 0,
        name: str = "ckpt",
    ) -> TinyCheckpoint:
        directory = tmp_path / name
        directory.mkdir(parents=True, exist_ok=True)
        tokens = vocab if vocab is not None else SPECIAL_TOKENS + WORDS

        config = _tiny_config(model_type, len(tokens), id2label or BINARY_LABELS)
        torch.manual_seed(seed)
        model_class = (
            BertForSequenceClassification if model_type is ModelType.BERT else DistilBertForSequenceClassification
        )
        reference = model_class(config)
        reference.eval()

        vocab_path = write_vocab(directory / "vocab.txt", tokens)
        config_path = directory / "config.json"
        config.to_json_file(str(config_path))
        weights_path = directory / "pytorch_model.bin"
        torch.save(reference.state_dict(), weights_path)

        return TinyCheckpoint(
            directory=directory,
            model_type=model_type,
            vocab_path=vocab_path,
            config_path=config_path,
            weights_path=weights_path,
            reference=reference,
        )

    return _make


@pytest.fixture
def distilbert_checkpoint(make_checkpoint) -> TinyCheckpoint:
    return make_checkpoint(ModelType.DISTILBERT)


@pytest.fixture
def distilbert_model(distilbert_checkpoint) -> SequenceClassificationModel:
    return SequenceClassificationModel(distilbert_checkpoint.config())


@pytest.fixture
def bert_checkpoint(make_checkpoint) -> TinyCheckpoint:
    return make_checkpoint(ModelType.BERT, name="bert")


@pytest.fixture
def bert_model(bert_checkpoint) -> SequenceClassificationModel:
    return SequenceClassificationModel(bert_checkpoint.config())


@pytest.fixture
def emotion_model(make_checkpoint) -> SequenceClassificationModel:
    checkpoint = make_checkpoint(ModelType.BERT, id2label=EMOTION_LABELS, name="emotion", seed=1)
    return SequenceClassificationModel(checkpoint.config())


@pytest.fixture
def roberta_checkpoint(tmp_path: Path) -> TinyCheckpoint:
    directory = tmp_path / "roberta"
    directory.mkdir()
    vocab_path, merges_path = write_bpe_files(directory)

    config = RobertaConfig(
        vocab_size=len(BPE_SPECIAL_TOKENS) + len(BPE_TOKENS),
        hidden_size=32,
        num_hidden_layers=2,
        num_attention_heads=2,
        intermediate_size=37,
        max_position_embeddings=MAX_SEQUENCE_LENGTH + 2,
        type_vocab_size=1,
        bos_token_id=0,
        pad_token_id=1,
        eos_token_id=2,
        id2label=BINARY_LABELS,
        label2id={v: k for k, v in BINARY_LABELS.items()},
    )
    torch.manual_seed(0)
    reference = RobertaForSequenceClassification(config)
    reference.eval()

    config_path = directory / "config.json"
    config.to_json_file(str(config_path))
    weights_path = directory / "pytorch_model.bin"
    torch.save(reference.state_dict(), weights_path)

    return TinyCheckpoint(
        directory=directory,
        model_type=ModelType.ROBERTA,
        vocab_path=vocab_path,
        config_path=config_path,
        weights_path=weights_path,
        reference=reference,
        merges_path=merges_path,
    )


@pytest.fixture
def roberta_model(roberta_checkpoint) -> SequenceClassificationModel:
    return SequenceClassificationModel(roberta_checkpoint.config())

