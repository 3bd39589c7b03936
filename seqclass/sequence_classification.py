#!/usr/bin/env python3

"""
Sequence classification pipeline (e.g. sentiment analysis).

- One facade for BERT, DistilBERT, RoBERTa, XLM-RoBERTa, ALBERT and BART classifiers.
- All fallible work (resource resolution, tokenizer, config, weights) happens at construction;
  a constructed model only tokenizes, runs the forward pass and decodes.

Example:

    model = SequenceClassificationModel()  # DistilBERT fine-tuned on SST-2
    model.predict([
        "Probably my all-time favorite movie, a story of selflessness, sacrifice and dedication to a noble cause, but it's not preachy or boring.",
        "This film tried to be too many things all at once: stinging political satire, Hollywood blockbuster, sappy romantic comedy, family values promo...",
    ])
    # [Label(text='POSITIVE', score=0.9986, id=1, sentence=0),
    #  Label(text='NEGATIVE', score=0.9985, id=0, sentence=1)]
"""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import torch
import torch.nn.functional as F

from models.model_types import ModelType
from models.parameter_store import ParameterStore
from models.sequence_classifier import SequenceClassificationOption
from seqclass.batching import pad_batch
from seqclass.config import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_REPO_ID,
    DEFAULT_VOCAB_FILE,
    DEFAULT_WEIGHTS_FILE,
    MAX_SEQUENCE_LENGTH,
    TRUNCATION_STRATEGY,
    TRUNCATION_STRIDE,
)
from seqclass.errors import LabelMappingError, MissingPadTokenError
from seqclass.model_config import ConfigOption
from seqclass.resources import RemoteResource, Resource
from seqclass.tokenization import TokenizerOption

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Label:
    """
    Label produced by SequenceClassificationModel.

    - text: label string from the model configuration
    - score: softmax probability (predict) or sigmoid score (predict_multilabel)
    - id: class id
    - sentence: position of the classified text in the input batch
    """
    text: str
    score: float
    id: int
    sentence: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def default_device() -> torch.device:
    return torch.device("cuda" if torch.cuda.is_available() else "cpu")


def logit_cutoff(threshold: float) -> float:
    """
    Logit whose sigmoid equals threshold. Thresholds <= 0 select every class, >= 1 none.
    """
    if threshold <= 0.0:
        return -math.inf
    if threshold >= 1.0:
        return math.inf
    return math.log(threshold) - math.log1p(-threshold)


@dataclass
class SequenceClassificationConfig:
    """
    Resources and settings for building a SequenceClassificationModel.

    model_type must match the checkpoint the resources point to. merges_resource is only
    needed by BPE/SentencePiece families (RoBERTa, BART, Marian). strip_accents applies to
    WordPiece and ALBERT tokenizers, add_prefix_space to RoBERTa and BART.
    """
    model_type: ModelType
    model_resource: Resource
    config_resource: Resource
    vocab_resource: Resource
    merges_resource: Optional[Resource] = None
    lower_case: bool = True
    strip_accents: Optional[bool] = None
    add_prefix_space: Optional[bool] = None
    device: torch.device = field(default_factory=default_device)

    @classmethod
    def default(cls) -> "SequenceClassificationConfig":
        """DistilBERT fine-tuned on SST-2 (English binary sentiment)."""
        return cls(
            model_type=ModelType.DISTILBERT,
            model_resource=RemoteResource.from_pretrained(DEFAULT_REPO_ID, DEFAULT_WEIGHTS_FILE),
            config_resource=RemoteResource.from_pretrained(DEFAULT_REPO_ID, DEFAULT_CONFIG_FILE),
            vocab_resource=RemoteResource.from_pretrained(DEFAULT_REPO_ID, DEFAULT_VOCAB_FILE),
            merges_resource=None,
            lower_case=True,
        )


class SequenceClassificationModel:
    def __init__(self, config: Optional[SequenceClassificationConfig] = None):
        """
        Builds the pipeline from config (defaults to SequenceClassificationConfig.default()).

        Raises:
            ResourceError, TokenizerError, ModelConfigError, WeightLoadingError: the resources
                cannot be used; nothing is built.
            ModelTypeMismatchError: config.model_type does not match the loaded configuration,
                or the family has no classification head.
            LabelMappingError: the configuration has no label for some class id.
        """
        if config is None:
            config = SequenceClassificationConfig.default()

        config_path = config.config_resource.get_local_path()
        vocab_path = config.vocab_resource.get_local_path()
        weights_path = config.model_resource.get_local_path()
        merges_path = None
        if config.merges_resource is not None:
            merges_path = config.merges_resource.get_local_path()

        self.tokenizer = TokenizerOption.from_file(
            config.model_type,
            vocab_path,
            merges_path,
            lower_case=config.lower_case,
            strip_accents=config.strip_accents,
            add_prefix_space=config.add_prefix_space,
        )
        self.store = ParameterStore(config.device)
        model_config = ConfigOption.from_file(config.model_type, config_path)
        self.sequence_classifier = SequenceClassificationOption(config.model_type, self.store, model_config)

        self.label_mapping: Mapping[int, str] = MappingProxyType(model_config.label_mapping())
        unmapped = [i for i in range(self.sequence_classifier.num_labels) if i not in self.label_mapping]
        if unmapped:
            raise LabelMappingError(f"Model configuration has no label for class ids {unmapped}")

        self.store.load(weights_path)

        logger.info(
            "pipeline: ready model_type=%s device=%s labels=%d params=%d",
            self.sequence_classifier.model_type.value,
            self.device,
            len(self.label_mapping),
            self.store.num_parameters(),
        )

    @property
    def device(self) -> torch.device:
        return self.store.device

    @property
    def model_type(self) -> ModelType:
        return self.sequence_classifier.model_type

    def prepare_for_model(self, texts: Sequence[str]) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Tokenizes texts and right-pads them to the longest sequence of the batch.

        Returns:
            input_ids and attention_mask, both (batch_size, batch_max_len) on the model's device
        """
        tokenized = self.tokenizer.encode_list(
            texts,
            MAX_SEQUENCE_LENGTH,
            TRUNCATION_STRATEGY,
            TRUNCATION_STRIDE,
        )
        pad_id = self.tokenizer.pad_id
        if pad_id is None:
            raise MissingPadTokenError("The tokenizer used for sequence classification should contain a PAD id")
        return pad_batch(tokenized, pad_id, self.device)

    def _forward(self, texts: Sequence[str]) -> torch.Tensor:
        input_ids, attention_mask = self.prepare_for_model(texts)
        return self.sequence_classifier.forward_t(
            input_ids=input_ids,
            mask=attention_mask,
            train=False,
        )

    def _label_text(self, class_id: int) -> str:
        try:
            return self.label_mapping[class_id]
        except KeyError:
            raise LabelMappingError(f"No label for class id {class_id}") from None

    @torch.no_grad()
    def predict(self, texts: Union[str, Sequence[str]]) -> List[Label]:
        """
        Single-label classification: one Label per input text, in input order.

        The score is the softmax probability of the predicted class.
        """
        if isinstance(texts, str):
            texts = [texts]
        if not texts:
            return []

        logits = self._forward(texts)
        probs = F.softmax(logits.float(), dim=-1).cpu()

        label_indices = probs.argmax(dim=-1)
        scores = probs.gather(1, label_indices.unsqueeze(-1)).squeeze(1)

        return [
            Label(text=self._label_text(class_id), score=score, id=class_id, sentence=sentence)
            for sentence, (class_id, score) in enumerate(zip(label_indices.tolist(), scores.tolist()))
        ]

    @torch.no_grad()
    def predict_multilabel(self, texts: Union[str, Sequence[str]], threshold: float) -> List[List[Label]]:
        """
        Multi-label classification: for each input text, every class whose sigmoid score is
        >= threshold, ordered by class id. A text with no such class gets an empty list.

        Selection compares logits against logit_cutoff(threshold); scores are float64 sigmoids.
        """
        if isinstance(texts, str):
            texts = [texts]
        if not texts:
            return []

        logits = self._forward(texts).double().cpu()
        probs = torch.sigmoid(logits)
        # compare in logit space: the sigmoid saturates to exactly 1.0 for large logits
        selected = logits >= logit_cutoff(threshold)

        labels: List[List[Label]] = [[] for _ in texts]
        for sentence, class_id in torch.nonzero(selected).tolist():
            labels[sentence].append(
                Label(
                    text=self._label_text(class_id),
                    score=float(probs[sentence, class_id]),
                    id=class_id,
                    sentence=sentence,
                )
            )
        return labels
