#!/usr/bin/env python3


"""
Sequence classifier wrapper over the supported transformer families

- holds exactly one transformers *ForSequenceClassification model
- forward_t gives every family the same call signature and returns logits of shape (batch_size, num_classes)
"""


from __future__ import annotations

from typing import Optional

import torch
from transformers import (
    AlbertForSequenceClassification,
    BartForSequenceClassification,
    BertForSequenceClassification,
    DistilBertForSequenceClassification,
    PreTrainedModel,
    RobertaForSequenceClassification,
    XLMRobertaForSequenceClassification,
)

from models.model_types import ModelType
from models.parameter_store import ParameterStore
from seqclass.errors import MissingInputError, ModelTypeMismatchError
from seqclass.model_config import CONFIG_CLASSES, ConfigOption


CLASSIFIER_CLASSES = {
    ModelType.BERT: BertForSequenceClassification,
    ModelType.DISTILBERT: DistilBertForSequenceClassification,
    ModelType.ROBERTA: RobertaForSequenceClassification,
    ModelType.XLMROBERTA: XLMRobertaForSequenceClassification,
    ModelType.ALBERT: AlbertForSequenceClassification,
    ModelType.BART: BartForSequenceClassification,
}

# families with a tokenizer and config but no classification head here
UNSUPPORTED_TYPES = (ModelType.ELECTRA, ModelType.MARIAN, ModelType.T5)


class SequenceClassificationOption:
    def __init__(self, model_type: ModelType, store: ParameterStore, config: ConfigOption):
        """
        Builds the classifier of model_type from config and attaches it to store.

        Raises:
            ModelTypeMismatchError: config belongs to another family, or the family
                has no sequence classification head.
        """
        if model_type in UNSUPPORTED_TYPES:
            raise ModelTypeMismatchError(
                f"Sequence classification not implemented for {model_type.display_name}!"
            )

        expected = CONFIG_CLASSES[model_type]
        if config.model_type is not model_type or not isinstance(config.config, expected):
            raise ModelTypeMismatchError(
                f"You can only supply a {expected.__name__} for {model_type.display_name}!"
            )

        self._model_type = model_type
        self.model: PreTrainedModel = store.attach(CLASSIFIER_CLASSES[model_type](config.config))
        self.model.eval()

    @property
    def model_type(self) -> ModelType:
        # XLM-RoBERTa shares the RoBERTa implementation
        if self._model_type is ModelType.XLMROBERTA:
            return ModelType.ROBERTA
        return self._model_type

    @property
    def num_labels(self) -> int:
        return self.model.config.num_labels

    def forward_t(
        self,
        input_ids: Optional[torch.Tensor] = None,
        mask: Optional[torch.Tensor] = None,
        token_type_ids: Optional[torch.Tensor] = None,
        position_ids: Optional[torch.Tensor] = None,
        input_embeds: Optional[torch.Tensor] = None,
        train: bool = False,
    ) -> torch.Tensor:
        """
        Forward pass:
        - input_ids: (batch_size, seq_length) token IDs
        - mask: (batch_size, seq_length) attention mask, 1 for real tokens
        - train: toggles dropout for this call

        Returns:
        - logits: (batch_size, num_classes)
        """
        self.model.train(train)

        if self._model_type is ModelType.BART:
            if input_ids is None:
                raise MissingInputError("`input_ids` must be provided for BART models")
            outputs = self.model(input_ids=input_ids, attention_mask=mask, return_dict=True)
        elif self._model_type is ModelType.DISTILBERT:
            # DistilBERT has neither token types nor explicit positions
            outputs = self.model(
                input_ids=input_ids,
                attention_mask=mask,
                inputs_embeds=input_embeds,
                return_dict=True,
            )
        else:
            outputs = self.model(
                input_ids=input_ids,
                attention_mask=mask,
                token_type_ids=token_type_ids,
                position_ids=position_ids,
                inputs_embeds=input_embeds,
                return_dict=True,
            )
        return outputs.logits
