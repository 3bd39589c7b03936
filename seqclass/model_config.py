#!/usr/bin/env python3

"""
Model configuration loading.

- config.json is parsed into the transformers config class of the requested model family.
- A config.json that declares another family is rejected before any model is built.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Union

from transformers import (
    AlbertConfig,
    BartConfig,
    BertConfig,
    DistilBertConfig,
    ElectraConfig,
    MarianConfig,
    PretrainedConfig,
    RobertaConfig,
    T5Config,
    XLMRobertaConfig,
)

from models.model_types import ModelType
from seqclass.errors import ModelConfigError, ModelTypeMismatchError


CONFIG_CLASSES = {
    ModelType.BERT: BertConfig,
    ModelType.DISTILBERT: DistilBertConfig,
    ModelType.ROBERTA: RobertaConfig,
    ModelType.XLMROBERTA: XLMRobertaConfig,
    ModelType.ALBERT: AlbertConfig,
    ModelType.BART: BartConfig,
    ModelType.ELECTRA: ElectraConfig,
    ModelType.MARIAN: MarianConfig,
    ModelType.T5: T5Config,
}


@dataclass(frozen=True)
class ConfigOption:
    """
    A loaded model configuration tagged with its model family.
    """
    model_type: ModelType
    config: PretrainedConfig

    @classmethod
    def from_file(cls, model_type: ModelType, path: Union[str, Path]) -> "ConfigOption":
        """
        Reads config.json into the config class of model_type.

        Raises:
            ModelConfigError: the file is missing or is not a JSON object.
            ModelTypeMismatchError: the file declares a different model_type.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as exc:
            raise ModelConfigError(f"Could not read model configuration {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ModelConfigError(f"Model configuration {path} is not a JSON object")

        declared = raw.get("model_type")
        if declared is not None and declared != model_type.value:
            raise ModelTypeMismatchError(
                f"Configuration {path} is for model_type={declared!r}, "
                f"not {model_type.display_name}"
            )

        config_class = CONFIG_CLASSES[model_type]
        return cls(model_type=model_type, config=config_class.from_dict(raw))

    @classmethod
    def from_config(cls, config: PretrainedConfig) -> "ConfigOption":
        """Tags an already-built transformers config with its model family."""
        return cls(model_type=ModelType(config.model_type), config=config)

    @property
    def num_labels(self) -> int:
        return self.config.num_labels

    def label_mapping(self) -> Dict[int, str]:
        return {int(k): v for k, v in self.config.id2label.items()}
