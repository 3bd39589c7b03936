#!/usr/bin/env python3

"""
Model family tags.

- Every dispatch site (tokenizer, config, classifier) matches on this closed set.
"""


from __future__ import annotations

from enum import Enum


class ModelType(str, Enum):
    BERT = "bert"
    DISTILBERT = "distilbert"
    ROBERTA = "roberta"
    XLMROBERTA = "xlm-roberta"
    ALBERT = "albert"
    BART = "bart"
    ELECTRA = "electra"
    MARIAN = "marian"
    T5 = "t5"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    ModelType.BERT: "Bert",
    ModelType.DISTILBERT: "DistilBert",
    ModelType.ROBERTA: "Roberta",
    ModelType.XLMROBERTA: "XLMRoberta",
    ModelType.ALBERT: "Albert",
    ModelType.BART: "Bart",
    ModelType.ELECTRA: "Electra",
    ModelType.MARIAN: "Marian",
    ModelType.T5: "T5",
}
