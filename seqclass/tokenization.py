#!/usr/bin/env python3

"""
Tokenizer adapter over the family-specific transformers tokenizers.

- The pipeline only needs two things from a tokenizer: batch encoding with truncation, and the pad id.
- Normalization flags are checked against what each family supports; an unusable flag is an error, not silently dropped.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from transformers import (
    AlbertTokenizer,
    BartTokenizer,
    BertTokenizer,
    DistilBertTokenizer,
    ElectraTokenizer,
    MarianTokenizer,
    PreTrainedTokenizer,
    RobertaTokenizer,
    T5Tokenizer,
    XLMRobertaTokenizer,
)

from models.model_types import ModelType
from seqclass.config import MAX_SEQUENCE_LENGTH, TRUNCATION_STRATEGY, TRUNCATION_STRIDE
from seqclass.errors import TokenizerError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

WORDPIECE_TYPES = (ModelType.BERT, ModelType.DISTILBERT, ModelType.ELECTRA)
BPE_TYPES = (ModelType.ROBERTA, ModelType.BART)
# families whose tokenizers have no lower-casing option; the adapter lower-cases the text itself
LOWERCASED_BY_ADAPTER = (
    ModelType.ROBERTA,
    ModelType.BART,
    ModelType.XLMROBERTA,
    ModelType.T5,
    ModelType.MARIAN,
)


def _reject_flag(model_type: ModelType, name: str, value: Optional[bool]) -> None:
    if value is not None:
        raise TokenizerError(
            f"Optional input `{name}` set to value {value} but cannot be used by {model_type.display_name}"
        )


def _require_merges(model_type: ModelType, merges_path: Optional[PathLike]) -> str:
    if merges_path is None:
        raise TokenizerError(f"{model_type.display_name} tokenizer requires a merges resource")
    return str(merges_path)


def _build_tokenizer(
    model_type: ModelType,
    vocab_path: str,
    merges_path: Optional[PathLike],
    lower_case: bool,
    strip_accents: Optional[bool],
    add_prefix_space: Optional[bool],
) -> PreTrainedTokenizer:
    if model_type in WORDPIECE_TYPES:
        _reject_flag(model_type, "add_prefix_space", add_prefix_space)
        tokenizer_class = {
            ModelType.BERT: BertTokenizer,
            ModelType.DISTILBERT: DistilBertTokenizer,
            ModelType.ELECTRA: ElectraTokenizer,
        }[model_type]
        return tokenizer_class(
            vocab_file=vocab_path,
            do_lower_case=lower_case,
            strip_accents=strip_accents,
        )

    if model_type in BPE_TYPES:
        _reject_flag(model_type, "strip_accents", strip_accents)
        tokenizer_class = RobertaTokenizer if model_type is ModelType.ROBERTA else BartTokenizer
        return tokenizer_class(
            vocab_file=vocab_path,
            merges_file=_require_merges(model_type, merges_path),
            add_prefix_space=bool(add_prefix_space),
        )

    if model_type is ModelType.ALBERT:
        _reject_flag(model_type, "add_prefix_space", add_prefix_space)
        return AlbertTokenizer(
            vocab_file=vocab_path,
            do_lower_case=lower_case,
            keep_accents=not (lower_case if strip_accents is None else strip_accents),
        )

    _reject_flag(model_type, "strip_accents", strip_accents)
    _reject_flag(model_type, "add_prefix_space", add_prefix_space)

    if model_type is ModelType.XLMROBERTA:
        return XLMRobertaTokenizer(vocab_file=vocab_path)
    if model_type is ModelType.T5:
        return T5Tokenizer(vocab_file=vocab_path)
    if model_type is ModelType.MARIAN:
        spm_path = _require_merges(model_type, merges_path)
        return MarianTokenizer(source_spm=spm_path, target_spm=spm_path, vocab=vocab_path)

    raise TokenizerError(f"No tokenizer for model type {model_type!r}")


class TokenizerOption:
    """
    One family-specific tokenizer behind a common interface.
    """

    def __init__(self, model_type: ModelType, tokenizer: PreTrainedTokenizer, lower_case: bool = False):
        self.model_type = model_type
        self.tokenizer = tokenizer
        self.lowercase_input = lower_case and model_type in LOWERCASED_BY_ADAPTER
        self._pad_id = self._lookup_pad_id()

    @classmethod
    def from_file(
        cls,
        model_type: ModelType,
        vocab_path: PathLike,
        merges_path: Optional[PathLike] = None,
        lower_case: bool = False,
        strip_accents: Optional[bool] = None,
        add_prefix_space: Optional[bool] = None,
    ) -> "TokenizerOption":
        """
        Builds the tokenizer of model_type from its vocabulary (and merges) files.

        Raises:
            TokenizerError: missing/malformed files, or a normalization flag the family cannot use.
        """
        try:
            tokenizer = _build_tokenizer(
                model_type,
                str(vocab_path),
                merges_path,
                lower_case,
                strip_accents,
                add_prefix_space,
            )
        except TokenizerError:
            raise
        except (OSError, ValueError, TypeError, KeyError, RuntimeError) as exc:
            raise TokenizerError(
                f"Could not build {model_type.display_name} tokenizer from {vocab_path}: {exc}"
            ) from exc

        logger.debug("tokenizer: built %s from %s", tokenizer.__class__.__name__, vocab_path)
        return cls(model_type, tokenizer, lower_case=lower_case)

    def _lookup_pad_id(self) -> Optional[int]:
        pad_token = self.tokenizer.pad_token
        if pad_token is None or pad_token not in self.tokenizer.get_vocab():
            return None
        return self.tokenizer.convert_tokens_to_ids(pad_token)

    @property
    def pad_id(self) -> Optional[int]:
        return self._pad_id

    def encode_list(
        self,
        texts: Sequence[str],
        max_len: int = MAX_SEQUENCE_LENGTH,
        truncation_strategy: str = TRUNCATION_STRATEGY,
        stride: int = TRUNCATION_STRIDE,
    ) -> List[List[int]]:
        """
        Encodes texts with special tokens, truncated to max_len. No padding.
        """
        if not texts:
            return []
        if self.lowercase_input:
            texts = [t.lower() for t in texts]
        encoded = self.tokenizer(
            list(texts),
            add_special_tokens=True,
            max_length=max_len,
            truncation=truncation_strategy,
            stride=stride,
            padding=False,
            return_attention_mask=False,
            return_token_type_ids=False,
        )
        return [list(ids) for ids in encoded["input_ids"]]
