#!/usr/bin/env python3

"""
Batch padding for tokenized inputs

- sequences are right-padded to the longest sequence of the batch, not to the tokenizer's max length
"""


from __future__ import annotations

from typing import List, Tuple, Union

import torch


def pad_batch(
    sequences: List[List[int]],
    pad_id: int,
    device: Union[str, torch.device] = "cpu",
) -> Tuple[torch.Tensor, torch.Tensor]:
    """
    Pads variable-length token id sequences into a batch tensor.

    Returns:
        - input_ids of shape (batch_size, max_seq_len), padded with pad_id
        - attention_mask of shape (batch_size, max_seq_len), 1 for real tokens and 0 for padding
    """
    lengths = [len(s) for s in sequences]
    max_len = max(lengths)

    input_ids = torch.full((len(sequences), max_len), pad_id, dtype=torch.long)
    attention_mask = torch.zeros((len(sequences), max_len), dtype=torch.long)

    for i, seq in enumerate(sequences):
        input_ids[i, : len(seq)] = torch.tensor(seq, dtype=torch.long)
        attention_mask[i, : len(seq)] = 1

    return input_ids.to(device), attention_mask.to(device)
