#!/usr/bin/env python3

"""
Central configuration module for the seqclass pipeline.

- Paths, tokenization limits and the default pretrained checkpoint live here, not in the pipeline code.
- The cache directory can be moved with SEQCLASS_CACHE_DIR.
"""


import os
from pathlib import Path


# Project root paths
PROJECT_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = PROJECT_ROOT / "data"
CACHE_DIR = Path(os.environ.get("SEQCLASS_CACHE_DIR", PROJECT_ROOT / ".cache"))

# Tokenization
MAX_SEQUENCE_LENGTH = 128
TRUNCATION_STRATEGY = "longest_first"
TRUNCATION_STRIDE = 0

# Default pretrained checkpoint: DistilBERT fine-tuned on SST-2 (English, binary sentiment)
DEFAULT_REPO_ID = "distilbert/distilbert-base-uncased-finetuned-sst-2-english"
DEFAULT_WEIGHTS_FILE = "model.safetensors"
DEFAULT_CONFIG_FILE = "config.json"
DEFAULT_VOCAB_FILE = "vocab.txt"

# Evaluation
EVAL_CSV = DATA_DIR / "eval.csv"
EVAL_BATCH_SIZE = 32

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
