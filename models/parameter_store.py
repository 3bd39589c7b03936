#!/usr/bin/env python3

"""
Parameter store for the live classifier.

- owns device placement and the learned weights of exactly one module
- weight files are plain state dicts (.bin / .pt via torch.load) or .safetensors
"""


from __future__ import annotations

import logging
import pickle
from pathlib import Path
from typing import Dict, Optional, Union

import torch
import torch.nn as nn
from safetensors import SafetensorError
from safetensors.torch import load_file

from seqclass.errors import WeightLoadingError

logger = logging.getLogger(__name__)

# prefixes left by training wrappers around the transformers model
WRAPPER_PREFIXES = ("backbone.", "module.")


class ParameterStore:
    def __init__(self, device: Union[str, torch.device] = "cpu"):
        self.device = torch.device(device)
        self._module: Optional[nn.Module] = None

    @property
    def module(self) -> nn.Module:
        if self._module is None:
            raise RuntimeError("No module attached to the parameter store")
        return self._module

    def attach(self, module: nn.Module) -> nn.Module:
        """
        Takes ownership of module and moves it to the store's device.
        """
        if self._module is not None:
            raise RuntimeError("Parameter store already owns a module")
        self._module = module.to(self.device)
        return self._module

    def num_parameters(self) -> int:
        return sum(p.numel() for p in self.module.parameters())

    def read_state_dict(self, weights_path: Union[str, Path]) -> Dict[str, torch.Tensor]:
        path = Path(weights_path)
        try:
            if path.suffix == ".safetensors":
                state = load_file(str(path), device=str(self.device))
            else:
                state = torch.load(path, map_location=self.device, weights_only=True)
        except (OSError, EOFError, RuntimeError, ValueError, pickle.UnpicklingError, SafetensorError) as exc:
            raise WeightLoadingError(f"Could not read weights from {path}: {exc}") from exc

        if not isinstance(state, dict):
            raise WeightLoadingError(f"Weights file {path} does not contain a state dict")
        # checkpoints saved by a training loop keep the state dict under this key
        if "model_state_dict" in state:
            state = state["model_state_dict"]

        for prefix in WRAPPER_PREFIXES:
            if state and all(k.startswith(prefix) for k in state.keys()):
                state = {k[len(prefix):]: v for k, v in state.items()}
        return state

    def load(self, weights_path: Union[str, Path]) -> None:
        """
        Loads weights into the attached module.

        - every parameter of the module must be present in the file, except tied copies
        - extra tensors in the file are ignored
        - a shape mismatch is an error
        """
        module = self.module
        state = self.read_state_dict(weights_path)

        try:
            result = module.load_state_dict(state, strict=False)
        except RuntimeError as exc:
            raise WeightLoadingError(f"Weights in {weights_path} do not fit the model: {exc}") from exc

        # tied weights share storage with a tensor that was loaded under another name
        own = module.state_dict(keep_vars=True)
        loaded_ptrs = {own[k].data_ptr() for k in state.keys() if k in own}
        missing = [k for k in result.missing_keys if own[k].data_ptr() not in loaded_ptrs]
        if missing:
            raise WeightLoadingError(
                f"Weights in {weights_path} are missing {len(missing)} tensors, e.g. {missing[:5]}"
            )
        if result.unexpected_keys:
            logger.debug(
                "parameter_store: ignored %d unexpected tensors from %s",
                len(result.unexpected_keys),
                weights_path,
            )
        logger.info(
            "parameter_store: loaded %d tensors from %s onto %s",
            len(state),
            weights_path,
            self.device,
        )
