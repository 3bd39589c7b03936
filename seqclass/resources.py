#!/usr/bin/env python3

"""
Resource references for model weights, configuration and vocabulary files.

- A resource is resolved to a local path only when the pipeline is built.
- Remote resources are downloaded once into CACHE_DIR through the Hugging Face hub client.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from huggingface_hub import hf_hub_download
from huggingface_hub.utils import HfHubHTTPError

from seqclass.config import CACHE_DIR
from seqclass.errors import ResourceError

logger = logging.getLogger(__name__)


class Resource:
    """Logical reference to a file needed by the pipeline."""

    def get_local_path(self) -> Path:
        raise NotImplementedError


@dataclass(frozen=True)
class LocalResource(Resource):
    """File already present on the local filesystem."""

    local_path: Union[str, Path]

    def get_local_path(self) -> Path:
        path = Path(self.local_path)
        if not path.is_file():
            raise ResourceError(f"Local resource not found: {path}")
        return path


@dataclass(frozen=True)
class RemoteResource(Resource):
    """File stored in a Hugging Face hub repository."""

    repo_id: str
    filename: str
    revision: Optional[str] = None
    cache_dir: Union[str, Path] = CACHE_DIR

    @classmethod
    def from_pretrained(cls, repo_id: str, filename: str) -> "RemoteResource":
        return cls(repo_id=repo_id, filename=filename)

    def get_local_path(self) -> Path:
        try:
            path = hf_hub_download(
                repo_id=self.repo_id,
                filename=self.filename,
                revision=self.revision,
                cache_dir=str(self.cache_dir),
            )
        except (HfHubHTTPError, OSError, ValueError) as exc:
            raise ResourceError(
                f"Could not download {self.filename} from {self.repo_id}: {exc}"
            ) from exc
        logger.debug("resources: resolved %s/%s -> %s", self.repo_id, self.filename, path)
        return Path(path)


__all__ = ["Resource", "LocalResource", "RemoteResource"]
