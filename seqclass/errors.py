"""Exception classes for the sequence classification pipeline.

Two groups:
    - construction failures a caller can recover from by supplying other
      resources (ResourceError, TokenizerError, ModelConfigError,
      WeightLoadingError)
    - invariant violations that mean the configuration, vocabulary and
      weights do not belong together (ModelTypeMismatchError,
      MissingPadTokenError, LabelMappingError, MissingInputError)
"""


class PipelineError(Exception):
    """Base class for every error raised by the pipeline."""


class ResourceError(PipelineError):
    """Raised when a resource cannot be resolved to a local file."""


class TokenizerError(PipelineError):
    """Raised when the tokenizer cannot be built from the supplied files or flags."""


class ModelConfigError(PipelineError):
    """Raised when the model configuration file cannot be read."""


class WeightLoadingError(PipelineError):
    """Raised when weights cannot be read or do not fit the model."""


class ModelTypeMismatchError(PipelineError, ValueError):
    """Raised when a model family is paired with the configuration of another family,
    or when the family has no sequence classification head."""


class MissingPadTokenError(PipelineError):
    """Raised when batching with a tokenizer that defines no padding token."""


class LabelMappingError(PipelineError):
    """Raised when a predicted class id has no entry in the label mapping."""


class MissingInputError(PipelineError, ValueError):
    """Raised when a forward pass lacks an input the model family requires."""


__all__ = [
    "PipelineError",
    "ResourceError",
    "TokenizerError",
    "ModelConfigError",
    "WeightLoadingError",
    "ModelTypeMismatchError",
    "MissingPadTokenError",
    "LabelMappingError",
    "MissingInputError",
]
