"""
Exceptions raised by synsigrun runs.
"""

class SynSigRunError(Exception):
    """Base class for all synsigrun errors."""

class FormatError(SynSigRunError, ValueError):
    """
    Catalog shape or identifiers do not match the layout an engine expects.
    """

class DivisionByZeroError(SynSigRunError, ZeroDivisionError):
    """
    A sample (or signature) has a zero total where it must be normalized.
    """
    def __init__(self, message: str, sample=None):
        super().__init__(message)
        self.sample = sample

class OutputExistsError(SynSigRunError, FileExistsError):
    """Output directory is already populated and overwrite was not requested."""

class EngineError(SynSigRunError, RuntimeError):
    """
    An external engine call failed.

    Args:
        * engine: name of the engine
        * sample: sample identifier that triggered the failure, or None
            if the engine was run on the whole catalog
    """
    def __init__(self, message: str, engine: str = None, sample=None):
        if sample is not None:
            message = "{} (sample: {})".format(message, sample)
        super().__init__(message)
        self.engine = engine
        self.sample = sample
