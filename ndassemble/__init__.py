from . import config
from .core import (
    DimensionMismatch,
    EmptyInputError,
    InconsistentNestingError,
    block,
    concatenate,
    stack,
)
from .nested import assemble_nested

__version__ = "0.1.0"
