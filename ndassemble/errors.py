class DimensionMismatch(ValueError):
    """Arrays disagree in extent along an axis that has to match"""


class EmptyInputError(ValueError):
    """There is no element to inspect or assemble"""


class InconsistentNestingError(ValueError):
    """Siblings at one level of nesting differ in depth, kind or shape"""
