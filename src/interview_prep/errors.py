"""Error types raised by the study core."""


class InvalidArgument(ValueError):
    """An input is outside the range the computation is defined for."""
