"""Exception types raised by codemodeler."""


class CodeModelerError(Exception):
    """Base class for codemodeler errors."""


class InvalidArgumentError(CodeModelerError, ValueError):
    """A caller passed an argument the operation cannot accept."""
