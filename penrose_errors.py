"""
Errors raised while decoding or running a Penrose Turing machine.

Every error is terminal: the caller reports the message and stops. The
attributes on each error identify the offending index or limit.
"""


class PenroseError(Exception):
    """Base class for every error raised by this package."""


class DecodeError(PenroseError, ValueError):
    """The machine specification is not a valid Penrose encoding."""


class InvalidCharacter(DecodeError):
    def __init__(self, index):
        self.index = index
        super().__init__(
            f"Invalid Turing machine specification at index {index}; "
            "encoding must consist of 0s and 1s only."
        )


class InvalidRunLength(DecodeError):
    def __init__(self, index):
        self.index = index
        super().__init__(
            f"Invalid Turing machine specification at index {index}; "
            "specification contains more than four consecutive 1s."
        )


class IncompleteStateDefinition(DecodeError):
    def __init__(self, actions):
        self.actions = actions
        super().__init__(
            "Invalid Turing machine specification; every state must define what "
            f"to do after reading either a '0' or a '1' (found {actions} actions)."
        )


class UndefinedStateReference(DecodeError):
    def __init__(self, state, target):
        self.state = state
        self.target = target
        super().__init__(
            f"Invalid Turing machine specification; state {state:X} has a "
            f"transition to non-existent state {target:X}."
        )


class RunError(PenroseError):
    """The machine could not be run to completion."""


class InvalidTapeCharacter(RunError, ValueError):
    def __init__(self, index):
        self.index = index
        super().__init__(
            f"Invalid tape at index {index}; must consist of 0s and 1s only."
        )


class StepLimitExceeded(RunError):
    def __init__(self, limit):
        self.limit = limit
        super().__init__(f"Exceeded maximum number of steps ({limit}).")


class TapeLimitExceeded(RunError):
    def __init__(self, limit):
        self.limit = limit
        super().__init__(f"Exceeded maximum length of working tape ({limit}).")


class ConfigurationError(PenroseError, ValueError):
    """Command line or run file options are missing or invalid."""
