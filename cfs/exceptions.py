"""
Error types raised while converting a FIS model into CFS data.

Every layer of the converter (membership function, variable, rule, output,
assembler) catches the errors raised below it, adds a locating frame such as
"Input 2" or "Membership 3" and re-raises the same exception object. The
message is only rendered when the error reaches the top level.
"""

from typing import List, Optional, Sequence, Tuple


class UFuzzyError(Exception):
    """
    Base class of all conversion errors.

    Attributes:
        message (str): The failure description, without location.
        frames (List[str]): Locating frames, outermost first.
        hint (Optional[str]): Extra line appended to the rendered message.
    """

    def __init__(self, message: str, frames: Sequence[str] = ()):
        super().__init__(message)
        self.message = message
        self.frames: List[str] = list(frames)
        self.hint: Optional[str] = None

    def add_frame(self, frame: str) -> "UFuzzyError":
        """
        Prepends a locating frame and returns the same exception.

        Args:
            frame (str): Location text, e.g. "Input 2".

        Returns:
            UFuzzyError: self, so callers can simply ``raise`` afterwards.
        """
        self.frames.insert(0, frame)
        return self

    def __str__(self) -> str:
        text = ": ".join(self.frames + [self.message])
        if self.hint:
            text = f"{text}\n{self.hint}"
        return text


class InputError(UFuzzyError):
    """Structurally invalid or missing FIS data."""


class FeatureError(UFuzzyError):
    """Valid FIS data using a construct the converter does not support."""


class FixedPointError(UFuzzyError):
    """A value can't be represented in the target fixed point format."""

    def __init__(self, message: str, frames: Sequence[str] = ()):
        super().__init__(message, frames)
        self.suggested_range: Optional[Tuple[float, float]] = None
