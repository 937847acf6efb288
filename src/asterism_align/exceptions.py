"""Error kinds raised by the alignment pipeline."""


class AlignmentError(Exception):
    """Base class for all alignment failures."""


class InputTypeError(AlignmentError, TypeError):
    """Input is neither a coordinate list nor a supported image."""


class InsufficientPointsError(AlignmentError, ValueError):
    """Fewer control points than needed to form a triangle."""


class MatchExhaustionError(AlignmentError, RuntimeError):
    """No hypothesis gathered enough consensus before candidates ran out."""
