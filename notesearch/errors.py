class NoteSearchError(Exception):
    """Base class for errors raised by notesearch."""


class InvalidQueryError(NoteSearchError, ValueError):
    """The search query is empty or whitespace only."""


class EmbeddingError(NoteSearchError):
    """An embedding could not be produced.

    Raised for non-transient provider failures, for transient failures that
    outlived every retry, and for vectors of unexpected dimensionality. The
    provider exception, if any, is chained as ``__cause__``.
    """


class DimensionMismatchError(NoteSearchError, ValueError):
    def __init__(self, left: int, right: int):
        super().__init__(f"Vector dimensions must match: {left} vs {right}")
        self.left = left
        self.right = right
