class InternalConsistencyError(RuntimeError):
    """
    The belief model and the true game state have diverged irrecoverably,
    e.g. more copies of an identity are accounted for than the deck contains.
    """


class RewindDepthError(InternalConsistencyError):
    """Too many rewinds, or rewinds nested too deeply."""
