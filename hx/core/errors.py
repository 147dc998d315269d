# Author: Futhark1393
# Description: Exception hierarchy for the streaming hash engine.


class HashEngineError(Exception):
    """Base class for all hash engine failures."""
    pass


class UnsupportedAlgorithm(HashEngineError):
    """Raised when an algorithm identifier has no registered implementation."""

    def __init__(self, algorithm):
        self.algorithm = algorithm
        super().__init__(f"Unsupported algorithm: {algorithm}")


class IoFailure(HashEngineError):
    """Raised when a chunk read from the byte source fails. Never retried."""

    def __init__(self, message: str, offset: int = 0):
        self.offset = offset
        super().__init__(message)


class AlreadyFinalized(HashEngineError):
    """Raised on update/finalize of an accumulator that was already finalized."""
    pass


class AlgorithmComputationFailure(HashEngineError):
    """Per-algorithm failure during update/finalize. Isolated by the orchestrator."""

    def __init__(self, algorithm, reason: str):
        self.algorithm = algorithm
        self.reason = reason
        super().__init__(f"{algorithm} computation failed: {reason}")


class ReaderExhausted(HashEngineError):
    """Raised when a ChunkedReader is iterated a second time."""
    pass
