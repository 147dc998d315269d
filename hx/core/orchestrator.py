# Author: Futhark1393
# Description: Multi-algorithm hashing over a single traversal of one input,
# plus the sequential batch driver.
# Algorithm failures are recorded in the report; I/O failures abort it.

import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Iterable, Mapping

from hx.core.algorithms import AlgorithmId
from hx.core.errors import AlreadyFinalized, IoFailure
from hx.core.hashing import HashAccumulator, StreamingHasher
from hx.core.source import DEFAULT_CHUNK_SIZE, ByteSource, ChunkedReader

FAILURE_PREFIX = "FAILED: "


def is_failure(digest: str) -> bool:
    return digest.startswith(FAILURE_PREFIX)


@dataclass(frozen=True)
class ProgressEvent:
    processed_bytes: int
    total_bytes: int
    percentage: int

    @classmethod
    def at(cls, processed: int, total: int) -> "ProgressEvent":
        if total <= 0:
            return cls(processed, total, 100)
        return cls(processed, total, min(100, processed * 100 // total))

    @property
    def done(self) -> bool:
        return self.processed_bytes == self.total_bytes


@dataclass(frozen=True)
class HashResult:
    algorithm: AlgorithmId
    hex_digest: str
    duration_ms: int

    @property
    def failed(self) -> bool:
        return is_failure(self.hex_digest)


@dataclass(frozen=True)
class FileHashReport:
    """One input's digests, in requested algorithm order. Immutable."""

    name: str
    size_bytes: int
    digests: Mapping[AlgorithmId, str] = field(hash=False)
    duration_ms: int
    results: tuple[HashResult, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "digests", MappingProxyType(dict(self.digests)))

    @property
    def failed_algorithms(self) -> list[AlgorithmId]:
        return [alg for alg, digest in self.digests.items() if is_failure(digest)]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "size_bytes": self.size_bytes,
            "digests": {alg.value: digest for alg, digest in self.digests.items()},
            "duration_ms": self.duration_ms,
        }


class MultiAlgorithmOrchestrator:
    """
    Drives one accumulator per requested algorithm over a single
    ChunkedReader traversal.

    Each chunk reaches every live accumulator before the next read.
    Progress is reported once per chunk via ``on_progress(ProgressEvent)``.
    """

    def __init__(
        self,
        hasher: StreamingHasher | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        result_format: str = "lowercase",
        logger=None,
    ):
        if not isinstance(chunk_size, int) or chunk_size <= 0:
            raise ValueError(f"chunk_size must be a positive integer, got {chunk_size!r}")
        self.hasher = hasher or StreamingHasher()
        self.chunk_size = chunk_size
        self.result_format = result_format
        self.logger = logger

    # ── Audit helper ────────────────────────────────────────────────────

    def _log(self, message: str, level: str, event_type: str, hash_context: dict | None = None) -> None:
        if self.logger is not None:
            self.logger.log(message, level, event_type, source_module="orchestrator",
                            hash_context=hash_context)

    # ── Validation ──────────────────────────────────────────────────────

    def resolve_algorithms(self, algorithms: Iterable) -> list[AlgorithmId]:
        """Parse and check every identifier before any byte is read."""
        resolved: list[AlgorithmId] = []
        for alg in algorithms:
            alg = self.hasher.registry.resolve(alg)
            if alg not in resolved:
                resolved.append(alg)
        if not resolved:
            raise ValueError("At least one algorithm must be requested.")
        return resolved

    # ── Main loop ───────────────────────────────────────────────────────

    def hash_source(
        self,
        source: ByteSource,
        algorithms: Iterable,
        on_progress: Callable[[ProgressEvent], None] | None = None,
    ) -> FileHashReport:
        requested = self.resolve_algorithms(algorithms)
        emit = on_progress or (lambda event: None)
        name = getattr(source, "name", "<source>")
        total = source.total_length

        self._log(
            f"Hashing started: {name} ({total} bytes) with "
            f"{', '.join(a.value for a in requested)}.",
            "INFO", "HASH_STARTED",
        )

        start = time.monotonic()
        elapsed: dict[AlgorithmId, float] = {alg: 0.0 for alg in requested}
        failures: dict[AlgorithmId, str] = {}
        live: dict[AlgorithmId, HashAccumulator] = {}

        for alg in requested:
            t0 = time.perf_counter()
            try:
                live[alg] = self.hasher.init(alg)
            except Exception as e:
                failures[alg] = self._record_failure(name, alg, e)
            elapsed[alg] += time.perf_counter() - t0

        reader = ChunkedReader(source, self.chunk_size)
        try:
            for chunk in reader:
                for alg, acc in list(live.items()):
                    t0 = time.perf_counter()
                    try:
                        self.hasher.update(acc, chunk)
                    except AlreadyFinalized:
                        raise
                    except Exception as e:
                        failures[alg] = self._record_failure(name, alg, e)
                        del live[alg]
                    elapsed[alg] += time.perf_counter() - t0
                emit(ProgressEvent.at(reader.bytes_read, total))
        except IoFailure as e:
            self._log(f"I/O failure while hashing {name}: {e}", "ERROR", "HASH_IO_FAILURE")
            raise

        if total == 0:
            emit(ProgressEvent.at(0, 0))

        results: dict[AlgorithmId, HashResult] = {}
        for alg in requested:
            acc = live.get(alg)
            if acc is not None:
                t0 = time.perf_counter()
                try:
                    raw = self.hasher.finalize(acc)
                    digest = StreamingHasher.hexdigest(raw, self.result_format)
                except AlreadyFinalized:
                    raise
                except Exception as e:
                    digest = self._record_failure(name, alg, e)
                elapsed[alg] += time.perf_counter() - t0
            else:
                digest = failures[alg]
            results[alg] = HashResult(alg, digest, int(elapsed[alg] * 1000))

        report = FileHashReport(
            name=name,
            size_bytes=total,
            digests={alg: results[alg].hex_digest for alg in requested},
            duration_ms=int((time.monotonic() - start) * 1000),
            results=tuple(results[alg] for alg in requested),
        )

        self._log(
            f"Hashing completed: {name} in {report.duration_ms} ms.",
            "WARNING" if report.failed_algorithms else "INFO",
            "HASH_COMPLETED",
            hash_context=report.to_dict(),
        )
        return report

    def _record_failure(self, name: str, alg: AlgorithmId, error: Exception) -> str:
        self._log(f"{alg.value} failed for {name}: {error}", "ERROR", "ALGORITHM_FAILED")
        return f"{FAILURE_PREFIX}{error}"


@dataclass
class BatchResult:
    reports: list[FileHashReport] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


class BatchHasher:
    """
    Hashes a list of inputs strictly one after another.

    With ``first_progress_only`` (the single progress bar policy) only the
    first input's events reach ``on_progress(index, event)``.
    ``on_start(index, source)`` fires right before each input's first read.
    """

    def __init__(
        self,
        orchestrator: MultiAlgorithmOrchestrator,
        first_progress_only: bool = False,
        continue_on_error: bool = False,
    ):
        self.orchestrator = orchestrator
        self.first_progress_only = first_progress_only
        self.continue_on_error = continue_on_error

    def run(
        self,
        sources: Iterable[ByteSource],
        algorithms: Iterable,
        on_progress: Callable[[int, ProgressEvent], None] | None = None,
        on_start: Callable[[int, ByteSource], None] | None = None,
    ) -> BatchResult:
        requested = self.orchestrator.resolve_algorithms(algorithms)
        batch = BatchResult()

        for index, source in enumerate(sources):
            callback = None
            if on_progress is not None and (index == 0 or not self.first_progress_only):
                callback = lambda event, i=index: on_progress(i, event)

            if on_start is not None:
                on_start(index, source)

            try:
                report = self.orchestrator.hash_source(source, requested, on_progress=callback)
            except IoFailure as e:
                if not self.continue_on_error:
                    raise
                batch.errors[getattr(source, "name", f"#{index}")] = str(e)
                continue
            finally:
                close = getattr(source, "close", None)
                if close is not None:
                    close()

            batch.reports.append(report)

        return batch
