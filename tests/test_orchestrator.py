# Tests for HashXtract (HX) orchestration: single-pass multi-algorithm hashing,
# progress reporting, per-algorithm isolation, I/O abort and batch hashing.

import hashlib
import hmac
from unittest.mock import MagicMock

import pytest

from hx.core.algorithms import AlgorithmId
from hx.core.errors import AlgorithmComputationFailure, IoFailure, UnsupportedAlgorithm
from hx.core.hashing import StreamingHasher
from hx.core.orchestrator import (
    FAILURE_PREFIX,
    BatchHasher,
    FileHashReport,
    MultiAlgorithmOrchestrator,
    ProgressEvent,
    is_failure,
)
from hx.core.source import ByteSource, BytesByteSource

DATA = bytes(range(256)) * 5 + b"trailing bytes"


class FlakySource(ByteSource):
    """Fails after *good_reads* successful reads."""

    def __init__(self, size: int = 100, good_reads: int = 1, name: str = "flaky.bin"):
        self.size = size
        self.good_reads = good_reads
        self.name = name
        self.calls = 0
        self.closed = False

    @property
    def total_length(self) -> int:
        return self.size

    def read_range(self, offset: int, length: int) -> bytes:
        self.calls += 1
        if self.calls > self.good_reads:
            raise OSError("device vanished")
        return b"\x00" * length

    def close(self) -> None:
        self.closed = True


class BrokenSha1Hasher(StreamingHasher):
    """Simulates an algorithm that fails mid-stream."""

    def update(self, accumulator, chunk) -> None:
        if accumulator.algorithm is AlgorithmId.SHA1:
            raise AlgorithmComputationFailure("sha1", "simulated fault")
        super().update(accumulator, chunk)


# ═══════════════════════════════════════════════════════════════════════
# ProgressEvent
# ═══════════════════════════════════════════════════════════════════════

class TestProgressEvent:
    def test_floor_percentage(self):
        assert ProgressEvent.at(1, 3).percentage == 33
        assert ProgressEvent.at(2, 3).percentage == 66
        assert ProgressEvent.at(3, 3).percentage == 100

    def test_empty_input_is_complete(self):
        event = ProgressEvent.at(0, 0)
        assert event == ProgressEvent(0, 0, 100)
        assert event.done


# ═══════════════════════════════════════════════════════════════════════
# MultiAlgorithmOrchestrator
# ═══════════════════════════════════════════════════════════════════════

class TestOrchestrator:
    @pytest.mark.parametrize("chunk_size", [1, 7, 64, 65536])
    def test_chunk_size_invariance(self, chunk_size):
        orch = MultiAlgorithmOrchestrator(StreamingHasher(hmac_key="key"), chunk_size=chunk_size)
        report = orch.hash_source(
            BytesByteSource(DATA),
            ["md5", "sha1", "sha256", "sha512", "hmac-md5", "hmac-sha256"],
        )
        d = report.digests
        assert d[AlgorithmId.MD5] == hashlib.md5(DATA).hexdigest()
        assert d[AlgorithmId.SHA1] == hashlib.sha1(DATA).hexdigest()
        assert d[AlgorithmId.SHA256] == hashlib.sha256(DATA).hexdigest()
        assert d[AlgorithmId.SHA512] == hashlib.sha512(DATA).hexdigest()
        assert d[AlgorithmId.HMAC_MD5] == hmac.new(b"key", DATA, "md5").hexdigest()
        assert d[AlgorithmId.HMAC_SHA256] == hmac.new(b"key", DATA, "sha256").hexdigest()

    def test_known_vectors(self):
        orch = MultiAlgorithmOrchestrator()
        empty = orch.hash_source(BytesByteSource(b""), ["md5"])
        assert empty.digests[AlgorithmId.MD5] == "d41d8cd98f00b204e9800998ecf8427e"

        abc = orch.hash_source(BytesByteSource(b"abc"), ["md5", "sha256"])
        assert abc.digests[AlgorithmId.MD5] == "900150983cd24fb0d6963f7d28e17f72"
        assert abc.digests[AlgorithmId.SHA256] == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_hmac_md5_known_vector(self):
        orch = MultiAlgorithmOrchestrator(StreamingHasher(hmac_key="key"))
        report = orch.hash_source(
            BytesByteSource(b"The quick brown fox jumps over the lazy dog"), ["hmac-md5"]
        )
        assert report.digests[AlgorithmId.HMAC_MD5] == "80070713463e7749b90c2dc24911e275"

    def test_progress_is_monotonic_and_ends_once(self):
        events = []
        orch = MultiAlgorithmOrchestrator(chunk_size=7)
        orch.hash_source(BytesByteSource(b"x" * 20), ["md5", "sha1"], on_progress=events.append)

        assert [e.processed_bytes for e in events] == [7, 14, 20]
        assert [e.percentage for e in events] == [35, 70, 100]
        assert all(e.total_bytes == 20 for e in events)
        assert sum(1 for e in events if e.done) == 1
        assert events[-1].done

    def test_empty_input_single_progress_event(self):
        events = []
        MultiAlgorithmOrchestrator().hash_source(
            BytesByteSource(b""), ["sha256"], on_progress=events.append
        )
        assert events == [ProgressEvent(0, 0, 100)]

    def test_multi_algorithm_equivalence(self):
        orch = MultiAlgorithmOrchestrator(chunk_size=100)
        together = orch.hash_source(BytesByteSource(DATA), ["md5", "sha256"])
        md5_alone = orch.hash_source(BytesByteSource(DATA), ["md5"])
        sha_alone = orch.hash_source(BytesByteSource(DATA), ["sha256"])

        assert together.digests[AlgorithmId.MD5] == md5_alone.digests[AlgorithmId.MD5]
        assert together.digests[AlgorithmId.SHA256] == sha_alone.digests[AlgorithmId.SHA256]

    def test_requested_order_preserved(self):
        report = MultiAlgorithmOrchestrator().hash_source(
            BytesByteSource(b"abc"), ["sha512", "md5", "sha1"]
        )
        assert list(report.digests) == [AlgorithmId.SHA512, AlgorithmId.MD5, AlgorithmId.SHA1]
        assert [r.algorithm for r in report.results] == list(report.digests)

    def test_duplicate_algorithms_collapsed(self):
        report = MultiAlgorithmOrchestrator().hash_source(
            BytesByteSource(b"abc"), ["md5", "MD5", AlgorithmId.MD5]
        )
        assert list(report.digests) == [AlgorithmId.MD5]

    def test_algorithm_isolation(self):
        orch = MultiAlgorithmOrchestrator(BrokenSha1Hasher(), chunk_size=64)
        report = orch.hash_source(BytesByteSource(DATA), ["md5", "sha1", "sha256"])

        assert report.digests[AlgorithmId.MD5] == hashlib.md5(DATA).hexdigest()
        assert report.digests[AlgorithmId.SHA256] == hashlib.sha256(DATA).hexdigest()
        assert report.digests[AlgorithmId.SHA1].startswith(FAILURE_PREFIX)
        assert "simulated fault" in report.digests[AlgorithmId.SHA1]
        assert report.failed_algorithms == [AlgorithmId.SHA1]

    def test_io_failure_aborts_report(self):
        orch = MultiAlgorithmOrchestrator(chunk_size=10)
        with pytest.raises(IoFailure):
            orch.hash_source(FlakySource(size=100, good_reads=2), ["md5", "sha256"])

    def test_unsupported_algorithm_before_any_read(self):
        source = MagicMock()
        source.total_length = 10
        with pytest.raises(UnsupportedAlgorithm):
            MultiAlgorithmOrchestrator().hash_source(source, ["md5", "tiger"])
        source.read_range.assert_not_called()

    def test_no_algorithms_rejected(self):
        with pytest.raises(ValueError):
            MultiAlgorithmOrchestrator().hash_source(BytesByteSource(b"abc"), [])

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError):
            MultiAlgorithmOrchestrator(chunk_size=0)

    def test_uppercase_result_format(self):
        report = MultiAlgorithmOrchestrator(result_format="uppercase").hash_source(
            BytesByteSource(b"abc"), ["md5"]
        )
        assert report.digests[AlgorithmId.MD5] == "900150983CD24FB0D6963F7D28E17F72"

    def test_report_fields(self):
        report = MultiAlgorithmOrchestrator().hash_source(
            BytesByteSource(b"abc", name="abc.txt"), ["md5"]
        )
        assert report.name == "abc.txt"
        assert report.size_bytes == 3
        assert report.duration_ms >= 0
        assert report.to_dict()["digests"] == {"md5": "900150983cd24fb0d6963f7d28e17f72"}

    def test_report_is_immutable(self):
        report = MultiAlgorithmOrchestrator().hash_source(BytesByteSource(b"abc"), ["md5"])
        with pytest.raises(TypeError):
            report.digests[AlgorithmId.MD5] = "0" * 32
        with pytest.raises(AttributeError):
            report.name = "other"


# ═══════════════════════════════════════════════════════════════════════
# Audit events emitted by the orchestrator
# ═══════════════════════════════════════════════════════════════════════

class TestOrchestratorAuditEvents:
    def _event_types(self, logger: MagicMock) -> list[str]:
        return [c.args[2] for c in logger.log.call_args_list]

    def test_started_and_completed(self):
        logger = MagicMock()
        MultiAlgorithmOrchestrator(logger=logger).hash_source(BytesByteSource(b"abc"), ["md5"])
        assert self._event_types(logger) == ["HASH_STARTED", "HASH_COMPLETED"]

    def test_algorithm_failure_logged(self):
        logger = MagicMock()
        orch = MultiAlgorithmOrchestrator(BrokenSha1Hasher(), logger=logger)
        orch.hash_source(BytesByteSource(b"abc"), ["md5", "sha1"])
        types = self._event_types(logger)
        assert "ALGORITHM_FAILED" in types
        assert types[-1] == "HASH_COMPLETED"

    def test_io_failure_logged(self):
        logger = MagicMock()
        orch = MultiAlgorithmOrchestrator(chunk_size=10, logger=logger)
        with pytest.raises(IoFailure):
            orch.hash_source(FlakySource(size=30, good_reads=1), ["md5"])
        assert self._event_types(logger)[-1] == "HASH_IO_FAILURE"


# ═══════════════════════════════════════════════════════════════════════
# BatchHasher
# ═══════════════════════════════════════════════════════════════════════

class TestBatchHasher:
    def test_sequential_reports_in_order(self):
        batch = BatchHasher(MultiAlgorithmOrchestrator()).run(
            [BytesByteSource(b"a", name="a"), BytesByteSource(b"b", name="b")], ["md5"]
        )
        assert [r.name for r in batch.reports] == ["a", "b"]
        assert batch.ok

    def test_first_progress_only(self):
        seen = []
        sources = [BytesByteSource(b"x" * 10, name=str(i)) for i in range(3)]
        BatchHasher(MultiAlgorithmOrchestrator(chunk_size=4), first_progress_only=True).run(
            sources, ["md5"], on_progress=lambda i, e: seen.append(i)
        )
        assert seen and set(seen) == {0}

    def test_every_input_progress(self):
        seen = []
        sources = [BytesByteSource(b"x" * 10, name=str(i)) for i in range(3)]
        BatchHasher(MultiAlgorithmOrchestrator(chunk_size=4)).run(
            sources, ["md5"], on_progress=lambda i, e: seen.append((i, e.processed_bytes))
        )
        assert [s for s in seen if s[0] == 2] == [(2, 4), (2, 8), (2, 10)]

    def test_io_failure_stops_batch(self):
        flaky = FlakySource(size=50, good_reads=1)
        after = BytesByteSource(b"ok", name="after")
        with pytest.raises(IoFailure):
            BatchHasher(MultiAlgorithmOrchestrator(chunk_size=10)).run([flaky, after], ["md5"])
        assert flaky.closed

    def test_continue_on_error(self):
        flaky = FlakySource(size=50, good_reads=1)
        batch = BatchHasher(
            MultiAlgorithmOrchestrator(chunk_size=10), continue_on_error=True
        ).run([flaky, BytesByteSource(b"ok", name="after")], ["md5"])

        assert [r.name for r in batch.reports] == ["after"]
        assert "flaky.bin" in batch.errors
        assert not batch.ok

    def test_start_fires_before_each_input_is_read(self):
        events = []
        sources = [BytesByteSource(b"a" * 30, name="one"), BytesByteSource(b"", name="two")]
        BatchHasher(MultiAlgorithmOrchestrator(chunk_size=10)).run(
            sources, ["md5"],
            on_progress=lambda i, e: events.append(("progress", i)),
            on_start=lambda i, s: events.append(("start", i, s.name)),
        )

        assert events == [
            ("start", 0, "one"),
            ("progress", 0), ("progress", 0), ("progress", 0),
            ("start", 1, "two"),
            ("progress", 1),
        ]

    def test_failure_marker_helper(self):
        assert is_failure(FAILURE_PREFIX + "boom")
        assert not is_failure("d41d8cd98f00b204e9800998ecf8427e")


def test_file_hash_report_copies_digests():
    digests = {AlgorithmId.MD5: "aa"}
    report = FileHashReport("n", 1, digests, 0)
    digests[AlgorithmId.MD5] = "bb"
    assert report.digests[AlgorithmId.MD5] == "aa"


def test_file_hash_report_is_hashable():
    orch = MultiAlgorithmOrchestrator()
    first = orch.hash_source(BytesByteSource(b"abc", name="abc.txt"), ["md5", "sha1"])
    again = FileHashReport(first.name, first.size_bytes, dict(first.digests),
                           first.duration_ms, first.results)

    assert hash(first) == hash(again)
    assert first == again
    assert len({first, again}) == 1
