# Author: Futhark1393
# Description: Cross-input digest comparison: grouping by digest per
# algorithm and free-text digest lookup across a batch of reports.

from dataclasses import dataclass, field
from typing import Iterable, NamedTuple

from hx.core.algorithms import AlgorithmId
from hx.core.orchestrator import FileHashReport, is_failure


class DigestMatch(NamedTuple):
    report_name: str
    algorithm: AlgorithmId
    digest: str


@dataclass
class ComparisonGroup:
    """Digest -> report names for one algorithm, in first-seen order."""

    algorithm: AlgorithmId
    groups: dict[str, list[str]] = field(default_factory=dict)

    @property
    def member_count(self) -> int:
        return sum(len(names) for names in self.groups.values())

    @property
    def all_identical(self) -> bool:
        return len(self.groups) == 1 and self.member_count >= 2

    def duplicates(self) -> dict[str, list[str]]:
        return {digest: names for digest, names in self.groups.items() if len(names) > 1}


class ComparisonEngine:
    """Stateless; every call recomputes from the reports it is given."""

    def group(self, algorithm, reports: Iterable[FileHashReport]) -> ComparisonGroup:
        algorithm = AlgorithmId.parse(algorithm)
        result = ComparisonGroup(algorithm)
        keys: dict[str, str] = {}  # lowercase digest -> first-seen spelling

        for report in reports:
            digest = report.digests.get(algorithm)
            if digest is None or is_failure(digest):
                continue
            key = keys.setdefault(digest.lower(), digest)
            result.groups.setdefault(key, []).append(report.name)

        return result

    def group_all(self, reports: Iterable[FileHashReport]) -> dict[AlgorithmId, ComparisonGroup]:
        reports = list(reports)
        algorithms: list[AlgorithmId] = []
        for report in reports:
            for alg in report.digests:
                if alg not in algorithms:
                    algorithms.append(alg)
        return {alg: self.group(alg, reports) for alg in algorithms}

    def match(self, candidate: str, reports: Iterable[FileHashReport]) -> list[DigestMatch]:
        needle = (candidate or "").strip().lower()
        if not needle:
            return []
        matches = []
        for report in reports:
            for alg, digest in report.digests.items():
                if not is_failure(digest) and digest.lower() == needle:
                    matches.append(DigestMatch(report.name, alg, digest))
        return matches

    @staticmethod
    def first_difference(a: str, b: str) -> int | None:
        """Index of the first differing character (case-insensitive), None if equal."""
        a, b = (a or "").lower(), (b or "").lower()
        for i, (x, y) in enumerate(zip(a, b)):
            if x != y:
                return i
        if len(a) != len(b):
            return min(len(a), len(b))
        return None
