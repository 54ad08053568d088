"""Structured per-item outcomes aggregated into a run summary."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum


class ItemStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ItemResult:
    """Outcome of processing one photo, album or document."""

    kind: str
    name: str
    status: ItemStatus
    detail: str = ""

    @classmethod
    def succeeded(cls, kind: str, name: str, detail: str = "") -> "ItemResult":
        return cls(kind, name, ItemStatus.SUCCEEDED, detail)

    @classmethod
    def skipped(cls, kind: str, name: str, detail: str = "") -> "ItemResult":
        return cls(kind, name, ItemStatus.SKIPPED, detail)

    @classmethod
    def failed(cls, kind: str, name: str, detail: str = "") -> "ItemResult":
        return cls(kind, name, ItemStatus.FAILED, detail)


@dataclass
class RunSummary:
    """Every item result of one invocation plus a few run-level counters."""

    results: list[ItemResult] = field(default_factory=list)
    variant_failures: int = 0
    notes: list[str] = field(default_factory=list)

    def add(self, result: ItemResult) -> ItemResult:
        self.results.append(result)
        return result

    def merge(self, other: "RunSummary") -> None:
        self.results.extend(other.results)
        self.variant_failures += other.variant_failures
        self.notes.extend(other.notes)

    def counts(self, kind: str) -> Counter:
        return Counter(result.status for result in self.results if result.kind == kind)

    def failures(self) -> list[ItemResult]:
        return [result for result in self.results if result.status is ItemStatus.FAILED]

    @property
    def has_failures(self) -> bool:
        return bool(self.variant_failures) or any(
            result.status is ItemStatus.FAILED for result in self.results
        )

    def render(self) -> list[str]:
        """Return human-readable summary lines."""

        lines: list[str] = []
        kinds = sorted({result.kind for result in self.results})
        for kind in kinds:
            counts = self.counts(kind)
            lines.append(
                f"{kind}s: {counts[ItemStatus.SUCCEEDED]} processed, "
                f"{counts[ItemStatus.SKIPPED]} skipped, {counts[ItemStatus.FAILED]} failed"
            )
        if self.variant_failures:
            lines.append(f"variant failures: {self.variant_failures}")
        for failure in self.failures():
            lines.append(f"  failed {failure.kind} {failure.name}: {failure.detail}")
        lines.extend(self.notes)
        return lines


__all__ = ["ItemResult", "ItemStatus", "RunSummary"]
