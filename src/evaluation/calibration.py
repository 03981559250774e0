"""Offline calibration of retrieval confidence.

Each dataset row is a query, the chunks retrieved for it, and a human label
saying whether those chunks actually answer the query. A well calibrated
evaluator puts labelled-relevant rows in CORRECT and keeps its confidence
close to the observed relevance rate in every score bin.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple

from crag.evaluator import ConfidenceEvaluator
from schemas.common import ConfidenceCategory
from schemas.response import SourceChunk


@dataclass
class CalibrationBin:
    lo: float
    hi: float
    count: int
    avg_conf: float
    accuracy: float


@dataclass
class CalibrationRow:
    query: str
    chunks: List[SourceChunk]
    relevant: bool


@dataclass
class CalibrationReport:
    rows: int
    ece: float
    bins: List[CalibrationBin]
    category_counts: Dict[str, int] = field(default_factory=dict)
    category_precision: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


def expected_calibration_error(
    confs: List[float], correct: List[int], n_bins: int = 10
) -> Tuple[float, List[CalibrationBin]]:
    if len(confs) != len(correct):
        raise ValueError("confs and correct must have the same length")
    if n_bins < 1:
        raise ValueError(f"n_bins must be >= 1, got {n_bins}")

    buckets: List[List[int]] = [[] for _ in range(n_bins)]
    for i, c in enumerate(confs):
        buckets[min(n_bins - 1, int(c * n_bins))].append(i)

    total = len(confs) or 1
    ece = 0.0
    bins: List[CalibrationBin] = []
    for b, idxs in enumerate(buckets):
        if not idxs:
            continue
        avg = sum(confs[i] for i in idxs) / len(idxs)
        acc = sum(correct[i] for i in idxs) / len(idxs)
        ece += (len(idxs) / total) * abs(avg - acc)
        bins.append(CalibrationBin(lo=b / n_bins, hi=(b + 1) / n_bins, count=len(idxs), avg_conf=avg, accuracy=acc))
    return ece, bins


def load_dataset(path: str) -> List[CalibrationRow]:
    rows: List[CalibrationRow] = []
    for line in Path(path).read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        obj = json.loads(line)
        rows.append(
            CalibrationRow(
                query=obj["query"],
                chunks=[SourceChunk.model_validate(c) for c in obj.get("chunks", [])],
                relevant=bool(obj["relevant"]),
            )
        )
    return rows


def run_calibration(evaluator: ConfidenceEvaluator, rows: List[CalibrationRow], n_bins: int = 10) -> CalibrationReport:
    confs: List[float] = []
    labels: List[int] = []
    counts: Dict[str, int] = {c.value: 0 for c in ConfidenceCategory}
    hits: Dict[str, int] = {c.value: 0 for c in ConfidenceCategory}

    for row in rows:
        result = evaluator.evaluate(row.query, row.chunks)
        confs.append(result.confidence_score)
        labels.append(int(row.relevant))
        counts[result.category.value] += 1
        hits[result.category.value] += int(row.relevant)

    ece, bins = expected_calibration_error(confs, labels, n_bins=n_bins)
    precision = {k: hits[k] / counts[k] for k in counts if counts[k]}
    return CalibrationReport(
        rows=len(rows),
        ece=ece,
        bins=bins,
        category_counts=counts,
        category_precision=precision,
    )
