from __future__ import annotations

import argparse
import json
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional, Sequence

from crag.evaluator import ConfidenceEvaluator, EvaluationResult
from evaluation.calibration import load_dataset, run_calibration
from schemas.response import SourceChunk
from utils.config import load_settings
from utils.logging import configure_logging
from utils.openai_client import OpenAILanguageModel
from utils.settings import Settings


def load_chunks(path: str) -> List[SourceChunk]:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("chunks", [])
    return [SourceChunk.model_validate(c) for c in raw]


def evaluation_to_dict(result: EvaluationResult) -> dict:
    out = asdict(result)
    out["category"] = result.category.value
    return out


def build_evaluator(settings: Settings) -> ConfidenceEvaluator:
    llm = OpenAILanguageModel.from_config(settings.llm) if settings.crag.llm_evaluation_enabled else None
    return ConfidenceEvaluator(settings.crag, llm)


def positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="crag-engine")
    sub = parser.add_subparsers(dest="cmd", required=True)

    ev = sub.add_parser("evaluate", help="Score an already retrieved chunk list against a query.")
    ev.add_argument("--query", required=True)
    ev.add_argument("--chunks", required=True, help="JSON list of chunks (or {\"chunks\": [...]})")

    sub.add_parser("stats", help="Print the active corrective retrieval configuration.")

    cal = sub.add_parser("calibrate", help="Measure confidence calibration on a labelled JSONL dataset.")
    cal.add_argument("--dataset", required=True)
    cal.add_argument("--bins", type=positive_int, default=10)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    settings = load_settings()
    configure_logging(level=settings.app.log_level)

    if args.cmd == "evaluate":
        result = build_evaluator(settings).evaluate(args.query, load_chunks(args.chunks))
        print(json.dumps(evaluation_to_dict(result), indent=2))
    elif args.cmd == "stats":
        print(json.dumps(settings.crag.stats(), indent=2))
    elif args.cmd == "calibrate":
        report = run_calibration(build_evaluator(settings), load_dataset(args.dataset), n_bins=args.bins)
        print(json.dumps(report.to_dict(), indent=2))


if __name__ == "__main__":
    main()
