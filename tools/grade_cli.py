# tools/grade_cli.py
from __future__ import annotations
import argparse, json, logging, sys
from pathlib import Path
from typing import Any, List

from grading_core.adapters import KeyFormatError, parse_answers, parse_keys
from grading_core.audit_export import to_csv, to_json
from grading_core.engine import evaluate


def _load(path: str, *names: str) -> List[Any]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        for n in names:
            if isinstance(data.get(n), list):
                return data[n]
        return []
    return data if isinstance(data, list) else []


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Score extracted answers against an answer key.")
    ap.add_argument("--key", required=True, help="JSON list of answer keys (or {questions: [...]})")
    ap.add_argument("--answers", required=True, help="JSON list of extracted answers (or {answers: [...]})")
    ap.add_argument("--format", choices=["multiple_choice", "fill_blanks"], default=None)
    ap.add_argument("--mode", choices=["traditional", "manual", "omr"], default=None)
    ap.add_argument("--multi-rule", choices=["strict", "proportional"], default=None)
    ap.add_argument("--csv", action="store_true", help="print per-question CSV rows instead of JSON")
    ap.add_argument("-v", "--verbose", action="store_true")
    a = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO if a.verbose else logging.WARNING,
                        format="[%(levelname)s] %(message)s")

    try:
        keys = parse_keys(_load(a.key, "questions", "keys"))
    except KeyFormatError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    answers = parse_answers(_load(a.answers, "answers", "detected_answers"))

    res = evaluate(keys, answers, format=a.format, mode=a.mode, multi_rule=a.multi_rule)
    if a.csv:
        sys.stdout.write(to_csv(res))
    else:
        print(json.dumps(to_json(res), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
