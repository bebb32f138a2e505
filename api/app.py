from __future__ import annotations
from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import os, typing as t

# ---- Engine imports ----
from grading_core.engine import evaluate
from grading_core.adapters import KeyFormatError, parse_answers, parse_keys
from grading_core.audit_export import to_csv as audit_to_csv, to_json as audit_to_json
from grading_core.config import AUDIT_EXPORT_ENABLED, DEFAULT_MODE, DEFAULT_MULTI_RULE
from grading_core.types import EvaluationResult

app = FastAPI(title="Answer Evaluation API")

ALLOWED_ORIGINS = [
    o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

# ---- Schemas ----
class EvaluateReq(BaseModel):
    questions: list[dict[str, t.Any]]
    answers: list[dict[str, t.Any]] = Field(default_factory=list)
    format: str | None = None      # "multiple_choice" | "fill_blanks" | None (per question)
    mode: str | None = None        # "traditional" | "manual" | "omr"
    multi_rule: str | None = None  # "strict" | "proportional"

# ---- Helpers ----
def _run(req: EvaluateReq) -> EvaluationResult:
    try:
        keys = parse_keys(req.questions)
    except KeyFormatError as exc:
        raise HTTPException(422, str(exc))
    answers = parse_answers(req.answers)
    return evaluate(keys, answers, format=req.format, mode=req.mode, multi_rule=req.multi_rule)

# ---- Health ----
@app.get("/")
def root():
    return {"status": "ok", "service": "answer-evaluation-api"}

@app.get("/health")
def health():
    return {
        "default_mode": DEFAULT_MODE,
        "default_multi_rule": DEFAULT_MULTI_RULE,
        "audit_export_enabled": AUDIT_EXPORT_ENABLED,
    }

# ---- Evaluation ----
@app.post("/evaluate")
def evaluate_submission(req: EvaluateReq):
    return audit_to_json(_run(req))

@app.post("/evaluate/audit.csv")
def evaluate_submission_csv(req: EvaluateReq):
    if not AUDIT_EXPORT_ENABLED:
        raise HTTPException(404, "audit export disabled")
    return Response(content=audit_to_csv(_run(req)), media_type="text/csv")
