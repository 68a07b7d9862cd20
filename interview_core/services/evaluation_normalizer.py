"""
Evaluation Normalizer.

Turns raw reasoning-service output into bounded, schema-valid records.
Nothing here trusts the model: every number is round-then-clamped, every
list is filtered, truncated and capped, every enum-like value is checked
against an allow-set, and deterministic fallbacks fill whatever the model
left out.
"""
import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Union

from interview_core.core.errors import truncate_snippet
from interview_core.models.interview import (
    AnswerEvaluation,
    EvaluationScores,
    EvidenceItem,
    EvidenceType,
    IntegritySummary,
    InterviewQuestion,
    InterviewReport,
    QuestionCategory,
    QuestionDifficulty,
    Recommendation,
    ScoreSummary,
)

logger = logging.getLogger(__name__)


# Answer evaluation bounds
EVAL_ITEM_MAX_CHARS = 140
EVAL_MAX_ITEMS = 4
FOLLOW_UP_MAX_CHARS = 180
DEFAULT_EVAL_STRENGTH = "Clear attempt to address the question."
DEFAULT_EVAL_GAP = "Needs more specifics and structured detail."
DEFAULT_FOLLOW_UP = "Can you give one concrete example with steps and outcome?"

# Report bounds
SUMMARY_MAX_CHARS = 600
REPORT_ITEM_MAX_CHARS = 160
REPORT_MIN_ITEMS = 4
REPORT_MAX_ITEMS = 7
EVIDENCE_MAX_ITEMS = 6
EVIDENCE_QUESTION_ID_MAX_CHARS = 40
NEXT_ROUND_MAX_ITEMS = 6
CRITICAL_EVENTS_MAX_ITEMS = 10
INTEGRITY_SUMMARY_MAX_CHARS = 300
DEFAULT_EXECUTIVE_SUMMARY = "Summary not available."
DEFAULT_NEXT_ROUND_FOCUS = "Ask for concrete examples and metrics."
PLACEHOLDER_EVIDENCE = EvidenceItem(
    claim="Limited evidence captured in this session.",
    supporting_answer_snippet="Provide more detailed examples in the next round.",
    related_question_id="n/a",
    evidence_type=EvidenceType.TECHNICAL,
)

GENERIC_FILLER_PATTERNS = (
    "adapt to company tools",
    "needs more depth",
    "could improve",
    "may need",
    "no direct experience mentioned",
    "might need",
    "could benefit from",
    "may require",
)
CONCRETE_TECH_PATTERN = re.compile(
    r"(react|node|python|java|aws|docker|kubernetes|sql|typescript|javascript)",
    re.IGNORECASE,
)
# Remainder length after a vague phrase at which the statement counts as specific
FILLER_CONTEXT_CHARS = 30

_RECOMMENDATIONS = {r.value for r in Recommendation}
_EVIDENCE_TYPES = {e.value for e in EvidenceType}
_CATEGORIES = {c.value for c in QuestionCategory}
_DIFFICULTIES = {d.value for d in QuestionDifficulty}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

@dataclass
class Parsed:
    """Successful parse of model output."""
    data: Any
    # "strict" or "extracted"
    stage: str = "strict"

    @property
    def ok(self) -> bool:
        return True


@dataclass
class ParseFailed:
    """Model output could not be read as JSON."""
    reason: str
    raw_snippet: str = ""

    @property
    def ok(self) -> bool:
        return False


ParseResult = Union[Parsed, ParseFailed]


def parse_model_json(raw: Optional[str]) -> ParseResult:
    """
    Two-stage JSON parse that never raises.

    Stage 1 parses the whole text. Stage 2 parses the substring between the
    first ``{`` and the last ``}``, which recovers output wrapped in prose or
    markdown fences.
    """
    if raw is None or not str(raw).strip():
        return ParseFailed(reason="empty response", raw_snippet="")

    text = str(raw).strip()
    try:
        return Parsed(data=json.loads(text), stage="strict")
    except (json.JSONDecodeError, ValueError):
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        try:
            return Parsed(data=json.loads(text[start:end + 1]), stage="extracted")
        except (json.JSONDecodeError, ValueError) as e:
            logger.debug(f"Brace extraction failed: {e}")
            return ParseFailed(reason=f"invalid JSON: {e}", raw_snippet=truncate_snippet(text))

    return ParseFailed(reason="no JSON object found", raw_snippet=truncate_snippet(text))


# ---------------------------------------------------------------------------
# Primitive helpers
# ---------------------------------------------------------------------------

def clamp_int(value: Any, lo: int, hi: int) -> int:
    """Round then clamp into ``[lo, hi]``. Non-numeric input yields ``lo``."""
    if isinstance(value, bool):
        return lo
    try:
        number = float(value)
    except (TypeError, ValueError):
        return lo
    if not math.isfinite(number):
        return lo
    # Half-up rounding; Python's round() is banker's rounding
    rounded = math.floor(number + 0.5)
    return max(lo, min(hi, int(rounded)))


def _pick(data: Any, *keys: str) -> Any:
    """First present key among ``keys`` (accepts snake_case and camelCase)."""
    if not isinstance(data, dict):
        return None
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _clean_strings(
    values: Any,
    max_chars: int,
    max_items: int,
    exclude=None,
) -> List[str]:
    """Filter to non-empty strings, truncate each, cap the count."""
    if not isinstance(values, list):
        return []
    cleaned = []
    for value in values:
        if value is None or isinstance(value, (dict, list)):
            continue
        text = str(value).strip()[:max_chars].strip()
        if not text:
            continue
        if exclude is not None and exclude(text):
            continue
        cleaned.append(text)
        if len(cleaned) >= max_items:
            break
    return cleaned


def _fill_to_minimum(items: List[str], fallbacks: Iterable[str], minimum: int) -> List[str]:
    """Append fallbacks (skipping duplicates) until ``minimum`` is reached."""
    result = list(items)
    for fallback in fallbacks:
        if len(result) >= minimum:
            break
        if fallback not in result:
            result.append(fallback)
    return result


def is_generic_filler(text: str) -> bool:
    """
    True when ``text`` contains a vague phrase and what follows it is short
    and names no concrete technology ("may need more practice" vs "may need
    Kubernetes operator experience").
    """
    if not text:
        return False
    lower = text.lower()
    for pattern in GENERIC_FILLER_PATTERNS:
        position = lower.find(pattern)
        if position < 0:
            continue
        after = lower[position + len(pattern):]
        if CONCRETE_TECH_PATTERN.search(after):
            continue
        if len(after) < FILLER_CONTEXT_CHARS:
            return True
    return False


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

def normalize_questions(data: Any, target_count: int) -> List[InterviewQuestion]:
    """
    Normalize a generated question set.

    Accepts ``{"questions": [...]}`` or a bare list. Entries without text are
    dropped; missing or repeated ids become ``q{n}``; category and difficulty
    fall back to ``technical`` / ``medium``. At most ``target_count`` are kept.
    """
    if isinstance(data, dict):
        raw_items = data.get("questions")
    else:
        raw_items = data
    if not isinstance(raw_items, list):
        return []

    questions: List[InterviewQuestion] = []
    seen_ids = set()
    for item in raw_items:
        if len(questions) >= target_count:
            break

        if isinstance(item, str):
            item = {"text": item}
        if not isinstance(item, dict):
            continue

        text = str(_pick(item, "text", "question", "question_text") or "").strip()
        if not text:
            continue

        position = len(questions) + 1
        question_id = str(item.get("id") or "").strip()[:EVIDENCE_QUESTION_ID_MAX_CHARS]
        if not question_id or question_id in seen_ids:
            question_id = f"q{position}"
            # A model-supplied id may already have claimed "q{n}"
            suffix = position
            while question_id in seen_ids:
                suffix += 1
                question_id = f"q{suffix}"
        seen_ids.add(question_id)

        category = str(item.get("category") or "").strip().lower()
        difficulty = str(item.get("difficulty") or "").strip().lower()

        questions.append(InterviewQuestion(
            id=question_id,
            text=text,
            category=category if category in _CATEGORIES else QuestionCategory.TECHNICAL,
            difficulty=difficulty if difficulty in _DIFFICULTIES else QuestionDifficulty.MEDIUM,
        ))

    return questions


# ---------------------------------------------------------------------------
# Answer evaluation
# ---------------------------------------------------------------------------

def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool) or value is None:
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def normalize_evaluation(data: Any, question_id: str) -> AnswerEvaluation:
    """
    Bound an answer evaluation.

    ``overall`` is the rounded mean of the three sub-scores when the model
    did not supply a usable number.
    """
    if not isinstance(data, dict):
        data = {}
    raw_scores = data.get("scores") if isinstance(data.get("scores"), dict) else {}

    scores = EvaluationScores(
        technical=clamp_int(_pick(raw_scores, "technical"), 0, 10),
        communication=clamp_int(_pick(raw_scores, "communication"), 0, 10),
        problem_solving=clamp_int(_pick(raw_scores, "problem_solving", "problemSolving"), 0, 10),
    )

    raw_overall = data.get("overall")
    if _is_numeric(raw_overall):
        overall = clamp_int(raw_overall, 0, 10)
    else:
        mean = (scores.technical + scores.communication + scores.problem_solving) / 3
        overall = clamp_int(mean, 0, 10)

    strengths = _clean_strings(data.get("strengths"), EVAL_ITEM_MAX_CHARS, EVAL_MAX_ITEMS)
    gaps = _clean_strings(data.get("gaps"), EVAL_ITEM_MAX_CHARS, EVAL_MAX_ITEMS)
    follow_up = str(_pick(data, "follow_up_question", "followUpQuestion") or "").strip()
    follow_up = follow_up[:FOLLOW_UP_MAX_CHARS].strip()

    return AnswerEvaluation(
        question_id=question_id,
        scores=scores,
        overall=overall,
        strengths=strengths or [DEFAULT_EVAL_STRENGTH],
        gaps=gaps or [DEFAULT_EVAL_GAP],
        follow_up_question=follow_up or DEFAULT_FOLLOW_UP,
    )


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

def confidence_ceiling(summary: ScoreSummary) -> int:
    """Maximum confidence a report may claim for this volume and score."""
    count = summary.count_evaluated
    if count < 3:
        ceiling = 70
    elif count < 6:
        ceiling = 85
    else:
        ceiling = 95

    overall = summary.avg.overall
    if overall < 7:
        ceiling = min(ceiling, 80)
    elif overall < 8:
        ceiling = min(ceiling, 90)
    return ceiling


def strength_fallbacks(summary: ScoreSummary) -> List[str]:
    return [
        f"Strong technical foundation (avg score: {summary.avg.overall:.1f})",
        "Clear communication demonstrated in answers",
        "Structured problem-solving approach visible",
        "Relevant experience highlighted",
    ]


def gap_fallbacks(summary: ScoreSummary) -> List[str]:
    return [
        f"Overall performance at {summary.avg.overall:.1f}/10 suggests areas for improvement",
        "Limited evidence in some technical areas",
        "Could provide more concrete examples with metrics",
        "Some answers lacked specific implementation details",
    ]


def _normalize_evidence(values: Any) -> List[EvidenceItem]:
    if not isinstance(values, list):
        return []
    evidence = []
    for item in values:
        if not isinstance(item, dict):
            continue
        claim = str(item.get("claim") or "").strip()[:REPORT_ITEM_MAX_CHARS]
        snippet = str(
            _pick(item, "supporting_answer_snippet", "supportingAnswerSnippet") or ""
        ).strip()[:REPORT_ITEM_MAX_CHARS]
        question_id = str(
            _pick(item, "related_question_id", "relatedQuestionId") or ""
        ).strip()[:EVIDENCE_QUESTION_ID_MAX_CHARS]
        if not (claim and snippet and question_id):
            continue
        evidence_type = str(_pick(item, "evidence_type", "evidenceType") or "").strip().lower()
        evidence.append(EvidenceItem(
            claim=claim,
            supporting_answer_snippet=snippet,
            related_question_id=question_id,
            evidence_type=evidence_type if evidence_type in _EVIDENCE_TYPES else EvidenceType.TECHNICAL,
        ))
        if len(evidence) >= EVIDENCE_MAX_ITEMS:
            break
    return evidence


def _plural(count: int, word: str, plural: str) -> str:
    return f"{count} {word if count == 1 else plural}"


def _normalize_integrity(data: Any, integrity) -> Optional[IntegritySummary]:
    """Integrity block, present only when at least one signal was recorded."""
    if integrity is None or not integrity.has_signals:
        return None

    model_block = _pick(data, "integrity_summary", "securitySummary", "security_summary")
    if not isinstance(model_block, dict):
        model_block = {}

    model_critical = model_block.get("critical_events", model_block.get("criticalEvents"))
    if isinstance(model_critical, list):
        critical = [str(e).strip() for e in model_critical if str(e).strip()][:CRITICAL_EVENTS_MAX_ITEMS]
    else:
        critical = list(integrity.critical_events)[:CRITICAL_EVENTS_MAX_ITEMS]

    summary = str(model_block.get("summary") or "").strip()[:INTEGRITY_SUMMARY_MAX_CHARS]
    if not summary:
        parts = [
            f"Interview monitoring detected "
            f"{_plural(integrity.tab_switch_count, 'tab switch', 'tab switches')} and "
            f"{_plural(integrity.security_event_count, 'security event', 'security events')}."
        ]
        if integrity.critical_events:
            parts.append(f"Critical events include: {', '.join(integrity.critical_events)}.")
        parts.append(
            "These may indicate potential integrity concerns that should be "
            "considered in the hiring decision."
        )
        summary = " ".join(parts)[:INTEGRITY_SUMMARY_MAX_CHARS]

    return IntegritySummary(
        tab_switch_count=integrity.tab_switch_count,
        security_event_count=integrity.security_event_count,
        critical_events=critical,
        summary=summary,
    )


def normalize_report(data: Any, summary: ScoreSummary, integrity=None) -> InterviewReport:
    """
    Bound a generated report against the session's score summary.

    Args:
        data: Parsed model output
        summary: Score summary the report was generated from
        integrity: ``IntegrityContext`` for the session, if any
    """
    if not isinstance(data, dict):
        data = {}

    recommendation = str(data.get("recommendation") or "").strip().lower()
    if recommendation not in _RECOMMENDATIONS:
        recommendation = Recommendation.BORDERLINE

    confidence = min(clamp_int(data.get("confidence"), 0, 100), confidence_ceiling(summary))

    executive_summary = str(
        _pick(data, "executive_summary", "executiveSummary") or ""
    ).strip()[:SUMMARY_MAX_CHARS]

    strengths = _clean_strings(data.get("strengths"), REPORT_ITEM_MAX_CHARS, REPORT_MAX_ITEMS)
    strengths = _fill_to_minimum(strengths, strength_fallbacks(summary), REPORT_MIN_ITEMS)

    gaps = _clean_strings(
        _pick(data, "gaps_and_risks", "gapsAndRisks"),
        REPORT_ITEM_MAX_CHARS,
        REPORT_MAX_ITEMS,
        exclude=is_generic_filler,
    )
    gaps = _fill_to_minimum(gaps, gap_fallbacks(summary), REPORT_MIN_ITEMS)

    evidence = _normalize_evidence(data.get("evidence")) or [PLACEHOLDER_EVIDENCE.model_copy()]

    next_round_focus = _clean_strings(
        _pick(data, "next_round_focus", "nextRoundFocus"),
        REPORT_ITEM_MAX_CHARS,
        NEXT_ROUND_MAX_ITEMS,
    ) or [DEFAULT_NEXT_ROUND_FOCUS]

    return InterviewReport(
        recommendation=recommendation,
        confidence=confidence,
        executive_summary=executive_summary or DEFAULT_EXECUTIVE_SUMMARY,
        strengths=strengths,
        gaps_and_risks=gaps,
        evidence=evidence,
        next_round_focus=next_round_focus,
        integrity_summary=_normalize_integrity(data, integrity),
    )

