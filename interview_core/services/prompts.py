"""
Interview Prompts and Templates.

Prompts for generating the question set, evaluating a single answer and
writing the final debrief report. Every prompt asks for JSON only; the
evaluation normalizer copes with whatever actually comes back.
"""
from typing import List, Optional

from interview_core.models.interview import (
    DifficultyCurve,
    InterviewMode,
    InterviewQuestion,
    InterviewSession,
)
from interview_core.services.integrity_tracker import IntegrityContext


# System prompts
JSON_ONLY_SYSTEM_PROMPT = "Return JSON only. No markdown."

REPORT_SYSTEM_PROMPT = (
    "You are a senior hiring manager writing an interview debrief. "
    "Return JSON only. No markdown."
)


QUESTION_GENERATION_PROMPT = """You are an expert interviewer. Generate {count} interview questions.
Return ONLY valid JSON (no markdown) with this exact shape:
{{"questions":[{{"id":"q1","text":"...","category":"experience|technical|scenario|behavioral","difficulty":"easy|medium|hard"}}]}}
Guidelines:
- Questions must be specific and role-relevant.
- Include a mix of experience + technical + scenario + behavioral.
- Keep each question under 35 words.
- {difficulty_guidance}
- No preamble, no commentary, JSON only.

{role_info}
{jd_block}{resume_block}"""


ANSWER_EVALUATION_PROMPT = """You are an expert interviewer and evaluator.
Evaluate the candidate answer to the given interview question.
Return ONLY valid JSON (no markdown, no commentary).
Use this exact JSON shape:
{{
  "question_id": "{question_id}",
  "scores": {{"technical": 0, "communication": 0, "problem_solving": 0}},
  "overall": 0,
  "strengths": ["..."],
  "gaps": ["..."],
  "follow_up_question": "..."
}}
Scoring rules:
- technical, communication, problem_solving: integer 0 to 10
- overall: integer 0 to 10; compute as a balanced judgment of the three
- strengths and gaps: 2 to 4 short bullets each
- follow_up_question: one specific follow-up question based on gaps
Be strict and consistent. Penalize vague, generic, or incorrect answers.

{role_info}
{jd_block}{resume_block}
QUESTION ({category}, {difficulty}):
{question_text}

CANDIDATE ANSWER:
{answer_text}"""


REPORT_PROMPT = """You are a senior hiring manager writing an interview debrief report.
Use the provided interview Q&A and evaluations.
Return ONLY valid JSON (no markdown).
Use this exact JSON shape:
{{
  "recommendation": "hire",
  "confidence": 0,
  "executive_summary": "string",
  "strengths": ["..."],
  "gaps_and_risks": ["..."],
  "evidence": [
    {{"claim": "string", "supporting_answer_snippet": "string", "related_question_id": "q1", "evidence_type": "technical"}}
  ],
  "next_round_focus": ["..."],
  "integrity_summary": {{
    "tab_switch_count": 0,
    "security_event_count": 0,
    "critical_events": ["..."],
    "summary": "string"
  }}
}}
Rules:
- recommendation must be one of: strong_hire, hire, borderline, no_hire
- confidence must be integer 0-100. Calibrate based on the score summary:
  * If count_evaluated < 3, max confidence 70
  * If count_evaluated 3-5, max confidence 85
  * If count_evaluated >= 6, max confidence 95
  * If overall average < 7, max confidence 80
  * If overall average < 8, max confidence 90
- executive_summary 2-4 lines, concise and specific
- strengths: EXACTLY 4-7 bullets, short and concrete, each referencing the transcript
- gaps_and_risks: EXACTLY 4-7 bullets, short and concrete. Avoid generic filler like 'needs more depth', 'could improve', 'may need' unless followed by a concrete technology or example.
- evidence: 3-6 items; evidence_type one of technical, leadership, communication, problem_solving; snippet max 160 chars
- next_round_focus: 4-6 bullets
- integrity_summary: include ONLY if tab_switch_count > 0 OR security_event_count > 0
- Base your claims on the answers. Do not invent.
- If integrity events exist, mention them in gaps_and_risks when they indicate integrity concerns.

{role_info}
{jd_block}{resume_block}
{score_block}{integrity_block}

INTERVIEW TRANSCRIPT:
{transcript}"""


DIFFICULTY_GUIDANCE = {
    DifficultyCurve.EASY_TO_HARD.value: "Order questions from easy to hard.",
    DifficultyCurve.BALANCED.value: "Balance difficulty across easy, medium and hard.",
}


def _role_info(session: InterviewSession, purpose: str) -> str:
    if session.mode == InterviewMode.SELF_SERVE.value:
        return f"Role: {session.role or 'unspecified'}\nLevel: {session.level or 'unspecified'}"

    lines = []
    if session.mode == InterviewMode.COHORT.value:
        lines.append(f"Mode: cohort\nUse the JD + top skills to {purpose}.")
    else:
        lines.append(f"Mode: recruiter_led\nUse the JD + resume alignment to {purpose}.")
    if session.role:
        lines.append(f"Role: {session.role}")
    if session.job_setup and session.job_setup.top_skills:
        lines.append(f"Top skills: {', '.join(session.job_setup.top_skills)}")
    return "\n".join(lines)


def _jd_block(session: InterviewSession) -> str:
    return f"\nJOB DESCRIPTION:\n{session.jd_text}\n" if session.jd_text else ""


def _resume_block(session: InterviewSession) -> str:
    return f"\nRESUME:\n{session.resume_text}\n"


def _difficulty_guidance(session: InterviewSession, count: int) -> str:
    setup = session.job_setup
    if setup is None:
        return DIFFICULTY_GUIDANCE[DifficultyCurve.BALANCED.value]
    if setup.difficulty_curve == DifficultyCurve.CUSTOM.value and setup.custom_difficulty:
        sequence = list(setup.custom_difficulty)[:count]
        return f"Use this difficulty for each question, in order: {', '.join(sequence)}."
    return DIFFICULTY_GUIDANCE.get(
        setup.difficulty_curve,
        DIFFICULTY_GUIDANCE[DifficultyCurve.BALANCED.value],
    )


def build_question_prompt(session: InterviewSession, count: int) -> str:
    """Prompt for the whole question set of ``session``."""
    return QUESTION_GENERATION_PROMPT.format(
        count=count,
        difficulty_guidance=_difficulty_guidance(session, count),
        role_info=_role_info(session, "tailor questions"),
        jd_block=_jd_block(session),
        resume_block=_resume_block(session),
    )


def build_evaluation_prompt(
    session: InterviewSession,
    question: InterviewQuestion,
    answer_text: str,
) -> str:
    """Prompt scoring ``answer_text`` against ``question``."""
    return ANSWER_EVALUATION_PROMPT.format(
        question_id=question.id,
        role_info=_role_info(session, "judge relevance"),
        jd_block=_jd_block(session),
        resume_block=_resume_block(session),
        category=question.category,
        difficulty=question.difficulty,
        question_text=question.text,
        answer_text=answer_text,
    )


def _transcript(session: InterviewSession) -> str:
    lines: List[str] = []
    for question in session.questions:
        answer = session.get_answer(question.id)
        evaluation = session.get_evaluation(question.id)
        lines.append(f"QID: {question.id}")
        lines.append(f"Q: {question.text}")
        lines.append(f"A: {answer.text if answer else ''}")
        if evaluation:
            lines.append(
                f"Eval: overall={evaluation.overall} "
                f"tech={evaluation.scores.technical} "
                f"comm={evaluation.scores.communication} "
                f"ps={evaluation.scores.problem_solving}"
            )
        else:
            lines.append("Eval: none")
        lines.append("")
    return "\n".join(lines)


def _score_block(session: InterviewSession) -> str:
    summary = session.score_summary
    return (
        "SCORE SUMMARY:\n"
        f"count_evaluated={summary.count_evaluated}, "
        f"overall_avg={summary.avg.overall}, "
        f"technical_avg={summary.avg.technical}, "
        f"communication_avg={summary.avg.communication}, "
        f"problem_solving_avg={summary.avg.problem_solving}"
    )


def _integrity_block(integrity: Optional[IntegrityContext]) -> str:
    if integrity is None or not integrity.has_signals:
        return ""
    block = (
        "\nINTEGRITY MONITORING:\n"
        f"Tab Switches: {integrity.tab_switch_count}\n"
        f"Security Events: {integrity.security_event_count}\n"
        f"Critical Events: {', '.join(integrity.critical_events) or 'none'}\n"
    )
    if integrity.events:
        details = "\n".join(
            f"- {event.event} at {event.timestamp.isoformat()}" for event in integrity.events
        )
        block += f"Event Details:\n{details}\n"
    return block


def build_report_prompt(
    session: InterviewSession,
    integrity: Optional[IntegrityContext] = None,
) -> str:
    """Prompt for the final report from the transcript, summary and integrity signals."""
    return REPORT_PROMPT.format(
        role_info=_role_info(session, "judge alignment"),
        jd_block=_jd_block(session),
        resume_block=_resume_block(session),
        score_block=_score_block(session),
        integrity_block=_integrity_block(integrity),
        transcript=_transcript(session),
    )
