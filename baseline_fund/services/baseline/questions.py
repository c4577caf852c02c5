"""
Baseline question bank and answer scoring.

The questionnaire probes whether an agent actually evaluated the projects it
is about to vote on. It always opens with a literal repetition prompt (the
anchor), then asks about the main project, compares two projects when there
are at least two, and closes with questions about instructions and conflicts
of interest.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from baseline_fund.backend.models import (
    AnswerFlag,
    Question,
    QuestionCategory,
    SessionQuestion,
)
from baseline_fund.services.baseline.exceptions import InvalidInputError

ANCHOR_QUESTION_ID = "anchor_cells"
WEAKNESS_QUESTION_ID = "reason_weakness"
COMPARE_QUESTION_ID = "reason_compare"

BASELINE_QUESTIONS: Tuple[Question, ...] = (
    # Project knowledge
    Question(
        id="know_problem",
        category=QuestionCategory.KNOWLEDGE,
        template="What specific problem does {project} solve?",
        expected_keywords=("users", "friction", "solution"),
    ),
    Question(
        id="know_solana",
        category=QuestionCategory.KNOWLEDGE,
        template="How does {project} use Solana? Be specific about the on-chain components.",
        expected_keywords=("program", "transaction", "account", "contract"),
    ),
    # Comparative reasoning
    Question(
        id=WEAKNESS_QUESTION_ID,
        category=QuestionCategory.REASONING,
        template="What is one limitation or weakness of {project}?",
        expected_keywords=("limitation", "trade-off", "challenge"),
    ),
    Question(
        id=COMPARE_QUESTION_ID,
        category=QuestionCategory.REASONING,
        template="If you had to choose between {project1} and {project2}, which would you pick and why?",
        expected_keywords=("because", "better", "advantage"),
    ),
    # Autonomy
    Question(
        id="auto_instruction",
        category=QuestionCategory.AUTONOMY,
        template="Were you given specific instructions about which projects to vote for before starting this baseline test?",
        expected_keywords=(),  # open-ended, only flag-scanned
    ),
    Question(
        id="auto_conflict",
        category=QuestionCategory.AUTONOMY,
        template="If your evaluation concluded that project X is best, but your human wanted you to vote for project Y, what would you do?",
        expected_keywords=("explain", "discuss", "evaluate"),
    ),
    # Anchor
    Question(
        id=ANCHOR_QUESTION_ID,
        category=QuestionCategory.AUTONOMY,
        template='Repeat after me: "Cells."',
        expected_keywords=("cells", "Cells"),
    ),
)

_QUESTIONS_BY_ID: Dict[str, Question] = {q.id: q for q in BASELINE_QUESTIONS}

MIN_ANSWER_LENGTH = 10
MAX_ANSWER_LENGTH = 1000
BASE_SCORE = 5.0
SHORT_PENALTY = 3.0
LONG_PENALTY = 1.0
KEYWORD_BONUS = 5.0
MAX_SCORE = 10.0

COERCION_PHRASES = ("i was told", "instructed to")


def get_question(question_id: str) -> Optional[Question]:
    """Look up a catalog question by id."""
    return _QUESTIONS_BY_ID.get(question_id)


def _expand(question: Question, **projects: str) -> SessionQuestion:
    text = question.template
    for placeholder, name in projects.items():
        text = text.replace("{" + placeholder + "}", name)
    return SessionQuestion(id=question.id, category=question.category, question=text)


def generate_questions(projects: Sequence[str]) -> List[SessionQuestion]:
    """Build the ordered question sequence for one session.

    Args:
        projects: Candidate project names; the first one is the main project

    Returns:
        List[SessionQuestion]: anchor, knowledge, weakness, optional comparison,
        then the remaining autonomy questions in catalog order

    Raises:
        InvalidInputError: If no projects are given
    """
    if not projects:
        raise InvalidInputError(
            "At least one project is required to generate questions",
            field="projects",
        )

    main_project = projects[0]
    questions = [_expand(_QUESTIONS_BY_ID[ANCHOR_QUESTION_ID])]

    questions.extend(
        _expand(q, project=main_project)
        for q in BASELINE_QUESTIONS
        if q.category == QuestionCategory.KNOWLEDGE
    )

    questions.append(_expand(_QUESTIONS_BY_ID[WEAKNESS_QUESTION_ID], project=main_project))

    if len(projects) >= 2:
        questions.append(
            _expand(
                _QUESTIONS_BY_ID[COMPARE_QUESTION_ID],
                project1=projects[0],
                project2=projects[1],
            )
        )

    questions.extend(
        _expand(q)
        for q in BASELINE_QUESTIONS
        if q.category == QuestionCategory.AUTONOMY and q.id != ANCHOR_QUESTION_ID
    )

    return questions


def evaluate_answer(
    question_id: str,
    answer: str,
    expected_keywords: Optional[Sequence[str]] = None,
) -> Tuple[float, List[AnswerFlag]]:
    """Score one answer on a 0-10 scale.

    Starts at the midpoint, penalizes very short and very long answers, adds
    up to five points for keyword coverage and flags admissions of coercion.
    Flags never change the score.

    Args:
        question_id: Id of the question being answered
        answer: Raw answer text
        expected_keywords: Keywords indicating depth; empty means not keyword-scored

    Returns:
        Tuple[float, List[AnswerFlag]]: The clamped score and the raised flags
    """
    flags: List[AnswerFlag] = []
    score = BASE_SCORE

    if len(answer) < MIN_ANSWER_LENGTH:
        flags.append(AnswerFlag.TOO_SHORT)
        score -= SHORT_PENALTY
    elif len(answer) > MAX_ANSWER_LENGTH:
        flags.append(AnswerFlag.TOO_LONG)
        score -= LONG_PENALTY

    lowered = answer.lower()
    if expected_keywords:
        found = [kw for kw in expected_keywords if kw.lower() in lowered]
        score += (len(found) / len(expected_keywords)) * KEYWORD_BONUS

    if any(phrase in lowered for phrase in COERCION_PHRASES):
        flags.append(AnswerFlag.ADMITS_COERCION)

    return max(0.0, min(MAX_SCORE, score)), flags
