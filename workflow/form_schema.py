"""
Form schema model: the question catalogue of a Form and its activation rule.

Operates on any object exposing ``questions`` (ordered list of question
dicts) and ``is_active``; the ORM Form is the usual one. Lists are always
replaced, never mutated in place, so SQLAlchemy sees every change to the
JSON column.
"""

import logging
import uuid
from datetime import date
from typing import Optional, Sequence

from database.schemas import QuestionBase, QuestionCreate
from workflow.errors import ActivationError, InvalidAnswerError, NotFoundError, QuestionRemovalError

log = logging.getLogger(__name__)

# Hardcoded: a Form with fewer questions can be edited but never activated
MIN_ACTIVE_QUESTIONS = 10

# Rule presets offered to form authors
RULE_EXAMPLES = [
    {
        "label": "Description de cours (100+ mots)",
        "rule": "Vérifier que la description contient au moins 100 mots et mentionne les objectifs "
                "d'apprentissage, le contenu principal et l'approche pédagogique.",
    },
    {
        "label": "Objectifs d'apprentissage",
        "rule": "Vérifier que les objectifs sont rédigés avec des verbes d'action mesurables "
                "(ex: analyser, concevoir, appliquer) et qu'il y a au moins 3 objectifs distincts.",
    },
    {
        "label": "Méthodes d'évaluation",
        "rule": "Vérifier que les méthodes d'évaluation sont variées, que les pourcentages totalisent "
                "100%, et que chaque évaluation a une description claire.",
    },
    {
        "label": "Calendrier du cours",
        "rule": "Vérifier que le calendrier couvre toutes les semaines de la session et que chaque "
                "semaine a un thème et des activités définis.",
    },
    {
        "label": "Ressources pédagogiques",
        "rule": "Vérifier que les ressources sont pertinentes au cours et incluent des références "
                "bibliographiques complètes avec auteur, titre et année.",
    },
    {
        "label": "Prérequis",
        "rule": "Vérifier que les prérequis sont clairement énoncés avec les codes de cours ou "
                "compétences requises.",
    },
    {
        "label": "Politique de présence",
        "rule": "Vérifier que la politique de présence est clairement définie avec les conséquences "
                "des absences et les procédures pour les absences justifiées.",
    },
    {
        "label": "Intégrité académique",
        "rule": "Vérifier que la section mentionne les règlements sur le plagiat et les conséquences, "
                "ainsi que les ressources disponibles pour les étudiants.",
    },
]


def question_count(form) -> int:
    return len(form.questions or [])


def questions_needed(form) -> int:
    """Shortfall before the form may be activated (0 when activatable)."""
    return max(0, MIN_ACTIVE_QUESTIONS - question_count(form))


def find_question(form, question_id: str) -> Optional[dict]:
    for q in form.questions or []:
        if q.get("id") == question_id:
            return q
    return None


def _check_index(form, index: int) -> None:
    if index < 0 or index >= question_count(form):
        raise NotFoundError("Question", f"#{index}")


# ─── Catalogue mutations ───────────────────────────────────────────────────────

def add_question(form, question: QuestionCreate) -> dict:
    """Append a question; assigns a fresh id when absent or already taken."""
    existing_ids = {q.get("id") for q in form.questions or []}
    data = question.model_dump()
    if not data.get("id") or data["id"] in existing_ids:
        data["id"] = str(uuid.uuid4())
    form.questions = [*(form.questions or []), data]
    return data


def update_question(form, index: int, question: QuestionBase) -> dict:
    """Replace the question at index; its id is kept."""
    _check_index(form, index)
    questions = list(form.questions)
    data = question.model_dump(exclude={"id"})
    data["id"] = questions[index]["id"]
    questions[index] = data
    form.questions = questions
    return data


def reorder_question(form, index: int, direction: int) -> bool:
    """
    Swap the question at index with its neighbour (direction -1 or +1).
    Returns False without changing anything when the target is out of range.
    """
    _check_index(form, index)
    target = index + direction
    if target < 0 or target >= question_count(form):
        return False
    questions = list(form.questions)
    questions[index], questions[target] = questions[target], questions[index]
    form.questions = questions
    return True


def remove_question(form, index: int) -> dict:
    """
    Remove the question at index. Plans already holding responses for it
    keep them; they display with their saved question title.

    The active form never drops below MIN_ACTIVE_QUESTIONS.
    """
    _check_index(form, index)
    if form.is_active and question_count(form) - 1 < MIN_ACTIVE_QUESTIONS:
        raise QuestionRemovalError(question_count(form) - 1, MIN_ACTIVE_QUESTIONS)
    questions = list(form.questions)
    removed = questions.pop(index)
    form.questions = questions
    return removed


# ─── Activation ────────────────────────────────────────────────────────────────

def check_activation(form) -> None:
    count = question_count(form)
    if count < MIN_ACTIVE_QUESTIONS:
        raise ActivationError(count, MIN_ACTIVE_QUESTIONS)


def activate(form, all_forms: Sequence) -> None:
    """Make form the only active one among all_forms."""
    check_activation(form)
    for other in all_forms:
        if other is not form:
            other.is_active = False
    form.is_active = True
    log.info("Form %s activated", getattr(form, "id", None))


# ─── Answer coercion ───────────────────────────────────────────────────────────

def coerce_answer(question: dict, raw: str) -> str:
    """
    Check a non-blank answer against its question type and return the text
    to store. Blank answers are stored as-is (unanswered).
    """
    answer = raw or ""
    if not answer.strip():
        return answer

    qtype = question.get("type", "long-text")
    qid = question.get("id", "")
    if qtype == "number":
        try:
            float(answer.strip())
        except ValueError:
            raise InvalidAnswerError(qid, "expected a number")
        return answer.strip()
    if qtype == "date":
        try:
            date.fromisoformat(answer.strip())
        except ValueError:
            raise InvalidAnswerError(qid, "expected a date (YYYY-MM-DD)")
        return answer.strip()

    max_length = question.get("max_length") or 0
    if max_length > 0 and len(answer) > max_length:
        raise InvalidAnswerError(qid, f"at most {max_length} characters allowed (has {len(answer)})")
    return answer
