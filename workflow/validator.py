"""
Answer validator: checks one answer against its question's natural-language rule.

Two implementations share the AnswerValidator interface:
  - RemoteValidator: asks the language model, falls back on any failure
  - FallbackAnalyzer: deterministic, rule-keyword based analysis

validate_answer() never raises for a non-empty answer: transport, timeout and
parse failures are absorbed into the fallback. Blank answers are rejected by
the caller before invocation.
"""

import asyncio
import json
import logging
import os
import re
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError

from database.schemas import ValidationResult
from workflow import gpt_client
from workflow.errors import ValidationTransportError

log = logging.getLogger(__name__)

CONFORME = "Conforme"
A_AMELIORER = "À améliorer"
NON_CONFORME = "Non conforme"

VALIDATION_TIMEOUT_SECONDS = float(os.getenv("VALIDATION_TIMEOUT_SECONDS", "30"))

# Thresholds of the deterministic analyzer
NON_CONFORME_IMPROVEMENTS = 3
DETAILED_WORD_COUNT = 50
INFORMATIVE_CHAR_COUNT = 200

SUGGESTION_REVISE = (
    "Veuillez réviser votre réponse en tenant compte des points d'amélioration mentionnés."
)
SUGGESTION_ADJUST = "Quelques ajustements permettraient d'améliorer votre réponse."
DEFAULT_POSITIVE = "La réponse a été fournie"
DEFAULT_IMPROVEMENT = "Des détails supplémentaires pourraient enrichir la réponse"

_WORD_RULE_RE = re.compile(r"(\d+)\s*mots")


# ─── Prompts ───────────────────────────────────────────────────────────────────

SYSTEM_PROMPT = """Tu es un expert en validation de plans de cours. Tu dois analyser la réponse d'un enseignant selon une règle de validation précise.

Tu dois toujours répondre en JSON avec exactement ce format:
{
  "status": "Conforme" | "À améliorer" | "Non conforme",
  "positives": ["point positif 1", "point positif 2"],
  "improvements": ["point à améliorer 1", "point à améliorer 2"],
  "suggestion": "suggestion de correction si nécessaire ou null"
}

Critères de statut:
- "Conforme": La réponse respecte tous les critères de la règle
- "À améliorer": La réponse respecte partiellement les critères
- "Non conforme": La réponse ne respecte pas les critères essentiels

Sois constructif et bienveillant dans tes commentaires."""

USER_PROMPT = """Question: {title}

Règle de validation: {rule}

Réponse de l'enseignant:
{answer}

Analyse cette réponse et fournis ton évaluation en JSON."""

REQUIRED_KEYS = ("status", "positives", "improvements", "suggestion")


def _ensure_feedback(result: ValidationResult) -> ValidationResult:
    """Positives are never empty; a non-compliant result always lists an improvement."""
    positives = list(result.positives) or [DEFAULT_POSITIVE]
    improvements = list(result.improvements or [])
    if not improvements and result.status != CONFORME:
        improvements.append(DEFAULT_IMPROVEMENT)
    return ValidationResult(
        status=result.status,
        positives=positives,
        improvements=improvements or None,
        suggestion=result.suggestion,
    )


class AnswerValidator:
    """Common interface of the remote and deterministic validators."""

    async def validate(self, question: dict, answer: str) -> ValidationResult:
        raise NotImplementedError


# ─── Deterministic analyzer ────────────────────────────────────────────────────

class FallbackAnalyzer(AnswerValidator):
    """Rule-keyword analysis used when the language model is unavailable."""

    def analyze(self, question: dict, answer: str) -> ValidationResult:
        word_count = len(answer.split())
        char_count = len(answer)
        answer_lower = answer.lower()

        positives = []
        improvements = []

        min_length = question.get("min_length") or 0
        if min_length > 0 and char_count < min_length:
            improvements.append(
                f"La réponse devrait contenir au moins {min_length} caractères (actuellement {char_count})"
            )

        rule = (question.get("ai_rule") or "").lower()

        word_match = _WORD_RULE_RE.search(rule)
        if word_match:
            min_words = int(word_match.group(1))
            if word_count >= min_words:
                positives.append(f"La réponse contient {word_count} mots (minimum requis: {min_words})")
            else:
                improvements.append(
                    f"La réponse devrait contenir au moins {min_words} mots (actuellement {word_count})"
                )

        if "objectif" in rule:
            if "objectif" in answer_lower or "but" in answer_lower:
                positives.append("Les objectifs sont mentionnés")
            else:
                improvements.append("Les objectifs d'apprentissage devraient être explicitement mentionnés")

        if "pédagogique" in rule or "approche" in rule:
            if "pédagog" in answer_lower or "méthode" in answer_lower:
                positives.append("L'approche pédagogique est abordée")
            else:
                improvements.append("L'approche pédagogique devrait être décrite")

        if "évaluation" in rule:
            if "évaluation" in answer_lower or "%" in answer_lower:
                positives.append("Les méthodes d'évaluation sont présentes")
            else:
                improvements.append("Les méthodes d'évaluation devraient être détaillées")

        if word_count >= DETAILED_WORD_COUNT and not positives:
            positives.append("La réponse est suffisamment détaillée")
        if char_count >= INFORMATIVE_CHAR_COUNT:
            positives.append("La réponse fournit une bonne quantité d'informations")

        if len(improvements) >= NON_CONFORME_IMPROVEMENTS:
            status, suggestion = NON_CONFORME, SUGGESTION_REVISE
        elif improvements:
            status, suggestion = A_AMELIORER, SUGGESTION_ADJUST
        else:
            status, suggestion = CONFORME, None

        return _ensure_feedback(ValidationResult(
            status=status,
            positives=positives,
            improvements=improvements,
            suggestion=suggestion,
        ))

    async def validate(self, question: dict, answer: str) -> ValidationResult:
        return self.analyze(question, answer)


# ─── Remote validator ──────────────────────────────────────────────────────────

def parse_remote_payload(raw: str) -> ValidationResult:
    """
    Extract the JSON object embedded in the model's reply (prose around it is
    tolerated) and validate it. Raises ValidationTransportError on any defect.
    """
    text = (raw or "").strip()
    start = text.find("{")
    end = text.rfind("}") + 1
    if start == -1 or end <= start:
        raise ValidationTransportError("no JSON object in model reply")
    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError as exc:
        raise ValidationTransportError(f"malformed JSON in model reply: {exc}") from exc
    if not isinstance(data, dict):
        raise ValidationTransportError("model reply is not a JSON object")
    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise ValidationTransportError(f"model reply lacks keys: {', '.join(missing)}")
    try:
        result = ValidationResult(**{key: data[key] for key in REQUIRED_KEYS})
    except ValidationError as exc:
        raise ValidationTransportError(f"model reply has invalid values: {exc}") from exc
    return _ensure_feedback(result)


CompleteFn = Callable[[str, str], Awaitable[str]]


class RemoteValidator(AnswerValidator):
    """One attempt at the language model; any failure yields the fallback analysis."""

    def __init__(
        self,
        complete: Optional[CompleteFn] = None,
        fallback: Optional[FallbackAnalyzer] = None,
        timeout: float = VALIDATION_TIMEOUT_SECONDS,
    ):
        self._complete = complete or gpt_client.complete
        self._fallback = fallback or FallbackAnalyzer()
        self._timeout = timeout

    async def _ask_model(self, question: dict, answer: str) -> ValidationResult:
        prompt = USER_PROMPT.format(
            title=question.get("title", ""),
            rule=question.get("ai_rule", ""),
            answer=answer,
        )
        try:
            raw = await asyncio.wait_for(self._complete(SYSTEM_PROMPT, prompt), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise ValidationTransportError(f"model call timed out after {self._timeout}s") from exc
        except Exception as exc:
            # SDK, HTTP and configuration failures all count as one remote failure
            raise ValidationTransportError(f"model call failed: {exc}") from exc
        return parse_remote_payload(raw)

    async def validate(self, question: dict, answer: str) -> ValidationResult:
        try:
            return await self._ask_model(question, answer)
        except ValidationTransportError as exc:
            log.warning("Remote validation failed for question %s, using fallback: %s",
                        question.get("id"), exc)
            return self._fallback.analyze(question, answer)


# ─── Entry point ───────────────────────────────────────────────────────────────

def get_answer_validator() -> AnswerValidator:
    """Remote validator when an API key is configured, deterministic analyzer otherwise."""
    if gpt_client.is_configured():
        return RemoteValidator()
    log.warning("OPENAI_API_KEY not configured; answers are checked by the fallback analyzer")
    return FallbackAnalyzer()


async def validate_answer(
    question: dict,
    answer: str,
    validator: Optional[AnswerValidator] = None,
) -> ValidationResult:
    validator = validator or get_answer_validator()
    return await validator.validate(question, answer)
