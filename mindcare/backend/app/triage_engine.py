from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Sequence

PHQ9_ITEM_COUNT = 9
GAD7_ITEM_COUNT = 7
MIN_ITEM_VALUE = 0
MAX_ITEM_VALUE = 3
SELF_HARM_ITEM_INDEX = 8

PHQ9_CRISIS_ABOVE = 19
GAD7_CRISIS_ABOVE = 14
PHQ9_ELEVATED_ABOVE = 9
GAD7_ELEVATED_ABOVE = 9

PHQ9_QUESTIONS = [
    "Little interest or pleasure in doing things",
    "Feeling down, depressed, or hopeless",
    "Trouble falling or staying asleep, or sleeping too much",
    "Feeling tired or having little energy",
    "Poor appetite or overeating",
    "Feeling bad about yourself, or that you are a failure or have let yourself or your family down",
    "Trouble concentrating on things, such as reading or watching television",
    "Moving or speaking so slowly that other people could have noticed, or being so fidgety or restless that you have been moving around a lot more than usual",
    "Thoughts that you would be better off dead, or of hurting yourself in some way",
]

GAD7_QUESTIONS = [
    "Feeling nervous, anxious, or on edge",
    "Not being able to stop or control worrying",
    "Worrying too much about different things",
    "Trouble relaxing",
    "Being so restless that it is hard to sit still",
    "Becoming easily annoyed or irritable",
    "Feeling afraid as if something awful might happen",
]

ANSWER_OPTIONS = [
    {"value": 0, "label": "Not at all"},
    {"value": 1, "label": "Several days"},
    {"value": 2, "label": "More than half the days"},
    {"value": 3, "label": "Nearly every day"},
]

# (upper bound inclusive, label)
PHQ9_SEVERITY_BANDS = [
    (4, "minimal"),
    (9, "mild"),
    (14, "moderate"),
    (19, "moderately_severe"),
    (27, "severe"),
]

GAD7_SEVERITY_BANDS = [
    (4, "minimal"),
    (9, "mild"),
    (14, "moderate"),
    (21, "severe"),
]


class InvalidInput(ValueError):
    """Raised when a questionnaire answer sequence cannot be triaged."""


class RiskLevel(str, Enum):
    CRISIS = "crisis"
    ELEVATED = "elevated"
    LOW = "low"


@dataclass(frozen=True)
class AssessmentResult:
    phq9_answers: tuple
    gad7_answers: tuple
    phq9_score: int
    gad7_score: int

    @property
    def self_harm_answer(self) -> int:
        return self.phq9_answers[SELF_HARM_ITEM_INDEX]


@dataclass
class TriageOutcome:
    result: AssessmentResult
    risk_level: RiskLevel
    phq9_severity: str
    gad7_severity: str
    destination: str
    reasons: List[str] = field(default_factory=list)


def _validate_answers(answers: Sequence[int], expected: int, name: str) -> tuple:
    if answers is None or isinstance(answers, (str, bytes)):
        raise InvalidInput(f"{name} answers must be a sequence of {expected} integers")
    values = tuple(answers)
    if len(values) != expected:
        raise InvalidInput(f"{name} requires exactly {expected} answers, got {len(values)}")
    for position, value in enumerate(values, start=1):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidInput(f"{name} item {position} must be an integer")
        if value < MIN_ITEM_VALUE or value > MAX_ITEM_VALUE:
            raise InvalidInput(
                f"{name} item {position} must be between {MIN_ITEM_VALUE} and {MAX_ITEM_VALUE}, got {value}"
            )
    return values


def assess(phq9: Sequence[int], gad7: Sequence[int]) -> AssessmentResult:
    """Validate both answer sequences and derive their scores.

    Scores are always recomputed from the answers so a caller cannot supply a
    total that disagrees with them.
    """
    phq9_values = _validate_answers(phq9, PHQ9_ITEM_COUNT, "PHQ-9")
    gad7_values = _validate_answers(gad7, GAD7_ITEM_COUNT, "GAD-7")
    return AssessmentResult(
        phq9_answers=phq9_values,
        gad7_answers=gad7_values,
        phq9_score=sum(phq9_values),
        gad7_score=sum(gad7_values),
    )


def classify_result(result: AssessmentResult) -> RiskLevel:
    # Order matters: the self-harm item is checked alongside the crisis
    # thresholds, before any aggregate can settle on a lower level.
    if (
        result.phq9_score > PHQ9_CRISIS_ABOVE
        or result.gad7_score > GAD7_CRISIS_ABOVE
        or result.self_harm_answer > 0
    ):
        return RiskLevel.CRISIS
    if result.phq9_score > PHQ9_ELEVATED_ABOVE or result.gad7_score > GAD7_ELEVATED_ABOVE:
        return RiskLevel.ELEVATED
    return RiskLevel.LOW


def classify(phq9: Sequence[int], gad7: Sequence[int]) -> RiskLevel:
    return classify_result(assess(phq9, gad7))


def severity_band(score: int, bands: List[tuple]) -> str:
    for upper, label in bands:
        if score <= upper:
            return label
    return bands[-1][1]


def destination_for(level: RiskLevel) -> str:
    if level == RiskLevel.CRISIS:
        return "crisis"
    if level == RiskLevel.ELEVATED:
        return "results"
    return "selfhelp"


def explain(result: AssessmentResult) -> List[str]:
    reasons: List[str] = []
    if result.self_harm_answer > 0:
        reasons.append("Reported thoughts of self-harm")
    if result.phq9_score > PHQ9_CRISIS_ABOVE:
        reasons.append("Severe depression score")
    elif result.phq9_score > PHQ9_ELEVATED_ABOVE:
        reasons.append("Moderate depression score")
    if result.gad7_score > GAD7_CRISIS_ABOVE:
        reasons.append("Severe anxiety score")
    elif result.gad7_score > GAD7_ELEVATED_ABOVE:
        reasons.append("Moderate anxiety score")
    return reasons


def triage(phq9: Sequence[int], gad7: Sequence[int]) -> TriageOutcome:
    result = assess(phq9, gad7)
    level = classify_result(result)
    return TriageOutcome(
        result=result,
        risk_level=level,
        phq9_severity=severity_band(result.phq9_score, PHQ9_SEVERITY_BANDS),
        gad7_severity=severity_band(result.gad7_score, GAD7_SEVERITY_BANDS),
        destination=destination_for(level),
        reasons=explain(result),
    )
