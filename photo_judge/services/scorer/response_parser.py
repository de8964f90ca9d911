"""Parse free-text vision model answers into structured scores."""

import re
from typing import Dict, List, Optional

import structlog

from photo_judge.analysis.statistics import round_half_up
from photo_judge.models.scoring import (
    CriteriaPrompt,
    CriterionScore,
    PhotoScores,
    ScoreSummary,
)

logger = structlog.get_logger()

DEFAULT_WEIGHT = 20.0

_SCORE_PATTERN = re.compile(
    r"SCORE:\s*([^:\n]+):\s*(\d+(?:\.\d+)?)\s*/\s*10(?:[ \t]*[-:][ \t]*([^\n]*))?",
    re.IGNORECASE,
)
_ALT_SCORE_PATTERN = re.compile(
    r"(\w+(?:[ \t]+\w+)?)[ \t]*[:=][ \t]*(\d+)[ \t]*(?:/10|out of 10)?",
    re.IGNORECASE,
)
_RECOMMENDATION_PATTERN = re.compile(
    r"(?:final\s+)?recommendation[:\s]+([^\n]+)", re.IGNORECASE
)
_STRENGTHS_PATTERN = re.compile(
    r"STRENGTHS?:\s*(.*?)(?=IMPROVEMENT|$)", re.IGNORECASE | re.DOTALL
)
_IMPROVEMENTS_PATTERN = re.compile(
    r"IMPROVEMENTS?:\s*(.*?)(?=Final|$)", re.IGNORECASE | re.DOTALL
)


def _clamp_score(value: float) -> float:
    return max(1.0, min(10.0, value))


def _bullets(block: str) -> List[str]:
    items = []
    for line in block.splitlines():
        stripped = line.strip()
        if stripped.startswith("-"):
            item = stripped.lstrip("-").strip()
            if item:
                items.append(item)
    return items


def weighted_average(individual: Dict[str, CriterionScore]) -> Optional[float]:
    """Weight-averaged score rounded to 1 decimal, None without weights."""
    weighted = [(s.score, s.weight) for s in individual.values() if s.weight > 0]
    total_weight = sum(w for _, w in weighted)
    if total_weight <= 0:
        return None
    return round_half_up(sum(score * w for score, w in weighted) / total_weight, 1)


def simple_average(individual: Dict[str, CriterionScore]) -> Optional[float]:
    if not individual:
        return None
    return round_half_up(
        sum(s.score for s in individual.values()) / len(individual), 1
    )


def parse_analysis_response(
    analysis_text: str, criteria_prompt: CriteriaPrompt
) -> PhotoScores:
    """Extract criterion scores, summary and feedback from a model answer.

    Criterion names are matched case-insensitively against the prompt's
    criteria to recover the canonical name and weight; unknown names are
    kept with the default weight. When no ``SCORE:`` lines are present a
    looser ``name: n`` pattern is tried. An answer with no usable score
    yields empty ``individual`` scores rather than an error.

    Args:
        analysis_text: Raw model output
        criteria_prompt: Prompt the photo was scored against

    Returns:
        PhotoScores
    """
    by_name = {c.name.lower(): c for c in criteria_prompt.criteria}
    individual: Dict[str, CriterionScore] = {}

    for match in _SCORE_PATTERN.finditer(analysis_text):
        raw_name = match.group(1).strip()
        score = _clamp_score(float(match.group(2)))
        reasoning = (match.group(3) or "").strip()

        criterion = by_name.get(raw_name.lower())
        if criterion is not None:
            individual[criterion.name] = CriterionScore(
                score=score,
                weight=criterion.weight or DEFAULT_WEIGHT,
                reasoning=reasoning,
            )
        else:
            individual[raw_name] = CriterionScore(
                score=score, weight=DEFAULT_WEIGHT, reasoning=reasoning
            )

    if not individual:
        for match in _ALT_SCORE_PATTERN.finditer(analysis_text):
            score = int(match.group(2))
            if 1 <= score <= 10:
                individual[match.group(1).strip()] = CriterionScore(
                    score=score, weight=DEFAULT_WEIGHT
                )

    if not individual:
        logger.warning("no_scores_parsed", length=len(analysis_text))

    summary = ScoreSummary(
        weighted_average=weighted_average(individual),
        average=simple_average(individual),
    )
    recommendation = _RECOMMENDATION_PATTERN.search(analysis_text)
    if recommendation:
        summary.recommendation = recommendation.group(1).strip()

    strengths = _STRENGTHS_PATTERN.search(analysis_text)
    improvements = _IMPROVEMENTS_PATTERN.search(analysis_text)

    return PhotoScores(
        individual=individual,
        summary=summary,
        strengths=_bullets(strengths.group(1)) if strengths else [],
        improvements=_bullets(improvements.group(1)) if improvements else [],
        full_analysis=analysis_text,
    )
