"""Set-level prompt building and response parsing.

A set is evaluated in one multi-image call: the vision model sees all K
photos at once and answers with ``SET_SCORE`` / ``PHOTO_ROLE`` lines.
"""

import re
from typing import Dict, List, Optional, Sequence

import structlog

from photo_judge.models.scoring import CriteriaPrompt, Criterion
from photo_judge.models.sets import SetAnalysis, SetCriterionScore, SetPhotoScore

logger = structlog.get_logger()

DEFAULT_SET_CRITERIA = [
    Criterion(
        name="Visual Coherence",
        weight=25,
        description=(
            "Consistency of style, color palette, tonal quality, and aesthetic "
            "approach across all photos"
        ),
    ),
    Criterion(
        name="Thematic Dialogue",
        weight=30,
        description=(
            "How the photos converse with each other, building upon or "
            "contrasting themes meaningfully"
        ),
    ),
    Criterion(
        name="Narrative Arc",
        weight=25,
        description=(
            "Whether the set tells a story or creates a journey from first to "
            "last photo"
        ),
    ),
    Criterion(
        name="Complementarity",
        weight=20,
        description="How each photo adds unique value to the set without redundancy",
    ),
]

SET_RECOMMENDATIONS = ("Strong Set", "Good Set", "Needs Work", "Weak Set")

_SET_SCORE_PATTERN = re.compile(
    r"SET_SCORE:\s*(.+?):\s*(\d+(?:\.\d+)?)\s*/\s*10[ \t]*-?[ \t]*([^\n]*)",
    re.IGNORECASE,
)
_ROLE_PATTERN = re.compile(r"PHOTO_ROLE:\s*(Photo \d+):\s*([^\n]*)", re.IGNORECASE)
_ORDER_PATTERN = re.compile(r"SUGGESTED_ORDER:\s*([\d,\s]+)", re.IGNORECASE)
_RECOMMENDATION_PATTERN = re.compile(r"SET_RECOMMENDATION:\s*([^\n]+)", re.IGNORECASE)
_WEAKEST_PATTERN = re.compile(r"WEAKEST LINK:\s*([^\n]*)", re.IGNORECASE)


def build_set_prompt(
    criteria_prompt: CriteriaPrompt,
    set_size: int,
    set_criteria: Optional[Sequence[Criterion]] = None,
    individual_results: Sequence[SetPhotoScore] = (),
) -> str:
    """Build the curator prompt for one candidate set.

    Args:
        criteria_prompt: Batch prompt (title and theme are reused)
        set_size: Number of photos sent with the prompt
        set_criteria: Set criteria, defaults to ``DEFAULT_SET_CRITERIA``
        individual_results: Individual scores, in photo order, for context

    Returns:
        Prompt text
    """
    criteria = list(set_criteria or DEFAULT_SET_CRITERIA)
    title = criteria_prompt.title or "Photography Competition"

    lines = [
        "You are an expert photography exhibition curator evaluating a SET of "
        f"{set_size} photographs for a cohesive group submission.",
        "",
        f"**Exhibition**: {title}",
        f"**Theme**: {criteria_prompt.theme}",
        "",
        f"You are viewing {set_size} photographs that are being considered as a "
        "cohesive set for exhibition.",
        "Photo 1 is the first image, Photo 2 is the second, and so on.",
        "",
        "Your task is to evaluate these photos AS A GROUP: how well they work "
        "together, their visual dialogue, and their collective impact.",
        "",
        "---",
        "",
        "**SET EVALUATION CRITERIA**:",
    ]
    for criterion in criteria:
        description = criterion.description or "No description provided"
        lines.append(f"- **{criterion.name}** ({criterion.weight:g}%): {description}")

    if individual_results:
        lines += ["", "---", "", "**INDIVIDUAL PHOTO CONTEXT** (previously scored):"]
        for index, result in enumerate(individual_results, start=1):
            lines.append(
                f"- Photo {index} ({result.filename}): "
                f"Individual score {result.score:.1f}/10"
            )

    lines += [
        "",
        "---",
        "",
        "**RESPONSE FORMAT** (follow this format exactly):",
        "",
        "SET OVERVIEW:",
        "[2-3 sentences about the set as a whole]",
        "",
        "SET SCORES:",
    ]
    lines += [f"SET_SCORE: {c.name}: X/10 - [reasoning]" for c in criteria]
    lines += ["", "PHOTO ROLES:"]
    lines += [
        f"PHOTO_ROLE: Photo {i}: [role this photo plays in the set]"
        for i in range(1, set_size + 1)
    ]
    lines += [
        "",
        "SUGGESTED_ORDER: [comma-separated numbers for optimal viewing order, "
        "e.g., 1, 3, 2, 4]",
        "",
        "SET STRENGTHS:",
        "- [strength 1]",
        "- [strength 2]",
        "",
        "SET WEAKNESSES:",
        "- [weakness 1]",
        "",
        "WEAKEST LINK: Photo [N] - [why this photo weakens the set]",
        "REPLACEMENT SUGGESTION: [what kind of photo would strengthen the set]",
        "",
        f"SET_RECOMMENDATION: [{' / '.join(SET_RECOMMENDATIONS)}]",
    ]
    return "\n".join(lines) + "\n"


def parse_set_response(
    analysis_text: str, set_criteria: Optional[Sequence[Criterion]] = None
) -> SetAnalysis:
    """Parse a set evaluation answer.

    Every configured criterion appears in the result; criteria the model
    did not score keep 0. Score lines for unknown criteria are ignored.

    Args:
        analysis_text: Raw model output
        set_criteria: Criteria the set was evaluated against

    Returns:
        SetAnalysis
    """
    criteria = list(set_criteria or DEFAULT_SET_CRITERIA)
    set_scores: Dict[str, SetCriterionScore] = {
        c.name: SetCriterionScore(score=0, weight=c.weight) for c in criteria
    }
    canonical = {c.name.lower(): c.name for c in criteria}

    for match in _SET_SCORE_PATTERN.finditer(analysis_text):
        name = canonical.get(match.group(1).strip().lower())
        if name is None:
            continue
        score = max(0.0, min(10.0, float(match.group(2))))
        set_scores[name] = SetCriterionScore(
            score=score,
            weight=set_scores[name].weight,
            reasoning=match.group(3).strip(),
        )

    photo_roles = {
        m.group(1).strip(): m.group(2).strip()
        for m in _ROLE_PATTERN.finditer(analysis_text)
    }

    suggested_order: List[int] = []
    order = _ORDER_PATTERN.search(analysis_text)
    if order:
        suggested_order = [
            int(part) for part in re.split(r"[,\s]+", order.group(1)) if part.isdigit()
        ]

    recommendation = _RECOMMENDATION_PATTERN.search(analysis_text)
    weakest = _WEAKEST_PATTERN.search(analysis_text)

    return SetAnalysis(
        set_scores=set_scores,
        photo_roles=photo_roles,
        suggested_order=suggested_order,
        recommendation=recommendation.group(1).strip() if recommendation else "",
        weakest_link=weakest.group(1).strip() if weakest else "",
        full_analysis=analysis_text,
    )
