"""Prompt text for single-photo evaluation."""

from photo_judge.models.config import DEFAULT_CRITERIA
from photo_judge.models.scoring import CriteriaPrompt

RECOMMENDATIONS = ("Strong Yes", "Yes", "Maybe", "No")


def build_analysis_prompt(criteria_prompt: CriteriaPrompt) -> str:
    """Build the juror prompt sent alongside one photo.

    The response format section asks for ``SCORE: <criterion>: <n>/10``
    lines, which ``parse_analysis_response`` relies on.

    Args:
        criteria_prompt: Frozen batch prompt (title, theme, criteria)

    Returns:
        Complete prompt text
    """
    criteria = criteria_prompt.criteria or DEFAULT_CRITERIA

    lines = [
        "You are an expert photography critic and competition juror. "
        "Analyze this photograph for a photography open call.",
        "",
    ]
    if criteria_prompt.title:
        lines.append(f"**Competition**: {criteria_prompt.title}")
    if criteria_prompt.theme:
        lines.append(f"**Theme**: {criteria_prompt.theme}")
    if criteria_prompt.evaluation_instructions:
        lines.append(f"**Context**: {criteria_prompt.evaluation_instructions}")

    lines += ["", "**Evaluation Criteria**:"]
    for criterion in criteria:
        weight = f" ({criterion.weight:g}%)" if criterion.weight else ""
        lines.append(f"- {criterion.name}{weight}: {criterion.description}")

    lines += [
        "",
        "**IMPORTANT INSTRUCTIONS**:",
        "1. Evaluate each criterion with a score from 1 to 10",
        '2. Use EXACT format: "SCORE: [criterion name]: [number]/10"',
        "3. Provide a brief justification for each score",
        "4. Identify the main strengths",
        "5. Suggest areas for improvement",
        f"6. Conclude with a recommendation: {' / '.join(RECOMMENDATIONS)}",
        "",
        "**RESPONSE FORMAT**:",
        "",
        "OVERALL ASSESSMENT:",
        "[Brief overall assessment in 2-3 sentences]",
        "",
        "SCORES:",
    ]
    lines += [f"SCORE: {c.name}: [X]/10 - [justification]" for c in criteria]
    lines += [
        "",
        "STRENGTHS:",
        "- [strength 1]",
        "- [strength 2]",
        "",
        "IMPROVEMENTS:",
        "- [suggestion 1]",
        "- [suggestion 2]",
        "",
        f"Final recommendation: [{' / '.join(RECOMMENDATIONS)}]",
    ]
    return "\n".join(lines) + "\n"
