"""
Langchain Prompt Templates
Defines prompts for Plan Analysis and the Plan Assistant
"""

import json
from dataclasses import dataclass
from typing import List, Optional

from langchain_core.prompts import PromptTemplate

from ..schemas import Plan


# ============================================
# Analysis Dimensions
# ============================================

@dataclass(frozen=True)
class AnalysisDimension:
    name: str
    rubric: str
    scorable: bool = True


ANALYSIS_DIMENSIONS: List[AnalysisDimension] = [
    AnalysisDimension(
        name="Itinerary Density & Pace",
        rubric=(
            "Judge whether the itinerary is too packed or too loose and whether the daily "
            "load is balanced. If there is a problem, propose an adjustment, e.g. "
            "'Move activity A to day B to leave more time for C'."
        )
    ),
    AnalysisDimension(
        name="Transportation & Connections",
        rubric=(
            "Judge whether the transport modes are suitable, economical and efficient and "
            "whether transfers between places are smooth. If transport is missing or "
            "problematic, be specific, e.g. 'From X to Y take metro line Z, about N minutes'."
        )
    ),
    AnalysisDimension(
        name="Accommodation (if mentioned)",
        rubric=(
            "If lodging type or location is mentioned, judge whether it fits (location, "
            "access to transport). If it is missing or unsuitable, say that lodging must be "
            "planned and suggest suitable areas. Use null for the score when not mentioned."
        ),
        scorable=False
    ),
    AnalysisDimension(
        name="Budget Considerations (if mentioned)",
        rubric=(
            "If a budget is mentioned, judge whether it is realistic. If it is missing or "
            "unrealistic, say a budget is needed or how to rebalance spending. Use null for "
            "the score when not mentioned."
        ),
        scorable=False
    ),
    AnalysisDimension(
        name="Activity Variety & Depth",
        rubric=(
            "Judge whether activities are varied (sightseeing, culture, leisure, food) and "
            "whether there is time to experience them in depth. If lacking, suggest which "
            "kinds of activity to add or how to deepen the experience."
        )
    ),
    AnalysisDimension(
        name="Potential Risks & Safety Tips",
        rubric=(
            "Point out risks for the destination and activities (weather, safety, health, "
            "booking requirements) with concrete tips, e.g. 'Summer in X is hot, carry water' "
            "or 'Site Y requires an online reservation'. The score is always null."
        ),
        scorable=False
    ),
    AnalysisDimension(
        name="Information Completeness",
        rubric=(
            "Judge whether the plan gives enough information for a full analysis and name "
            "the missing key facts (dates, party size, budget, preferences), explaining why "
            "each one matters."
        )
    ),
]

REQUIRED_DIMENSION_NAMES = [d.name for d in ANALYSIS_DIMENSIONS]


# ============================================
# Plan Analysis Prompt
# ============================================

ANALYSIS_SYSTEM_PROMPT = (
    "You are an experienced, meticulous travel plan analyst. Analyze the user's travel "
    "plan thoroughly and return your evaluation as a strict JSON object. Be objective "
    "and constructive and help the user improve the plan. Follow the requested JSON "
    "structure exactly and do not output any text outside the JSON object."
)

ANALYSIS_PROMPT = PromptTemplate(
    input_variables=["title", "content", "dimensions", "short_content_instruction"],
    template="""Carefully analyze the following travel plan:
---
Plan title: {title}
Plan content:
{content}
---

Return a single JSON object with these top-level fields:

1. "feasibilityScore": number from 0 to 10. How executable the plan is in practice: time allocation, season, transport connections, budget (if mentioned). 10 means highly feasible.
2. "reasonablenessScore": number from 0 to 10. How logical and well paced the itinerary is and whether the mix of activities fits. 10 means highly reasonable.
3. "overallSuggestions": string with overall improvement advice.
   * Give at least 3 suggestions.
   * Every suggestion must be highly actionable. Instead of "add cultural experiences", write "visit museum X on the afternoon of day 2, about 2 hours".
   * Name the plan's highlights, if any.
   * Every weakness you point out must come with at least one concrete fix.
   * At least 80 words in total.
4. "detailedAnalysis": a JSON array with one object per dimension below. Each object has "dimensionName" (string, exactly as listed), "score" (number 0-10, or null only where the dimension below allows it) and "evaluation" (string, at least 30 words). If an evaluation is not entirely positive it must contain at least one concrete, actionable improvement.
   The array must contain an object for every one of these dimensions:
{dimensions}
{short_content_instruction}
Output format example:
{{"feasibilityScore": 7, "reasonablenessScore": 6, "overallSuggestions": "...", "detailedAnalysis": [{{"dimensionName": "...", "score": 7, "evaluation": "..."}}]}}

Output only the JSON object, with no markdown fences and no deviation from this structure."""
)

SHORT_CONTENT_INSTRUCTION = """
The plan text is very short or lacks information. Give low scores (for example 1-3) across the board, state the missing information explicitly in the "evaluation" fields and in "overallSuggestions", and tell the user which core facts to add (destination, number of days, main activities) for a more accurate analysis.
"""

NO_CONTENT_PLACEHOLDER = "No detailed content provided."


def format_dimensions() -> str:
    lines = []
    for dimension in ANALYSIS_DIMENSIONS:
        score_hint = "0-10" if dimension.scorable else "0-10 or null"
        lines.append(
            f'   - {{"dimensionName": "{dimension.name}", "score": ({score_hint}), '
            f'"evaluation": "{dimension.rubric}"}}'
        )
    return "\n".join(lines)


def build_analysis_prompt(plan: Plan, short_content_threshold: int) -> str:
    """
    Render the user prompt for a plan analysis

    Args:
        plan: Plan to analyze (title and content are embedded verbatim)
        short_content_threshold: Content shorter than this many characters
            triggers the low-score instruction
    """
    content = plan.content or ""
    is_short = len(content.strip()) < short_content_threshold

    return ANALYSIS_PROMPT.format(
        title=plan.title,
        content=content if content.strip() else NO_CONTENT_PLACEHOLDER,
        dimensions=format_dimensions(),
        short_content_instruction=SHORT_CONTENT_INSTRUCTION if is_short else ""
    )


# ============================================
# Plan Assistant Prompt
# ============================================

NOT_ANALYZED = "not analyzed"

ASSISTANT_SYSTEM_PROMPT = PromptTemplate(
    input_variables=[
        "title", "content", "feasibility_score", "reasonableness_score",
        "suggestions", "analysis_details"
    ],
    template="""You are a helpful travel plan advisor. Using the user's travel plan (the original plan and a summary of the earlier analysis) and the conversation so far, hold a natural, friendly and constructive multi-turn conversation that helps the user refine the plan.

Current travel plan:
Title: {title}
Content: {content}

Earlier analysis summary (if any):
Feasibility score: {feasibility_score}
Reasonableness score: {reasonableness_score}
Overall suggestions: {suggestions}
Detailed analysis: {analysis_details}

Focus the conversation on:
1. Answering the user's questions about the current plan.
2. Giving concrete, actionable revisions wherever the user is unsure or unhappy.
3. Helping the user evaluate new ideas and fit them into the existing plan.
4. Keeping the conversation coherent and making full use of the history.
5. Pointing out gently when an idea is not feasible or reasonable, and offering an alternative.
6. Speaking warmly and patiently, like an experienced friend giving advice, with a consistent tone."""
)


def _display(value: Optional[object]) -> str:
    if value is None or value == "":
        return NOT_ANALYZED
    return str(value)


def build_assistant_system_prompt(plan: Plan) -> str:
    """Render the assistant system prompt for a plan"""
    if plan.analysis_details:
        details = json.dumps(
            [d.model_dump(by_alias=True) for d in plan.analysis_details],
            ensure_ascii=False
        )
    else:
        details = NOT_ANALYZED

    return ASSISTANT_SYSTEM_PROMPT.format(
        title=plan.title,
        content=plan.content or "No text content provided.",
        feasibility_score=_display(plan.feasibility_score),
        reasonableness_score=_display(plan.reasonableness_score),
        suggestions=_display(plan.suggestions),
        analysis_details=details
    )


# ============================================
# Retrieval Context Messages
# ============================================

RAG_CONTEXT_HEADER = (
    "To give more complete advice, here is some possibly relevant background from the "
    "knowledge base. Treat it as optional reference:"
)

RAG_NO_CONTEXT = "(No additional relevant information was found in the knowledge base this time.)"
