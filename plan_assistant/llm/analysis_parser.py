# llm/analysis_parser.py
"""
Output contract for plan analysis.

Model output is decoded into a loose JSON structure first and then run
through an explicit validator. Only a fully validated AnalysisResult leaves
this module; anything else raises MalformedOutput or SchemaViolation naming
the offending field.
"""

import json
import math
from typing import Any, Dict

from loguru import logger
from pydantic import ValidationError

from .prompts import ANALYSIS_DIMENSIONS, AnalysisDimension
from ..errors import MalformedOutput, SchemaViolation
from ..schemas import AnalysisResult

MIN_DIMENSIONS = len(ANALYSIS_DIMENSIONS)
SCORE_MIN = 0
SCORE_MAX = 10

_DIMENSIONS_BY_KEY: Dict[str, AnalysisDimension] = {
    d.name.strip().lower(): d for d in ANALYSIS_DIMENSIONS
}


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def decode_output(text: str) -> Any:
    """
    Decode raw model text strictly as JSON

    Raises:
        MalformedOutput: If the text is not valid JSON
    """
    try:
        return json.loads(text)
    except (TypeError, json.JSONDecodeError) as e:
        logger.error(f"Failed to parse LLM JSON response: {e}")
        logger.debug(f"LLM raw response: {str(text)[:1000]}")
        raise MalformedOutput(detail=str(e)) from e


def _check_score(field: str, value: Any, nullable: bool):
    if value is None:
        if not nullable:
            raise SchemaViolation(field, f"Score is required for this dimension (field: {field})")
        return
    if not _is_number(value):
        raise SchemaViolation(field, f"Score must be a number (field: {field})")
    if not SCORE_MIN <= value <= SCORE_MAX:
        raise SchemaViolation(field, f"Score must be between 0 and 10 (field: {field})")


def validate_analysis(data: Any) -> AnalysisResult:
    """
    Validate a decoded analysis object

    Checks top-level field types and ranges, at least 7 detailed entries,
    each entry's name/score/evaluation, that every required dimension is
    present, and that null scores only appear on non-scorable dimensions.

    Raises:
        SchemaViolation: With the path of the first failing field
    """
    if not isinstance(data, dict):
        raise SchemaViolation("$", "Analysis output must be a JSON object")

    for key in ("feasibilityScore", "reasonablenessScore"):
        if key not in data:
            raise SchemaViolation(key, f"Missing required field (field: {key})")
        _check_score(key, data[key], nullable=False)

    if not _is_text(data.get("overallSuggestions")):
        raise SchemaViolation(
            "overallSuggestions",
            "Suggestions must be a non-empty string (field: overallSuggestions)"
        )

    details = data.get("detailedAnalysis")
    if not isinstance(details, list):
        raise SchemaViolation(
            "detailedAnalysis",
            "Detailed analysis must be an array (field: detailedAnalysis)"
        )
    if len(details) < MIN_DIMENSIONS:
        raise SchemaViolation(
            "detailedAnalysis",
            f"Detailed analysis must have at least {MIN_DIMENSIONS} entries, "
            f"got {len(details)} (field: detailedAnalysis)"
        )

    normalized = []
    seen = set()
    for i, item in enumerate(details):
        path = f"detailedAnalysis[{i}]"
        if not isinstance(item, dict):
            raise SchemaViolation(path, f"Entry must be an object (field: {path})")

        name = item.get("dimensionName")
        if not _is_text(name):
            raise SchemaViolation(
                f"{path}.dimensionName",
                f"Dimension name must be a non-empty string (field: {path}.dimensionName)"
            )

        dimension = _DIMENSIONS_BY_KEY.get(name.strip().lower())
        nullable = dimension is None or not dimension.scorable
        _check_score(f"{path}.score", item.get("score"), nullable=nullable)

        if not _is_text(item.get("evaluation")):
            raise SchemaViolation(
                f"{path}.evaluation",
                f"Evaluation must be a non-empty string (field: {path}.evaluation)"
            )

        if dimension is not None:
            seen.add(dimension.name)
        normalized.append({
            "dimensionName": dimension.name if dimension else name.strip(),
            "score": item.get("score"),
            "evaluation": item["evaluation"]
        })

    missing = [d.name for d in ANALYSIS_DIMENSIONS if d.name not in seen]
    if missing:
        raise SchemaViolation(
            "detailedAnalysis",
            f"Missing required dimension(s): {', '.join(missing)} (field: detailedAnalysis)"
        )

    try:
        return AnalysisResult.model_validate({
            "feasibilityScore": data["feasibilityScore"],
            "reasonablenessScore": data["reasonablenessScore"],
            "overallSuggestions": data["overallSuggestions"],
            "detailedAnalysis": normalized
        })
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "$"
        raise SchemaViolation(field, detail=str(e)) from e


def parse_analysis_output(text: str) -> AnalysisResult:
    """Decode and validate raw model text in one step"""
    return validate_analysis(decode_output(text))
