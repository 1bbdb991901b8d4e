"""
Escalation of borderline submissions to a text-completion model.

The completion client is constructed explicitly and injected, so tests
can pass a stub. Responses are parsed in two stages: pull out the first
balanced JSON object, then validate its shape strictly. Any failure along
the way yields a conservative "flag for manual review" decision.
"""

import json
from typing import Any, Optional

from .constants import (
    CLEAR_MATCH_NAME_THRESHOLD,
    CLEAR_MATCH_DISTANCE_METERS,
    CLEAR_MISMATCH_NAME_THRESHOLD,
    CLEAR_MISMATCH_DISTANCE_METERS,
    DEFAULT_MODEL,
    DEFAULT_MAX_TOKENS,
)
from .logger import get_logger
from .models import AdjudicationDecision, Coordinate
from .schema import validate_decision

logger = get_logger()

MANUAL_REVIEW_SUFFIX = " — flagged for manual review"


class AdjudicationMalformed(ValueError):
    """Raised when a completion response has no valid decision in it."""
    pass


class AnthropicCompletionClient:
    """Thin wrapper over the Anthropic Messages API."""

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, max_tokens: int = DEFAULT_MAX_TOKENS, client: Any = None):
        if client is None:
            import anthropic
            client = anthropic.Anthropic(api_key=api_key)
        self._client = client
        self.model = model
        self.max_tokens = max_tokens

    def complete(self, prompt: str) -> str:
        response = self._client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        texts = [
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        ]
        if not texts:
            raise AdjudicationMalformed("No text block in completion response")
        return "".join(texts).strip()


def build_completion_client(settings) -> Optional[AnthropicCompletionClient]:
    """Client from settings, or None when no API key is configured."""
    if not settings.anthropic_api_key:
        return None
    return AnthropicCompletionClient(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        max_tokens=settings.max_tokens,
    )


def extract_json_object(text: str) -> str:
    """
    Return the first balanced {...} substring of text.

    Braces inside JSON string literals are ignored, so prose or code
    fences around the object are tolerated.

    Raises:
        AdjudicationMalformed: If no complete object is present
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    raise AdjudicationMalformed(f"No JSON object in response: {text[:200]!r}")


def parse_decision(text: str) -> AdjudicationDecision:
    """Extract and strictly validate a decision from completion text."""
    raw = extract_json_object(text)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise AdjudicationMalformed(f"Invalid JSON in response: {e}") from e

    errors = validate_decision(data)
    if errors:
        raise AdjudicationMalformed("Invalid decision format: " + "; ".join(errors))
    return AdjudicationDecision(approve=data["approve"], reasoning=data["reasoning"].strip())


def build_prompt(
    submission_name: str,
    submission_location: Coordinate,
    extracted_name: str,
    extracted_address: str,
    extracted_location: Coordinate,
    name_score: float,
    distance_meters: int,
) -> str:
    return f"""You are a place verification assistant. A user submitted a place to our database, and we need to verify if it matches the Google Maps data.

## User Submission
- **Name**: "{submission_name}"
- **Pin Location**: ({submission_location.lat:.6f}, {submission_location.lng:.6f})

## Google Maps Data (from the link they provided)
- **Name**: "{extracted_name}"
- **Address**: "{extracted_address}"
- **Location**: ({extracted_location.lat:.6f}, {extracted_location.lng:.6f})

## Computed Metrics
- **Name Similarity**: {name_score:.1f}% (based on Levenshtein distance)
- **Distance Between Pins**: {distance_meters} meters

## Context
- Name similarity above {CLEAR_MATCH_NAME_THRESHOLD:g}% with distance under {CLEAR_MATCH_DISTANCE_METERS}m is a clear match
- Name similarity below {CLEAR_MISMATCH_NAME_THRESHOLD:g}% or distance over {CLEAR_MISMATCH_DISTANCE_METERS}m is a clear mismatch
- Name similarity of {CLEAR_MISMATCH_NAME_THRESHOLD:g}-{CLEAR_MATCH_NAME_THRESHOLD:g}% is borderline (could be abbreviation, typo, or different business)
- Distance of {CLEAR_MATCH_DISTANCE_METERS}-{CLEAR_MISMATCH_DISTANCE_METERS}m is borderline (could be imprecise pin drop or different location)
- Common reasons for mismatch: user typed informal name, Google has formal name, pin dropped on wrong building

## Your Task
Decide if this submission should be APPROVED (same place, minor discrepancies) or FLAGGED for manual review (likely different business or suspicious).

Respond in this exact JSON format:
{{
  "approve": true or false,
  "reasoning": "Brief explanation (1-2 sentences)"
}}"""


def flag_for_review(cause: str) -> AdjudicationDecision:
    return AdjudicationDecision(approve=False, reasoning=f"{cause}{MANUAL_REVIEW_SUFFIX}")


class Adjudicator:
    """Final approve/flag call for borderline submissions."""

    def __init__(self, client: Any = None):
        """
        Args:
            client: Object with ``complete(prompt) -> str``; None means
                unconfigured and every decision is a flag.
        """
        self.client = client

    @property
    def configured(self) -> bool:
        return self.client is not None

    def decide(
        self,
        submission_name: str,
        submission_location: Coordinate,
        extracted_name: str,
        extracted_address: str,
        extracted_location: Coordinate,
        name_score: float,
        distance_meters: int,
    ) -> AdjudicationDecision:
        if self.client is None:
            logger.warning("Completion client not configured - flagging borderline case")
            return flag_for_review("Completion client not configured")

        prompt = build_prompt(
            submission_name,
            submission_location,
            extracted_name,
            extracted_address,
            extracted_location,
            name_score,
            distance_meters,
        )

        try:
            text = self.client.complete(prompt)
        except Exception as e:
            logger.error("Completion call failed", error=str(e), error_type=type(e).__name__)
            return flag_for_review(f"Completion error: {e}")

        try:
            decision = parse_decision(text)
        except AdjudicationMalformed as e:
            logger.error("Malformed adjudication response", error=str(e))
            return flag_for_review(str(e))

        logger.debug("Adjudication decision", approve=decision.approve, reasoning=decision.reasoning)
        return decision
