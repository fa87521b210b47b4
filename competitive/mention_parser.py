"""
Brand Mention Parser.
Turns one raw AI answer into a BrandMention per tracked brand.

The primary path asks a general-purpose LLM for a JSON array and validates it
strictly; anything that does not validate falls back to deterministic
substring matching, so parsing never fails.
"""

import json
import logging
import re
from typing import Awaitable, Callable, List, Optional, Literal

from pydantic import BaseModel, Field, ValidationError

from competitive.competitive_models import BrandMention, MentionPosition, MentionSentiment
from competitive.errors import LLMParseError

logger = logging.getLogger(__name__)

ParseWithLLM = Callable[[str], Awaitable[str]]

FALLBACK_RANKS = [
    MentionPosition.PRIMARY,
    MentionPosition.SECONDARY,
    MentionPosition.TERTIARY,
]

CONTEXT_MAX_CHARS = 200

SENTENCE_SPLIT = re.compile(r"[.!?]+")


class ParseOutcome(BaseModel):
    """Mentions plus the path that produced them."""
    source: Literal["llm", "fallback"]
    mentions: List[BrandMention] = Field(default_factory=list)
    error: Optional[str] = None


class _LLMMention(BaseModel):
    """One entry of the parser LLM's array, before enum mapping."""
    brand: str
    position: Optional[str] = None
    sentiment: Optional[str] = None
    context: Optional[str] = None
    citation_url: Optional[str] = Field(default=None, alias="citationUrl")


def build_parse_prompt(response: str, brands: List[str]) -> str:
    brand_lines = "\n".join(f"- {b}" for b in brands)
    return f"""Analyze this AI response for brand/product mentions.

RESPONSE TO ANALYZE:
\"\"\"
{response}
\"\"\"

BRANDS TO LOOK FOR:
{brand_lines}

For each brand mentioned, extract:
1. brand: The brand name (exactly as listed above)
2. position:
   - "primary" = recommended first or most strongly
   - "secondary" = mentioned as a good alternative
   - "tertiary" = briefly mentioned
   - "mentioned" = named but not recommended
   - "none" = not mentioned at all
3. sentiment: "positive", "neutral", or "negative"
4. context: The exact sentence where the brand is mentioned (empty if not mentioned)

Return JSON array:
[
  {{
    "brand": "BrandName",
    "position": "primary|secondary|tertiary|mentioned|none",
    "sentiment": "positive|neutral|negative",
    "context": "exact quote from response"
  }}
]

Include an entry for EVERY brand in the list, even if position is "none".
Return ONLY valid JSON, no other text."""


def extract_json_array(text: str) -> list:
    """
    Find the first balanced JSON array literal in text and decode it.

    Tolerates surrounding prose and markdown fences. Brackets inside JSON
    strings are ignored while balancing.

    Raises:
        LLMParseError: if no balanced array decodes to a list
    """
    if not text:
        raise LLMParseError("Empty parser response")

    start = text.find("[")
    while start != -1:
        end = _balanced_end(text, start)
        if end is not None:
            try:
                data = json.loads(text[start:end + 1])
            except json.JSONDecodeError:
                data = None
            if isinstance(data, list):
                return data
        start = text.find("[", start + 1)

    raise LLMParseError("No JSON array found in parser response")


def _balanced_end(text: str, start: int) -> Optional[int]:
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
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return i
    return None


def _to_position(value: Optional[str]) -> MentionPosition:
    try:
        return MentionPosition((value or "").strip().lower())
    except ValueError:
        return MentionPosition.NONE


def _to_sentiment(value: Optional[str]) -> MentionSentiment:
    try:
        return MentionSentiment((value or "").strip().lower())
    except ValueError:
        return MentionSentiment.NEUTRAL


def decode_llm_mentions(parser_output: str, brands: List[str]) -> List[BrandMention]:
    """
    Strictly decode the parser LLM output into one mention per listed brand.

    Entries are matched to the brand list case-insensitively and renamed to the
    listed spelling; brands the LLM skipped get position "none".

    Raises:
        LLMParseError: when the array is missing, malformed, or names none of the brands
    """
    raw_entries = extract_json_array(parser_output)

    try:
        entries = [_LLMMention.model_validate(e) for e in raw_entries]
    except ValidationError as e:
        raise LLMParseError(f"Parser entries failed validation: {e.error_count()} error(s)") from e

    by_brand = {}
    for entry in entries:
        key = entry.brand.strip().lower()
        if key not in by_brand:
            by_brand[key] = entry

    if not any(b.lower() in by_brand for b in brands):
        raise LLMParseError("Parser response did not cover any tracked brand")

    mentions: List[BrandMention] = []
    for brand in brands:
        entry = by_brand.get(brand.lower())
        if entry is None:
            mentions.append(BrandMention(brand=brand))
            continue
        mentions.append(BrandMention(
            brand=brand,
            position=_to_position(entry.position),
            sentiment=_to_sentiment(entry.sentiment),
            context=entry.context or "",
            citation_url=entry.citation_url or None,
        ))
    return mentions


def extract_context(response: str, brand: str) -> str:
    """First sentence naming the brand, trimmed to 200 characters."""
    brand_lower = brand.lower()
    for sentence in SENTENCE_SPLIT.split(response):
        if brand_lower in sentence.lower():
            return sentence.strip()[:CONTEXT_MAX_CHARS]
    return ""


def fallback_brand_parsing(response: str, brands: List[str]) -> List[BrandMention]:
    """
    Rank brands by where they first appear in the response.

    First appearance is primary, then secondary and tertiary; any later brand is
    "mentioned" and absent brands are "none". Sentiment is always neutral.
    """
    response_lower = (response or "").lower()

    found = []
    for brand in brands:
        index = response_lower.find(brand.lower()) if brand else -1
        if index != -1:
            found.append((index, brand))
    found.sort(key=lambda item: item[0])
    rank_by_brand = {}
    for rank, (_, brand) in enumerate(found):
        rank_by_brand.setdefault(brand, rank)

    mentions: List[BrandMention] = []
    for brand in brands:
        rank = rank_by_brand.get(brand)
        if rank is None:
            mentions.append(BrandMention(brand=brand))
            continue
        position = FALLBACK_RANKS[rank] if rank < len(FALLBACK_RANKS) else MentionPosition.MENTIONED
        mentions.append(BrandMention(
            brand=brand,
            position=position,
            sentiment=MentionSentiment.NEUTRAL,
            context=extract_context(response, brand),
        ))
    return mentions


async def parse_response_with_outcome(
    response: str,
    brands: List[str],
    parse_with_llm: Optional[ParseWithLLM],
) -> ParseOutcome:
    """Parse with the LLM when available, falling back to string matching on any failure."""
    if parse_with_llm is not None:
        try:
            parser_output = await parse_with_llm(build_parse_prompt(response, brands))
            return ParseOutcome(source="llm", mentions=decode_llm_mentions(parser_output, brands))
        except LLMParseError as e:
            logger.info("Parser LLM output unusable, using fallback: %s", e)
            error = str(e)
        except Exception as e:
            logger.warning("Parser LLM call failed, using fallback: %s", e)
            error = str(e)
    else:
        error = "no parser configured"

    return ParseOutcome(
        source="fallback",
        mentions=fallback_brand_parsing(response, brands),
        error=error,
    )


async def parse_response_for_brands(
    response: str,
    brands: List[str],
    parse_with_llm: Optional[ParseWithLLM],
) -> List[BrandMention]:
    """One BrandMention per brand in brands. Never raises."""
    outcome = await parse_response_with_outcome(response, brands, parse_with_llm)
    return outcome.mentions
