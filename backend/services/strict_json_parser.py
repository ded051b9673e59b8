"""
Strict JSON Parser - Helper for parsing LLM responses
Handles markdown fences and validates required top-level sections
"""

import json
import re
import logging
from typing import Dict, Any, Optional, Iterable

from services.error_types import InvalidAIResponseError, MissingSectionError

logger = logging.getLogger(__name__)

JSON_FENCE_PATTERN = re.compile(r'```(?:json)?\s*([\s\S]*?)\s*```', re.IGNORECASE)


class StrictJSONParser:
    """Parse and validate JSON responses from the LLM"""

    @staticmethod
    def strip_fences(content: str) -> str:
        """Return the body of the first ```json fence, or the trimmed content"""
        if not content:
            return ""
        match = JSON_FENCE_PATTERN.search(content)
        if match:
            return match.group(1).strip()
        return content.strip()

    @staticmethod
    def extract_json(content: str) -> Optional[Dict[str, Any]]:
        """
        Extract a JSON object from response content, handling markdown fences

        Args:
            content: Raw response content from the LLM

        Returns:
            Parsed JSON dictionary or None if parsing fails
        """
        if not content:
            return None

        # Try direct JSON parsing first
        try:
            result = json.loads(content)
            return result if isinstance(result, dict) else None
        except json.JSONDecodeError:
            pass

        stripped = StrictJSONParser.strip_fences(content)
        try:
            result = json.loads(stripped)
            if isinstance(result, dict):
                return result
        except json.JSONDecodeError as e:
            logger.debug(f"Failed to parse JSON from markdown fence: {e}")

        # Find the outermost object by brace matching
        start = stripped.find('{')
        if start >= 0:
            depth = 0
            in_string = False
            escaped = False
            for i in range(start, len(stripped)):
                char = stripped[i]
                if in_string:
                    if escaped:
                        escaped = False
                    elif char == '\\':
                        escaped = True
                    elif char == '"':
                        in_string = False
                    continue
                if char == '"':
                    in_string = True
                elif char == '{':
                    depth += 1
                elif char == '}':
                    depth -= 1
                    if depth == 0:
                        try:
                            result = json.loads(stripped[start:i + 1])
                            if isinstance(result, dict):
                                return result
                        except json.JSONDecodeError:
                            pass
                        break

        logger.warning(f"Could not extract valid JSON from response (first 200 chars): {content[:200]}")
        return None

    @staticmethod
    def parse_or_raise(content: str) -> Dict[str, Any]:
        """
        Parse an LLM answer that must be a JSON object.

        Raises:
            InvalidAIResponseError: empty content or no parseable object
        """
        if not content or not content.strip():
            raise InvalidAIResponseError("Empty response from AI service")

        stripped = StrictJSONParser.strip_fences(content)
        try:
            result = json.loads(stripped)
        except json.JSONDecodeError as e:
            recovered = StrictJSONParser.extract_json(content)
            if recovered is None:
                raise InvalidAIResponseError(
                    f"Failed to parse AI response as JSON: {e}",
                    {"received": content[:500]},
                )
            return recovered

        if not isinstance(result, dict):
            raise InvalidAIResponseError(
                f"Failed to parse AI response as JSON: expected an object, got {type(result).__name__}",
                {"received": content[:500]},
            )
        return result

    @staticmethod
    def require_sections(data: Dict[str, Any], sections: Iterable[str]) -> None:
        """
        Fail fast on the first missing required section.

        Raises:
            MissingSectionError: naming the missing section
        """
        for section in sections:
            if section not in data or data[section] is None:
                raise MissingSectionError(section, sorted(data.keys()))
