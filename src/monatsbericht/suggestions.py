"""
Keyword suggestions for recipients that ended up in the catch-all category.

The catch-all recipients and the configured categories are sent to a model on
OpenRouter, which answers with JSON proposals of the form::

    {"suggestions": [{"recipient": "Aldi Sued", "category": "groceries", "keyword": "aldi"}]}

Only proposals that name a configured category, refer to one of the sent
recipients and carry a valid pattern matching that recipient are returned.
Those can be added to the category file as they are.
"""

import json
import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from openai import OpenAI, OpenAIError

from .models import Category, compile_keywords

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "openrouter/auto"

SYSTEM_PROMPT = """\
You help maintain keyword lists for categorizing bank transactions.
Each category has case-insensitive regular expression keywords that are
searched in the recipient name; the first matching category wins.
For each uncategorized recipient pick the most fitting existing category and
propose one short keyword that matches the recipient. Skip recipients that fit
no category. Never invent categories.
Answer with a JSON object only:
{"suggestions": [{"recipient": "...", "category": "...", "keyword": "..."}]}"""

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class SuggestionError(Exception):
    """Exception raised when keyword suggestions cannot be obtained."""


@dataclass(frozen=True)
class KeywordSuggestion:
    """A keyword proposed for a category, with the recipient it was derived from."""

    category: str
    keyword: str
    recipient: str


def build_prompt(categories: Sequence[Category], recipients: Sequence[dict[str, Any]]) -> str:
    payload = {
        "categories": [
            {
                "name": category.name,
                "display_name": category.display_name,
                "keywords": category.keywords,
            }
            for category in categories
        ],
        "uncategorized": list(recipients),
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def parse_suggestions(
    content: str,
    categories: Sequence[Category],
    recipients: Iterable[str],
) -> list[KeywordSuggestion]:
    """
    Validate the model answer and turn it into keyword suggestions.

    Unusable proposals are logged and skipped. Keywords a category already has
    and repeated proposals are dropped.

    Raises:
        SuggestionError: If the answer is not the expected JSON document
    """
    match = _CODE_FENCE.match(content.strip())
    text = match.group(1) if match else content

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SuggestionError(f"Suggestions are not valid JSON: {e}") from e

    items = data.get("suggestions") if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise SuggestionError("Suggestions must be a JSON object with a 'suggestions' list")

    known = {category.name: category for category in categories}
    sent = set(recipients)
    seen: set[tuple[str, str]] = set()
    suggestions = []

    for item in items:
        if not isinstance(item, dict):
            logger.warning(f"Ignoring malformed suggestion {item!r}")
            continue

        recipient = item.get("recipient")
        category = item.get("category")
        keyword = item.get("keyword")
        if not all(isinstance(value, str) for value in (recipient, category, keyword)):
            logger.warning(f"Ignoring incomplete suggestion {item!r}")
            continue

        keyword = keyword.strip()
        if category not in known:
            logger.warning(f"Ignoring suggestion for unknown category '{category}'")
            continue
        if recipient not in sent:
            logger.warning(f"Ignoring suggestion for unknown recipient '{recipient}'")
            continue
        if not keyword:
            logger.warning(f"Ignoring empty keyword for '{recipient}'")
            continue

        try:
            pattern = compile_keywords([keyword])[0]
        except re.error as e:
            logger.warning(f"Ignoring invalid keyword {keyword!r} for '{recipient}': {e}")
            continue
        if not pattern.search(recipient):
            logger.warning(f"Ignoring keyword {keyword!r}: it does not match '{recipient}'")
            continue

        if keyword in known[category].keywords or (category, keyword) in seen:
            logger.debug(f"Keyword {keyword!r} already proposed for '{category}'")
            continue

        seen.add((category, keyword))
        suggestions.append(KeywordSuggestion(category, keyword, recipient))

    return suggestions


class KeywordSuggester:
    """Asks a model on OpenRouter for keywords of uncategorized recipients."""

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, timeout: float = 120.0):
        self.model = model
        self.timeout = timeout
        self.client = OpenAI(
            api_key=api_key,
            base_url=OPENROUTER_BASE_URL,
            default_headers={"X-Title": "Monatsbericht"},
        )

    def suggest(
        self,
        categories: Sequence[Category],
        recipients: Sequence[dict[str, Any]],
    ) -> list[KeywordSuggestion]:
        """
        Suggest keywords for recipients given as ``{"recipient", "amount"}`` dicts.

        Raises:
            SuggestionError: If the request fails or the answer is unusable
        """
        if not recipients:
            return []

        content = self._complete(build_prompt(categories, recipients))
        suggestions = parse_suggestions(
            content,
            categories,
            (entry["recipient"] for entry in recipients),
        )
        logger.info(
            f"Got {len(suggestions)} usable keyword suggestions for {len(recipients)} recipients",
        )
        return suggestions

    def _complete(self, prompt: str) -> str:
        logger.info(f"Requesting keyword suggestions from {self.model}")
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
        except OpenAIError as e:
            raise SuggestionError(f"OpenRouter request failed: {e}") from e

        if not response.choices or not response.choices[0].message.content:
            raise SuggestionError("OpenRouter returned an empty response")
        return response.choices[0].message.content
