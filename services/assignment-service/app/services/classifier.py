"""
Ticket classifier backed by the OpenAI chat completion API.
"""
from typing import Optional, Protocol

from openai import AsyncOpenAI

from app.core.classification import ALLOWED_PRIORITIES, parse_classifier_output
from app.core.config import settings
from app.core.exceptions import ClassifierResponseError, ClassifierUnavailableError
from app.core.logger import get_logger
from app.schemas.classification import ClassifierResult

logger = get_logger(__name__)

SYSTEM_PROMPT = f"""You are an expert assistant that triages customer support tickets.

Read the ticket and reply with ONLY a JSON object, no Markdown, with these keys:
- "priority": one of {", ".join(ALLOWED_PRIORITIES)}
- "helpfulNotes": a short technical explanation a moderator can use to resolve the issue,
  including useful links or references when relevant
- "relatedSkills": an array of short skill names needed to handle the ticket
  (e.g. ["React", "MongoDB", "Authentication"])
"""


class TicketClassifier(Protocol):
    async def classify(self, title: str, description: str) -> ClassifierResult: ...


class OpenAIClassifier:
    """
    Async OpenAI client asking for a JSON triage of one ticket.
    """

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        if timeout is None:
            timeout = settings.CLASSIFIER_TIMEOUT_SECONDS
        # SDK-level retries off: the workflow degrades instead of waiting
        self.client = client or AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model or settings.CLASSIFIER_MODEL

    async def classify(self, title: str, description: str) -> ClassifierResult:
        """
        Classify a ticket.

        Args:
            title: Ticket title
            description: Ticket description

        Returns:
            ClassifierResult parsed from the model reply

        Raises:
            ClassifierResponseError: If the reply is empty or not a JSON object
            openai.OpenAIError: On API failures
        """
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f"Title: {title}\nDescription: {description}"},
            ],
            temperature=0.2,
            response_format={"type": "json_object"},
        )
        if not response.choices:
            raise ClassifierResponseError("Classifier returned no choices")
        return parse_classifier_output(response.choices[0].message.content)


class DisabledClassifier:
    """Used when no API key is configured; every call fails fast."""

    async def classify(self, title: str, description: str) -> ClassifierResult:
        raise ClassifierUnavailableError("OPENAI_API_KEY is not configured")


def build_classifier() -> TicketClassifier:
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY not set, ticket classification is disabled")
        return DisabledClassifier()
    return OpenAIClassifier(
        api_key=settings.OPENAI_API_KEY,
        model=settings.CLASSIFIER_MODEL,
        timeout=settings.CLASSIFIER_TIMEOUT_SECONDS,
    )
