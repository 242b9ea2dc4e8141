"""
Chat model construction and prompt building for the solver.
"""

import logging
from typing import Any, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from config import settings

logger = logging.getLogger(__name__)


SOLVE_SYSTEM_PROMPT = """You are a friendly math tutor for a {level} school student.

Return ONLY valid JSON (no markdown, no extra text) in exactly this shape:
{{
  "finalAnswer": "one short line with the final answer",
  "steps": [
    {{"title": "Short step title", "text": "What we do in this step and why"}}
  ],
  "examples": [
    {{"problem": "A similar practice problem", "answer": "Its answer"}}
  ],
  "visual": {{"type": "none"}}
}}

RULES:
1. "steps" must have {min_steps} to {max_steps} entries and is NEVER empty
2. "examples" has at most {max_examples} entry
3. If a graph helps, set "visual" to {{"type": "graph", "expr": "2*x+3", "xMin": -10, "xMax": 10}}
4. In "expr" write the right-hand side in x only, using * for multiplication, ^ for powers,
   and only sqrt, sin, cos, tan and pi
5. Otherwise keep "visual" as {{"type": "none"}}"""

IMAGE_INSTRUCTION = "Read the math problem from this image and solve it."


def build_chat_model() -> BaseChatModel:
    """Create the chat model for the configured provider. Retries are disabled."""
    logger.debug(f"[LLM] Building {settings.llm_provider} model {settings.solve_model}")
    if settings.llm_provider == "google":
        from langchain_google_genai import ChatGoogleGenerativeAI

        return ChatGoogleGenerativeAI(
            model=settings.solve_model,
            google_api_key=settings.google_api_key,
            temperature=settings.temperature,
            max_retries=0,
        )

    from langchain_openai import ChatOpenAI

    return ChatOpenAI(
        model=settings.solve_model,
        api_key=settings.openai_api_key,
        temperature=settings.temperature,
        max_retries=0,
    )


def build_solve_messages(question: str, level: str, image_data_url: Optional[str] = None) -> list[BaseMessage]:
    system = SOLVE_SYSTEM_PROMPT.format(
        level=level,
        min_steps=settings.min_steps,
        max_steps=settings.max_steps,
        max_examples=settings.max_examples,
    )

    if not image_data_url:
        return [SystemMessage(content=system), HumanMessage(content=f"Problem: {question}")]

    text = IMAGE_INSTRUCTION
    if question:
        text = f"{IMAGE_INSTRUCTION}\nExtra notes from the student: {question}"

    return [
        SystemMessage(content=system),
        HumanMessage(
            content=[
                {"type": "text", "text": text},
                {"type": "image_url", "image_url": {"url": image_data_url}},
            ]
        ),
    ]


def message_text(content: Any) -> str:
    """Flatten message content, which some providers return as a list of parts."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        return "".join(parts)
    return str(content or "")


def is_rate_limit_error(error: BaseException) -> bool:
    """True when the provider rejected the call for rate limit or quota reasons."""
    for attr in ("status_code", "status", "code"):
        if getattr(error, attr, None) == 429:
            return True

    response = getattr(error, "response", None)
    if getattr(response, "status_code", None) == 429:
        return True

    error_str = str(error)
    return "429" in error_str or "ResourceExhausted" in error_str or "quota" in error_str.lower()
