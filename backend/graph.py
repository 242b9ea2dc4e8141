"""
LangGraph Workflow for the Math Tutor solver

This module implements the single-round-trip solve workflow:
- Early exit when there is nothing to solve
- One bounded call to the chat model
- JSON parsing with a plain-text fallback
- Repair of the Solution contract before rendering
"""

import asyncio
import json
import logging
import math
import re
from typing import Callable, Literal, Optional

from pydantic import BaseModel, Field
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.runnables import RunnableConfig
from langgraph.graph import StateGraph, START, END

from state import SolveState
from config import settings
from llm import build_solve_messages, message_text
from render import build_answer_html

logger = logging.getLogger(__name__)


EMPTY_INPUT_MESSAGE = "Please enter a math problem or upload a photo."

FALLBACK_STEPS = [
    {"title": "Plan", "text": "Identify what the problem is asking and choose a method to solve it."},
    {"title": "Check", "text": "Substitute the answer back into the problem to make sure it works."},
]


# ============================================================================
# PYDANTIC SCHEMAS FOR THE SOLUTION CONTRACT
# ============================================================================

class Step(BaseModel):
    """Single explanation step."""
    title: Optional[str] = Field(default=None, description="Short title like 'Isolate x'")
    text: str = Field(description="What we do in this step and why")


class Example(BaseModel):
    """A similar practice problem with its answer."""
    problem: str
    answer: str


class Visual(BaseModel):
    """Whether and how the answer panel should offer a graph."""
    type: Literal["none", "graph"] = "none"
    expr: Optional[str] = Field(default=None, description="Right-hand side in x, e.g. '2*x+3'")
    xMin: Optional[float] = None
    xMax: Optional[float] = None


class Solution(BaseModel):
    """Structured answer returned to the page."""
    finalAnswer: str = ""
    steps: list[Step] = Field(default_factory=list)
    examples: list[Example] = Field(default_factory=list)
    visual: Visual = Field(default_factory=Visual)


# ============================================================================
# HELPERS
# ============================================================================

def strip_code_fences(s: str) -> str:
    """Remove ```json ... ``` code fences if present."""
    s = s.strip()
    if s.startswith("```"):
        s = re.sub(r"^```(?:json)?\s*", "", s)
        s = re.sub(r"\s*```$", "", s)
    return s.strip()


def parse_solution_json(raw_text: str) -> Optional[dict]:
    """Parse model output as a JSON object; None if it isn't one."""
    try:
        data = json.loads(strip_code_fences(raw_text))
    except (json.JSONDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None


def _as_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _number(value) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return float(value)
    return None


def repair_solution(data: dict) -> dict:
    """
    Coerce a parsed model reply into the Solution contract.

    Missing or empty steps are replaced with FALLBACK_STEPS; a malformed
    visual directive becomes {"type": "none"}.
    """
    steps = []
    raw_steps = data.get("steps")
    for item in raw_steps if isinstance(raw_steps, list) else []:
        if isinstance(item, dict):
            text = _as_text(item.get("text"))
            title = _as_text(item.get("title")) or None
        else:
            text, title = _as_text(item), None
        if text or title:
            steps.append({"title": title, "text": text})

    if not steps:
        logger.info("[Repair] No steps in model reply, using fallback steps")
        steps = [dict(step) for step in FALLBACK_STEPS]

    examples = []
    raw_examples = data.get("examples")
    for item in raw_examples if isinstance(raw_examples, list) else []:
        if isinstance(item, dict):
            examples.append({"problem": _as_text(item.get("problem")), "answer": _as_text(item.get("answer"))})

    visual = {"type": "none"}
    raw_visual = data.get("visual")
    if isinstance(raw_visual, dict) and raw_visual.get("type") == "graph":
        expr = _as_text(raw_visual.get("expr"))
        if expr:
            visual = {
                "type": "graph",
                "expr": expr,
                "xMin": _number(raw_visual.get("xMin")),
                "xMax": _number(raw_visual.get("xMax")),
            }

    solution = Solution.model_validate({
        "finalAnswer": _as_text(data.get("finalAnswer")),
        "steps": steps[:settings.max_steps],
        "examples": examples,
        "visual": visual,
    })
    return solution.model_dump(exclude_none=True)


# ============================================================================
# NODE FUNCTIONS
# ============================================================================

def route_intake(state: SolveState) -> Literal["empty", "solve"]:
    if not (state.get("question") or "").strip() and not state.get("image_data_url"):
        return "empty"
    return "solve"


async def empty_prompt_node(state: SolveState) -> dict:
    logger.info("[Intake] Empty question and no photo, skipping model call")
    return {"answer": EMPTY_INPUT_MESSAGE}


async def tutor_node(state: SolveState, config: RunnableConfig) -> dict:
    """Sends the problem to the chat model, bounded by the solve timeout."""
    model_factory: Callable[[], BaseChatModel] = config["configurable"]["model_factory"]
    has_image = bool(state.get("image_data_url"))
    logger.info(f"[Tutor] Solving (level={state['level']}, image={has_image}): {state['question'][:50]!r}")

    llm = model_factory()
    messages = build_solve_messages(state["question"], state["level"], state.get("image_data_url"))
    result = await asyncio.wait_for(llm.ainvoke(messages), timeout=settings.solve_timeout_seconds)

    raw_text = message_text(result.content)
    logger.debug(f"[Tutor] Raw reply: {raw_text[:200]!r}")
    return {"raw_text": raw_text}


async def parse_node(state: SolveState) -> dict:
    data = parse_solution_json(state.get("raw_text") or "")
    if data is None:
        logger.warning("[Parse] Model reply is not a JSON object, returning it as plain text")
        return {"answer": state.get("raw_text") or ""}
    return {"solution": data}


def route_parsed(state: SolveState) -> Literal["structured", "plain"]:
    return "structured" if state.get("solution") is not None else "plain"


async def repair_node(state: SolveState) -> dict:
    return {"solution": repair_solution(state["solution"])}


async def assembler_node(state: SolveState) -> dict:
    logger.info(f"[Assembler] Rendering {len(state['solution']['steps'])} steps")
    return {"html": build_answer_html(state["solution"], state["question"])}


# ============================================================================
# GRAPH CONSTRUCTION
# ============================================================================

def create_solve_graph():
    workflow = StateGraph(SolveState)

    workflow.add_node("empty_prompt", empty_prompt_node)
    workflow.add_node("tutor", tutor_node)
    workflow.add_node("parse", parse_node)
    workflow.add_node("repair", repair_node)
    workflow.add_node("assembler", assembler_node)

    # Entry point routing
    workflow.add_conditional_edges(
        START,
        route_intake,
        {"empty": "empty_prompt", "solve": "tutor"}
    )
    workflow.add_edge("empty_prompt", END)

    # tutor → parse → (plain text: done) | (repair → assembler)
    workflow.add_edge("tutor", "parse")
    workflow.add_conditional_edges(
        "parse",
        route_parsed,
        {"structured": "repair", "plain": END}
    )
    workflow.add_edge("repair", "assembler")
    workflow.add_edge("assembler", END)

    return workflow.compile()


def get_graph():
    """Returns the compiled solve workflow (no checkpointer: nothing is persisted)."""
    return create_solve_graph()
