"""
HTML rendering of solutions for the answer panel.

All model-provided text is escaped before it is placed into markup. The
builder tolerates missing or malformed fields since the solution comes from
an LLM.
"""

import math
import re
from html import escape
from typing import Any, Optional

from config import settings


FINAL_ANSWER_PLACEHOLDER = "—"
NO_STEPS_MESSAGE = "No steps returned."
NO_EXAMPLES_MESSAGE = "No examples returned."

_QUESTION_EXPR = re.compile(r"y\s*=\s*([^\n\r;]+)", re.IGNORECASE)


def extract_expression_from_question(question: str) -> str:
    """Pull the right-hand side of the first "y = ..." in the question."""
    match = _QUESTION_EXPR.search(question or "")
    return match.group(1).strip() if match else ""


def asked_for_graph(question: str) -> bool:
    q = (question or "").lower()
    return "graph" in q or "plot" in q or "y =" in q


def _text(value: Any) -> str:
    if value is None:
        return ""
    return escape(str(value))


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def resolve_graph(solution: dict, question: str) -> Optional[dict]:
    """
    Decide what, if anything, the graph panel should plot.

    The model's visual directive wins; otherwise fall back to a "y = ..."
    found in a question that asks for a graph.
    """
    visual = solution.get("visual") if isinstance(solution.get("visual"), dict) else {}
    if visual.get("type") == "graph" and isinstance(visual.get("expr"), str) and visual["expr"].strip():
        return {
            "expr": visual["expr"].strip(),
            "x_min": visual.get("xMin"),
            "x_max": visual.get("xMax"),
        }

    if asked_for_graph(question):
        expr = extract_expression_from_question(question)
        if expr:
            return {"expr": expr, "x_min": None, "x_max": None}

    return None


def _range_value(value: Any, default: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return float(value)
    return default


def _steps_html(steps: list) -> str:
    items = []
    for i, step in enumerate(steps, start=1):
        if not isinstance(step, dict):
            step = {"text": step}
        title = f" — {_text(step['title'])}" if step.get("title") else ""
        items.append(
            f'<div class="item">'
            f'<div class="itemTitle">Step {i}{title}</div>'
            f'<div class="itemText">{_text(step.get("text"))}</div>'
            f'</div>'
        )
    return "".join(items) or f'<div class="muted">{NO_STEPS_MESSAGE}</div>'


def _examples_html(examples: list) -> str:
    items = []
    for example in examples[:settings.max_examples]:
        if not isinstance(example, dict):
            continue
        items.append(
            f'<div class="item">'
            f'<div class="itemTitle">Similar example</div>'
            f'<div class="itemText"><b>Problem:</b> {_text(example.get("problem"))}</div>'
            f'<div class="itemText"><b>Answer:</b> {_text(example.get("answer"))}</div>'
            f'</div>'
        )
    return "".join(items) or f'<div class="muted">{NO_EXAMPLES_MESSAGE}</div>'


def _graph_html(graph: Optional[dict]) -> str:
    if not graph:
        return ""
    x_min = _range_value(graph.get("x_min"), settings.graph_x_min)
    x_max = _range_value(graph.get("x_max"), settings.graph_x_max)
    if x_min >= x_max or not math.isfinite(x_max - x_min):
        x_min, x_max = settings.graph_x_min, settings.graph_x_max
    return (
        f'<details id="graphDetails" class="panel details" '
        f'data-expr="{escape(graph["expr"], quote=True)}" data-x-min="{x_min:g}" data-x-max="{x_max:g}">'
        f'<summary class="summaryBtn">Show graph</summary>'
        f'<div class="detailsBody"><div id="plot" class="plot"></div></div>'
        f'</details>'
    )


def build_answer_html(solution: Any, question: str = "") -> str:
    """Render a solution as the answer panel's HTML fragment."""
    if not isinstance(solution, dict):
        solution = {}

    final_answer = _text(solution.get("finalAnswer")) or FINAL_ANSWER_PLACEHOLDER
    steps_html = _steps_html(_list(solution.get("steps")))
    examples_html = _examples_html(_list(solution.get("examples")))
    graph_html = _graph_html(resolve_graph(solution, question))

    return (
        f'<div class="stack">'
        f'<div class="panel">'
        f'<div class="panelLabel">Final Answer</div>'
        f'<div class="final">{final_answer}</div>'
        f'</div>'
        f'{graph_html}'
        f'<details class="panel details" open>'
        f'<summary class="summaryBtn">Show explanation</summary>'
        f'<div class="detailsBody">'
        f'<div class="panel"><div class="panelLabel">Steps</div>{steps_html}</div>'
        f'<div class="panel spaced"><div class="panelLabel">Examples</div>{examples_html}</div>'
        f'</div>'
        f'</details>'
        f'</div>'
    )
