"""
Tests for the answer panel HTML.
"""

import pytest

from render import (
    FINAL_ANSWER_PLACEHOLDER,
    NO_EXAMPLES_MESSAGE,
    NO_STEPS_MESSAGE,
    build_answer_html,
    extract_expression_from_question,
)


def _solution(**overrides):
    solution = {
        "finalAnswer": "x = 4",
        "steps": [
            {"title": "Subtract 5", "text": "2x = 8"},
            {"text": "Divide by 2"},
        ],
        "examples": [{"problem": "3x + 1 = 7", "answer": "x = 2"}],
        "visual": {"type": "none"},
    }
    solution.update(overrides)
    return solution


def test_renders_final_answer_and_numbered_steps():
    html = build_answer_html(_solution(), "2x + 5 = 13")
    assert "x = 4" in html
    assert "Step 1 — Subtract 5" in html
    assert "Step 2</div>" in html
    assert "Divide by 2" in html


def test_empty_steps_placeholder():
    html = build_answer_html(_solution(steps=[]), "")
    assert NO_STEPS_MESSAGE in html


def test_at_most_one_example():
    examples = [
        {"problem": "first problem", "answer": "1"},
        {"problem": "second problem", "answer": "2"},
        {"problem": "third problem", "answer": "3"},
    ]
    html = build_answer_html(_solution(examples=examples), "")
    assert html.count("Similar example") == 1
    assert "first problem" in html
    assert "second problem" not in html


def test_no_examples_placeholder():
    html = build_answer_html(_solution(examples=[]), "")
    assert NO_EXAMPLES_MESSAGE in html


def test_missing_final_answer_placeholder():
    html = build_answer_html(_solution(finalAnswer=None), "")
    assert f'<div class="final">{FINAL_ANSWER_PLACEHOLDER}</div>' in html


def test_malformed_solution_does_not_raise():
    html = build_answer_html({"steps": "nope", "examples": {"a": 1}, "visual": "graph"}, "")
    assert NO_STEPS_MESSAGE in html
    assert NO_EXAMPLES_MESSAGE in html
    assert "graphDetails" not in html

    assert FINAL_ANSWER_PLACEHOLDER in build_answer_html(None)


def test_text_is_escaped():
    html = build_answer_html(
        _solution(
            finalAnswer="<script>alert(1)</script>",
            steps=[{"title": "<b>bold</b>", "text": "a < b & c"}],
        ),
        "",
    )
    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "&lt;b&gt;bold&lt;/b&gt;" in html
    assert "a &lt; b &amp; c" in html


def test_graph_panel_from_visual_directive():
    html = build_answer_html(
        _solution(visual={"type": "graph", "expr": "2*x+3", "xMin": -5, "xMax": 5}),
        "solve 2x+3=0",
    )
    assert 'id="graphDetails"' in html
    assert 'data-expr="2*x+3"' in html
    assert 'data-x-min="-5"' in html
    assert 'data-x-max="5"' in html
    # The plot container stays empty until the panel is opened
    assert '<div id="plot" class="plot"></div>' in html


def test_graph_panel_from_question():
    html = build_answer_html(_solution(), "Please graph y = x^2 - 4; thanks")
    assert 'data-expr="x^2 - 4"' in html
    assert 'data-x-min="-10"' in html


def test_graph_expression_is_attribute_escaped():
    html = build_answer_html(_solution(visual={"type": "graph", "expr": '"><img src=x>'}), "")
    assert "<img" not in html
    assert "&quot;&gt;&lt;img" in html


def test_no_graph_panel_without_request_or_directive():
    html = build_answer_html(_solution(), "What is 2 + 2?")
    assert "graphDetails" not in html


def test_graph_word_without_expression_has_no_panel():
    html = build_answer_html(_solution(), "How do I read a bar graph?")
    assert "graphDetails" not in html


def test_inverted_range_falls_back_to_default():
    html = build_answer_html(_solution(visual={"type": "graph", "expr": "x", "xMin": 3, "xMax": 1}), "")
    assert 'data-x-min="-10"' in html
    assert 'data-x-max="10"' in html


@pytest.mark.parametrize("x_min", [float("-inf"), float("inf"), float("nan")])
def test_non_finite_range_falls_back_to_default(x_min):
    html = build_answer_html(_solution(visual={"type": "graph", "expr": "x", "xMin": x_min, "xMax": 10}), "")
    assert 'data-x-min="-10"' in html
    assert 'data-x-max="10"' in html


def test_extract_expression_from_question():
    assert extract_expression_from_question("plot y=2x+1\nthen explain") == "2x+1"
    assert extract_expression_from_question("Y = sin(x); and more") == "sin(x)"
    assert extract_expression_from_question("no equation here") == ""
