"""
Solve State Definition for the Math Tutor

This module defines the SolveState TypedDict that flows through the LangGraph
solve workflow. All nodes must accept and return updates to this structure.
"""

from typing import TypedDict, Optional


class SolveState(TypedDict):
    """
    The state object that flows through a single /solve request.

    Nothing is checkpointed: the state lives for one round trip to the model.
    """

    # --- Input ---
    question: str
    level: str
    image_data_url: Optional[str]  # data:<mime>;base64,... when a photo was sent

    # --- Model output ---
    raw_text: Optional[str]

    # --- Output ---
    solution: Optional[dict]  # Repaired Solution contract
    answer: Optional[str]  # Plain-text reply (empty input or unparseable output)
    html: Optional[str]  # Rendered answer panel
