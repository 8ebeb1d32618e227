"""LangGraph shared state — flows between the orchestration pipeline's nodes."""

from typing_extensions import TypedDict

from gateway.agents.plan import Plan, StepResult


class PipelineState(TypedDict, total=False):
    """State passed through every node of the pipeline graph.

    task          — the user's task text, as received.
    plan_text     — raw planner output.
    plan          — structured plan extracted from plan_text (may be empty).
    step_results  — one StepResult per plan step, in plan order.
    final_result  — synthesized answer.
    """

    task: str
    plan_text: str
    plan: Plan
    step_results: list[StepResult]
    final_result: str
