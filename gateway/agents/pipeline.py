"""Orchestration pipeline — plan, execute, synthesize as a LangGraph graph.

START → [planner] → [extractor] → [executor] → [synthesizer] → END

Nodes run strictly one after another, and the executor walks plan steps in
their listed order, one at a time: a later step's input may refer to an
earlier step's result in free text. Planner and synthesizer failures abort
the run; a failing step only marks its own result.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from langgraph.graph import END, StateGraph
from pydantic import BaseModel, ConfigDict, Field

from gateway.agents.plan import StepResult, extract_plan
from gateway.agents.state import PipelineState
from gateway.errors import UpstreamError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from langgraph.graph.state import CompiledStateGraph

    from gateway.agents.dispatcher import SubAgentDispatcher
    from gateway.agents.plan import PlanStep
    from gateway.agents.registry import AgentDescriptor
    from gateway.llm import ProviderClient

logger = logging.getLogger(__name__)

PLAN_MAX_TOKENS = 1024
STEP_MAX_TOKENS = 1024
SYNTHESIS_MAX_TOKENS = 2048


class OrchestrationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    agent_id: int = Field(serialization_alias="agentId")
    task: str
    plan: str  # the plan's reasoning
    steps: list[StepResult]
    final_result: str = Field(serialization_alias="finalResult")
    model: str


def build_planner_prompt(orchestrator: AgentDescriptor, sub_agents: Mapping[str, AgentDescriptor]) -> str:
    roster = "\n".join(
        f"- {a.name} (agentId: {a.agent_id}): {', '.join(a.skills)}" for a in sub_agents.values()
    )
    choices = "|".join([*sub_agents.keys(), "self"])
    return f"""You are the {orchestrator.name}, a meta-agent that coordinates other AI agents.

Available agents:
{roster}

Analyze the user's task and create a plan. For each step, indicate which agent to use.
Respond in JSON format:
{{
  "steps": [
    {{"step": 1, "agent": "{choices}", "action": "description", "input": "what to send"}}
  ],
  "reasoning": "why this plan"
}}"""


def build_synthesis_input(task: str, results: list[StepResult]) -> str:
    lines = "\n\n".join(f"Step {r.step} ({r.agent}): {r.result}" for r in results)
    return f"Original task: {task}\n\nResults:\n{lines}"


class OrchestrationPipeline:
    """Compiled plan → execute → synthesize graph for one orchestrator agent."""

    def __init__(
        self,
        llm: ProviderClient,
        dispatcher: SubAgentDispatcher,
        orchestrator: AgentDescriptor,
        sub_agents: Mapping[str, AgentDescriptor],
    ) -> None:
        self._llm = llm
        self._dispatcher = dispatcher
        self._agent = orchestrator
        self._sub_agents = dict(sub_agents)
        self._planner_prompt = build_planner_prompt(orchestrator, self._sub_agents)
        self._graph = self._build()

    def _build(self) -> CompiledStateGraph:
        graph = StateGraph(PipelineState)

        graph.add_node("planner", self._plan)
        graph.add_node("extractor", self._extract)
        graph.add_node("executor", self._execute)
        graph.add_node("synthesizer", self._synthesize)

        graph.set_entry_point("planner")
        graph.add_edge("planner", "extractor")
        graph.add_edge("extractor", "executor")
        graph.add_edge("executor", "synthesizer")
        graph.add_edge("synthesizer", END)

        logger.info(
            f"Built orchestration graph for {self._agent.name}: "
            f"sub_agents={list(self._sub_agents)}"
        )
        return graph.compile()

    async def run(self, task: str) -> OrchestrationResult:
        """Execute the full pipeline for one task."""
        logger.info(f"Orchestrating task ({len(task)} chars)")
        state = await self._graph.ainvoke({"task": task, "step_results": []})
        return OrchestrationResult(
            agent_id=self._agent.agent_id,
            task=task,
            plan=state["plan"].reasoning,
            steps=state["step_results"],
            final_result=state["final_result"],
            model=self._agent.model,
        )

    # -----------------------------------------------------------------------
    # Nodes
    # -----------------------------------------------------------------------

    async def _plan(self, state: PipelineState) -> dict:
        plan_text = await self._llm.complete(
            self._agent.model,
            self._planner_prompt,
            state["task"],
            PLAN_MAX_TOKENS,
            caller=self._agent.name,
        )
        return {"plan_text": plan_text}

    async def _extract(self, state: PipelineState) -> dict:
        plan = extract_plan(state["plan_text"])
        logger.info(f"Plan has {len(plan.steps)} step(s)")
        return {"plan": plan}

    async def _execute(self, state: PipelineState) -> dict:
        results: list[StepResult] = []
        for step in state["plan"].steps:
            target = self._sub_agents.get(step.agent)
            if target is not None:
                result = await self._dispatcher.dispatch(
                    target.name, target.action.path, {target.action.input_field: step.input_text}
                )
            else:
                result = await self._execute_directly(step)
            results.append(
                StepResult(step=step.step, agent=step.agent, action=step.action, result=result)
            )
        return {"step_results": results}

    async def _execute_directly(self, step: PlanStep) -> str:
        try:
            return await self._llm.complete(
                self._agent.model,
                f"You are the {self._agent.name}. Execute this sub-task directly.",
                step.input_text or step.action,
                STEP_MAX_TOKENS,
                caller=self._agent.name,
            )
        except UpstreamError as e:
            logger.warning(f"Step {step.step} self-execution failed: {e.message}")
            return f"[Self-execution failed: {e.message}]"

    async def _synthesize(self, state: PipelineState) -> dict:
        final_result = await self._llm.complete(
            self._agent.model,
            f"You are the {self._agent.name}. Synthesize the results from multiple agent "
            "sub-tasks into a cohesive final answer.",
            build_synthesis_input(state["task"], state["step_results"]),
            SYNTHESIS_MAX_TOKENS,
            caller=self._agent.name,
        )
        return {"final_result": final_result}
