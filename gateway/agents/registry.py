"""Agent registry — hardcoded agent descriptors.

The only place where models, skills and prompts are defined. Every agent gets
the same health / info / chat routes; they differ only in the fields below
and in one specialised action (see agents/actions.py).
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class AgentAction:
    """The one extra, paid route an agent exposes besides chat."""

    name: str          # key into ACTION_HANDLERS, e.g. "summarize"
    path: str          # route path under the agent prefix, e.g. "/summarize"
    input_field: str   # body field a dispatched sub-task is sent in
    description: str   # shown in the payment challenge


@dataclass(frozen=True)
class AgentDescriptor:
    agent_id: int
    name: str          # display name, also the identifier planners use
    slug: str          # URL segment: /agents/{slug}
    description: str
    model: str
    chat_prompt: str
    action: AgentAction
    skills: list[str] = field(default_factory=list)

    @property
    def endpoint(self) -> str:
        return f"/agents/{self.slug}"


AGENT_REGISTRY: dict[str, AgentDescriptor] = {
    "summary": AgentDescriptor(
        agent_id=127,
        name="SummaryBot",
        slug="summary",
        description="AI-powered text summarization agent. Provide any text and get a concise summary.",
        model="openai/gpt-4o-mini",
        skills=["text-summarization", "content-extraction"],
        chat_prompt=(
            "You are SummaryBot, an AI assistant specialized in text summarization and content analysis.\n"
            "You help users summarize texts, extract key points, and analyze content. Be concise and helpful.\n"
            "When asked to summarize, focus on key points and maintain factual accuracy."
        ),
        action=AgentAction(
            name="summarize",
            path="/summarize",
            input_field="text",
            description="AI text summarization by SummaryBot",
        ),
    ),
    "code-audit": AgentDescriptor(
        agent_id=128,
        name="CodeAuditor",
        slug="code-audit",
        description="AI-powered smart contract and code security auditor. Submit code for vulnerability analysis.",
        model="anthropic/claude-sonnet-4-5-20250929",
        skills=["security-audit", "vulnerability-detection", "solidity", "code-review"],
        chat_prompt=(
            "You are CodeAuditor, an AI security expert specialized in smart contract and code security analysis.\n"
            "You help users identify vulnerabilities, review code for best practices, and provide actionable "
            "security recommendations.\n"
            "When analyzing code, categorize findings as CRITICAL, WARNING, or INFORMATIONAL. "
            "Always explain the impact and suggest fixes."
        ),
        action=AgentAction(
            name="audit",
            path="/audit",
            input_field="code",
            description="Smart contract security audit by CodeAuditor",
        ),
    ),
    "orchestrator": AgentDescriptor(
        agent_id=129,
        name="Orchestrator",
        slug="orchestrator",
        description=(
            "Meta-agent that decomposes tasks, discovers other agents, "
            "and coordinates multi-step AI workflows."
        ),
        model="openai/gpt-4o-mini",
        skills=["task-planning", "agent-coordination", "multi-step-execution"],
        chat_prompt=(
            "You are the Orchestrator, a meta-agent that helps with task planning, coordination, "
            "and multi-step AI workflows.\n"
            "You can help users break down complex tasks, suggest which agents to use "
            "(SummaryBot for text summarization, CodeAuditor for security analysis), and coordinate workflows.\n"
            "Be strategic and methodical in your responses."
        ),
        action=AgentAction(
            name="execute",
            path="/execute",
            input_field="task",
            description="Multi-agent task execution by Orchestrator",
        ),
    ),
}

ORCHESTRATOR_SLUG = "orchestrator"


def resolve_agent(slug: str) -> AgentDescriptor:
    """Look up an agent by URL slug. Raises ValueError if not found."""
    if slug not in AGENT_REGISTRY:
        raise ValueError(
            f"Unknown agent '{slug}'. Available agents: {list(AGENT_REGISTRY.keys())}"
        )
    return AGENT_REGISTRY[slug]


def sub_agents() -> dict[str, AgentDescriptor]:
    """Agents the orchestrator may delegate to, keyed by display name."""
    return {a.name: a for a in AGENT_REGISTRY.values() if a.slug != ORCHESTRATOR_SLUG}
