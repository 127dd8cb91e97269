"""
LangGraph Vault Chat Workflow

A tool-calling assistant that reads and writes the user's vault:
- MessagesState pattern with add_messages reducer
- Vault tools (@tool) bound to the chat model, executed by ToolNode
- tools_condition loops back to the model until it answers without tools

Flow:
START → agent → (tool calls?) → tools → agent → ... → END

Every Markdown file the assistant writes goes through VaultService.write_file,
so its [[links]] land in the note graph like any other vault write.
"""

from typing import Annotated, Any, Iterable, Optional

import structlog
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
)
from langchain_core.tools import BaseTool, tool
from langgraph.graph import StateGraph, START
from langgraph.graph.message import add_messages
from langgraph.prebuilt import ToolNode, tools_condition
from typing_extensions import TypedDict

from brainflow.config.llm import get_chat_model
from brainflow.services.vault_service import VaultError, VaultService

logger = structlog.get_logger()

SYSTEM_PROMPT = """You are a Knowledge Graph assistant.
Use the vault tools to manage notes.
ALWAYS use [[WikiLinks]] for concepts."""

_ROLE_TO_MESSAGE = {
    "user": HumanMessage,
    "assistant": AIMessage,
    "system": SystemMessage,
}


class VaultChatState(TypedDict, total=False):
    """Conversation state; add_messages appends model and tool turns."""

    messages: Annotated[list[BaseMessage], add_messages]
    user_id: str


# ============================================================================
# Tool Definitions (@tool decorator pattern)
# ============================================================================


def build_vault_tools(vault: VaultService) -> list[BaseTool]:
    """Vault operations for the model, bound to one user's vault."""

    @tool
    async def list_files(path: str = "/") -> str:
        """List files and directories in the vault. Directories end with '/'.

        Args:
            path: The directory path to list (default: /)
        """
        items = await vault.list_files(path)
        return "\n".join(items) if items else f"No files in '{path}'."

    @tool
    async def read_file(path: str) -> str:
        """Read the content of a markdown file.

        Args:
            path: The full path to the file
        """
        try:
            return await vault.read_file(path)
        except VaultError as e:
            return f"Error: {e}"

    @tool
    async def write_file(path: str, content: str) -> str:
        """Create or update a markdown file.

        Args:
            path: The full path to the file
            content: The markdown content
        """
        try:
            result = await vault.write_file(path, content)
        except VaultError as e:
            return f"Error: {e}"
        message = f"File '{path}' written successfully."
        if result:
            message += f" Linked {result.edges_created} notes."
        return message

    @tool
    async def create_directory(path: str) -> str:
        """Create a new directory, including missing parents.

        Args:
            path: The full path to the new directory
        """
        await vault.create_directory(path)
        return f"Directory '{path}' created successfully."

    return [list_files, read_file, write_file, create_directory]


# ============================================================================
# Message helpers
# ============================================================================


def to_langchain_messages(messages: Iterable[Any]) -> list[BaseMessage]:
    """Convert request turns (role/content) into LangChain messages."""
    return [_ROLE_TO_MESSAGE[m.role](content=m.content) for m in messages]


def message_text(message: BaseMessage) -> str:
    """Plain text of a message whose content may be a list of parts."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


# ============================================================================
# Graph Builder
# ============================================================================


def build_vault_chat_graph(
    vault: VaultService,
    llm: Optional[Any] = None,
    model: Optional[str] = None,
):
    """Compile the agent ⇄ tools loop for one user's vault."""
    tools = build_vault_tools(vault)
    chat_model = (llm or get_chat_model(model=model)).bind_tools(tools)

    async def agent_node(state: VaultChatState) -> dict:
        response = await chat_model.ainvoke(
            [SystemMessage(content=SYSTEM_PROMPT), *state["messages"]]
        )
        return {"messages": [response]}

    builder = StateGraph(VaultChatState)
    builder.add_node("agent", agent_node)
    builder.add_node("tools", ToolNode(tools))

    builder.add_edge(START, "agent")
    builder.add_conditional_edges("agent", tools_condition)
    builder.add_edge("tools", "agent")
    return builder.compile()


# ============================================================================
# Public Interface
# ============================================================================


async def run_vault_chat(
    vault: VaultService,
    messages: Iterable[Any],
    model: Optional[str] = None,
    llm: Optional[Any] = None,
    max_steps: int = 25,
) -> dict:
    """
    Answer the last message, letting the model use the vault tools.

    Args:
        vault: The user's vault
        messages: Conversation so far, objects with role and content
        model: Chat model override
        llm: Pre-built chat model, used instead of model
        max_steps: LangGraph recursion limit for the agent ⇄ tools loop

    Returns:
        Dict with the final response text and the tools called, in order
    """
    history = to_langchain_messages(messages)
    graph = build_vault_chat_graph(vault, llm=llm, model=model)

    logger.info("run_vault_chat: Starting", user_id=vault.user_id, turns=len(history))
    result = await graph.ainvoke(
        {"messages": history, "user_id": vault.user_id},
        {"recursion_limit": max_steps},
    )

    new_messages = result["messages"][len(history):]
    tools_used = [
        call["name"]
        for msg in new_messages
        if isinstance(msg, AIMessage)
        for call in msg.tool_calls
    ]
    response = ""
    for msg in reversed(new_messages):
        if isinstance(msg, AIMessage):
            response = message_text(msg)
            break

    logger.info("run_vault_chat: Complete", user_id=vault.user_id, tools_used=tools_used)
    return {"response": response, "tools_used": tools_used}
