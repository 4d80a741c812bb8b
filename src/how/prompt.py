"""
Prompt templating for the shell assistant contract.

The system prompt is a fixed template with a single ``$system_context`` slot
filled from the caller's Context. The message list replays earlier turns in
order and ends with the current user prompt.
"""

from __future__ import annotations

from string import Template
from typing import List

from .exceptions import ConversationError, TemplateError
from .types import Context, Message, Role

SYSTEM_PROMPT_TEMPLATE = """
You are an AI assistant running inside a shell environment. You give practical,
actionable help with command line tasks, programming, and system administration.
Keep answers concise, accurate, and tailored to the user's situation.

System context information:
<system_context>
$system_context
</system_context>

The system context may describe the current directory, shell, recent commands,
files, git repository, and project. Any of these may be missing.

Guidelines for responding:
- Prioritize safety and established best practices.
- Give step-by-step instructions when a task has several parts.
- Put commands and code in code blocks.
- Explain complex concepts briefly when needed.
- Say so when you are unsure instead of guessing.
- Use the system context when it is relevant to the question.

Structure your response as:
1. A brief explanation (only if needed)
2. The steps or advice
3. Commands or code blocks (if any)
4. Notes or warnings (only if needed)

For command line tasks give the exact commands to run. For programming questions
give code snippets with explanations. For system administration explain the
process and its impact on the system.

Enclose multi-line code in triple backticks with a language tag. Use single
backticks for inline commands.

IMPORTANT: If your response contains any executable commands, you MUST end it
with a structured commands section. The section is JSON enclosed in
<structured_commands> tags and follows this schema:

{
  "commands": [
    {
      "command": "exact command to execute",
      "description": "what this command does",
      "category": "file|network|system|git|package|build|container|general",
      "safe": true|false,
      "required": true|false,
      "order": 1
    }
  ],
  "workflows": [
    {
      "name": "workflow name",
      "description": "what the whole workflow achieves",
      "steps": [
        {
          "command": "first command",
          "description": "what this step does",
          "category": "category",
          "safe": true|false,
          "required": true,
          "order": 1
        }
      ]
    }
  ]
}

Rules for the structured commands section:
- List EVERY executable command that appears in your response.
- Use "commands" for independent commands and "workflows" for multi-step
  sequences that must run in order.
- Set "safe" to false for destructive or privileged commands (rm, sudo, chmod, dd).
- Set "required" to true for essential steps and false for optional ones.
- Number "order" by execution sequence starting at 1.
- Write each command exactly as the user should type it.

Example:
<structured_commands>
{
  "commands": [
    {
      "command": "ls -la",
      "description": "List all files with details",
      "category": "file",
      "safe": true,
      "required": false,
      "order": 1
    }
  ],
  "workflows": []
}
</structured_commands>

If the question cannot be answered from the context or is outside your
capabilities, explain the limitation and suggest alternatives.
""".strip()


def build_system_context(context: Context | None) -> str:
    """
    Render the Context as the text placed inside ``<system_context>``.

    Sections appear in a fixed order, separated by blank lines. Empty sections
    are omitted, so a missing or empty Context renders as "".
    """
    if context is None:
        return ""

    parts: List[str] = []

    if context.working_directory:
        parts.append(f"Current working directory: {context.working_directory}")

    if context.shell:
        parts.append(f"Shell: {context.shell}")

    if context.git is not None:
        git_lines = []
        if context.git.repository:
            git_lines.append(f"Repository: {context.git.repository}")
        if context.git.branch:
            git_lines.append(f"Branch: {context.git.branch}")
        if context.git.status:
            git_lines.append(f"Status: {context.git.status}")
        if git_lines:
            parts.append("Git Information:\n" + "\n".join(git_lines))

    if context.project is not None:
        project_lines = []
        if context.project.type:
            project_lines.append(f"Project Type: {context.project.type}")
        if context.project.name:
            project_lines.append(f"Project Name: {context.project.name}")
        if context.project.framework:
            project_lines.append(f"Framework: {context.project.framework}")
        if project_lines:
            parts.append("Project Information:\n" + "\n".join(project_lines))

    if context.recent_commands:
        command_lines = ["Recent Commands:"]
        for entry in context.recent_commands:
            command_lines.append(f"- {entry.command} (exit: {entry.exit_code})")
        parts.append("\n".join(command_lines))

    return "\n\n".join(parts)


def render_system_prompt(context: Context | None, template: str = SYSTEM_PROMPT_TEMPLATE) -> str:
    """Substitute the system context into the template."""
    try:
        return Template(template).substitute(system_context=build_system_context(context))
    except (KeyError, ValueError) as exc:
        raise TemplateError(f"failed to render system prompt template: {exc}") from exc


def build_messages(prompt: str, context: Context | None = None) -> List[Message]:
    """
    Build the conversation sent to a backend.

    Each earlier turn becomes a user message followed by an assistant message,
    in chronological order, and the current prompt is appended last.

    Raises:
        ConversationError: If an earlier turn has no response.
    """
    messages: List[Message] = []
    history = context.previous_prompts if context is not None else []
    for index, entry in enumerate(history):
        if not entry.response:
            raise ConversationError(
                f"previous prompt #{index + 1} has no response; "
                "history must alternate user and assistant turns"
            )
        messages.append(Message(role=Role.USER, content=entry.prompt))
        messages.append(Message(role=Role.ASSISTANT, content=entry.response))
    messages.append(Message(role=Role.USER, content=prompt))
    return messages


class PromptBuilder:
    """Render the system prompt and message list for a provider call."""

    def __init__(self, template: str = SYSTEM_PROMPT_TEMPLATE):
        self.template = template

    def build(self, context: Context | None = None) -> str:
        return render_system_prompt(context, self.template)

    def messages(self, prompt: str, context: Context | None = None) -> List[Message]:
        return build_messages(prompt, context)


__all__ = [
    "SYSTEM_PROMPT_TEMPLATE",
    "PromptBuilder",
    "build_messages",
    "build_system_context",
    "render_system_prompt",
]
