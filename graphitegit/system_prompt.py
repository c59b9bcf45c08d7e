"""System prompt builder with Anthropic prompt caching support."""

import json

from graphitegit.context import DisclosedContext


class SystemPromptBuilder:
    """Builds the system instruction sent with every engine call."""

    def build_system_blocks(self, context: DisclosedContext) -> list[dict]:
        """Build system blocks with cache_control for Anthropic.

        The static instructions are cached; the context block changes as the
        user navigates, so it comes last and is never cached.

        Args:
            context: Disclosed context for this call

        Returns:
            List of system text blocks
        """
        return [
            {
                "type": "text",
                "text": self._build_core_identity() + "\n\n" + self._build_rules(),
                "cache_control": {"type": "ephemeral"},
            },
            {
                "type": "text",
                "text": self._build_context_section(context),
            },
        ]

    def _build_core_identity(self) -> str:
        """Build core identity and role description."""
        return """# graphite-git Repository Agent

You are an autonomous senior software engineer agent embedded in graphite-git, a client for browsing and editing the user's GitHub repositories.

## Capabilities
- Navigate the user's repositories
- READ, WRITE, UPDATE and DELETE files through the declared tools
- Produce high-quality, production-ready code when asked to create or edit files

Every tool call you make is shown to the user, who must approve it before it runs. Only the first tool call of each response is offered for approval, so propose one call at a time."""

    def _build_rules(self) -> str:
        """Build tool usage rules."""
        return """## Rules
- Be concise and professional.
- ALWAYS check the current context (active repository and path) before acting. If 'owner'/'repo' arguments are missing, they are inferred from the context.
- If you need to perform an action (edit/create/delete), CALL THE TOOL. Do not just describe it.
- PREFER 'replace_in_file' for small edits, comments or granular refactors. The 'search' text must match the file exactly and every occurrence is replaced.
- Use 'create_or_update_file' only for new files, or when the changes are so extensive that a full rewrite is safer. Always send the complete file content.
- If a tool result says the search text was not found, call 'read_file' to get the current content before trying again.
- If a tool result reports a conflict, the file changed remotely: read it again before writing."""

    def _build_context_section(self, context: DisclosedContext) -> str:
        """Build the current app context section."""
        return f"""## Current App Context
```json
{json.dumps(context, indent=2, sort_keys=True)}
```

- If 'current_selection' is present, the user is referring specifically to that snippet within 'file_content'.
- When asked to refactor, comment or explain, focus on 'current_selection' when it is present."""
