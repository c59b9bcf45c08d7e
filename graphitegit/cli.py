"""CLI and REPL for graphite-git."""

import json
import sys
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from graphitegit.agent import Agent
from graphitegit.config import Config
from graphitegit.context import OpenFile, RepositoryRef
from graphitegit.conversation import FunctionResultTurn, ModelTurn, SystemTurn, ToolInvocation
from graphitegit.errors import GraphiteError
from graphitegit.llm import LLM
from graphitegit.tools.executor import ToolExecutor
from graphitegit.tools.github import GitHubClient, RemoteFile
from graphitegit.utils.logging import SessionLogger

app = typer.Typer(help="graphite-git - GitHub repository agent")
console = Console()

CONTEXT_FLAGS = {
    "repo": "include_repo_map",
    "file": "include_file_content",
    "selection": "include_selection",
}


class REPL:
    """Interactive REPL for graphite-git."""

    def __init__(self, config: Config):
        """Initialize REPL.

        Args:
            config: Configuration object
        """
        self.config = config
        self.logger = SessionLogger(config.home_dir)
        self.github = self._make_github(config.github_token)
        self.executor = ToolExecutor(self.github, logger=self.logger)
        self.agent = Agent(
            engine=LLM(),
            executor=self.executor,
            policy=config.policy(),
            model=config.default_model,
            api_key=config.anthropic_api_key,
            logger=self.logger,
        )
        self.agent.subscribe(self._on_change)

        self.rendered = 0
        self.stale_view = False
        self.running = True

    def _make_github(self, token: Optional[str]) -> Optional[GitHubClient]:
        if not token:
            return None
        return GitHubClient(
            token,
            timeout=self.config.request_timeout,
            page_delay_ms=self.config.page_delay_ms,
        )

    def _on_change(self, name: str, value: Any) -> None:
        if name == "last_action_timestamp":
            self.stale_view = True

    def start(self) -> None:
        """Start the REPL."""
        console.print(Panel.fit(
            "[bold cyan]graphite-git[/bold cyan] - GitHub repository agent\n"
            f"Model: {self.agent.model}\n"
            "\n"
            "Type /help for commands or /quit to exit",
            border_style="cyan"
        ))
        if self.github is None:
            console.print("[yellow]No GitHub token configured. Use /token <token>.[/yellow]")
        if not self.agent.api_key:
            console.print("[yellow]No Anthropic API key configured. Use /key <key>.[/yellow]")
        if self.config.settings_backup:
            console.print(
                f"[yellow]Settings file was unreadable; moved to {self.config.settings_backup}[/yellow]"
            )

        # Main REPL loop
        while self.running:
            try:
                user_input = console.input(self._prompt()).strip()

                if not user_input:
                    continue

                self.handle_input(user_input)

            except KeyboardInterrupt:
                console.print("\n[dim]Use /quit to exit[/dim]")
                continue
            except EOFError:
                break

        console.print("\n[cyan]Goodbye![/cyan]")

    def _prompt(self) -> str:
        repo = self.agent.context.current_repository
        where = repo.full_name if repo else "no repo"
        path = self.agent.context.current_path
        if repo and path:
            where += f":{path}"
        return f"[bold cyan]graphite[/bold cyan] [dim]({where})[/dim]> "

    def handle_input(self, user_input: str) -> None:
        """Handle user input (command or natural language).

        Args:
            user_input: User input string
        """
        if user_input.startswith("/"):
            self.handle_command(user_input)
        else:
            self.handle_natural_language(user_input)

    def handle_command(self, command: str) -> None:
        """Handle slash command.

        Args:
            command: Command string (starting with /)
        """
        parts = command.split(maxsplit=1)
        cmd = parts[0].lower()
        args = parts[1].strip() if len(parts) > 1 else ""

        try:
            if cmd == "/help":
                self.show_help()
            elif cmd == "/quit" or cmd == "/exit":
                self.running = False
            elif cmd == "/repo":
                self.cmd_repo(args)
            elif cmd == "/cd":
                self.cmd_cd(args)
            elif cmd == "/open":
                if not args:
                    console.print("[red]Usage: /open <path>[/red]")
                    return
                self.cmd_open(args)
            elif cmd == "/select":
                self.agent.update_context(current_selection=args or None)
                console.print(f"[dim]Selection {'set' if args else 'cleared'}[/dim]")
            elif cmd == "/context":
                self.cmd_context(args)
            elif cmd == "/model":
                self.cmd_model(args)
            elif cmd == "/key":
                if not args:
                    console.print("[red]Usage: /key <anthropic-api-key>[/red]")
                    return
                self.agent.set_api_key(args)
                self.config.anthropic_api_key = args
                self.config.save()
                console.print("[green]Anthropic API key saved[/green]")
            elif cmd == "/token":
                if not args:
                    console.print("[red]Usage: /token <github-token>[/red]")
                    return
                client = self._make_github(args)
                user = client.get_authenticated_user()
                self.github = client
                self.executor.repository = client
                self.config.github_token = args
                self.config.save()
                console.print(f"[green]Connected to GitHub as {user.get('login', '?')}[/green]")
            elif cmd == "/network":
                self.cmd_network(args)
            elif cmd == "/reset":
                if self.agent.reset():
                    self.rendered = 0
                    console.print("[dim]Conversation cleared[/dim]")
                else:
                    console.print("[red]Cannot reset while a request is in progress[/red]")
            elif cmd == "/config":
                config_dict = self.config.to_dict()
                console.print(Panel(
                    "\n".join(f"{k}: {v}" for k, v in config_dict.items()),
                    title="Configuration",
                    border_style="blue"
                ))
            elif cmd == "/log":
                log_path = self.logger.get_log_path()
                console.print(f"[dim]Session logs: {log_path}[/dim]")
            else:
                console.print(f"[red]Unknown command: {cmd}[/red]")
                console.print("[dim]Type /help for available commands[/dim]")

        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")

    def cmd_repo(self, args: str) -> None:
        if not args:
            repo = self.agent.context.current_repository
            console.print(f"[dim]Current repository: {repo.full_name if repo else 'none'}[/dim]")
            if self.github:
                for entry in self.github.get_user_repos()[:20]:
                    console.print(f"  - {entry.get('full_name')}")
            return

        ref = RepositoryRef.parse(args)
        self.agent.update_context(
            active_view="repository",
            current_repository=ref,
            current_path="",
            current_file=None,
            file_content=None,
            current_selection=None,
        )
        console.print(f"[green]Repository: {ref.full_name}[/green]")
        self.show_listing("")

    def cmd_cd(self, args: str) -> None:
        path = args.strip("/")
        if args == "..":
            current = self.agent.context.current_path or ""
            path = current.rsplit("/", 1)[0] if "/" in current else ""
        self.agent.update_context(active_view="repository", current_path=path)
        self.show_listing(path)

    def cmd_open(self, path: str) -> None:
        remote = self._fetch(path.strip("/"))
        if remote is None:
            return
        if isinstance(remote, list):
            console.print(f"[red]{path} is a directory; use /cd[/red]")
            return

        content = None if remote.is_binary else remote.text()
        parent = remote.path.rsplit("/", 1)[0] if "/" in remote.path else ""
        self.agent.update_context(
            active_view="file",
            current_path=parent,
            current_file=self._open_file(remote),
            file_content=content,
            current_selection=None,
        )
        console.print(f"[bold]{remote.path}[/bold] [dim]({remote.size} bytes)[/dim]")
        if content is None:
            console.print("[dim]Binary file[/dim]")
        else:
            lexer = Syntax.guess_lexer(remote.path, code=content)
            console.print(Syntax(content, lexer, theme="monokai", line_numbers=True))

    def cmd_context(self, args: str) -> None:
        parts = args.split()
        if len(parts) == 2 and parts[0] in CONTEXT_FLAGS and parts[1] in ("on", "off"):
            policy = self.agent.update_policy(**{CONTEXT_FLAGS[parts[0]]: parts[1] == "on"})
            self.config.set_policy(policy)
            self.config.save()
        elif parts:
            console.print("[red]Usage: /context [repo|file|selection] [on|off][/red]")
            return

        policy = self.agent.policy
        for name, flag in CONTEXT_FLAGS.items():
            state = "on" if getattr(policy, flag) else "off"
            console.print(f"[dim]{name}: {state}[/dim]")

    def cmd_model(self, args: str) -> None:
        if args:
            self.agent.set_model(args)
            self.config.default_model = args
            self.config.save()
            console.print(f"[green]Switched to model: {args}[/green]")
        else:
            console.print(f"[dim]Current model: {self.agent.model}[/dim]")
            console.print("\nAvailable models:")
            for model in LLM.list_models():
                console.print(f"  - {model}")

    def cmd_network(self, args: str) -> None:
        view = args or "followers"
        if view not in ("followers", "following", "audit"):
            console.print("[red]Usage: /network [followers|following|audit][/red]")
            return
        if self.github is None:
            console.print("[red]No GitHub token configured. Use /token <token>[/red]")
            return

        with console.status(f"[dim]Scanning {view}...[/dim]"):
            if view == "followers":
                users = self.github.get_all_followers()
            elif view == "following":
                users = self.github.get_all_following()
            else:
                users = self.github.get_non_followers()

        table = Table(title=f"{view.capitalize()} ({len(users)})")
        table.add_column("Login", style="cyan")
        table.add_column("Profile", style="dim")
        for user in users:
            table.add_row(user.get("login", "?"), user.get("html_url", ""))
        console.print(table)

    @staticmethod
    def _open_file(remote: RemoteFile) -> OpenFile:
        handle = remote.handle()
        return OpenFile(
            path=handle.path,
            version_token=handle.version_token,
            is_binary=handle.is_binary,
            size=remote.size,
        )

    def _fetch(self, path: str):
        repo = self.agent.context.current_repository
        if repo is None:
            console.print("[red]No repository selected. Use /repo owner/name[/red]")
            return None
        if self.github is None:
            console.print("[red]No GitHub token configured. Use /token <token>[/red]")
            return None
        return self.github.get_content(repo.owner, repo.name, path)

    def show_listing(self, path: str) -> None:
        listing = self._fetch(path)
        if listing is None:
            return
        if isinstance(listing, RemoteFile):
            listing = [listing]
        for entry in sorted(listing, key=lambda e: (e.type != "dir", e.name.lower())):
            marker = "/" if entry.type == "dir" else ""
            console.print(f"  {entry.name}{marker}")

    def handle_natural_language(self, text: str) -> None:
        """Send text to the agent and walk through any approvals.

        Args:
            text: User's natural language request
        """
        try:
            if self.agent.pending_tool_call is None:
                with console.status("[dim]Thinking...[/dim]"):
                    self.agent.send_message(text)
                self.render_new()
            else:
                console.print("[yellow]A tool call is still waiting for approval.[/yellow]")
            self.review_pending()
        except Exception:
            # The agent already recorded the failure as a system turn
            self.render_new()

        if self.stale_view:
            self.stale_view = False
            self.refresh_view()

    def review_pending(self) -> None:
        """Ask for a decision on each pending tool call until none is left.

        Ctrl-C or end of input at the prompt counts as a rejection.
        """
        while self.agent.pending_tool_call is not None:
            self.show_tool_call(self.agent.pending_tool_call)
            try:
                response = console.input("[yellow]Approve? (y/N):[/yellow] ").strip().lower()
            except (KeyboardInterrupt, EOFError):
                console.print()
                response = "n"

            if response == "y":
                with console.status("[dim]Executing...[/dim]"):
                    self.agent.approve_tool_call()
            else:
                self.agent.reject_tool_call()
            self.render_new()

    def refresh_view(self) -> None:
        """Reload the open file after a remote change."""
        current = self.agent.context.current_file
        if current is None:
            return
        try:
            remote = self._fetch(current.path)
        except GraphiteError:
            # File was deleted or moved
            self.agent.update_context(current_file=None, file_content=None, active_view="repository")
            console.print(f"[dim]{current.path} is no longer available[/dim]")
            return
        if isinstance(remote, RemoteFile):
            self.agent.update_context(
                current_file=self._open_file(remote),
                file_content=None if remote.is_binary else remote.text(),
            )
            console.print(f"[dim]Reloaded {remote.path}[/dim]")

    def render_new(self) -> None:
        """Print turns added since the last render."""
        messages = self.agent.messages
        for turn in messages[self.rendered:]:
            if isinstance(turn, ModelTurn):
                if turn.text:
                    console.print(Markdown(turn.text))
            elif isinstance(turn, SystemTurn):
                style = "red" if turn.text.startswith("Error") else "yellow"
                console.print(f"[{style}]{turn.text}[/{style}]")
            elif isinstance(turn, FunctionResultTurn):
                result = turn.result if len(turn.result) <= 1500 else turn.result[:1500] + "\n..."
                console.print(Panel(
                    result,
                    title=f"{turn.tool_name} result",
                    border_style="red" if turn.is_error else "dim",
                ))
        self.rendered = len(messages)

    def show_tool_call(self, call: ToolInvocation) -> None:
        args = dict(call.args)
        body = args.pop("content", None)
        summary = json.dumps(args, indent=2)
        console.print(Panel(summary, title=f"Tool call: {call.name}", border_style="yellow"))
        if body is not None:
            path = str(args.get("path", "file"))
            lexer = Syntax.guess_lexer(path, code=body)
            console.print(Syntax(body, lexer, theme="monokai", line_numbers=True))

    def show_help(self) -> None:
        """Show help message."""
        help_text = """
**Available Commands:**

- `/repo [owner/name]` - Select a repository (or list yours)
- `/cd <path>` - Change directory inside the repository (`..` to go up)
- `/open <path>` - Open a file and share it as context
- `/select <text>` - Set the current selection (empty to clear)
- `/context [repo|file|selection] [on|off]` - Show or toggle what the agent can see
- `/model [name]` - Show or switch model
- `/key <key>` - Set the Anthropic API key
- `/token <token>` - Set the GitHub token
- `/network [followers|following|audit]` - Scan your network (audit: accounts you follow that do not follow back)
- `/reset` - Clear the conversation
- `/config` - Show current configuration
- `/log` - Show session log path
- `/help` - Show this help message
- `/quit` - Exit

Anything else is sent to the agent. Every file change it proposes must be approved.

**Examples:**

```
/repo octocat/hello-world
list the files here
/open README.md
add a usage section to this README
```
        """
        console.print(Markdown(help_text))


@app.command()
def main(
    model: Optional[str] = typer.Option(
        None,
        "--model", "-m",
        help="Model to use (e.g., anthropic:claude-haiku-4-5)"
    ),
    repo: Optional[str] = typer.Option(
        None,
        "--repo", "-r",
        help="Repository to open (owner/name)"
    ),
    home: Optional[Path] = typer.Option(
        None,
        "--home",
        help="State directory (default: ~/.graphite-git)"
    ),
) -> None:
    """Start a graphite-git interactive session."""
    # Load configuration
    try:
        config = Config.load(home)
    except GraphiteError as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)

    # Override model if specified
    if model:
        config.default_model = model

    # Validate configuration
    errors = config.validate()
    if errors:
        console.print("[red]Configuration errors:[/red]")
        for error in errors:
            console.print(f"  - {error}")
        sys.exit(1)

    # Start REPL
    repl = REPL(config)
    if repo:
        try:
            repl.cmd_repo(repo)
        except (GraphiteError, ValueError) as e:
            console.print(f"[red]Error: {e}[/red]")
    repl.start()


if __name__ == "__main__":
    app()
