"""Terminal front end that renders projections and forwards user intents."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.style import Style
from rich.table import Table
from rich.text import Text

from .app import TodoClient
from .errors import (
    ApiError,
    AuthError,
    NetworkError,
    ServerError,
    StaleResponseError,
    TaskBusyError,
    TodoClientError,
    ValidationError,
)
from .schemas.tasks import Priority, Task, TaskDraft, TaskUpdate
from .state import SessionStatus
from .tasks.projector import (
    ALL_PRIORITIES,
    CompletionFilter,
    Projection,
    SortKey,
    ViewParams,
)

logger = logging.getLogger(__name__)

THEMES: dict[str, dict[str, Style]] = {
    "light": {
        "info": Style(color="blue"),
        "error": Style(color="red", bold=True),
        "done": Style(color="green", dim=True),
        "low": Style(color="green"),
        "medium": Style(color="yellow"),
        "high": Style(color="red"),
    },
    "dark": {
        "info": Style(color="bright_cyan"),
        "error": Style(color="bright_red", bold=True),
        "done": Style(color="bright_black"),
        "low": Style(color="bright_green"),
        "medium": Style(color="bright_yellow"),
        "high": Style(color="bright_red"),
    },
}

HELP_TEXT = """
[bold]Account:[/bold]
  /login                 Sign in with email and password
  /register              Create an account
  /logout                Sign out and forget the stored token

[bold]Todos:[/bold]
  /add [title]           Add a todo (prompts when no title is given)
  /edit <n>              Edit todo number n
  /toggle <n>            Mark todo n done / not done
  /delete <n>            Delete todo n
  /reload                Fetch todos from the server again
  /list                  Redraw the list

[bold]View:[/bold]
  /filter all|active|completed
  /priority all|low|medium|high
  /sort createdAt_desc|createdAt_asc|priority_desc|priority_asc

  /theme                 Switch between light and dark
  /quit                  Exit
"""

Asker = Callable[..., str]

TODO_COMMANDS = frozenset({"/list", "/reload", "/add", "/edit", "/toggle", "/delete"})


class TodoShell:
    """Interactive shell over a :class:`TodoClient`."""

    def __init__(
        self,
        client: TodoClient,
        *,
        console: Optional[Console] = None,
        ask: Optional[Asker] = None,
    ):
        self.client = client
        self.console = console or Console()
        self.params = ViewParams()
        self.running = True
        self._ask = ask or self._prompt
        self._rows: tuple[Task, ...] = ()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _style(self, name: str) -> Style:
        return THEMES[self.client.theme.get()][name]

    def _info(self, text: str) -> None:
        self.console.print(text, style=self._style("info"))

    def _error(self, text: str) -> None:
        self.console.print(text, style=self._style("error"))

    def projection(self) -> Projection:
        return self.client.store.view(self.params)

    def render(self) -> None:
        session = self.client.session.session
        if session is None:
            self._info("Not signed in. Use /login or /register.")
            return

        view = self.projection()
        self._rows = view.tasks
        counts = view.counts
        self.console.print(
            f"[bold]{session.user.username}[/bold]  "
            f"Total {counts.total} | Active {counts.active} | Completed {counts.completed}"
        )
        self.console.print(
            f"[dim]filter={self.params.completion.value} "
            f"priority={getattr(self.params.priority, 'value', self.params.priority)} "
            f"sort={self.params.sort.value}[/dim]"
        )
        if not view.tasks:
            self.console.print("[dim]No todos found[/dim]")
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("#", justify="right")
        table.add_column("Done")
        table.add_column("Title")
        table.add_column("Priority")
        table.add_column("Created")
        for index, task in enumerate(view.tasks, start=1):
            row_style = self._style("done") if task.completed else None
            title = escape(task.title)
            if task.description:
                title = f"{title}\n[dim]{escape(task.description)}[/dim]"
            if self.client.store.is_busy(task.id):
                title = f"{title} [dim](saving)[/dim]"
            table.add_row(
                str(index),
                "x" if task.completed else "",
                title,
                Text(task.priority.value, style=self._style(task.priority.value)),
                task.created_at.astimezone().strftime("%Y-%m-%d"),
                style=row_style,
            )
        self.console.print(table)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def _prompt(self, label: str, *, default: Optional[str] = None, password: bool = False) -> str:
        if default is None:
            return Prompt.ask(label, console=self.console, password=password)
        return Prompt.ask(label, console=self.console, default=default, password=password)

    def _resolve(self, ref: str) -> Optional[Task]:
        """Map a row number from the last render, or a raw id, to a task."""

        ref = ref.strip()
        if ref.isdigit():
            index = int(ref) - 1
            if 0 <= index < len(self._rows):
                return self._rows[index]
        task = self.client.store.get(ref)
        if task is None:
            self._error(f"No todo '{ref}'")
        return task

    def _report(self, exc: TodoClientError) -> None:
        if isinstance(exc, AuthError):
            self._error("Your session has expired. Please /login again.")
        elif isinstance(exc, ValidationError):
            self._error(exc.message)
        elif isinstance(exc, (NetworkError, ServerError)):
            self._error("Something went wrong. Please try again.")
        elif isinstance(exc, (TaskBusyError, StaleResponseError)):
            self._info(str(exc))
        else:
            self._error(str(exc))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def handle_command(self, line: str) -> None:
        text = line.strip()
        if not text:
            return
        if not text.startswith("/"):
            text = f"/add {text}"

        command, _, argument = text.partition(" ")
        command = command.lower()
        argument = argument.strip()

        try:
            if command == "/help":
                self.console.print(
                    Panel(HELP_TEXT.strip(), title="Todo Help", border_style="blue")
                )
            elif command == "/quit":
                self.running = False
            elif command == "/login":
                await self._login()
            elif command == "/register":
                await self._register()
            elif command == "/logout":
                self.client.session.logout()
                self._info("Signed out.")
            elif command == "/theme":
                theme = self.client.theme.toggle()
                self._info(f"Theme: {theme}")
                self.render()
            elif command in ("/filter", "/priority", "/sort"):
                self._set_view(command, argument)
            elif command in TODO_COMMANDS and self.client.session.session is None:
                self._error("Please /login or /register first.")
            elif command == "/list":
                self.render()
            elif command == "/reload":
                await self.client.store.load()
                self.render()
            elif command == "/add":
                await self._add(argument)
            elif command == "/edit":
                await self._edit(argument)
            elif command == "/toggle":
                task = self._resolve(argument)
                if task is not None:
                    await self.client.store.toggle(task.id)
                    self.render()
            elif command == "/delete":
                task = self._resolve(argument)
                if task is not None:
                    await self.client.store.delete(task.id)
                    self.render()
            else:
                self._error(f"Unknown command {command}. Type /help.")
        except TodoClientError as exc:
            self._report(exc)
            if isinstance(exc, AuthError):
                self.render()

    def _set_view(self, command: str, argument: str) -> None:
        try:
            if command == "/filter":
                self.params = replace(
                    self.params, completion=CompletionFilter(argument or "all")
                )
            elif command == "/priority":
                priority = argument or ALL_PRIORITIES
                self.params = replace(
                    self.params,
                    priority=priority if priority == ALL_PRIORITIES else Priority(priority),
                )
            else:
                self.params = replace(
                    self.params, sort=SortKey(argument or SortKey.CREATED_AT_DESC.value)
                )
        except ValueError:
            self._error(f"Invalid value '{argument}' for {command}")
            return
        self.render()

    async def _login(self) -> None:
        email = self._ask("Email")
        password = self._ask("Password", password=True)
        try:
            session = await self.client.session.login(email, password)
        except ApiError as exc:
            # Rejected credentials arrive as AuthError; show the server's reason
            self._error(exc.message)
            return
        self._info(f"Welcome back, {session.user.username}!")
        await self.client.store.load()
        self.render()

    async def _register(self) -> None:
        username = self._ask("Username")
        email = self._ask("Email")
        password = self._ask("Password", password=True)
        try:
            session = await self.client.session.register(username, email, password)
        except ApiError as exc:
            self._error(exc.message)
            return
        self._info(f"Account created. Hello, {session.user.username}!")
        await self.client.store.load()
        self.render()

    def _ask_priority(self, default: str) -> Priority:
        while True:
            value = self._ask("Priority (low/medium/high)", default=default).strip().lower()
            try:
                return Priority(value)
            except ValueError:
                self._error("Choose low, medium or high")

    async def _add(self, argument: str) -> None:
        if argument:
            draft = TaskDraft(title=argument)
        else:
            title = self._ask("Title")
            description = self._ask("Description", default="")
            draft = TaskDraft(
                title=title,
                description=description,
                priority=self._ask_priority(Priority.MEDIUM.value),
            )
        task = await self.client.store.create(draft)
        self._info(f"Added '{task.title}'")
        self.render()

    async def _edit(self, argument: str) -> None:
        task = self._resolve(argument)
        if task is None:
            return
        title = self._ask("Title", default=task.title)
        description = self._ask("Description", default=task.description)
        priority = self._ask_priority(task.priority.value)

        changes: dict[str, object] = {}
        if title != task.title:
            changes["title"] = title
        if description != task.description:
            changes["description"] = description
        if priority != task.priority:
            changes["priority"] = priority
        if not changes:
            self._info("Nothing changed.")
            return
        await self.client.store.update(task.id, TaskUpdate(**changes))
        self.render()

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Restore the saved session and show the first screen."""

        with self.console.status("Loading..."):
            status = await self.client.session.restore()
            logger.debug("Session restore finished: %s", status.value)
            if status is SessionStatus.AUTHENTICATED:
                try:
                    await self.client.store.load()
                except TodoClientError as exc:
                    self._report(exc)
        self.render()

    async def run(self) -> None:
        await self.start()
        self.console.print("[bold]Todo[/bold] - Type /help for commands, Ctrl+D to exit")

        while self.running:
            try:
                line = Prompt.ask("[bold blue]>[/bold blue]", console=self.console)
            except EOFError:
                self.console.print("\n[dim]Goodbye![/dim]")
                break
            except KeyboardInterrupt:
                self.console.print()
                continue
            await self.handle_command(line)


__all__ = ["TodoShell"]
