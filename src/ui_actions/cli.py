import argparse
import logging
import sys
from dataclasses import dataclass

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn, TaskProgressColumn
from rich.prompt import Confirm
from rich.table import Table

from ui_actions.clients.llama_cpp_client import LlamaCppEngine
from ui_actions.core import ChatSession, LifecycleSnapshot, ModelLifecycleManager, ModelState
from ui_actions.model_fetcher import ModelFetcher
from ui_actions.models.message import ChatMessage
from ui_actions.tools import ActionDispatcher
from ui_actions.tools.parser import START_MARKER, has_function_call
from ui_actions.utils.config import Config
from ui_actions.utils.logging import setup_logging

console = Console()
logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"exit", "quit"}

SCREEN_TITLES = {
    "home": "Home",
    "settings": "Settings",
    "profile": "Profile",
    "about": "About",
}

NOTIFICATION_STYLES = {
    "info": "blue",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}


@dataclass
class Notification:
    title: str
    message: str
    type: str


@dataclass
class HostState:
    """UI state the model's actions act on."""
    theme: str = "light"
    screen: str = "home"
    notification: Notification | None = None

    @property
    def is_dark(self) -> bool:
        return self.theme == "dark"

    def on_theme_change(self, theme: str) -> None:
        if theme == "toggle":
            self.theme = "light" if self.is_dark else "dark"
        else:
            self.theme = "dark" if theme == "dark" else "light"

    def on_notification(self, title: str, message: str, kind: str) -> None:
        self.notification = Notification(title=title, message=message, type=kind)

    def on_navigate(self, screen: str) -> None:
        self.screen = screen


class PartialPrinter:
    """Echoes streamed text deltas, holding back anything that may be a function call."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self.buffer = ""
        self.printed = 0
        self.suppressed = False

    def __call__(self, delta: str) -> None:
        self.buffer += delta
        if self.suppressed:
            return
        if has_function_call(self.buffer):
            self._emit(self.buffer.index(START_MARKER))
            self.suppressed = True
            return
        hold = 0
        for i in range(1, len(START_MARKER)):
            if self.buffer.endswith(START_MARKER[:i]):
                hold = i
        self._emit(len(self.buffer) - hold)

    def _emit(self, end: int) -> None:
        if end > self.printed:
            self.stream.write(self.buffer[self.printed:end])
            self.stream.flush()
            self.printed = end

    @property
    def has_output(self) -> bool:
        return self.printed > 0

    @property
    def echoed_text(self) -> str:
        return self.buffer[:self.printed].strip()


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Drive app actions (theme, notifications, navigation) with a local function-calling model",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("prompt", nargs="*", help="Prompt to answer once. Starts an interactive chat when omitted.")
    parser.add_argument("-y", "--yes", action="store_true", help="Download the model without asking")
    parser.add_argument("--status", action="store_true", help="Show model file status and exit")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--plain", action="store_true", help="Use plain text output")
    parser.add_argument("--no-stream", action="store_true", help="Do not echo the response while it is generated")
    return parser.parse_args(argv)


def show_status(manager: ModelLifecycleManager) -> None:
    asset = manager.asset
    fetcher = manager.fetcher
    present = fetcher.exists(asset.path)
    table = Table(title="Model Status", show_header=False, box=None)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("Model", f"[bold magenta]{asset.name}[/bold magenta]")
    table.add_row("Source", asset.url)
    table.add_row("Path", str(asset.path))
    table.add_row("Present", "[green]yes[/green]" if present else "[red]no[/red]")
    if present:
        table.add_row("Size", f"{fetcher.size_of(asset.path) / (1024 * 1024):.1f} MiB")
    table.add_row("State", manager.state.value)
    console.print(table)


def _download(manager: ModelLifecycleManager, retry: bool = False) -> bool:
    with Progress(
        TextColumn("[bold blue]Downloading {task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(manager.asset.name, total=1.0)

        def on_change(snapshot: LifecycleSnapshot) -> None:
            progress.update(task, completed=snapshot.download_progress)

        manager.add_listener(on_change)
        try:
            return manager.retry() if retry else manager.confirm()
        finally:
            manager.remove_listener(on_change)


def prepare_model(manager: ModelLifecycleManager, assume_yes: bool = False) -> bool:
    """Take the model from wherever it is to ready, asking for consent before downloading."""
    if manager.is_model_ready:
        return True

    if not manager.is_asset_present():
        manager.request_download()
        if manager.state is ModelState.AWAITING_CONSENT:
            size_note = "The model runs entirely on this machine once downloaded."
            if not assume_yes and not Confirm.ask(
                f"Download [bold magenta]{manager.asset.name}[/bold magenta]?\n  {size_note}", default=True
            ):
                manager.cancel()
                console.print("Download cancelled.")
                return False

            ok = _download(manager)
            while not ok:
                console.print(f"[bold red]Download failed:[/bold red] {manager.error_detail}")
                if assume_yes or not Confirm.ask("Retry?", default=True):
                    manager.cancel()
                    return False
                ok = _download(manager, retry=True)

    with console.status("Loading model..."):
        ok = manager.load()
    if not ok:
        console.print(f"[bold red]Error loading model:[/bold red] {manager.error_detail}")
        manager.cancel()
        return False
    console.print("[green]Model ready[/green]")
    return True


def render_reply(reply: ChatMessage, state: HostState, plain: bool = False, streamed: bool = False) -> None:
    if plain:
        if not streamed or reply.role == "system":
            print(reply.content)
        if reply.tool_call:
            mark = "ok" if reply.tool_call.success else "failed"
            print(f"fn() {reply.tool_call.action} [{mark}]")
    elif reply.role == "system":
        console.print(f"[bold red]{escape(reply.content)}[/bold red]")
    else:
        if not streamed:
            console.print(Panel(escape(reply.content), title="[bold green]Assistant[/bold green]", border_style="green"))
        if reply.tool_call:
            style = "green" if reply.tool_call.success else "red"
            console.print(f"[{style}]fn()[/{style}] [dim]{escape(reply.tool_call.action)}[/dim]")

    if state.notification:
        n = state.notification
        if plain:
            print(f"[{n.type}] {n.title}: {n.message}")
        else:
            border = NOTIFICATION_STYLES.get(n.type, "blue")
            console.print(Panel(escape(n.message), title=f"[bold]{escape(n.title)}[/bold]", border_style=border))
        state.notification = None

    screen = SCREEN_TITLES.get(state.screen, state.screen)
    theme = "Dark" if state.is_dark else "Light"
    if plain:
        print(f"Theme: {theme} | Screen: {screen}")
    else:
        console.print(f"[dim]Theme: {theme} | Screen: {screen}[/dim]")


def run_turn(session: ChatSession, state: HostState, text: str, plain: bool, stream: bool) -> ChatMessage:
    printer = PartialPrinter() if stream else None
    reply = session.send(text, on_partial=printer)
    streamed = False
    if printer is not None and printer.has_output:
        print()
        # Prose ahead of a call was already echoed
        streamed = not printer.suppressed or printer.echoed_text == reply.content
    render_reply(reply, state, plain=plain, streamed=streamed)
    return reply


def run_interactive(session: ChatSession, state: HostState, plain: bool, stream: bool) -> None:
    console.print("[dim]Try: 'Switch to dark mode', 'Show me a notification', 'Go to settings'. Type 'exit' to quit.[/dim]")
    while True:
        try:
            text = console.input("[bold blue]You:[/bold blue] ").strip()
        except (EOFError, KeyboardInterrupt):
            console.print()
            break
        if not text:
            continue
        if text.lower() in EXIT_COMMANDS:
            break
        run_turn(session, state, text, plain, stream)


def main(argv: list[str] | None = None) -> int:
    args = parse_arguments(argv)
    config = Config()
    if args.verbose:
        config.VERBOSE = True
    setup_logging(verbose=config.VERBOSE, debug=args.debug)
    if args.plain:
        config.PLAIN_OUTPUT = True
    if args.no_stream:
        config.NO_STREAM = True

    fetcher = ModelFetcher(timeout=config.DOWNLOAD_TIMEOUT, chunk_size=config.DOWNLOAD_CHUNK_SIZE)
    try:
        engine = LlamaCppEngine(config)
    except ImportError as e:
        if not args.status:
            console.print(f"[bold red]Error:[/bold red] {e}")
            return 1
        engine = None

    manager = ModelLifecycleManager(config.model_asset(), engine, fetcher, config.generation_options())
    logger.debug("Model %s at %s", manager.asset.name, manager.asset.path)

    if args.status:
        show_status(manager)
        return 0

    if not prepare_model(manager, assume_yes=args.yes):
        return 1

    state = HostState(theme=config.INITIAL_THEME, screen=config.INITIAL_SCREEN)
    dispatcher = ActionDispatcher(
        on_theme_change=state.on_theme_change,
        on_notification=state.on_notification,
        on_navigate=state.on_navigate,
    )
    session = ChatSession(manager, dispatcher)
    stream = not config.NO_STREAM

    try:
        if args.prompt:
            reply = run_turn(session, state, " ".join(args.prompt), config.PLAIN_OUTPUT, stream)
            return 1 if reply.role == "system" else 0
        run_interactive(session, state, config.PLAIN_OUTPUT, stream)
        return 0
    finally:
        manager.release()
