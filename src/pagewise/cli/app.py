"""Main CLI application using Typer.

``ask`` runs all three roles in one process: the background role on the
runtime channel, a content role on the page's tab channel and a chat panel
that talks to both, exactly as the extension would.
"""
import asyncio
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from ..agent import StaticPageBrowser
from ..chat import (
    BackgroundApp,
    CallablePageSource,
    ChainedConfigProvider,
    ChatPanel,
    EnvConfigProvider,
    ExtensionConfig,
    StoredConfigProvider,
    create_chat_service,
    create_content_router,
)
from ..memory import SessionStore
from ..messaging import BrowserHost, PageInfo, RouterOptions
from ..search.index import PAGES_NAMESPACE, VECTORS_NAMESPACE
from ..storage import KeyValueStore, create_key_value_store
from .config import console_log_callback

# Load environment variables
load_dotenv()

app = typer.Typer(
    name="pagewise",
    help="Chat with the page open in a tab, grounded in its content",
    no_args_is_help=True,
    add_completion=True,
)

console = Console()
err_console = Console(stderr=True)

DEFAULT_DB = Path("./pagewise.db")


def _open_store(db: Path | None) -> KeyValueStore:
    if db is None:
        return create_key_value_store("memory")
    return create_key_value_store("sqlite", path=str(db))


@app.command()
def ask(
    page_file: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        help="Text file holding the page's visible text"
    ),
    question: str = typer.Argument(..., help="Question about the page"),
    tab: str = typer.Option("1", "--tab", "-t", help="Tab id the page is open in"),
    url: str | None = typer.Option(None, "--url", "-u", help="Page URL (defaults to the file URI)"),
    title: str | None = typer.Option(None, "--title", help="Page title (defaults to the file name)"),
    no_rag: bool = typer.Option(
        False,
        "--no-rag",
        help="Send the whole page instead of the most relevant chunks"
    ),
    max_rounds: int = typer.Option(5, "--max-rounds", "-r", help="Maximum tool-calling rounds"),
    timeout: float = typer.Option(120.0, "--timeout", help="Seconds to wait for an answer"),
    db: Path | None = typer.Option(
        None,
        "--db",
        help="SQLite file to keep sessions and indices in (in-memory when omitted)"
    ),
    log_level: str = typer.Option("warning", "--log-level", "-l", help="debug, info, warning or error")
):
    """Ask a question about a page."""
    async def _ask():
        log = console_log_callback(err_console, log_level)
        options = RouterOptions(timeout=timeout, debug=log_level.lower() == "debug")
        page = PageInfo(
            id=tab,
            url=url or page_file.resolve().as_uri(),
            title=title or page_file.stem,
            content=page_file.read_text(encoding="utf-8")
        )
        browser = StaticPageBrowser(page)

        store = _open_store(db)
        await store.connect()

        host = BrowserHost()
        host.set_debug_callback(log)

        background = BackgroundApp(
            ChainedConfigProvider(StoredConfigProvider(store), EnvConfigProvider()),
            lambda config: create_chat_service(config, store, browser=browser, max_rounds=max_rounds),
            router_options=options
        )
        background.set_debug_callback(log)
        background.start(host.runtime)

        content = create_content_router(tab, CallablePageSource(lambda: browser.page), host.runtime, options)
        content.set_debug_callback(log)
        content.start_listener(host.tab(tab))

        host.activate(tab)
        panel = ChatPanel(host, enable_rag=not no_rag, timeout=timeout)
        panel.set_debug_callback(log)

        try:
            if not await panel.load(tab):
                console.print(f"[red]Error: {panel.error}[/red]")
                raise typer.Exit(code=1)

            with console.status("[dim]Thinking...[/dim]"):
                turn = await panel.send_message(question)

            if turn is None:
                console.print(f"[red]Error: {panel.error or 'No answer received'}[/red]")
                raise typer.Exit(code=1)

            console.print(Panel(
                Markdown(turn.text),
                title=f"[bold]{page.title}[/bold]",
                border_style="cyan"
            ))
            for name, value in browser.actions:
                console.print(f"[dim]{name}: {value}[/dim]")
        finally:
            content.stop_listener()
            await background.stop()
            await store.disconnect()

    asyncio.run(_ask())


@app.command()
def history(
    tab: str = typer.Argument(..., help="Tab id"),
    db: Path = typer.Option(DEFAULT_DB, "--db", help="SQLite file holding sessions")
):
    """Show the conversation stored for a tab."""
    async def _history():
        store = _open_store(db)
        try:
            await store.connect()
            session = await SessionStore(store).get(tab)

            if session is None or not session.turns:
                console.print(f"[yellow]No conversation for tab {tab}[/yellow]")
                return

            table = Table(show_header=True, header_style="bold cyan")
            table.add_column("Time", style="dim", width=8)
            table.add_column("Role", style="cyan", width=9)
            table.add_column("Status", width=7)
            table.add_column("Text")

            for turn in session.turns:
                status_style = "red" if turn.status == "error" else "green"
                table.add_row(
                    turn.created_at.strftime("%H:%M:%S"),
                    turn.role,
                    f"[{status_style}]{turn.status}[/{status_style}]",
                    turn.text
                )

            console.print(table)

        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await store.disconnect()

    asyncio.run(_history())


@app.command()
def clear(
    tab: str = typer.Argument(..., help="Tab id"),
    db: Path = typer.Option(DEFAULT_DB, "--db", help="SQLite file holding sessions"),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt"
    )
):
    """Clear the conversation and page index stored for a tab."""
    async def _clear():
        if not yes:
            confirm = typer.confirm(f"Clear the conversation for tab {tab}?")
            if not confirm:
                console.print("[dim]Aborted.[/dim]")
                return

        store = _open_store(db)
        try:
            await store.connect()
            await SessionStore(store).clear(tab)
            await store.delete(VECTORS_NAMESPACE, tab)
            await store.delete(PAGES_NAMESPACE, tab)
            console.print(f"[green]Cleared tab {tab}[/green]")

        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await store.disconnect()

    asyncio.run(_clear())


@app.command()
def configure(
    llm_provider: str = typer.Option("gemini", "--llm-provider", help="openai or gemini"),
    llm_api_key: str = typer.Option(..., "--llm-api-key", prompt=True, hide_input=True),
    llm_model: str | None = typer.Option(None, "--llm-model"),
    embedding_provider: str | None = typer.Option(
        None,
        "--embedding-provider",
        help="openai, gemini or hashing (defaults to the LLM provider)"
    ),
    embedding_api_key: str | None = typer.Option(None, "--embedding-api-key", hide_input=True),
    embedding_model: str | None = typer.Option(None, "--embedding-model"),
    db: Path = typer.Option(DEFAULT_DB, "--db", help="SQLite file to store the configuration in")
):
    """Store model and embedding credentials."""
    async def _configure():
        try:
            config = ExtensionConfig(
                llm_provider=llm_provider,
                llm_api_key=llm_api_key,
                llm_model=llm_model,
                embedding_provider=embedding_provider,
                # Same provider, same key unless told otherwise
                embedding_api_key=embedding_api_key or (
                    llm_api_key if (embedding_provider or llm_provider) == llm_provider else None
                ),
                embedding_model=embedding_model,
            )
        except ValueError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)

        store = _open_store(db)
        try:
            await store.connect()
            await StoredConfigProvider(store).save(config)
        finally:
            await store.disconnect()

        if config.configured:
            console.print(f"[green]Configuration saved to {db}[/green]")
        else:
            console.print("[yellow]Configuration saved, but an embedding API key is still missing[/yellow]")

    asyncio.run(_configure())


if __name__ == "__main__":
    app()
