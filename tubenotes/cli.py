import argparse
import asyncio
import sys
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from tubenotes.config import settings
from tubenotes.models.auth import DeviceCodeSession
from tubenotes.models.progress import ProgressEvent
from tubenotes.providers.vault import VaultHost
from tubenotes.providers.webhook import TranscriptClient
from tubenotes.providers.youtube import extract_url
from tubenotes.services.auth import AuthManager, parse_callback_url
from tubenotes.services.processor import NoteProcessor, note_block
from tubenotes.services.progress import ProgressCoordinator
from tubenotes.utils.logger import logger

console = Console()

def render_result(result):
    style = "red" if result.is_error else "green"
    console.print(Panel(Markdown(result.content), title=result.title, border_style=style))

def show_session(session: DeviceCodeSession):
    console.print(Panel(
        f"1. Open [link={session.verification_url}]{session.verification_url}[/link]\n"
        f"2. Enter this code: [bold cyan]{session.user_code}[/bold cyan]\n"
        "3. Click \"Connect\" and wait here.",
        title="Connect to Dashboard",
    ))

async def run_with_status(progress: ProgressCoordinator, coro):
    """Mirror progress events onto a rich spinner while ``coro`` runs."""
    with console.status(progress.status) as status:
        def on_event(event: ProgressEvent):
            if event.type == "status" and event.text:
                status.update(event.text)
        unsubscribe = progress.subscribe(on_event)
        try:
            return await coro
        finally:
            unsubscribe()

async def cmd_fetch(args, progress: ProgressCoordinator):
    url = extract_url(args.text)
    if not url:
        console.print("[red]No YouTube URL found.[/red]")
        return 1
    client = TranscriptClient(settings, progress=progress)

    async def fetch():
        progress.start_countdown()
        try:
            return await client.fetch_transcript(url)
        finally:
            progress.stop_countdown()

    result = await run_with_status(progress, fetch())
    render_result(result)
    if args.output and not result.is_error:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(note_block(result, settings.INCLUDE_TITLE))
        console.print(f"\n[blue]Saved output to {args.output}[/blue]")
    return 1 if result.is_error else 0

async def cmd_note(args, progress: ProgressCoordinator):
    host = VaultHost(settings.VAULT_DIR, note=args.path, cursor=args.cursor, console=console)
    processor = NoteProcessor(host, TranscriptClient(settings, progress=progress), progress)
    await run_with_status(progress, processor.process_current_note())
    return 0

async def cmd_daily(args, progress: ProgressCoordinator):
    host = VaultHost(settings.VAULT_DIR, console=console)
    processor = NoteProcessor(host, TranscriptClient(settings, progress=progress), progress)
    if args.watch:
        await processor.run_daily_schedule()
        return 0
    added = await run_with_status(progress, processor.process_daily_note())
    if not added:
        console.print("[dim]Nothing to add to today's note.[/dim]")
    return 0

async def cmd_validate(args, progress: ProgressCoordinator):
    auth = AuthManager(settings, progress=progress, notify=console.print)
    token = args.token or auth.token
    if not token:
        console.print("[red]❌ Please enter a token first[/red]")
        return 1
    valid = await run_with_status(progress, auth.validate_token(token))
    console.print("[green]✅ Token is valid![/green]" if valid else "[red]❌ Token is invalid[/red]")
    return 0 if valid else 1

async def cmd_login(args, progress: ProgressCoordinator):
    auth = AuthManager(settings, progress=progress, notify=console.print)
    token = await auth.login(on_session=show_session)
    return 0 if token else 1

async def cmd_callback(args, progress: ProgressCoordinator):
    auth = AuthManager(settings, progress=progress, notify=console.print)
    ok = await auth.handle_callback(parse_callback_url(args.url))
    return 0 if ok else 1

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Turn YouTube links into note text")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("extract", help="Print the first YouTube URL found in TEXT")
    p.add_argument("text")

    p = sub.add_parser("fetch", help="Fetch the processed transcript for a URL (or text containing one)")
    p.add_argument("text")
    p.add_argument("--output", help="Write the note block to this file")
    p.set_defaults(func=cmd_fetch)

    p = sub.add_parser("note", help="Process the first YouTube link found in a markdown note")
    p.add_argument("path", help="Note path, relative to VAULT_DIR")
    p.add_argument("--cursor", type=int, help="Insert position (default: end of note)")
    p.set_defaults(func=cmd_note)

    p = sub.add_parser("daily", help="Append DAILY_NOTE_URL's transcript to today's note")
    p.add_argument("--watch", action="store_true", help="Keep running and check every hour")
    p.set_defaults(func=cmd_daily)

    p = sub.add_parser("validate", help="Check a token against the workflow")
    p.add_argument("--token", help="Token to check (default: the stored one)")
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser("login", help="Sign in with a device code")
    p.set_defaults(func=cmd_login)

    p = sub.add_parser("callback", help="Handle an auth callback URL carrying token= or code=")
    p.add_argument("url")
    p.set_defaults(func=cmd_callback)
    return parser

async def run(args) -> int:
    progress = ProgressCoordinator()
    return await args.func(args, progress)

def main():
    parser = build_parser()
    args = parser.parse_args()

    if args.command == "extract":
        url = extract_url(args.text)
        if not url:
            console.print("[red]No YouTube URL found.[/red]")
            sys.exit(1)
        console.print(url)
        return

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        console.print("[dim]Interrupted.[/dim]")
        sys.exit(130)
    except Exception as e:
        logger.exception(e)
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
