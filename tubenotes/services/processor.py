import asyncio
from datetime import date
from typing import Optional
from tubenotes.config import Settings, settings as default_settings
from tubenotes.core.errors import is_status_worthy
from tubenotes.core.host import NoteHost
from tubenotes.models.transcript import TranscriptResult
from tubenotes.providers.webhook import TranscriptClient
from tubenotes.providers.youtube import extract_url, is_valid_url
from tubenotes.services.progress import ProgressCoordinator
from tubenotes.utils.logger import logger
from tubenotes.utils.render import render

DAILY_NOTE_MARKER = "<!-- YOUTUBE_TRANSCRIPT_PROCESSED -->"
DAILY_INTERVAL = 60 * 60


def daily_note_path(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{today:%Y-%m-%d}.md"


def note_block(result: TranscriptResult, include_title: bool) -> str:
    return render("note_block", include_title=include_title, title=result.title, content=result.content)


class NoteProcessor:
    """Finds a video link somewhere in the host, fetches it and writes the result back in place."""

    def __init__(
        self,
        host: NoteHost,
        client: TranscriptClient,
        progress: ProgressCoordinator,
        settings: Optional[Settings] = None,
    ):
        self.host = host
        self.client = client
        self.progress = progress
        self.settings = settings or client.settings or default_settings
        # Inline fetches currently driving the countdown
        self._counting = 0

    def note_block(self, result: TranscriptResult) -> str:
        return note_block(result, self.settings.INCLUDE_TITLE)

    async def process_current_note(self):
        try:
            if self.host.active_note() is None:
                self.host.notify("No active note")
                return
            url = extract_url(self.host.get_text())
            if not url:
                return
            if not is_valid_url(url):
                self.host.notify("Invalid YouTube URL format in note")
                return
            await self.process_url(url)
        except Exception as e:
            logger.exception("Error processing current note")
            self.host.notify(f"Error processing note: {e}")

    async def process_clipboard(self):
        try:
            url = extract_url(self.host.read_clipboard())
            if not url:
                self.host.notify("No YouTube URL found in clipboard")
                return
            if not is_valid_url(url):
                self.host.notify("Invalid YouTube URL format")
                return
            await self.process_url(url)
        except Exception as e:
            logger.exception("Error processing clipboard")
            self.host.notify(f"Error reading clipboard: {e}")

    async def process_selection(self):
        try:
            start, end = self.host.get_selection()
            url = extract_url(self.host.get_text()[start:end])
            if not url:
                self.host.notify("No YouTube URL selected.")
                return
            await self._process(url, start, end)
        except Exception as e:
            logger.exception("Error processing selection")
            self.host.notify(f"Error: {e}")

    async def process_url(self, url: str):
        try:
            await self._process(url, self.host.get_cursor())
        except Exception as e:
            logger.exception(f"Error processing {url}")
            self.host.notify(f"Error: {e}")

    async def _process(self, url: str, start: int, end: Optional[int] = None):
        logger.info(f"Processing {url}")
        failure = None
        self._counting += 1
        try:
            with self.progress.loading() as marker_id:
                placeholder = render("loading_placeholder", marker_id=marker_id)
                self.host.replace_range(placeholder, start, end)
                self.progress.start_countdown()
                try:
                    result = await self.client.fetch_transcript(url)
                except Exception as e:
                    # fetch_transcript converts its own failures; this is a host-side fault
                    logger.exception(f"Critical error while processing {url}")
                    failure = e
        finally:
            self._counting -= 1
            self._settle()

        if failure is not None:
            self._replace_placeholder(placeholder, render("inline_error", message=f"Error: {failure}"), start)
            self.progress.clear_status()
            return

        if result.is_error:
            logger.error(f"Workflow returned an error for {url}")
            self._replace_placeholder(
                placeholder, render("inline_error", message=f"Processing error: {result.content}"), start
            )
            if is_status_worthy(result.error):
                self.progress.show_status("❌ Error", clear_after=5)
            else:
                self.progress.clear_status()
            return

        self._replace_placeholder(placeholder, self.note_block(result), start)
        self.progress.clear_status()

    def _settle(self):
        # Another inline fetch may still own the shared countdown; the daily fetch never starts it
        if not self._counting:
            self.progress.stop_countdown()

    def _replace_placeholder(self, placeholder: str, text: str, fallback: int):
        current = self.host.get_text()
        index = current.find(placeholder)
        if index >= 0:
            self.host.replace_range(text, index, index + len(placeholder))
        else:
            # Placeholder was edited away; insert where the operation started
            self.host.replace_range(text, min(fallback, len(current)))

    async def process_daily_note(self, today: Optional[date] = None) -> bool:
        url = self.settings.DAILY_NOTE_URL
        if not url:
            return False
        path = daily_note_path(today)
        content = self.host.read_note(path)
        if content is None or DAILY_NOTE_MARKER in content:
            return False

        with self.progress.loading(f"daily-{path}"):
            result = await self.client.fetch_transcript(url)
        if result.is_error:
            logger.warning(f"Daily note transcript failed, will retry on next run: {result.error}")
            return False

        self.host.append_to_note(path, f"{self.note_block(result)}\n\n{DAILY_NOTE_MARKER}")
        self.host.notify("Transcript added to daily note.")
        return True

    async def run_daily_schedule(self, interval: float = DAILY_INTERVAL):
        while True:
            await asyncio.sleep(interval)
            try:
                await self.process_daily_note()
            except Exception as e:
                logger.error(f"Scheduled daily note run failed: {e}")
