import asyncio
import logging
import typing as t

import pyperclip

log = logging.getLogger(__name__)

ClipboardSource = t.Callable[[], str | None]
ClipboardWriter = t.Callable[[str], bool]


def write_system_clipboard(text: str) -> bool:
    """Copy ``text`` to the system clipboard.

    Returns False instead of raising when the clipboard is not writable,
    the caller is expected to try again later.
    """
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        log.debug(f"Clipboard write failed: {e}")
        return False
    return True


class ClipboardMirror:
    """Copies the newest shared clipboard entry to the local clipboard.

    Polls ``source`` every ``interval`` seconds; ``source`` returns None
    while there is no room to mirror from. A value is written only when
    it differs from the last mirrored one, and never on the first tick. A
    failed write leaves the marker where it is, so the same value is tried
    again on the next tick until it succeeds.
    """

    def __init__(
        self,
        source: ClipboardSource,
        writer: ClipboardWriter = write_system_clipboard,
        interval: float = 0.1,
    ):
        self.source = source
        self.writer = writer
        self.interval = interval
        self.enabled = False
        self.last_mirrored: str | None = None
        self._retry_pending = False
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> None:
        value = self.source()
        # None: no room is shown, nothing to mirror from
        shown = value is not None
        value = value or ""
        if (
            value != self.last_mirrored
            and self.last_mirrored is not None
            and shown
            and self.enabled
        ):
            self._retry_pending = not self.writer(value)
            if self._retry_pending:
                log.debug("Clipboard not updated, retrying on next tick")
            else:
                log.debug(f"Mirrored clipboard entry ({len(value)} characters)")

        if not self._retry_pending:
            self.last_mirrored = value

    async def _run(self) -> None:
        while True:
            try:
                # a raising writer leaves the marker untouched, so the value is retried
                self.tick()
            except Exception as e:
                log.error(f"Error mirroring clipboard: {e}", exc_info=True)
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start ticking on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="clipboard-mirror")

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
