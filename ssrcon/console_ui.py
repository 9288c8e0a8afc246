# ssrcon/console_ui.py
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from prompt_toolkit.application import Application
from prompt_toolkit.document import Document
from prompt_toolkit.filters import Condition, has_focus
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Label, TextArea

from .client import RconClient
from .logs import LOG_DATEFMT

SHUTDOWN_POLL = 0.25      # seconds
LOG_TRIM_LIMIT = 2_000_000  # keep last ~2MB in the in-memory text area


class _PaneHandler(logging.Handler):
    """Forwards log records from any thread into the UI log pane."""

    def __init__(self, post):
        super().__init__()
        self._post = post
        self.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s", datefmt=LOG_DATEFMT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._post(self.format(record) + "\n")
        except Exception:
            self.handleError(record)


async def run_console_ui(client: RconClient, title: str = "") -> None:
    """Fullscreen RCON console: log pane + input bar, protocol loop in a worker thread."""
    loop = asyncio.get_running_loop()
    mailbox = client.mailbox
    shutdown = client.shutdown

    # Log view (not focusable so user can't type into it, but NOT read_only)
    log = TextArea(
        style="class:log",
        focusable=False,
        scrollbar=True,
        wrap_lines=False,
        read_only=False,
    )
    input_field = TextArea(
        height=1,
        prompt="> ",
        multiline=False,
        password=Condition(lambda: mailbox.expecting_secret),
    )
    status = Label(
        text=f"RCON — {title or 'Source server'}    (Ctrl-C / Esc to exit)",
        style="class:status",
    )

    kb = KeyBindings()

    @kb.add("enter", filter=has_focus(input_field))
    def _(event) -> None:
        cmd = input_field.text or ""
        input_field.buffer.document = Document(text="")
        if not cmd.strip():
            return
        if not mailbox.expecting_secret:
            _append(app, log, f"$ {cmd}\n")
        mailbox.put(cmd)

    @kb.add("c-c")
    @kb.add("escape")
    def _(event) -> None:
        shutdown.request_shutdown("console closed")
        event.app.exit()

    root = HSplit([status, log, input_field])
    app = Application(
        layout=Layout(root, focused_element=input_field),
        key_bindings=kb,
        full_screen=True,
        style=Style.from_dict(
            {
                "log": "bg:#0e162b #d1d5db",
                "status": "reverse",
            }
        ),
    )

    def post(text: str) -> None:
        # Buffers belong to the UI loop; other threads hand text over.
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(_append, app, log, text)

    handler = _PaneHandler(post)
    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    previous_output = client.output
    client.output = lambda text: post(text + "\n")

    async def watch_shutdown() -> None:
        while not shutdown.requested:
            await asyncio.sleep(SHUTDOWN_POLL)
        if app.is_running:
            with contextlib.suppress(Exception):
                app.exit()

    protocol_task = asyncio.create_task(asyncio.to_thread(client.run))
    watch_task = asyncio.create_task(watch_shutdown())

    try:
        await app.run_async()
    finally:
        shutdown.request_shutdown("console closed")
        watch_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watch_task
        await protocol_task
        root_logger.removeHandler(handler)
        client.output = previous_output


def _append(app: Optional[Application], area: TextArea, text: str) -> None:
    """
    Append text to the TextArea safely and keep the buffer size bounded.
    """
    buf = area.buffer
    buf.insert_text(text, move_cursor=True)
    if len(buf.text) > LOG_TRIM_LIMIT:
        new_text = buf.text[-LOG_TRIM_LIMIT:]
        buf.document = Document(new_text, cursor_position=len(new_text))
    if app is not None:
        try:
            app.invalidate()
        except Exception:
            pass
