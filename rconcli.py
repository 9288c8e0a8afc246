#!/usr/bin/env python3
from __future__ import annotations
import argparse, sys, asyncio, logging
from pathlib import Path
from typing import Optional

from prompt_toolkit.patch_stdout import patch_stdout

from ssrcon import __version__
from ssrcon.client import RconClient
from ssrcon.config import ClientSettings, Credentials, load_settings
from ssrcon.connection import RconConnection
from ssrcon.console import ConsoleReader
from ssrcon.logs import coerce_debug_level, configure_logging
from ssrcon.mailbox import Mailbox
from ssrcon.session import Session
from ssrcon.shutdown import ShutdownCoordinator

log = logging.getLogger("ssrcon")

# --- wiring ------------------------------------------------------------------

def build_client(args, settings: ClientSettings) -> RconClient:
    session = Session(
        credentials=Credentials.from_sources(args.server, args.port, args.password),
        connection=RconConnection(settings.max_packet_size, settings.connect_timeout),
    )
    return RconClient(session, Mailbox(), ShutdownCoordinator(), settings, output=_print_line)

def _print_line(text: str) -> None:
    print(text, flush=True)

def _startup_log(args, debug_level: int, debug_valid: bool) -> None:
    log.info("Started version %s.", __version__)
    if args.debug is not None:
        if debug_valid:
            log.info("Running in debug mode %d.", debug_level)
        else:
            log.warning("Unknown debug mode %r, running without debug output.", args.debug)
    if args.server:
        log.info("Starting with server argument %s.", args.server)
    if args.port:
        log.info("Starting with port argument %s.", args.port)
    if args.password:
        log.info("Starting with a pre-defined user password.")

# --- modes -------------------------------------------------------------------

def run_console(client: RconClient, args, debug_level: int, debug_valid: bool, log_file: Optional[Path]) -> None:
    """Plain terminal: protocol loop on the main thread, prompt_toolkit reader beside it."""
    with patch_stdout(raw=True):
        configure_logging(debug_level, log_file=log_file)
        _startup_log(args, debug_level, debug_valid)
        client.shutdown.install_signal_handlers()
        reader = ConsoleReader(client.mailbox, client.shutdown, poll_interval=client.settings.poll_interval)
        reader.start()
        try:
            client.run()
        finally:
            reader.stop()
            reader.join(timeout=1.0)
            log.info("Exited.")

def run_fullscreen(client: RconClient, args, debug_level: int, debug_valid: bool, log_file: Optional[Path]) -> None:
    """Opens the prompt_toolkit console with a live log pane + input bar."""
    from ssrcon.console_ui import run_console_ui

    configure_logging(debug_level, log_file=log_file, console=False)
    _startup_log(args, debug_level, debug_valid)
    client.shutdown.install_signal_handlers()
    title = client.session.credentials.address or ""
    try:
        asyncio.run(run_console_ui(client, title))
    except KeyboardInterrupt:
        client.shutdown.request_shutdown("interrupted")
    log.info("Exited.")

# --- argparse ----------------------------------------------------------------

def build_parser():
    p = argparse.ArgumentParser(prog="ssrcon", description="Source RCON console client.")
    p.add_argument("-d", dest="debug", metavar="LEVEL", help="Debug level 0-3 (3 adds hex dumps)")
    p.add_argument("-s", dest="server", metavar="ADDRESS", help="RCON server address")
    p.add_argument("-p", dest="port", metavar="PORT", help="RCON server port (default 27015)")
    p.add_argument("-u", dest="password", metavar="PASSWORD", help="RCON password")
    p.add_argument("--ui", action="store_true", help="Fullscreen console with a log pane")
    p.add_argument("--config", type=Path, help="Properties file (default ~/.ssrcon/ssrcon.properties)")
    p.add_argument("--log-file", type=Path, help="Log file (default ~/.ssrcon/SSRCON.log)")
    p.add_argument("--no-log-file", action="store_true", help="Only log to the console")
    p.add_argument("--cooldown", type=float, help="Seconds to wait before reconnecting")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p

def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    args = build_parser().parse_args(argv)
    debug_level, debug_valid = coerce_debug_level(args.debug if args.debug is not None else 0)
    settings = load_settings(args.config, close_cooldown=args.cooldown, log_file=args.log_file)
    log_file = None if args.no_log_file else settings.log_file
    client = build_client(args, settings)
    if args.ui:
        run_fullscreen(client, args, debug_level, debug_valid, log_file)
    else:
        run_console(client, args, debug_level, debug_valid, log_file)
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
