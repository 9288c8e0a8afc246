# ssrcon/client.py
from __future__ import annotations

import logging
import time
from collections import deque
from typing import Callable, Optional

from . import logs
from .config import ClientSettings
from .errors import (
    AuthRejected,
    AuthTimeout,
    ConnectFailed,
    ConnectionLost,
    DecodeError,
    FrameTooLarge,
    InvalidBody,
    ProtocolMismatch,
    RconError,
)
from .mailbox import Mailbox
from .protocol import MessageType, RconMessage, encode, expect, wrap_int32
from .session import ConnectionState, Session
from .shutdown import ShutdownCoordinator
from .util import parse_port

AWAIT_RESPONSE_VALUE = "SERVERDATA_RESPONSE_VALUE"
AWAIT_AUTH_RESPONSE = "SERVERDATA_AUTH_RESPONSE"
MAX_REPLIES_PER_TICK = 64
MAX_OUTSTANDING = 256

log = logging.getLogger("ssrcon.client")


class RconClient:
    """
    Protocol loop: CONNECTING -> AUTHENTICATING -> RUNNING -> CLOSING -> CONNECTING.

    Every call to `tick()` advances the machine by at most one step and never
    blocks on user input; `run()` repeats ticks until shutdown is requested.
    All socket access happens on the thread that calls `tick()`.
    """

    def __init__(
        self,
        session: Session,
        mailbox: Mailbox,
        shutdown: ShutdownCoordinator,
        settings: Optional[ClientSettings] = None,
        output: Callable[[str], None] = print,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session
        self.mailbox = mailbox
        self.shutdown = shutdown
        self.settings = settings or ClientSettings()
        self.output = output
        self.clock = clock

        self._asking: Optional[str] = None
        self._auth_phase: Optional[str] = None
        self._auth_polls = 0
        self._reconnect_at: Optional[float] = None
        self._last_connect_error: Optional[str] = None
        # ids of sent commands whose replies may still arrive, oldest first
        self._outstanding: deque = deque(maxlen=MAX_OUTSTANDING)
        self._handlers = {
            ConnectionState.DISCONNECTED: self._start,
            ConnectionState.CONNECTING: self._connect,
            ConnectionState.AUTHENTICATING: self._authenticate,
            ConnectionState.RUNNING: self._run_commands,
            ConnectionState.CLOSING: self._close,
        }

    @property
    def state(self) -> ConnectionState:
        return self.session.state

    @property
    def auth_phase(self) -> Optional[str]:
        return self._auth_phase

    def run(self) -> None:
        try:
            while not self.shutdown.requested:
                self.tick()
                self.shutdown.wait(self.settings.poll_interval)
        finally:
            self.session.connection.close()
            self.session.state = ConnectionState.DISCONNECTED
            log.info(self.shutdown.describe())

    def tick(self) -> None:
        self._handlers[self.session.state]()

    # ── transitions ───────────────────────────────────────────────────────────

    def _enter(self, state: ConnectionState) -> None:
        if state is not self.session.state:
            logs.debug(log, logs.DEBUG_MINIMAL, "State %s -> %s", self.session.state.value, state.value)
        self.session.state = state
        self._asking = None
        self.mailbox.expecting_secret = False
        self._auth_phase = None
        self._auth_polls = 0
        self._outstanding.clear()
        if state is ConnectionState.CLOSING:
            self._reconnect_at = None

    def _lost(self, err: ConnectionLost) -> None:
        log.error("Connection to the RCON server lost: %s", err)
        self._enter(ConnectionState.CLOSING)

    def _ask(self, field: str, prompt: str, secret: bool = False) -> Optional[str]:
        """Prompt once for `field`, then poll the mailbox for the answer."""
        if self._asking != field:
            dropped = self.mailbox.discard()
            if dropped:
                logs.debug(log, logs.DEBUG_STANDARD, "Ignoring %d line(s) typed before the %s prompt", dropped, field)
            self._asking = field
            self.mailbox.expecting_secret = secret
            self.output(prompt)
        answer = self.mailbox.take_latest()
        if answer is None:
            return None
        self._asking = None
        self.mailbox.expecting_secret = False
        return answer

    # ── states ────────────────────────────────────────────────────────────────

    def _start(self) -> None:
        self._enter(ConnectionState.CONNECTING)
        self._connect()

    def _connect(self) -> None:
        creds = self.session.credentials
        if not creds.address:
            answer = self._ask("address", "RCON Server Address:")
            if answer is None:
                return
            creds.address = answer.strip()
            if not creds.address:
                return
        if not creds.port:
            answer = self._ask("port", "RCON Server Port:")
            if answer is None:
                return
            creds.port = answer.strip() or str(self.settings.default_port)

        port = parse_port(creds.port, self.settings.default_port)
        try:
            self.session.connection.connect(creds.address, port)
        except ConnectFailed as e:
            message = str(e)
            if message != self._last_connect_error:
                log.warning("Unable to connect to %s:%d (%s), retrying.", creds.address, port, e.detail or e.reason)
                self._last_connect_error = message
            else:
                logs.debug(log, logs.DEBUG_STANDARD, "Still unable to connect: %s", message)
            return
        self._last_connect_error = None
        log.info("Connected to the RCON server %s:%d.", creds.address, port)
        self._enter(ConnectionState.AUTHENTICATING)

    def _authenticate(self) -> None:
        creds = self.session.credentials
        if not creds.password:
            answer = self._ask("password", "RCON Server Password:", secret=True)
            if answer is None:
                return
            creds.password = answer
            self._auth_phase = None

        if self._auth_phase is None:
            try:
                frame = encode(creds.password.encode("utf-8"), self.settings.auth_id,
                               MessageType.AUTH, self.settings.max_packet_size)
            except (FrameTooLarge, InvalidBody) as e:
                log.error("Unable to send the password: %s", e)
                creds.clear_password()
                return
            try:
                self.session.connection.send(frame)
            except ConnectionLost as e:
                self._lost(e)
                return
            logs.debug(log, logs.DEBUG_MINIMAL, "Sent SERVERDATA_AUTH with id %#x", self.settings.auth_id)
            self._auth_phase = AWAIT_RESPONSE_VALUE
            self._auth_polls = 0

        self._poll_auth()

    def _poll_auth(self) -> None:
        while self.session.state is ConnectionState.AUTHENTICATING and self._auth_phase is not None:
            try:
                message = self.session.connection.receive(0.0)
            except ConnectionLost as e:
                self._lost(e)
                return
            except DecodeError as e:
                if self._auth_phase == AWAIT_AUTH_RESPONSE:
                    self._abandon_auth(e)
                    return
                log.warning("Discarding reply while waiting for %s: %s", self._auth_phase, e)
                self._spend_auth_poll()
                continue
            if message is None:
                self._spend_auth_poll()
                return
            if self._auth_phase == AWAIT_RESPONSE_VALUE:
                self._on_auth_value(message)
            else:
                self._on_auth_response(message)

    def _spend_auth_poll(self) -> None:
        self._auth_polls += 1
        if self._auth_polls < self.settings.auth_attempts:
            return
        err = AuthTimeout(self._auth_phase, self._auth_polls)
        if self._auth_phase == AWAIT_RESPONSE_VALUE:
            log.warning("Warning, %s.", err)
            self.session.credentials.clear_password()
            self._auth_phase = None
        else:
            self._abandon_auth(err)

    def _on_auth_value(self, message: RconMessage) -> None:
        try:
            expect(message, self.settings.auth_id, MessageType.RESPONSE_VALUE)
        except ProtocolMismatch as e:
            log.warning("Discarding reply while waiting for %s: %s", AWAIT_RESPONSE_VALUE, e)
            self._spend_auth_poll()
            return
        logs.debug(log, logs.DEBUG_MINIMAL, "Auth %s OK.", AWAIT_RESPONSE_VALUE)
        self._auth_phase = AWAIT_AUTH_RESPONSE
        self._auth_polls = 0

    def _on_auth_response(self, message: RconMessage) -> None:
        if message.id != self.settings.auth_id:
            log.error("Error, %s.", AuthRejected(message.id))
            self.session.credentials.clear_password()
            self._auth_phase = None
            return
        try:
            expect(message, self.settings.auth_id, MessageType.AUTH_RESPONSE)
        except ProtocolMismatch as e:
            self._abandon_auth(e)
            return
        log.info("Authenticated with the RCON server.")
        self.session.reset_command_ids()
        self._enter(ConnectionState.RUNNING)

    def _abandon_auth(self, err: RconError) -> None:
        log.error("Error, server did not respond with a valid %s (%s), disconnecting.", AWAIT_AUTH_RESPONSE, err)
        self.session.credentials.clear()
        self._enter(ConnectionState.CLOSING)

    def _run_commands(self) -> None:
        line = self.mailbox.take()
        if line is not None:
            self._dispatch(line)
            if self.session.state is not ConnectionState.RUNNING:
                return
        self._drain_replies()

    def _dispatch(self, line: str) -> None:
        session = self.session
        try:
            frame = encode(line.encode("utf-8"), wrap_int32(session.next_command_id + 1),
                           MessageType.EXECCOMMAND, self.settings.max_packet_size)
        except (FrameTooLarge, InvalidBody) as e:
            log.error("Command not sent: %s", e)
            return
        command_id = session.advance_command_id()
        log.info("Sending: %s", line)
        logs.debug(log, logs.DEBUG_STANDARD, "Command id %d", command_id)
        try:
            session.connection.send(frame)
        except ConnectionLost as e:
            self._lost(e)
            return
        self._outstanding.append(command_id)

    def _match_reply(self, message: RconMessage) -> None:
        """Accept a reply to any command still in flight.

        Replies arrive in send order, so a reply to command N means every
        older command has been answered. N itself stays outstanding because
        long responses are split over several frames with the same id.
        """
        pending = self._outstanding
        if message.id not in pending:
            expected = pending[-1] if pending else self.session.next_command_id
            raise ProtocolMismatch("id", expected, message.id)
        expect(message, message.id, MessageType.RESPONSE_VALUE)
        while pending[0] != message.id:
            pending.popleft()

    def _drain_replies(self) -> None:
        for _ in range(MAX_REPLIES_PER_TICK):
            try:
                message = self.session.connection.receive(0.0)
            except ConnectionLost as e:
                self._lost(e)
                return
            except DecodeError as e:
                log.warning("Discarding malformed reply: %s", e)
                continue
            if message is None:
                return
            try:
                self._match_reply(message)
            except ProtocolMismatch as e:
                log.warning("Discarding reply: %s", e)
                continue
            logs.debug(log, logs.DEBUG_MINIMAL, "Received: %s", message.text)
            if message.body:
                self.output(message.text.rstrip("\n"))

    def _close(self) -> None:
        if self._reconnect_at is None:
            self.session.connection.close()
            self._reconnect_at = self.clock() + self.settings.close_cooldown
            log.info("Connection closed, reconnecting in %.1fs.", self.settings.close_cooldown)
        if self.clock() >= self._reconnect_at:
            self._enter(ConnectionState.CONNECTING)
