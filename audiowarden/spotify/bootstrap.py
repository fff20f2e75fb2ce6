"""
Interactive Spotify login through a one-shot local callback listener.

The user opens http://localhost:7185/authorize_bootstrap in a browser. The
listener redirects to Spotify's consent page; after consent Spotify redirects
back to the listener with ?code=...&state=..., the code is exchanged for a
token, the token handed to the TokenManager and the deny-list refreshed
right away. Then the listener shuts down.

Routes:
    /authorize_bootstrap    302 to the Spotify authorization URL
    anything else           treated as the OAuth callback:
                              code and state missing  -> 400 Bad Request
                              state does not match    -> no response, keep listening
                              exchange failed         -> 500, keep listening
                              success                 -> 200 OK, listener stops

Only one bootstrap runs at a time: LoginCoordinator hands out the URL of the
active bootstrap instead of starting a second listener on the same port.
"""

import threading
import urllib.parse
from dataclasses import dataclass
from enum import Enum
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable

from audiowarden.core.config import ListenerConfig, SpotifyConfig
from audiowarden.core.exceptions import AudioWardenError, CallbackProtocolError, SpotifyError
from audiowarden.core.logger import get_logger
from audiowarden.spotify.auth import (
    build_authorization_url,
    code_challenge,
    exchange_code,
    generate_code_verifier,
    generate_state,
)
from audiowarden.spotify.models import AccessToken
from audiowarden.spotify.session import TokenManager

logger = get_logger(__name__)


BOOTSTRAP_PATH = "/authorize_bootstrap"
POLL_INTERVAL = 0.5
# Seconds a connection may stay silent before the handler drops it
CONNECTION_TIMEOUT = 10.0

ExchangeFunction = Callable[[str, str, SpotifyConfig], AccessToken]


class CallbackOutcome(Enum):
    INITIATE_AUTH = "initiate_auth"
    BAD_REQUEST = "bad_request"
    STATE_MISMATCH = "state_mismatch"
    EXCHANGE_FAILED = "exchange_failed"
    AUTHORIZED = "authorized"


@dataclass(frozen=True)
class CallbackResponse:
    """
    What the listener answers for one request.

    A response with status None means: close the connection without
    writing anything.
    """
    outcome: CallbackOutcome
    status: int | None
    body: str = ""
    location: str | None = None


def parse_callback_params(target: str) -> tuple[str, str] | None:
    """
    Extract code and state from a callback request target.

    Returns:
        (code, state), or None when either parameter is missing.

    Raises:
        CallbackProtocolError: If target is not an origin-form path.
    """
    if not target.startswith("/"):
        raise CallbackProtocolError(
            "Unable to parse HTTP data: invalid request target",
            details={"target": target[:200]}
        )

    params = urllib.parse.parse_qs(urllib.parse.urlsplit(target).query)
    code = params.get("code", [None])[0]
    state = params.get("state", [None])[0]

    if code is None and state is None:
        logger.warning("Neither code nor state are present in the URL.")
        return None
    if state is None:
        logger.warning("state is not present in the URL.")
        return None
    if code is None:
        logger.warning("code is not present in the URL.")
        return None
    return code, state


class CallbackServer(ThreadingHTTPServer):
    """
    HTTP server that knows the bootstrap it serves.

    Every connection gets its own daemon thread, so an idle browser
    connection never blocks the callback arriving on another one.
    """

    daemon_threads = True
    block_on_close = False

    def __init__(self, server_address: tuple[str, int], bootstrap: "AuthorizationBootstrap") -> None:
        self.bootstrap = bootstrap
        super().__init__(server_address, CallbackHandler)


class CallbackHandler(BaseHTTPRequestHandler):
    """
    Request handler of the callback listener.

    All routing decisions are made by AuthorizationBootstrap.handle_target();
    this class only translates them to HTTP.
    """

    protocol_version = "HTTP/1.1"
    timeout = CONNECTION_TIMEOUT
    server: CallbackServer

    def do_GET(self) -> None:
        try:
            response = self.server.bootstrap.handle_target(self.path)
        except CallbackProtocolError as e:
            logger.error(f"Something went wrong: {e}")
            self.close_connection = True
            return

        if response.status is None:
            self.close_connection = True
            return

        body = response.body.encode("utf-8")
        self.send_response(response.status)
        if response.location is not None:
            self.send_header("Location", response.location)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(body)
        self.close_connection = True

    def send_error(self, code: int, message: str | None = None, explain: str | None = None) -> None:
        # Raised by the base class for unparseable requests: drop the connection
        logger.error(f"Malformed request on callback listener: {code} {message or ''}".rstrip())
        self.close_connection = True

    def log_message(self, format: str, *args) -> None:
        logger.debug(f"Callback listener: {format % args}")


class AuthorizationBootstrap:
    """
    One PKCE login attempt with its own verifier, state and listener.

    Attributes:
        authorization_url: Spotify consent URL, available after start().
        bootstrap_url: Local URL the user should open.

    Example:
        bootstrap = AuthorizationBootstrap(config.spotify, config.listener, manager)
        print(f"Open {bootstrap.start()} in your browser")
        bootstrap.wait()
    """

    def __init__(
        self,
        spotify_config: SpotifyConfig,
        listener_config: ListenerConfig,
        token_manager: TokenManager,
        on_authorized: Callable[[], object] | None = None,
        exchange_fn: ExchangeFunction = exchange_code
    ) -> None:
        """
        Args:
            spotify_config: Client ID, scope and redirect URI.
            listener_config: Loopback address of the listener.
            token_manager: Receives the token after a successful exchange.
            on_authorized: Called right after the token is stored, before the
                           browser gets its response. Used for the immediate
                           deny-list refresh; its errors are logged only.
            exchange_fn: Code exchange, replaced in tests.
        """
        self.spotify_config = spotify_config
        self.listener_config = listener_config
        self.token_manager = token_manager
        self._on_authorized = on_authorized
        self._exchange_fn = exchange_fn

        self._verifier = generate_code_verifier()
        self._state = generate_state()
        self.authorization_url = build_authorization_url(
            spotify_config, self._state, code_challenge(self._verifier)
        )

        self._server: CallbackServer | None = None
        self._thread: threading.Thread | None = None
        self._done = threading.Event()
        self._exchange_lock = threading.Lock()

    @property
    def state(self) -> str:
        return self._state

    @property
    def port(self) -> int:
        if self._server is not None:
            return self._server.server_address[1]
        return self.listener_config.port

    @property
    def bootstrap_url(self) -> str:
        return f"http://localhost:{self.port}{BOOTSTRAP_PATH}"

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def completed(self) -> bool:
        return self._done.is_set()

    def start(self) -> str:
        """
        Bind the listener and start serving in a background thread.

        The socket is bound before this method returns, so the returned
        URL can be opened immediately.

        Returns:
            The local bootstrap URL.

        Raises:
            OSError: If the port cannot be bound (e.g. already in use).
        """
        self._server = CallbackServer(
            (self.listener_config.host, self.listener_config.port), self
        )
        self._server.timeout = POLL_INTERVAL
        self._thread = threading.Thread(target=self._serve, name="oauth-callback", daemon=True)
        self._thread.start()
        logger.info(f"Open {self.bootstrap_url} in your browser to log in to Spotify")
        logger.debug(f"Authorization URL: {self.authorization_url}")
        return self.bootstrap_url

    def _serve(self) -> None:
        server = self._server
        if server is None:
            return
        try:
            while not self._done.is_set():
                server.handle_request()
        finally:
            server.server_close()
            logger.debug("Callback listener closed")

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the login completed. Returns False on timeout."""
        return self._done.wait(timeout)

    def stop(self) -> None:
        """Stop listening without completing the login."""
        self._done.set()
        if self._thread is not None:
            self._thread.join(timeout=POLL_INTERVAL * 4)

    def handle_target(self, target: str) -> CallbackResponse:
        """
        Decide the response for one request target.

        Raises:
            CallbackProtocolError: If the target cannot be parsed.
        """
        if target == BOOTSTRAP_PATH:
            return CallbackResponse(
                CallbackOutcome.INITIATE_AUTH, 302, location=self.authorization_url
            )

        params = parse_callback_params(target)
        if params is None:
            return CallbackResponse(CallbackOutcome.BAD_REQUEST, 400, "Bad Request\n")

        code, state = params
        if state != self._state:
            logger.warning("Received callback with a state that does not match, ignoring it")
            return CallbackResponse(CallbackOutcome.STATE_MISMATCH, None)

        # Callbacks run on parallel connection threads; one exchange at a time
        with self._exchange_lock:
            if self._done.is_set():
                return CallbackResponse(CallbackOutcome.BAD_REQUEST, 400, "Bad Request\n")

            try:
                token = self._exchange_fn(code, self._verifier, self.spotify_config)
            except SpotifyError as e:
                logger.error(f"Unable to obtain a Spotify token: {e}")
                if e.details:
                    logger.debug(f"Details: {e.details}")
                return CallbackResponse(
                    CallbackOutcome.EXCHANGE_FAILED, 500, "Internal Server Error\n"
                )

            self.token_manager.set_token(token)
            logger.info("Logged in to Spotify")
            self._done.set()

        if self._on_authorized is not None:
            try:
                self._on_authorized()
            except AudioWardenError as e:
                logger.error(f"Unable to update blocked songs: {e}")

        return CallbackResponse(CallbackOutcome.AUTHORIZED, 200, "OK\n")


class LoginCoordinator:
    """
    Starts authorization bootstraps, at most one at a time.

    A login requested while another one is still waiting for the browser
    reuses the running listener and its URL.
    """

    def __init__(
        self,
        spotify_config: SpotifyConfig,
        listener_config: ListenerConfig,
        token_manager: TokenManager,
        on_authorized: Callable[[], object] | None = None,
        exchange_fn: ExchangeFunction = exchange_code
    ) -> None:
        self.spotify_config = spotify_config
        self.listener_config = listener_config
        self.token_manager = token_manager
        self._on_authorized = on_authorized
        self._exchange_fn = exchange_fn
        self._active: AuthorizationBootstrap | None = None
        self._lock = threading.Lock()

    @property
    def active(self) -> AuthorizationBootstrap | None:
        with self._lock:
            return self._active

    def login(self) -> str:
        """
        Start a login, or return the URL of the one already in progress.

        Raises:
            OSError: If the listener port cannot be bound.
        """
        with self._lock:
            if self._active is not None and self._active.is_running and not self._active.completed:
                logger.warning("A Spotify login is already in progress, reusing it")
                return self._active.bootstrap_url

            bootstrap = AuthorizationBootstrap(
                self.spotify_config,
                self.listener_config,
                self.token_manager,
                on_authorized=self._on_authorized,
                exchange_fn=self._exchange_fn
            )
            url = bootstrap.start()
            self._active = bootstrap
            return url
