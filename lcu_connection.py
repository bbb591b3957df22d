"""
LCU Companion
Copyright (C) 2024 thiccaxe

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Affero General Public License as published
by the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Affero General Public License for more details.

You should have received a copy of the GNU Affero General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

import asyncio
import base64
import dataclasses
import logging
import ssl
from typing import Optional
from urllib.parse import urlsplit

import websockets
from websockets.asyncio.client import ClientConnection, connect as ws_connect
from websockets.protocol import State as WebsocketState

from client_data import ClientData

SUBSCRIBE_MESSAGE = '[5, "OnJsonApiEvent"]'

DEFAULT_RETRY_INTERVAL = 2.0

# some lcu payloads (inventory, loot) are well over the 1 MiB websockets default
MAX_MESSAGE_SIZE = 64 * 2 ** 20

CONNECT_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    websockets.exceptions.WebSocketException,
)


class CredentialsError(ValueError): pass


@dataclasses.dataclass(frozen=True)
class LcuCredentials:
    host: str
    port: int
    username: str
    password: str

    @property
    def target(self) -> str:
        return f"wss://{self.host}:{self.port}"


def parse_auth_url(auth_url: str) -> LcuCredentials:
    """
    auth_url is the scheme-less "user:password@host:port" form reported by the process monitor
    """
    if not auth_url:
        raise CredentialsError("No auth url")

    try:
        url = urlsplit(f"wss://{auth_url}")
        port = url.port
    except ValueError as e:
        raise CredentialsError("Malformed auth url") from e

    if not url.hostname:
        raise CredentialsError("Auth url has no host")
    if port is None:
        raise CredentialsError("Auth url has no port")
    if url.username is None:
        raise CredentialsError("Auth url has no credentials")
    if not url.password:
        raise CredentialsError("Auth url has no password")

    return LcuCredentials(url.hostname, port, url.username, url.password)


def basic_auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def build_ssl_context() -> ssl.SSLContext:
    # the lcu serves a self signed certificate on loopback, the auth header is what we trust
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


class LcuConnection:

    def __init__(self, data: ClientData, retry_interval: float = DEFAULT_RETRY_INTERVAL):
        self._data = data
        self._retry_interval = retry_interval
        self._socket_lock = asyncio.Lock()
        self.socket: Optional[ClientConnection] = None
        self.auth_url: str = ""
        self.is_lcu_running: bool = False

    @property
    def connected(self) -> bool:
        socket = self.socket
        return socket is not None and socket.state == WebsocketState.OPEN

    def update_auth_url(self, url: str) -> bool:
        if self.auth_url == url:
            return False

        self.auth_url = url
        self._data.auth_url = url
        logging.debug(f"[LcuConnection] updated auth url to {url}")
        return True

    def set_lcu_status(self, running: bool):
        self.is_lcu_running = running
        self._data.lcu_running = running

    async def close(self):
        async with self._socket_lock:
            if self.socket is not None:
                try:
                    await self.socket.close()
                except CONNECT_ERRORS as e:
                    logging.debug(f"[ws] could not close socket cleanly: {e!r}")

            self.socket = None
            self.auth_url = ""
            self._data.auth_url = ""

    async def send(self, message: str) -> bool:
        async with self._socket_lock:
            if self.socket is None:
                logging.debug("Wanted to send data when lcu not connected")
                return False
            try:
                await self.socket.send(message)
            except CONNECT_ERRORS as e:
                logging.warning(f"[ws] send failed: {e!r}")
                return False
        return True

    async def connect(self):
        """
        Connects to the lcu at the current auth url, retrying until it accepts, then subscribes to
        json api events and consumes frames until the socket dies.

        Only a malformed auth url raises (CredentialsError), and it does so before any network io.
        """
        auth_url = self.auth_url
        credentials = parse_auth_url(auth_url)
        authorization = basic_auth_header(credentials.username, credentials.password)
        ssl_context = build_ssl_context()

        attempts = 0
        while True:
            attempts += 1
            try:
                socket = await ws_connect(
                    credentials.target,
                    ssl=ssl_context,
                    additional_headers={"Authorization": authorization},
                    max_size=MAX_MESSAGE_SIZE,
                )
                break
            except CONNECT_ERRORS as e:
                # server not ready
                logging.debug(f"[ws] {credentials.target} attempt {attempts} failed: {e!r}")
                await asyncio.sleep(self._retry_interval)

        logging.info(f"[ws] connected, {credentials.target} ({attempts} attempt(s))")
        async with self._socket_lock:
            # closed or moved on while we were retrying
            stale = self.auth_url != auth_url
            if not stale:
                self.socket = socket

        if stale:
            logging.info(f"[ws] auth url changed during connect, dropping {credentials.target}")
            try:
                await socket.close()
            except CONNECT_ERRORS as e:
                logging.debug(f"[ws] could not close socket cleanly: {e!r}")
            return

        await self.send(SUBSCRIBE_MESSAGE)
        await self._receive(socket)
        logging.info(f"[ws] connection to {credentials.target} ended")

    async def _receive(self, socket: ClientConnection):
        try:
            async for message in socket:
                if isinstance(message, str):
                    logging.debug(f"[ws] received {len(message)} chars")
                    await self._data.dispatch_frame(message)
                else:
                    logging.debug(f"[ws] ignoring binary frame of {len(message)} bytes")
        except websockets.exceptions.ConnectionClosed:
            logging.debug("[ws] connection closed")
        except CONNECT_ERRORS as e:
            logging.debug(f"[ws] receive failed: {e!r}")
