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
import inspect
import logging
from typing import Awaitable, Callable, Union

FrameListener = Callable[[str], Union[None, Awaitable[None]]]


class ClientData:
    """
    state shared with whatever sits on top of the client (ui, build appliers, ...)
    only the connection writes lcu_running / auth_url, everyone else reads
    """

    def __init__(self):
        self.lcu_running: bool = False
        self.auth_url: str = ""
        self.frame_listeners: list[FrameListener] = list()

        self.shutdown_event = asyncio.Event()

    def add_frame_listener(self, listener: FrameListener):
        self.frame_listeners.append(listener)

    def remove_frame_listener(self, listener: FrameListener):
        if listener in self.frame_listeners:
            self.frame_listeners.remove(listener)

    async def dispatch_frame(self, frame: str):
        for listener in list(self.frame_listeners):
            try:
                result = listener(frame)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logging.exception(e)
                logging.warning(f"Frame listener {listener!r} failed")
