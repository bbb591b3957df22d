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
import dataclasses
import logging
import threading
from typing import Iterable, List, Optional, Sequence

import psutil

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_PROCESS_NAMES = ("LeagueClientUx.exe", "LeagueClientUx")

LCU_USERNAME = "riot"
LCU_HOST = "127.0.0.1"
AUTH_TOKEN_FLAG = "--remoting-auth-token"
APP_PORT_FLAG = "--app-port"


@dataclasses.dataclass(frozen=True)
class Sample:
    auth_url: str
    running: bool

    @staticmethod
    def absent():
        return Sample("", False)


def _read_flag(args: Sequence[str], flag: str) -> Optional[str]:
    for index, arg in enumerate(args):
        arg = arg.strip().strip('"')
        if arg.startswith(f"{flag}="):
            return arg[len(flag) + 1:].strip('"') or None
        if arg == flag and index + 1 < len(args):
            return args[index + 1].strip().strip('"') or None
    return None


def parse_command_line(args: Sequence[str]) -> str:
    """
    Builds "riot:<token>@127.0.0.1:<port>" from the client's command line, or "" if it is not there (yet)
    """
    token = _read_flag(args, AUTH_TOKEN_FLAG)
    port = _read_flag(args, APP_PORT_FLAG)
    if token is None or port is None or not port.isdigit():
        return ""
    return f"{LCU_USERNAME}:{token}@{LCU_HOST}:{port}"


class ProcessMonitor:

    def __init__(self, process_names: Iterable[str] = DEFAULT_PROCESS_NAMES):
        self._process_names = {name.lower() for name in process_names}

    def _find_command_line(self) -> Optional[List[str]]:
        for proc in psutil.process_iter(["name", "cmdline"]):
            try:
                name = (proc.info.get("name") or "").lower()
                if name not in self._process_names:
                    continue
                return list(proc.info.get("cmdline") or [])
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        return None

    def get_sample(self) -> Sample:
        args = self._find_command_line()
        if args is None:
            return Sample.absent()

        auth_url = parse_command_line(args)
        if not auth_url:
            logging.debug("Found lcu process without remoting arguments")
            return Sample.absent()
        return Sample(auth_url, True)


class SampleProducer:
    """
    Polls the monitor on its own thread (process enumeration blocks) and feeds samples into an
    asyncio queue owned by `loop`. A None in the queue means no more samples will come.
    """

    def __init__(self, monitor: ProcessMonitor, loop: asyncio.AbstractEventLoop,
                 queue: "asyncio.Queue[Optional[Sample]]", interval: float = DEFAULT_POLL_INTERVAL):
        self._monitor = monitor
        self._loop = loop
        self._queue = queue
        self._interval = interval
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, name="lcu-process-monitor", daemon=True)

    def start(self):
        logging.debug("Starting process monitor thread")
        self._thread.start()

    def _run(self):
        while not self._stop_event.is_set():
            try:
                sample = self._monitor.get_sample()
            except Exception as e:
                logging.exception(e)
                sample = Sample.absent()

            if self._stop_event.is_set():
                break
            try:
                self._loop.call_soon_threadsafe(self._queue.put_nowait, sample)
            except RuntimeError:
                logging.debug("Event loop closed, stopping process monitor")
                break

            self._stop_event.wait(self._interval)

    def stop(self):
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        self._loop.call_soon_threadsafe(self._queue.put_nowait, None)

    def join(self, timeout: Optional[float] = None):
        if self._thread.is_alive():
            self._thread.join(timeout)
        logging.debug("Process monitor thread stopped")
