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
import logging
import os
from typing import Optional

from client_data import ClientData
from config import Config, ConfigurationLoadError
from lcu_connection import LcuConnection
from lcu_watcher import LcuWatcher
from logger import setup_logging
from process_monitor import ProcessMonitor, Sample, SampleProducer


class LcuCompanion:

    def __init__(self, config: dict, loop: asyncio.AbstractEventLoop):
        self._config = config
        self._loop = loop
        self._data = ClientData()
        self._queue: "asyncio.Queue[Optional[Sample]]" = asyncio.Queue()
        self._monitor = ProcessMonitor(self._config["client"]["process_names"])
        self._producer = SampleProducer(self._monitor, self._loop, self._queue,
                                        interval=self._config["client"]["poll_interval"])
        self._connection = LcuConnection(self._data, retry_interval=self._config["client"]["retry_interval"])
        self._watcher = LcuWatcher(self._connection, self._queue, self._producer)
        self._watch_task: Optional[asyncio.Task] = None

    @property
    def data(self) -> ClientData:
        return self._data

    @property
    def connection(self) -> LcuConnection:
        return self._connection

    async def begin(self):
        logging.info("Starting LCU Companion")
        async with self:
            try:
                logging.info("Ctrl^C to quit")
                await asyncio.wait([
                    self._watch_task,
                    asyncio.create_task(self._data.shutdown_event.wait()),
                ], return_when=asyncio.FIRST_COMPLETED)
            except asyncio.CancelledError:
                logging.info("Cancelled ...")
            except KeyboardInterrupt:
                logging.info("Cancelled ...")
            finally:
                logging.info("Stopping LCU Companion ...")

    async def __aenter__(self):
        logging.debug("Starting process monitor")
        self._producer.start()
        self._watch_task = asyncio.create_task(self._watcher.watch())
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self._data.shutdown_event.set()
        self._producer.stop()
        if self._watch_task is not None:
            # a connect in progress never returns on its own
            self._watch_task.cancel()
            for result in await asyncio.gather(self._watch_task, return_exceptions=True):
                if isinstance(result, Exception):
                    logging.error("Lcu watcher failed", exc_info=result)
        await self._connection.close()
        await asyncio.to_thread(self._producer.join)
        logging.debug("Stopped LCU Companion")


async def main():
    logging.info("Starting lcu companion ...")

    config = Config(os.environ.get("LCU_COMPANION_CONFIG", "./config.toml"))
    loop = asyncio.get_running_loop()

    try:
        await config.initialize()

        lcu_companion = LcuCompanion(config.config, loop)
        await lcu_companion.begin()
    except ConfigurationLoadError:
        logging.error("Could not load configuration. Exiting")
        return


def run():
    setup_logging()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logging.info("Interrupted")


if __name__ == "__main__":
    run()
