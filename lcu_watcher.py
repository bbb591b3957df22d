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
from typing import Optional

from lcu_connection import CredentialsError, LcuConnection
from process_monitor import Sample, SampleProducer


class LcuWatcher:

    def __init__(self, connection: LcuConnection, queue: "asyncio.Queue[Optional[Sample]]",
                 producer: Optional[SampleProducer] = None):
        self._connection = connection
        self._queue = queue
        self._producer = producer

    async def watch(self):
        while True:
            sample = await self._queue.get()
            if sample is None:
                break
            await self.handle_sample(sample)

        if self._producer is not None:
            await asyncio.to_thread(self._producer.join)
        logging.debug("Stopped watching lcu")

    async def handle_sample(self, sample: Sample):
        self._connection.set_lcu_status(sample.running)

        logging.debug(f"[ws] is lcu running? {sample.running}")
        if not sample.running:
            await self._connection.close()
            return

        if not self._connection.update_auth_url(sample.auth_url):
            return

        # returns once the socket dies; a new connect waits for the next url change
        try:
            await self._connection.connect()
        except CredentialsError as e:
            logging.error(f"Lcu reported unusable credentials, not connecting: {e}")
