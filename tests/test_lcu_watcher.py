import asyncio

from client_data import ClientData
from lcu_connection import LcuConnection
from lcu_watcher import LcuWatcher
from process_monitor import Sample
from tests.conftest import FakeSocket

U1 = "riot:one@127.0.0.1:50001"
U2 = "riot:two@127.0.0.1:50002"


class RecordingConnection(LcuConnection):

    def __init__(self):
        super().__init__(ClientData())
        self.connects = []
        self.closes = 0

    async def connect(self):
        self.connects.append(self.auth_url)
        self.socket = FakeSocket()

    async def close(self):
        self.closes += 1
        await super().close()


class FakeProducer:

    def __init__(self):
        self.joined = False

    def join(self, timeout=None):
        self.joined = True


async def run_samples(connection, samples, producer=None):
    queue = asyncio.Queue()
    for sample in samples:
        queue.put_nowait(sample)
    queue.put_nowait(None)
    await LcuWatcher(connection, queue, producer).watch()


async def test_reconnects_only_on_url_change_and_closes_on_absence():
    connection = RecordingConnection()

    await run_samples(connection, [
        Sample(U1, True),
        Sample(U1, True),
        Sample(U2, True),
        Sample("", False),
    ])

    assert connection.connects == [U1, U2]
    assert connection.closes == 1
    assert connection.socket is None
    assert connection.auth_url == ""
    assert connection.is_lcu_running is False


async def test_no_connect_while_lcu_absent():
    connection = RecordingConnection()

    await run_samples(connection, [Sample("", False), Sample("", False)])

    assert connection.connects == []
    assert connection.closes == 2


async def test_same_url_after_restart_reconnects():
    connection = RecordingConnection()

    await run_samples(connection, [Sample(U1, True), Sample("", False), Sample(U1, True)])

    assert connection.connects == [U1, U1]


async def test_running_flag_is_mirrored():
    connection = RecordingConnection()
    queue = asyncio.Queue()
    watcher = LcuWatcher(connection, queue)

    await watcher.handle_sample(Sample(U1, True))
    assert connection.is_lcu_running is True
    assert connection._data.lcu_running is True
    assert connection._data.auth_url == U1


async def test_bad_credentials_do_not_stop_the_watcher(connector, sleeps):
    connection = LcuConnection(ClientData())

    await run_samples(connection, [
        Sample("riot@127.0.0.1:50001", True),
        Sample("riot@127.0.0.1:50001", True),
        Sample(U1, True),
    ])

    # the malformed url never reaches the network, the good one does
    assert [uri for uri, _ in connector.calls] == ["wss://127.0.0.1:50001"]
    assert connector.calls[0][1]["additional_headers"]["Authorization"].startswith("Basic ")


async def test_joins_producer_when_queue_closes():
    producer = FakeProducer()

    await run_samples(RecordingConnection(), [], producer)

    assert producer.joined
