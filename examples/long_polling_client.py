"""
Long-polling client example using polling_core.

This example starts a tiny local HTTP server, then drives a
PollingTransport against it: a few poll cycles, one write, and a
shutdown that aborts the poll still in flight.
"""

import asyncio
import logging

from polling_core import (
    PollingOptions,
    PollingTransport,
    RequestRegistry,
    StaticContext,
    TerminationEvent,
)
from polling_core.options import Origin

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

HOST = "127.0.0.1"


async def handle_client(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    """Answer one request: polls get a message, writes get "ok"."""
    request_line = await reader.readline()
    content_length = 0
    while True:
        line = await reader.readline()
        if line in (b"\r\n", b""):
            break
        name, _, value = line.decode("latin-1").partition(":")
        if name.lower() == "content-length":
            content_length = int(value.strip())
    if content_length:
        await reader.readexactly(content_length)

    if request_line.startswith(b"POST"):
        body = b"ok"
    else:
        # Keep the poll open for a while, like a real long-poll server.
        await asyncio.sleep(0.2)
        body = b"4hello"

    writer.write(
        b"HTTP/1.1 200 OK\r\n"
        b"Content-Type: text/plain; charset=UTF-8\r\n"
        b"Set-Cookie: sid=demo; Path=/\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n\r\n"
        + body
    )
    await writer.drain()
    writer.close()


class PrintingConsumer:
    """Polling consumer that logs frames and polls again."""

    def __init__(self, cycles: int) -> None:
        self.transport = None
        self.remaining = cycles
        self.finished = asyncio.Event()

    def on_data(self, data) -> None:
        logger.info(f"Received: {data!r}")
        self.remaining -= 1
        if self.remaining > 0:
            self.transport.do_poll()
        else:
            self.finished.set()

    def on_error(self, reason, context) -> None:
        logger.error(f"{reason}: {context}")
        self.finished.set()


async def main():
    """Run the example."""
    server = await asyncio.start_server(handle_client, HOST, 0)
    port = server.sockets[0].getsockname()[1]
    uri = f"http://{HOST}:{port}/engine.io/?EIO=4&transport=polling"

    context = StaticContext(origin=Origin("http", HOST, port))
    registry = RequestRegistry(context)
    registry.start()

    consumer = PrintingConsumer(cycles=3)
    transport = PollingTransport(
        uri,
        consumer,
        PollingOptions(with_credentials=True, request_timeout=5.0),
        registry=registry,
    )
    consumer.transport = transport
    logger.info(f"Transport available: {transport.is_available}, cross-domain: {transport.xd}")

    try:
        flushed = asyncio.Event()
        transport.do_write("4hi", flushed.set)
        await flushed.wait()
        logger.info(f"Write flushed, cookies: {transport.cookie_jar!r}")

        transport.do_poll()
        await consumer.finished.wait()

        # One more poll, left pending until the context shuts down.
        transport.do_poll()
        logger.info(f"Pending requests before shutdown: {len(registry)}")
        context.dispatch(TerminationEvent.SHUTDOWN)
        logger.info(f"Pending requests after shutdown: {len(registry)}")
    finally:
        registry.stop()
        server.close()
        await server.wait_closed()

    logger.info("Example completed successfully!")


if __name__ == "__main__":
    asyncio.run(main())
