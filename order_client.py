#!/usr/bin/env python3
"""
Send a batch of orders over TLS and record the answers.

Orders are read from a file and separated by the configured separator ("=-=\\n" by
default). Each answer is written to the output followed by a newline and the same
separator.
The first framing failure aborts the batch: the stream cannot be reused after it.
"""
from __future__ import annotations

import argparse
import logging
import socket
import ssl
import sys
from typing import List, TextIO

from framing_config import ClientConfig, Config, load_config
from framing_results import FramingError
from order_framing import exchange
from secure_stream import SocketStream

log = logging.getLogger("order_client")

DECODE_FAILED_PLACEHOLDER = "[Decoding message data failed]"


def split_orders(text: str, separator: str) -> List[str]:
    return [order for order in text.split(separator) if order.strip()]


def create_client_context(cfg: ClientConfig) -> ssl.SSLContext:
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.minimum_version = ssl.TLSVersion.TLSv1_2
    if not cfg.verify:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    elif cfg.ca_file:
        ctx.load_verify_locations(cfg.ca_file)
    else:
        ctx.load_default_certs()
    return ctx


def connect(cfg: ClientConfig) -> ssl.SSLSocket:
    raw_sock = socket.create_connection((cfg.host, cfg.port), timeout=cfg.timeout_seconds)
    try:
        sock = create_client_context(cfg).wrap_socket(raw_sock, server_hostname=cfg.host)
    except (ssl.SSLError, OSError):
        raw_sock.close()
        raise
    log.info("connected to %s:%d (%s)", cfg.host, cfg.port, sock.version())
    return sock


def handle_orders(stream, orders: List[str], out: TextIO, config: Config) -> int:
    """Exchange each order in turn; raises FramingError on the first failure."""
    separator = config.client.order_separator
    answered = 0
    for order in orders:
        log.debug("sending order %d (%d chars)", answered + 1, len(order))
        reply = exchange(stream, order, max_frame_size=config.framing.max_frame_size,
                         encoding=config.framing.encoding).unwrap()
        try:
            answer = reply.text(config.framing.encoding)
        except UnicodeDecodeError as e:
            # the frame was consumed whole, the stream is still aligned
            log.warning("decoding answer %d failed: %s", answered + 1, e)
            answer = DECODE_FAILED_PLACEHOLDER
        out.write(answer + "\n" + separator)
        answered += 1
    return answered


def main(argv=None):
    ap = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    ap.add_argument("--config", default=None, help="YAML config file")
    ap.add_argument("--orders", required=True, help="file containing orders")
    ap.add_argument("--output", default="-", help="answers file ('-' for stdout)")
    ap.add_argument("--host", default=None, help="override client.host")
    ap.add_argument("--port", type=int, default=None, help="override client.port")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s [%(levelname)s] %(message)s")

    config = load_config(args.config)
    if args.host or args.port:
        client = ClientConfig(
            host=args.host or config.client.host,
            port=args.port or config.client.port,
            timeout_seconds=config.client.timeout_seconds,
            ca_file=config.client.ca_file,
            verify=config.client.verify,
            order_separator=config.client.order_separator,
        )
        config = Config(framing=config.framing, client=client)

    with open(args.orders, "r", encoding=config.framing.encoding) as f:
        orders = split_orders(f.read(), config.client.order_separator)
    if not orders:
        raise SystemExit(f"no orders in {args.orders}")

    try:
        stream = SocketStream(connect(config.client))
    except OSError as e:
        log.error("cannot connect to %s:%d: %s", config.client.host, config.client.port, e)
        raise SystemExit(1)

    try:
        out = sys.stdout if args.output == "-" else open(args.output, "w", encoding=config.framing.encoding)
        try:
            answered = handle_orders(stream, orders, out, config)
        finally:
            if out is not sys.stdout:
                out.close()
    except FramingError as e:
        log.error("order exchange aborted, connection is unusable: %s", e)
        raise SystemExit(1)
    finally:
        stream.close()
    log.info("%d of %d orders answered", answered, len(orders))


if __name__ == "__main__":
    main()
