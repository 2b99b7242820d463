#!/usr/bin/env python3
"""Demo walking a 1-Wire bus and printing every value.

Without arguments a loopback owserver with a couple of fake devices is
started; pass ``HOST [PORT]`` to walk a real owserver instead.

$ pip install -e .[demo]
"""

import logging
import sys

from rich import box
from rich.console import Console
from rich.table import Table

from ownet import BusTree, OwnetClient, OwnetError, run_server

SAMPLE_TREE = {
    "/28.32D7E0080000/temperature": b"       21.25",
    "/28.32D7E0080000/type": b"DS18B20",
    "/42.C2D154000000/PIO.A": b"0",
    "/42.C2D154000000/temperature": b"     19.5625",
    "/42.C2D154000000/type": b"DS28EA00",
}


def walk(client: OwnetClient, path: str = "/"):
    """Yield ``(path, value)`` for every leaf below ``path``."""
    for entry in client.dir(path):
        if entry.endswith("/"):
            yield from walk(client, entry)
        else:
            try:
                yield entry, client.read(entry).decode("utf-8", errors="replace").strip()
            except OwnetError as exc:
                yield entry, f"<{exc}>"


def print_bus(client: OwnetClient):
    console = Console()
    table = Table(title="1-Wire bus", box=box.SIMPLE_HEAVY)
    table.add_column("Path")
    table.add_column("Value")

    for path, value in walk(client):
        table.add_row(path, value)

    console.print(table)


def main():
    logging.basicConfig(level=logging.INFO)

    if len(sys.argv) > 1:
        host = sys.argv[1]
        port = int(sys.argv[2]) if len(sys.argv) > 2 else 4304
        with OwnetClient(host, port) as client:
            print_bus(client)
        return

    with run_server(BusTree(SAMPLE_TREE)) as server:
        host, port = server.address
        with OwnetClient(host, port) as client:
            client.write("/42.C2D154000000/PIO.A", True)
            print_bus(client)


if __name__ == "__main__":
    main()
