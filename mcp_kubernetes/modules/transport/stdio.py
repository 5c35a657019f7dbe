"""Newline-delimited JSON channel over process stdio."""

import asyncio
import sys
from typing import Optional, TextIO

from .base import ChannelClosed


class StdioChannel:
    """
    One frame per line.

    Reads block in a worker thread so the event loop keeps serving
    in-flight requests. End of input is a clean close.
    """

    def __init__(self, reader: Optional[TextIO] = None, writer: Optional[TextIO] = None):
        self.reader = reader or sys.stdin
        self.writer = writer or sys.stdout

    async def receive(self) -> str:
        while True:
            line = await asyncio.to_thread(self.reader.readline)
            if line == "":
                raise ChannelClosed("end of input")
            line = line.strip()
            if line:
                return line

    async def send(self, message: str) -> None:
        try:
            self.writer.write(message + "\n")
            self.writer.flush()
        except (BrokenPipeError, ValueError) as e:
            # ValueError: write to a closed file
            raise ChannelClosed(str(e)) from e
