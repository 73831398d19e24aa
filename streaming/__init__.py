"""Turn event stream: producer, receiver and wire codec."""

from .writer import StreamWriter, StopSignal, StreamProtocolError
from .assembler import MessageAssembler
from .sse import encode_event, encode_stream, decode_lines, STREAM_HEADERS

__all__ = [
    "StreamWriter",
    "StopSignal",
    "StreamProtocolError",
    "MessageAssembler",
    "encode_event",
    "encode_stream",
    "decode_lines",
    "STREAM_HEADERS",
]
