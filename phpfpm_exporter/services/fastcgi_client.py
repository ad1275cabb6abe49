"""Minimal asyncio FastCGI client for querying PHP-FPM responders."""

import asyncio
import logging
import struct
from dataclasses import dataclass
from typing import Dict, List, Tuple

FCGI_VERSION_1 = 1

FCGI_BEGIN_REQUEST = 1
FCGI_END_REQUEST = 3
FCGI_PARAMS = 4
FCGI_STDIN = 5
FCGI_STDOUT = 6
FCGI_STDERR = 7

FCGI_RESPONDER = 1
FCGI_REQUEST_COMPLETE = 0

FCGI_MAX_CONTENT_LENGTH = 65535

# version, type, request id, content length, padding length, reserved
RECORD_HEADER = struct.Struct('!BBHHBx')
# role, flags, reserved[5]
BEGIN_REQUEST_BODY = struct.Struct('!HB5x')
# app status, protocol status, reserved[3]
END_REQUEST_BODY = struct.Struct('!IB3x')

REQUEST_ID = 1


class FastCGIProtocolError(ValueError):
    """Raised when the responder sends a malformed or unexpected stream."""
    pass


@dataclass
class FastCGIResponse:
    """Decoded CGI response returned by a FastCGI responder."""

    status_code: int
    body: bytes = b""
    stderr: bytes = b""
    app_status: int = 0


def encode_record(record_type: int, content: bytes = b"", request_id: int = REQUEST_ID) -> bytes:
    """Frame content into a single FastCGI record padded to 8 bytes."""
    if len(content) > FCGI_MAX_CONTENT_LENGTH:
        raise ValueError(f"record content too large: {len(content)} bytes")
    padding = -len(content) % 8
    header = RECORD_HEADER.pack(FCGI_VERSION_1, record_type, request_id, len(content), padding)
    return header + content + b"\x00" * padding


def _encode_length(length: int) -> bytes:
    if length < 128:
        return bytes([length])
    return struct.pack('!I', length | 0x80000000)


def encode_params(params: Dict[str, str]) -> bytes:
    """Encode CGI environment variables as FastCGI name-value pairs."""
    chunks = []
    for name, value in params.items():
        name_bytes = name.encode('utf-8')
        value_bytes = str(value).encode('utf-8')
        chunks.append(_encode_length(len(name_bytes)))
        chunks.append(_encode_length(len(value_bytes)))
        chunks.append(name_bytes)
        chunks.append(value_bytes)
    return b"".join(chunks)


def encode_stream(record_type: int, data: bytes, request_id: int = REQUEST_ID) -> bytes:
    """Split data into records of a stream type, terminated by an empty record."""
    records = [
        encode_record(record_type, data[i:i + FCGI_MAX_CONTENT_LENGTH], request_id)
        for i in range(0, len(data), FCGI_MAX_CONTENT_LENGTH)
    ]
    records.append(encode_record(record_type, b"", request_id))
    return b"".join(records)


def encode_request(params: Dict[str, str], request_id: int = REQUEST_ID) -> bytes:
    """Build a complete responder request with an empty stdin."""
    begin = BEGIN_REQUEST_BODY.pack(FCGI_RESPONDER, 0)
    return (
        encode_record(FCGI_BEGIN_REQUEST, begin, request_id)
        + encode_stream(FCGI_PARAMS, encode_params(params), request_id)
        + encode_record(FCGI_STDIN, b"", request_id)
    )


def parse_cgi_response(stdout: bytes) -> Tuple[int, Dict[str, str], bytes]:
    """
    Split CGI output into status code, headers and body.

    A missing `Status` header yields status code 0, which PHP-FPM uses
    for a successful response.

    Raises:
        FastCGIProtocolError: If the header block or status line is malformed
    """
    if not stdout:
        return 0, {}, b""

    separators = [(stdout.find(sep), sep) for sep in (b"\r\n\r\n", b"\n\n")]
    found = [(pos, sep) for pos, sep in separators if pos != -1]
    if not found:
        raise FastCGIProtocolError("malformed CGI response: missing header terminator")
    pos, sep = min(found)
    head, body = stdout[:pos], stdout[pos + len(sep):]

    headers = {}
    for line in head.decode('latin-1').splitlines():
        if not line.strip():
            continue
        name, colon, value = line.partition(':')
        if not colon:
            raise FastCGIProtocolError(f"malformed CGI header line: {line!r}")
        headers[name.strip().title()] = value.strip()

    status_code = 0
    status = headers.get('Status')
    if status:
        try:
            status_code = int(status.split()[0])
        except ValueError:
            raise FastCGIProtocolError(f"malformed CGI status: {status!r}")

    return status_code, headers, body


class FastCGIConnection:
    """
    A single FastCGI connection carrying one request.

    Use `open()` to connect; always `close()` when done.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        timeout: float,
        logger: logging.Logger = None
    ):
        self.reader = reader
        self.writer = writer
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    async def open(
        cls,
        host: str,
        port: int,
        timeout: float,
        logger: logging.Logger = None
    ) -> "FastCGIConnection":
        """
        Connect to a FastCGI responder.

        Raises:
            asyncio.TimeoutError: If the connection is not established in time
            OSError: If the connection is refused or unreachable
        """
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port),
            timeout=timeout
        )
        return cls(reader, writer, timeout, logger)

    async def get(self, params: Dict[str, str]) -> FastCGIResponse:
        """
        Send a GET request and read the full response.

        Args:
            params: CGI environment for the request

        Returns:
            FastCGIResponse: Decoded response

        Raises:
            asyncio.TimeoutError: If the response is not complete in time
            asyncio.IncompleteReadError: If the responder closes mid-record
            FastCGIProtocolError: If the stream is malformed
            OSError: On socket errors
        """
        self.writer.write(encode_request(params))
        await asyncio.wait_for(self.writer.drain(), timeout=self.timeout)
        return await asyncio.wait_for(self._read_response(), timeout=self.timeout)

    async def close(self) -> None:
        """Close the connection, tolerating peers that already went away."""
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as e:
            self.logger.debug(f"FastCGI connection closed with error: {e}")

    async def _read_record(self) -> Tuple[int, bytes]:
        header = await self.reader.readexactly(RECORD_HEADER.size)
        version, record_type, request_id, content_length, padding_length = \
            RECORD_HEADER.unpack(header)

        if version != FCGI_VERSION_1:
            raise FastCGIProtocolError(f"unsupported FastCGI version: {version}")

        content = await self.reader.readexactly(content_length)
        if padding_length:
            await self.reader.readexactly(padding_length)

        if request_id != REQUEST_ID:
            raise FastCGIProtocolError(f"unexpected request id: {request_id}")

        return record_type, content

    async def _read_response(self) -> FastCGIResponse:
        stdout: List[bytes] = []
        stderr: List[bytes] = []

        while True:
            record_type, content = await self._read_record()

            if record_type == FCGI_STDOUT:
                stdout.append(content)
            elif record_type == FCGI_STDERR:
                stderr.append(content)
            elif record_type == FCGI_END_REQUEST:
                if len(content) < END_REQUEST_BODY.size:
                    raise FastCGIProtocolError("truncated END_REQUEST record")
                app_status, protocol_status = END_REQUEST_BODY.unpack(
                    content[:END_REQUEST_BODY.size]
                )
                if protocol_status != FCGI_REQUEST_COMPLETE:
                    raise FastCGIProtocolError(
                        f"request not completed, protocol status {protocol_status}"
                    )
                break
            else:
                raise FastCGIProtocolError(f"unexpected record type: {record_type}")

        error_output = b"".join(stderr)
        if error_output:
            self.logger.debug(
                "FastCGI responder wrote to stderr",
                extra={"stderr": error_output.decode('utf-8', 'replace')}
            )

        status_code, _, body = parse_cgi_response(b"".join(stdout))
        return FastCGIResponse(
            status_code=status_code,
            body=body,
            stderr=error_output,
            app_status=app_status
        )
