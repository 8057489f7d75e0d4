"""
Gemini transport.

This module implements the single request/response transaction of the
Gemini protocol: open a TLS connection, send the absolute URL, read and
classify the response.
"""

import logging
import socket
import ssl
from datetime import datetime, timezone
from typing import BinaryIO, Dict, List, Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes

from .exceptions import TransportError
from .protocol import (
    LINE_TERMINATOR, BinaryPage, MediaType, Resource, StatusClass, TextPage,
    classify_status, status_meta,
)


Response = Union[TextPage, BinaryPage]


class CertificateInfo:
    """Summary of a server certificate as seen during the handshake."""

    def __init__(self, der: bytes):
        cert = x509.load_der_x509_certificate(der)
        self.fingerprint = cert.fingerprint(hashes.SHA256()).hex()
        self.subject = cert.subject.rfc4514_string()
        self.not_valid_after = cert.not_valid_after_utc

    @property
    def expired(self) -> bool:
        return self.not_valid_after < datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return f"CertificateInfo(subject={self.subject!r}, sha256={self.fingerprint[:16]}...)"


class GeminiClient:
    """
    Gemini protocol client.

    One connection per transaction; nothing is pooled or cached except the
    first certificate fingerprint seen for each host.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self.socket: Optional[ssl.SSLSocket] = None
        self.logger = logging.getLogger(__name__)
        self.known_hosts: Dict[str, str] = {}
        self.context = self._create_context()

    def _create_context(self) -> ssl.SSLContext:
        """Build the TLS context. Servers use self-signed certificates."""
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        return context

    def connect(self, resource: Resource) -> None:
        """
        Establish a TLS connection to the resource's host.

        Raises:
            TransportError: If the connection or handshake fails
        """
        host, port = resource.address
        try:
            self.logger.info(f"Connecting to {host}:{port}")
            sock = socket.create_connection((host, port), timeout=self.timeout)
            try:
                self.socket = self.context.wrap_socket(sock, server_hostname=host)
            except (ssl.SSLError, OSError):
                sock.close()
                raise
            self.logger.debug(f"Established {self.socket.version()} connection, cipher {self.socket.cipher()}")
        except (ssl.SSLError, OSError) as e:
            error_msg = f"Failed to connect to {host}:{port}: {e}"
            self.logger.error(error_msg)
            self.socket = None
            raise TransportError(error_msg)

        self._check_certificate(host)

    def _check_certificate(self, host: str) -> None:
        """Log the peer certificate and warn when it changed or expired."""
        der = self.socket.getpeercert(binary_form=True)
        if not der:
            self.logger.warning(f"{host} presented no certificate")
            return

        try:
            info = CertificateInfo(der)
        except ValueError as e:
            self.logger.warning(f"Could not parse certificate of {host}: {e}")
            return

        self.logger.debug(f"Certificate for {host}: {info}")
        if info.expired:
            self.logger.warning(f"Certificate for {host} expired on {info.not_valid_after:%Y-%m-%d}")

        seen = self.known_hosts.setdefault(host, info.fingerprint)
        if seen != info.fingerprint:
            self.logger.warning(
                f"Certificate for {host} changed during this session "
                f"(was {seen[:16]}..., now {info.fingerprint[:16]}...)"
            )
            self.known_hosts[host] = info.fingerprint

    def disconnect(self) -> None:
        """Close the connection to the server."""
        if self.socket:
            try:
                self.socket.close()
            except OSError as e:
                self.logger.warning(f"Error during disconnect: {e}")
            finally:
                self.socket = None

    def _send_request(self, resource: Resource) -> None:
        """
        Send the request line for `resource`.

        Raises:
            TransportError: If not connected or sending fails
        """
        if not self.socket:
            raise TransportError("Not connected to server")

        request = resource.url + LINE_TERMINATOR
        try:
            self.socket.sendall(request.encode("utf-8"))
            self.logger.info(f"Sent request for {resource.url}")
        except OSError as e:
            error_msg = f"Failed to send request: {e}"
            self.logger.error(error_msg)
            raise TransportError(error_msg)

    def _receive_response(self, stream: BinaryIO) -> Response:
        """Read and classify a response from `stream`."""
        raw_status = stream.readline()
        if not raw_status:
            self.logger.warning("Server closed the connection without a status line")
            return TextPage()

        status_line = _decode_line(raw_status)
        self.logger.info(f"Received status line {status_line!r}")

        if classify_status(status_line) is StatusClass.SUCCESS:
            media_type = MediaType.parse(status_meta(status_line))
            if not media_type.is_text:
                data = stream.read()
                self.logger.debug(f"Read {len(data)} bytes of {media_type}")
                return BinaryPage(media_type, data)

        return TextPage([status_line] + _read_lines(stream))

    def transact(self, resource: Resource) -> Response:
        """
        Perform one complete request/response transaction.

        Returns:
            TextPage or BinaryPage

        Raises:
            TransportError: On connection, handshake or I/O failure
            ProtocolError: If a success response carries a malformed media type
        """
        self.connect(resource)
        try:
            self._send_request(resource)
            with self.socket.makefile("rb") as stream:
                return self._receive_response(stream)
        except (socket.timeout, OSError) as e:
            error_msg = f"Failed to receive response from {resource.host}: {e}"
            self.logger.error(error_msg)
            raise TransportError(error_msg)
        finally:
            self.disconnect()


def _decode_line(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace").rstrip("\r\n")


def _read_lines(stream: BinaryIO) -> List[str]:
    text = stream.read().decode("utf-8", errors="replace")
    lines = [line.rstrip("\r") for line in text.split("\n")]
    if lines[-1] == "":
        lines.pop()
    return lines
