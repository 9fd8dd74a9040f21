import ipaddress
import socket
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlparse

import certifi
import service_identity
from cryptography import x509
from OpenSSL import SSL
from service_identity.cryptography import verify_certificate_hostname, verify_certificate_ip_address

from .errors import PreconditionError, TransportError

TIMEOUT = 10
DEFAULT_PORT = 443


@dataclass
class ConnectionState:
    """What a finished TLS handshake tells us about the peer"""
    verified_chain: List[x509.Certificate] = field(default_factory=list)
    ocsp_staple: Optional[bytes] = None


def verify_peer_name(cert: x509.Certificate, host: str) -> None:
    """Raise TransportError unless ``cert`` is valid for ``host``"""
    try:
        try:
            address = ipaddress.ip_address(host)
        except ValueError:
            verify_certificate_hostname(cert, host)
        else:
            verify_certificate_ip_address(cert, str(address))
    except (service_identity.VerificationError, service_identity.CertificateError) as e:
        raise TransportError(f"certificate is not valid for {host}: {e}") from e


def fetch_connection_state(url: str, timeout: float = TIMEOUT, ca_file: Optional[str] = None) -> ConnectionState:
    """
    Handshake with the host of ``url`` requesting a stapled OCSP response.

    The peer chain is verified against ``ca_file`` (the certifi bundle by
    default) and the end-entity certificate must match the url's host. The
    returned chain is ordered end-entity first.
    """
    parsed = urlparse(url)
    try:
        host = parsed.hostname
        port = parsed.port or DEFAULT_PORT
    except ValueError as e:
        raise PreconditionError(f"invalid url: {url}: {e}") from e
    if not host:
        raise PreconditionError(f"no host in url: {url}")

    staples: List[bytes] = []

    def _ocsp_callback(conn, ocsp_data, data):
        staples.append(ocsp_data)
        return True

    context = SSL.Context(SSL.TLS_CLIENT_METHOD)
    context.set_verify(SSL.VERIFY_PEER)
    context.load_verify_locations(ca_file or certifi.where())
    context.set_ocsp_client_callback(_ocsp_callback)

    try:
        sock = socket.create_connection((host, port), timeout=timeout)
    except OSError as e:
        raise TransportError(f"{host}:{port}: Connection error: {e}", url=url) from e

    conn = SSL.Connection(context, sock)
    try:
        conn.set_tlsext_host_name(host.encode())
        conn.request_ocsp()
        conn.set_connect_state()
        conn.setblocking(1)
        conn.do_handshake()
        chain = [cert.to_cryptography() for cert in conn.get_verified_chain() or []]
    except (SSL.Error, OSError) as e:
        raise TransportError(f"{host}:{port}: SSL do_handshake error: {e}", url=url) from e
    finally:
        conn.close()

    if chain:
        try:
            verify_peer_name(chain[0], host)
        except TransportError as e:
            raise TransportError(f"{host}:{port}: {e}", url=url) from e

    staple = staples[0] if staples and staples[0] else None
    return ConnectionState(verified_chain=chain, ocsp_staple=staple)
