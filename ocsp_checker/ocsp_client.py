import os
from dataclasses import dataclass
from typing import Optional, Callable, List

import requests
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509.ocsp import (
    OCSPRequestBuilder,
    OCSPCertStatus,
    OCSPResponseStatus,
    load_der_ocsp_response,
)
from asn1crypto import ocsp as asn1_ocsp, core as asn1_core

from .certs import load_der_certificate, ocsp_servers
from .errors import PreconditionError, ResponseValidationError, TransportError
from .models import CertStatus, Verdict
from .signatures import check_delegated_responder, verify_signature


OCSP_NONCE = "1.3.6.1.5.5.7.48.1.2"
OCSP_REQUEST_CONTENT_TYPE = "application/ocsp-request"
OCSP_RESPONSE_CONTENT_TYPE = "application/ocsp-response"
AIA_FETCH_TIMEOUT = 10

HASH_ALGORITHMS = {
    "sha1": hashes.SHA1,
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}

_STATUS_MAP = {
    OCSPCertStatus.GOOD: CertStatus.GOOD,
    OCSPCertStatus.REVOKED: CertStatus.REVOKED,
    OCSPCertStatus.UNKNOWN: CertStatus.UNKNOWN,
}


@dataclass
class OCSPRequest:
    url: str
    der: bytes
    nonce: Optional[bytes] = None


def hash_algorithm(name: str) -> hashes.HashAlgorithm:
    try:
        return HASH_ALGORITHMS[name.lower()]()
    except KeyError:
        raise PreconditionError(f"unsupported CertID hash algorithm: {name}") from None


def select_responder_url(cert: x509.Certificate, override: Optional[str] = None) -> str:
    """An explicit responder wins over the first OCSP server listed in the certificate"""
    if override:
        return override
    servers = ocsp_servers(cert)
    if not servers:
        raise PreconditionError(
            "certificate lists no OCSP server and no responder URL was configured"
        )
    return servers[0]


def build_request(
    end_entity: x509.Certificate,
    issuer: x509.Certificate,
    responder_url: Optional[str] = None,
    hash_algo: Optional[hashes.HashAlgorithm] = None,
    include_nonce: bool = False,
    nonce_bytes: Optional[bytes] = None,
    nonce_len: int = 32,
) -> OCSPRequest:
    url = select_responder_url(end_entity, responder_url)

    builder = OCSPRequestBuilder()
    builder = builder.add_certificate(end_entity, issuer, hash_algo or hashes.SHA1())
    used_nonce = None
    if include_nonce:
        used_nonce = nonce_bytes if nonce_bytes is not None else os.urandom(nonce_len)
        builder = builder.add_extension(x509.OCSPNonce(used_nonce), critical=False)
    try:
        req = builder.build()
    except ValueError as e:
        raise PreconditionError(f"error creating ocsp request: {e}") from e
    return OCSPRequest(url=url, der=req.public_bytes(serialization.Encoding.DER), nonce=used_nonce)


def post_ocsp_request(url: str, der_request: bytes, session=None, timeout: Optional[float] = None) -> bytes:
    """POST the DER request and return the raw response body"""
    http = session or requests
    headers = {"Content-Type": OCSP_REQUEST_CONTENT_TYPE, "Accept": OCSP_RESPONSE_CONTENT_TYPE}
    try:
        resp = http.post(url, data=der_request, headers=headers, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise TransportError(f"error sending post request: {e}", url=url) from e
    return resp.content


def fetch_issuer_certificate(url: str, session=None, timeout: float = AIA_FETCH_TIMEOUT) -> x509.Certificate:
    """GET a DER issuer certificate from a CA Issuers URL"""
    http = session or requests
    try:
        resp = http.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise TransportError(f"error fetching issuer certificate: {e}", url=url) from e
    return load_der_certificate(resp.content, source=url)


def _basic_response(response_bytes: bytes):
    parsed = asn1_ocsp.OCSPResponse.load(response_bytes)
    return parsed["response_bytes"]["response"].parsed["tbs_response_data"]


def _revocation_reason_code(tbs) -> Optional[int]:
    # cryptography only exposes ReasonFlags members, reserved codes are read raw
    cert_status = tbs["responses"][0]["cert_status"]
    if cert_status.name != "revoked":
        return None
    reason = cert_status.chosen["revocation_reason"]
    if isinstance(reason, asn1_core.Void):
        return None
    return int(reason)


def _echoed_nonce(tbs) -> Optional[bytes]:
    if not tbs["response_extensions"].native:
        return None
    for ext in tbs["response_extensions"]:
        if ext["extn_id"].dotted == OCSP_NONCE:
            return ext["extn_value"].parsed.native
    return None


def _check_response_signature(ocsp_resp, issuer: x509.Certificate) -> None:
    embedded: List[x509.Certificate] = ocsp_resp.certificates
    signer = issuer
    if embedded and embedded[0] != issuer:
        signer = embedded[0]
        check_delegated_responder(signer, issuer)

    try:
        hash_algo = ocsp_resp.signature_hash_algorithm
    except UnsupportedAlgorithm as e:
        raise ResponseValidationError(f"unsupported OCSP signature algorithm: {e}") from e

    verify_signature(signer.public_key(), ocsp_resp.signature, ocsp_resp.tbs_response_bytes, hash_algo)


def parse_response(
    response_bytes: bytes,
    issuer: x509.Certificate,
    certificate: Optional[x509.Certificate] = None,
    nonce: Optional[bytes] = None,
    log_callback: Optional[Callable[[str], None]] = None,
) -> Verdict:
    """
    Validate an OCSP response against ``issuer`` and interpret it.

    Args:
        response_bytes: DER OCSPResponse
        issuer: certificate that issued the checked certificate
        certificate: when given, the response must be about this certificate
        nonce: when given, an echoed nonce must match it

    Returns:
        Verdict with the certificate status and the verbatim revocation reason
    """
    if not response_bytes:
        raise ResponseValidationError("error parsing response: empty body")

    try:
        ocsp_resp = load_der_ocsp_response(response_bytes)
    except ValueError as e:
        raise ResponseValidationError(f"error parsing response: {e}") from e

    if ocsp_resp.response_status != OCSPResponseStatus.SUCCESSFUL:
        raise ResponseValidationError(f"OCSP responder returned {ocsp_resp.response_status.name}")

    responses = list(ocsp_resp.responses)
    if len(responses) != 1:
        raise ResponseValidationError(f"OCSP response contains {len(responses)} results, not one")
    single = responses[0]

    _check_response_signature(ocsp_resp, issuer)

    if certificate is not None and single.serial_number != certificate.serial_number:
        raise ResponseValidationError(
            f"OCSP response is for serial {single.serial_number:x}, "
            f"expected {certificate.serial_number:x}"
        )

    try:
        tbs = _basic_response(response_bytes)
        reason_code = _revocation_reason_code(tbs)
        echoed = _echoed_nonce(tbs) if nonce is not None else None
    except (ValueError, KeyError) as e:
        raise ResponseValidationError(f"error parsing response: {e}") from e

    if nonce is not None:
        if echoed is None:
            if log_callback:
                log_callback("[WARN] OCSP responder did not echo the request nonce")
        elif echoed != nonce:
            raise ResponseValidationError("OCSP response nonce does not match the request")

    return Verdict(
        status=_STATUS_MAP[single.certificate_status],
        revocation_reason=reason_code,
        revocation_time=single.revocation_time_utc,
        this_update=single.this_update_utc,
        next_update=single.next_update_utc,
        produced_at=ocsp_resp.produced_at_utc,
    )
