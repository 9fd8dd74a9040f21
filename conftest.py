"""
Shared fixtures: a throwaway PKI minted with cryptography, OCSP responses
signed by it, and fake network collaborators so no test leaves the process.
"""

import datetime
import ipaddress
import os
import sys
from typing import List, Optional

import pytest
import requests
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509 import ocsp
from cryptography.x509.oid import AuthorityInformationAccessOID, ExtendedKeyUsageOID, NameOID

sys.path.append(os.path.dirname(os.path.abspath(__file__)))


CA_ISSUERS_URL = "http://ca.example.test/issuer.crt"
OCSP_URL = "http://ocsp.example.test"


def _name(cn: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])


def make_cert(subject_cn: str,
              issuer_cert: Optional[x509.Certificate] = None,
              issuer_key=None,
              ca: bool = False,
              aia: Optional[List[tuple]] = None,
              eku: Optional[List[x509.ObjectIdentifier]] = None,
              san: Optional[List[x509.GeneralName]] = None):
    """Return (certificate, private_key); self-signed when no issuer is given"""
    key = ec.generate_private_key(ec.SECP256R1())
    now = datetime.datetime.now(datetime.timezone.utc)
    issuer_name = issuer_cert.subject if issuer_cert is not None else _name(subject_cn)
    signing_key = issuer_key if issuer_key is not None else key

    builder = (
        x509.CertificateBuilder()
        .subject_name(_name(subject_cn))
        .issuer_name(issuer_name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
    )
    if aia:
        builder = builder.add_extension(
            x509.AuthorityInformationAccess([
                x509.AccessDescription(method, x509.UniformResourceIdentifier(url))
                for method, url in aia
            ]),
            critical=False,
        )
    if eku:
        builder = builder.add_extension(x509.ExtendedKeyUsage(eku), critical=False)
    if san:
        builder = builder.add_extension(x509.SubjectAlternativeName(san), critical=False)

    return builder.sign(signing_key, hashes.SHA256()), key


def make_response(cert: x509.Certificate,
                  issuer: x509.Certificate,
                  signer_key,
                  status: ocsp.OCSPCertStatus = ocsp.OCSPCertStatus.GOOD,
                  reason: Optional[x509.ReasonFlags] = None,
                  responder: Optional[x509.Certificate] = None,
                  certificates: Optional[List[x509.Certificate]] = None,
                  nonce: Optional[bytes] = None) -> bytes:
    now = datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
    revoked = status == ocsp.OCSPCertStatus.REVOKED
    builder = ocsp.OCSPResponseBuilder().add_response(
        cert=cert,
        issuer=issuer,
        algorithm=hashes.SHA1(),
        cert_status=status,
        this_update=now,
        next_update=now + datetime.timedelta(days=1),
        revocation_time=now - datetime.timedelta(days=1) if revoked else None,
        revocation_reason=reason if revoked else None,
    )
    builder = builder.responder_id(ocsp.OCSPResponderEncoding.HASH, responder or issuer)
    if certificates:
        builder = builder.certificates(certificates)
    if nonce is not None:
        builder = builder.add_extension(x509.OCSPNonce(nonce), critical=False)
    return builder.sign(signer_key, hashes.SHA256()).public_bytes(serialization.Encoding.DER)


class PKI:
    def __init__(self):
        self.ca, self.ca_key = make_cert("Test Issuing CA", ca=True)
        self.other_ca, self.other_ca_key = make_cert("Unrelated CA", ca=True)
        self.leaf, self.leaf_key = make_cert(
            "www.example.test", self.ca, self.ca_key,
            aia=[
                (AuthorityInformationAccessOID.OCSP, OCSP_URL),
                (AuthorityInformationAccessOID.CA_ISSUERS, CA_ISSUERS_URL),
            ],
        )
        self.leaf_no_aia, _ = make_cert("no-aia.example.test", self.ca, self.ca_key)
        self.leaf_no_ocsp, _ = make_cert(
            "no-ocsp.example.test", self.ca, self.ca_key,
            aia=[(AuthorityInformationAccessOID.CA_ISSUERS, CA_ISSUERS_URL)],
        )
        self.responder, self.responder_key = make_cert(
            "Test OCSP Responder", self.ca, self.ca_key, eku=[ExtendedKeyUsageOID.OCSP_SIGNING],
        )
        self.responder_no_eku, self.responder_no_eku_key = make_cert(
            "Plain Delegate", self.ca, self.ca_key, eku=[ExtendedKeyUsageOID.SERVER_AUTH],
        )
        self.server, self.server_key = make_cert(
            "localhost", self.ca, self.ca_key,
            eku=[ExtendedKeyUsageOID.SERVER_AUTH],
            san=[x509.DNSName("localhost"), x509.IPAddress(ipaddress.ip_address("127.0.0.1"))],
        )

    def response(self, cert: Optional[x509.Certificate] = None, **kwargs) -> bytes:
        kwargs.setdefault("signer_key", self.ca_key)
        return make_response(cert or self.leaf, self.ca, **kwargs)


@pytest.fixture(scope="session")
def pki() -> PKI:
    return PKI()


class FakeResponse:
    def __init__(self, content: bytes = b"", status_code: int = 200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error", response=self)


class FakeSession:
    """Records requests instead of sending them"""

    def __init__(self, post_content: bytes = b"", get_content: bytes = b"",
                 post_status: int = 200, get_status: int = 200,
                 post_error: Optional[Exception] = None, get_error: Optional[Exception] = None):
        self.post_content = post_content
        self.get_content = get_content
        self.post_status = post_status
        self.get_status = get_status
        self.post_error = post_error
        self.get_error = get_error
        self.posts: List[dict] = []
        self.gets: List[dict] = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.posts.append({"url": url, "data": data, "headers": headers or {}, "timeout": timeout})
        if self.post_error is not None:
            raise self.post_error
        return FakeResponse(self.post_content, self.post_status)

    def get(self, url, timeout=None):
        self.gets.append({"url": url, "timeout": timeout})
        if self.get_error is not None:
            raise self.get_error
        return FakeResponse(self.get_content, self.get_status)


def pem_file(tmp_path, cert: x509.Certificate, name: str = "cert.pem") -> str:
    path = tmp_path / name
    path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    return str(path)
