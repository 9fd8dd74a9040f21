import os
from dataclasses import dataclass
from typing import List, Optional

from asn1crypto import core as asn1_core, x509 as asn1_x509
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import AuthorityInformationAccessOID, ExtensionOID, NameOID

from .errors import CertificateLoadError


@dataclass(frozen=True)
class ExtensionRecord:
    oid: str
    value: bytes


def load_pem_certificate(path: str) -> x509.Certificate:
    """Load the first PEM certificate found in ``path``"""
    if not path or not path.strip():
        raise CertificateLoadError("Certificate path is empty", source=path)

    if not os.path.exists(path):
        raise CertificateLoadError(f"Certificate file not found: {path}", source=path)

    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise CertificateLoadError(f"Error reading file: {e}", source=path) from e

    if b"-----BEGIN" not in data:
        raise CertificateLoadError("failed to parse certificate PEM", source=path)

    try:
        return x509.load_pem_x509_certificate(data)
    except ValueError as e:
        raise CertificateLoadError(f"failed to parse certificate: {e}", source=path) from e


def load_der_certificate(data: bytes, source: str = "") -> x509.Certificate:
    if not data:
        raise CertificateLoadError("empty certificate body", source=source)
    try:
        return x509.load_der_x509_certificate(data)
    except ValueError as e:
        raise CertificateLoadError(f"failed to parse certificate: {e}", source=source) from e


def extension_records(cert: x509.Certificate) -> List[ExtensionRecord]:
    """Return every extension as its OID and raw DER content"""
    tbs = asn1_x509.Certificate.load(cert.public_bytes(serialization.Encoding.DER))["tbs_certificate"]
    extensions = tbs["extensions"]
    if isinstance(extensions, asn1_core.Void):
        return []
    return [ExtensionRecord(ext["extn_id"].dotted, ext["extn_value"].contents) for ext in extensions]


def find_extension(cert: x509.Certificate, oid: str) -> Optional[ExtensionRecord]:
    for record in extension_records(cert):
        if record.oid == oid:
            return record
    return None


def ocsp_servers(cert: x509.Certificate) -> List[str]:
    """OCSP responder URLs advertised in the certificate's AIA extension"""
    try:
        aia = cert.extensions.get_extension_for_oid(ExtensionOID.AUTHORITY_INFORMATION_ACCESS).value
    except x509.ExtensionNotFound:
        return []

    return [
        desc.access_location.value
        for desc in aia
        if desc.access_method == AuthorityInformationAccessOID.OCSP
        and isinstance(desc.access_location, x509.UniformResourceIdentifier)
    ]


def common_name(cert: x509.Certificate) -> str:
    attrs = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        return ""
    return str(attrs[0].value)
