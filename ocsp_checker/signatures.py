from typing import Optional

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, padding, rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, ExtensionOID

from .errors import ResponseValidationError


def verify_signature(public_key,
                     signature: bytes,
                     data: bytes,
                     hash_algorithm: Optional[hashes.HashAlgorithm]) -> None:
    """Verify ``signature`` over ``data``; raises ResponseValidationError on mismatch"""
    try:
        if isinstance(public_key, rsa.RSAPublicKey):
            if hash_algorithm is None:
                raise ResponseValidationError("RSA signature without a hash algorithm")
            public_key.verify(signature, data, padding.PKCS1v15(), hash_algorithm)
        elif isinstance(public_key, ec.EllipticCurvePublicKey):
            if hash_algorithm is None:
                raise ResponseValidationError("ECDSA signature without a hash algorithm")
            public_key.verify(signature, data, ec.ECDSA(hash_algorithm))
        elif isinstance(public_key, dsa.DSAPublicKey):
            if hash_algorithm is None:
                raise ResponseValidationError("DSA signature without a hash algorithm")
            public_key.verify(signature, data, hash_algorithm)
        elif isinstance(public_key, (ed25519.Ed25519PublicKey, ed448.Ed448PublicKey)):
            public_key.verify(signature, data)
        else:
            raise ResponseValidationError(f"unsupported public key type: {type(public_key).__name__}")
    except InvalidSignature as e:
        raise ResponseValidationError("bad OCSP signature") from e


def check_delegated_responder(responder: x509.Certificate, issuer: x509.Certificate) -> None:
    """A delegated responder must be signed by the issuer and carry the OCSP Signing EKU"""
    try:
        responder.verify_directly_issued_by(issuer)
    except (ValueError, TypeError, InvalidSignature) as e:
        raise ResponseValidationError(f"bad signature on embedded certificate: {e!r}") from e

    try:
        eku = responder.extensions.get_extension_for_oid(ExtensionOID.EXTENDED_KEY_USAGE).value
    except x509.ExtensionNotFound as e:
        raise ResponseValidationError("embedded responder certificate has no extended key usage") from e

    if ExtendedKeyUsageOID.OCSP_SIGNING not in eku:
        raise ResponseValidationError("embedded responder certificate is not authorized for OCSP signing")
