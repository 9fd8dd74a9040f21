"""Exception taxonomy for OCSP revocation checking."""


class OCSPCheckError(Exception):
    """Base exception for every failure reported at a scenario boundary."""

    pass


class AIAStructureError(OCSPCheckError):
    """Malformed Authority Information Access encoding."""

    pass


class AIAUnknownTypeError(AIAStructureError):
    """The CA Issuers access location is not a URI."""

    def __init__(self, message: str, tag: int):
        super().__init__(message)
        self.tag = tag


class CertificateLoadError(OCSPCheckError):
    """A certificate could not be read or parsed."""

    def __init__(self, message: str, source: str = ""):
        super().__init__(message)
        self.source = source


class PreconditionError(OCSPCheckError):
    """Required input or state is missing (chain, responder URL, issuer URL...)."""

    pass


class TransportError(OCSPCheckError):
    """Network failure on the TLS fetch, the AIA fetch or the OCSP POST."""

    def __init__(self, message: str, url: str = ""):
        super().__init__(message)
        self.url = url


class ResponseValidationError(OCSPCheckError):
    """OCSP response could not be parsed or did not validate against the issuer."""

    pass
