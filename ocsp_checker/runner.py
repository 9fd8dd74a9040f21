import sys
from typing import Callable, List, Optional, TextIO

from asn1crypto import pem as asn1_pem
from cryptography import x509

from .aia import AUTHORITY_INFO_ACCESS, decode_aia
from .certs import common_name, find_extension, load_pem_certificate
from .config import CheckConfig
from .errors import OCSPCheckError, PreconditionError
from .models import CertStatus, ScenarioResult, Verdict
from .ocsp_client import (
    build_request,
    fetch_issuer_certificate,
    hash_algorithm,
    parse_response,
    post_ocsp_request,
)
from .tls import ConnectionState, fetch_connection_state


def _stderr_log(message: str) -> None:
    print(message, file=sys.stderr)


class RevocationChecker:
    """
    Decides how to check a certificate and drives the check.

    Live connection: use the stapled response when there is one (unless
    ``no_staple`` is set), otherwise query the responder. Certificate file:
    locate and fetch the issuer through AIA, then query the responder.
    """

    def __init__(self,
                 config: CheckConfig,
                 session=None,
                 connector: Callable[[str], Optional[ConnectionState]] = fetch_connection_state,
                 log_callback: Optional[Callable[[str], None]] = None,
                 dump_stream: Optional[TextIO] = None):
        self.config = config
        self.session = session
        self.connector = connector
        self.log_callback = log_callback or _stderr_log
        self.dump_stream = dump_stream

    def log(self, message: str) -> None:
        self.log_callback(message)

    def _dump(self, label: str, data: bytes) -> None:
        if not self.config.dump:
            return
        stream = self.dump_stream or sys.stdout
        stream.write(asn1_pem.armor(label, data).decode("ascii"))

    def run(self) -> List[ScenarioResult]:
        """Run every scenario that has an input; each one succeeds or fails on its own"""
        if not self.config.url and not self.config.cert_path:
            raise PreconditionError("must provide a url or cert")

        results: List[ScenarioResult] = []
        if self.config.url:
            results.append(self._run_scenario("url", self.config.url, self.check_url))
        if self.config.cert_path:
            results.append(self._run_scenario("file", self.config.cert_path, self.check_file))
        return results

    def _run_scenario(self, scenario: str, target: str, check: Callable[[str], Verdict]) -> ScenarioResult:
        result = ScenarioResult(scenario=scenario, target=target)
        try:
            result.verdict = check(target)
        except OCSPCheckError as exc:
            result.error = str(exc)
            label = "URL" if scenario == "url" else "file"
            self.log(f"[ERROR] Error processing {label}: {exc}")
        result.end()
        return result

    def check_url(self, url: str) -> Verdict:
        if not url.startswith("https"):
            raise PreconditionError("must provide a https url")

        conn_state = self.connector(url)
        if conn_state is None:
            raise PreconditionError("no connection state")
        if len(conn_state.verified_chain) < 2:
            raise PreconditionError(
                "verified chain must contain the server certificate and its issuer"
            )

        server = conn_state.verified_chain[0]
        issuer = conn_state.verified_chain[1]
        staple = conn_state.ocsp_staple

        if not staple or self.config.no_staple:
            self.log("[INFO] remote check")
            return self.manual_check(server, issuer)

        self.log("[INFO] stapled check")
        return self.stapled_check(server, issuer, staple)

    def check_file(self, path: str) -> Verdict:
        end_entity = load_pem_certificate(path)
        issuer = self.fetch_issuer(end_entity)
        return self.manual_check(end_entity, issuer)

    def fetch_issuer(self, end_entity: x509.Certificate) -> x509.Certificate:
        """Follow the CA Issuers pointer of ``end_entity``"""
        record = find_extension(end_entity, AUTHORITY_INFO_ACCESS)
        aia_url = decode_aia(record.value) if record is not None else ""

        if not aia_url:
            raise PreconditionError("no issuer-location available: certificate has no AIA CA Issuers URL")

        self.log(f"[INFO] Fetching issuer certificate from {aia_url}")
        return fetch_issuer_certificate(aia_url, session=self.session, timeout=self.config.aia_timeout)

    def stapled_check(self, end_entity: x509.Certificate, issuer: x509.Certificate, staple: bytes) -> Verdict:
        self.log(f"[INFO] Server: {common_name(end_entity)}")
        self.log(f"[INFO] Issuer: {common_name(issuer)}")
        return self._interpret(staple, end_entity, issuer)

    def manual_check(self, end_entity: x509.Certificate, issuer: x509.Certificate) -> Verdict:
        request = build_request(
            end_entity,
            issuer,
            responder_url=self.config.responder_url or None,
            hash_algo=hash_algorithm(self.config.hash_algorithm),
            include_nonce=self.config.include_nonce,
        )

        self.log(f"[INFO] Server: {common_name(end_entity)}")
        self.log(f"[INFO] Issuer: {common_name(issuer)}")
        self.log(f"[INFO] OCSP URL: {request.url}")

        self._dump("OCSP Request", request.der)
        body = post_ocsp_request(request.url, request.der, session=self.session, timeout=self.config.ocsp_timeout)
        return self._interpret(body, end_entity, issuer, nonce=request.nonce)

    def _interpret(self,
                   response: bytes,
                   end_entity: x509.Certificate,
                   issuer: x509.Certificate,
                   nonce: Optional[bytes] = None) -> Verdict:
        self._dump("OCSP Response", response)
        verdict = parse_response(response, issuer, certificate=end_entity, nonce=nonce, log_callback=self.log)

        if verdict.status is CertStatus.GOOD:
            self.log("[INFO] Certificate Status Good.")
        elif verdict.status is CertStatus.UNKNOWN:
            self.log("[INFO] Certificate Status Unknown")
        else:
            self.log("[INFO] Certificate Status Revoked")
        self.log(f"[INFO] Reason: {verdict.reason_label}")
        return verdict
