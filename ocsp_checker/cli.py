"""
Check OCSP revocation status of a live HTTPS server or a PEM certificate.

Usage:
    ocsp-check --url https://example.com
    ocsp-check --pem certificate.pem [--responder http://ocsp.example.com]
"""

import argparse
import sys
from typing import List, Optional

from .config import CheckConfig, ConfigManager
from .errors import PreconditionError
from .exporters import export_results_csv, export_results_json
from .ocsp_client import HASH_ALGORITHMS
from .runner import RevocationChecker


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Check the OCSP revocation status of an X.509 certificate.")
    parser.add_argument("--url", "-url", help="https url to check")
    parser.add_argument("--pem", "-pem", dest="cert_path", help="pem to check")
    parser.add_argument("--responder", "-responder", dest="responder_url", help="responder to use")
    parser.add_argument("--nostaple", "-nostaple", dest="no_staple", action="store_true", default=None,
                        help="ignore staples")
    parser.add_argument("--dump", "-dump", action="store_true", default=None, help="dump raw bytes")
    parser.add_argument("--nonce", dest="include_nonce", action="store_true", default=None,
                        help="add a nonce extension to the OCSP request")
    parser.add_argument("--hash", dest="hash_algorithm", choices=sorted(HASH_ALGORITHMS),
                        help="CertID hash algorithm (default sha1)")
    parser.add_argument("--aia-timeout", dest="aia_timeout", type=float,
                        help="seconds to wait for the issuer certificate download")
    parser.add_argument("--config", help="JSON file with default settings")
    parser.add_argument("--save-config", dest="save_config", action="store_true",
                        help="write the effective settings back to the config file")
    parser.add_argument("--output", "-o", help="write results to a .json or .csv file")
    return parser


def load_config(args: argparse.Namespace) -> CheckConfig:
    manager = ConfigManager(args.config)
    try:
        config = manager.load_config()
    except (OSError, ValueError) as e:
        raise PreconditionError(f"Error loading config from {manager.config_file}: {e}") from e

    overrides = {
        key: value
        for key, value in vars(args).items()
        if value is not None and key not in ("config", "output", "save_config")
    }
    manager.update_from_dict(overrides)
    if args.save_config:
        try:
            manager.save_config(config)
        except OSError as e:
            raise PreconditionError(f"Error saving config to {manager.config_file}: {e}") from e
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
        checker = RevocationChecker(config)
        results = checker.run()
    except PreconditionError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    if args.output:
        if args.output.lower().endswith(".csv"):
            export_results_csv(results, args.output)
        else:
            export_results_json(results, args.output)
        print(f"[INFO] Results saved to: {args.output}", file=sys.stderr)

    return 0 if all(r.ok for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
