#!/usr/bin/env python3
"""Tests for the command line entry point and result export."""

import csv
import json

from ocsp_checker.cli import build_parser, load_config, main
from ocsp_checker.exporters import export_results_csv, export_results_json
from ocsp_checker.models import CertStatus, ScenarioResult, Verdict


def test_no_input_is_an_error(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "none.json")]) == 1
    assert "must provide a url or cert" in capsys.readouterr().err


def test_flags_override_config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"responder_url": "http://file.example.test", "dump": True, "aia_timeout": 4}))

    args = build_parser().parse_args([
        "--config", str(path),
        "-pem", "cert.pem",
        "-responder", "http://flag.example.test",
        "-nostaple",
    ])
    config = load_config(args)

    assert config.cert_path == "cert.pem"
    assert config.responder_url == "http://flag.example.test"
    assert config.no_staple is True
    assert config.dump is True
    assert config.aia_timeout == 4
    assert config.url == ""


def test_unset_flags_keep_defaults(tmp_path):
    args = build_parser().parse_args(["--config", str(tmp_path / "none.json"), "--url", "https://example.test"])
    config = load_config(args)
    assert config.no_staple is False
    assert config.dump is False
    assert config.hash_algorithm == "sha1"


def test_save_config_persists_effective_settings(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"aia_timeout": 4}))

    args = build_parser().parse_args([
        "--config", str(path), "--save-config",
        "-responder", "http://flag.example.test", "--hash", "sha256",
    ])
    load_config(args)

    saved = json.loads(path.read_text())
    assert saved["responder_url"] == "http://flag.example.test"
    assert saved["hash_algorithm"] == "sha256"
    assert saved["aia_timeout"] == 4
    assert "save_config" not in saved


def test_config_untouched_without_save_flag(tmp_path):
    path = tmp_path / "config.json"
    args = build_parser().parse_args(["--config", str(path), "-responder", "http://flag.example.test"])
    load_config(args)
    assert not path.exists()


def test_failed_scenario_exit_status_and_export(tmp_path):
    output = tmp_path / "results.json"
    status = main([
        "--config", str(tmp_path / "none.json"),
        "--pem", str(tmp_path / "missing.pem"),
        "--output", str(output),
    ])

    assert status == 1
    rows = json.loads(output.read_text())
    assert rows[0]["scenario"] == "file"
    assert rows[0]["status"] == "ERROR"
    assert "not found" in rows[0]["error"]


def test_export_verdicts(tmp_path):
    result = ScenarioResult(scenario="url", target="https://example.test",
                            verdict=Verdict(status=CertStatus.REVOKED, revocation_reason=7))
    result.end()

    json_path = tmp_path / "out.json"
    export_results_json([result], str(json_path))
    row = json.loads(json_path.read_text())[0]
    assert row["status"] == "Revoked"
    assert row["revocation_reason"] == 7
    assert row["reason_label"] == "unexpected value: 7"

    csv_path = tmp_path / "out.csv"
    export_results_csv([result], str(csv_path))
    with open(csv_path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert rows[0]["status"] == "Revoked"
    assert rows[0]["reason_label"] == "unexpected value: 7"
