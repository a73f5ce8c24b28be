"""Preflight checks for the brief pipeline configuration.

``check`` loads ``AppSettings`` from an env file and then verifies the backend
selected by ``PIPELINE_BACKEND``:

* ``local``: the SQLite database opens (its directory is created when missing)
  and the documents directory is readable. Queue depth and dead-lettered jobs
  are reported.
* ``aws``: with ``--live-aws`` the table, bucket, and queue are looked up with
  the configured credentials; without it only their presence in settings is
  checked.

``record`` and ``verify`` keep a checksum of the env file so edits between
deploys are noticed::

    python -m scripts.check_env check --env-file .env --live-aws
    python -m scripts.check_env record --env-file .env --hash-file .env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import os
import sqlite3
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from briefing.clients.local_queue import SQLiteQueueClient
from briefing.clients.sqlite_store import SQLiteStore
from briefing.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_BACKEND_ERROR = 4
EXIT_RUNTIME_ERROR = 5


@dataclass
class CheckResult:
    name: str
    ok: bool
    detail: str


def load_settings(env_file: Path) -> AppSettings:
    if not env_file.is_file():
        raise FileNotFoundError(f"Environment file {env_file} does not exist.")
    _load_env_file(str(env_file))
    return AppSettings()  # type: ignore[call-arg]


def check_local_backend(settings: AppSettings) -> List[CheckResult]:
    pipeline = settings.pipeline
    results: List[CheckResult] = []
    try:
        SQLiteStore(pipeline.local_db_path)
        queue = SQLiteQueueClient(
            pipeline.local_db_path, max_receive_count=pipeline.max_receive_count
        )
        results.append(
            CheckResult(
                "local database",
                True,
                f"{pipeline.local_db_path}: {queue.pending_count()} pending job(s), "
                f"{len(queue.dead_letters())} dead-lettered",
            )
        )
    except (OSError, sqlite3.Error) as exc:
        results.append(CheckResult("local database", False, f"{pipeline.local_db_path}: {exc}"))

    documents = Path(pipeline.local_documents_dir)
    if not documents.is_dir():
        results.append(CheckResult("documents directory", False, f"{documents} is not a directory"))
    elif not os.access(documents, os.R_OK | os.X_OK):
        results.append(CheckResult("documents directory", False, f"{documents} is not readable"))
    else:
        results.append(CheckResult("documents directory", True, str(documents)))
    return results


def _aws_client(service: str, region_name: str) -> Any:
    return boto3.client(service, region_name=region_name)


def check_aws_backend(settings: AppSettings, *, live: bool) -> List[CheckResult]:
    aws = settings.aws
    resources = [
        ("dynamodb table", aws.dynamodb_table_name),
        ("documents bucket", aws.documents_bucket),
        ("section queue", aws.sqs_queue_url),
    ]
    if not live:
        return [CheckResult(name, True, f"{value} (not looked up)") for name, value in resources]

    lookups = [
        ("dynamodb", lambda client: client.describe_table(TableName=aws.dynamodb_table_name)),
        ("s3", lambda client: client.head_bucket(Bucket=aws.documents_bucket)),
        (
            "sqs",
            lambda client: client.get_queue_attributes(
                QueueUrl=aws.sqs_queue_url, AttributeNames=["QueueArn"]
            ),
        ),
    ]
    results: List[CheckResult] = []
    for (name, value), (service, lookup) in zip(resources, lookups):
        try:
            lookup(_aws_client(service, aws.region_name))
        except (BotoCoreError, ClientError) as exc:
            results.append(CheckResult(name, False, f"{value}: {exc}"))
        else:
            results.append(CheckResult(name, True, str(value)))
    return results


def _checksum(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _run_check(settings: AppSettings, live_aws: bool) -> int:
    if settings.pipeline.backend == "local":
        results = check_local_backend(settings)
    else:
        results = check_aws_backend(settings, live=live_aws)
    for result in results:
        marker = "ok" if result.ok else "FAIL"
        print(f"[{marker}] {result.name}: {result.detail}")
    return EXIT_OK if all(result.ok for result in results) else EXIT_BACKEND_ERROR


def _run_record(env_file: Path, hash_file: Path) -> int:
    checksum = _checksum(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded {env_file} checksum {checksum} in {hash_file}")
    return EXIT_OK


def _run_verify(env_file: Path, hash_file: Path) -> int:
    if not hash_file.is_file():
        print(f"No checksum baseline at {hash_file}; run 'record' first.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _checksum(env_file)
    if expected != actual:
        print(f"{env_file} changed: expected {expected}, found {actual}", file=sys.stderr)
        return EXIT_CHECKSUM_ERROR
    print(f"{env_file} matches its recorded checksum.")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Preflight checks for the brief pipeline.")
    commands = parser.add_subparsers(dest="command", required=True)

    check = commands.add_parser("check", help="Validate settings and the selected backend.")
    check.add_argument("--live-aws", action="store_true", help="Look up AWS resources.")

    record = commands.add_parser("record", help="Validate settings and store the checksum.")
    verify = commands.add_parser("verify", help="Validate settings and compare the checksum.")
    for command in (record, verify):
        command.add_argument("--hash-file", required=True, type=Path)
    for command in (check, record, verify):
        command.add_argument("--env-file", default=Path(".env"), type=Path)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    try:
        settings = load_settings(env_file)
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except ValidationError as exc:
        print(f"Settings validation failed:\n{exc}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    print(
        f"Settings OK: backend={settings.pipeline.backend}, "
        f"model={settings.gemini.model_name}, environment={settings.environment}"
    )
    if args.command == "check":
        return _run_check(settings, args.live_aws)
    if args.command == "record":
        return _run_record(env_file, args.hash_file)
    return _run_verify(env_file, args.hash_file)


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
