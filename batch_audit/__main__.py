#!/usr/bin/env python3
"""
Command line entry point.

    python -m batch_audit run condo-world.json [--name condo-world]
    python -m batch_audit serve [--host 0.0.0.0] [--port 8000]
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from batch_audit.audit.executor import AuditExecutor
from batch_audit.audit.runner import BatchRunner
from batch_audit.errors import ValidationError
from batch_audit.services.batches import AuditService
from batch_audit.services.logger import setup_logging
from batch_audit.services.tasks import TaskRegistry
from batch_audit.settings import get_settings
from batch_audit.storage import build_storage


async def run_batch(config_path: Path, name=None):
    settings = get_settings()
    storage = build_storage(settings)
    registry = TaskRegistry()
    runner = BatchRunner(AuditExecutor(storage, settings), registry)
    service = AuditService(storage, registry, runner)

    data = json.loads(config_path.read_text(encoding="utf-8"))
    task_id = service.submit(data, name or config_path.stem)
    return await service.wait(task_id)


def cmd_run(args) -> int:
    config_path = Path(args.config)
    if not config_path.is_file():
        print(f"Config file not found: {config_path}", file=sys.stderr)
        return 2

    try:
        task = asyncio.run(run_batch(config_path, args.name))
    except (ValidationError, json.JSONDecodeError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    print(f"Task {task.id}: {task.status} - {task.message}")
    print(f"Folder: {task.folder_name}")
    for r in task.results:
        mark = "OK  " if r.success else "FAIL"
        detail = r.artifact_path if r.success else r.error
        print(f"  {mark} {r.device_profile_name:<8} {r.url}  {detail}")
    return 0 if task.status == "completed" else 1


def cmd_serve(args) -> int:
    import uvicorn
    uvicorn.run("batch_audit.main:create_app", factory=True, host=args.host, port=args.port)
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="batch_audit", description='Lighthouse batch auditor')
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help='Run one batch in the foreground')
    run.add_argument('config', help='Path to a JSON config: {"base": ..., "paths": [...]}')
    run.add_argument('--name', default=None, help='Config name used for the report folder (default: file name)')
    run.set_defaults(func=cmd_run)

    serve = sub.add_parser("serve", help='Start the HTTP API')
    serve.add_argument('--host', default='0.0.0.0')
    serve.add_argument('--port', type=int, default=8000)
    serve.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)
    setup_logging(get_settings().LOG_LEVEL)
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
