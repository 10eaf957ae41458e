# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Command-line trigger.

Usage:
    flowrunner run workflow.json --input '{"topic": "billing"}'
    flowrunner run workflow.json --store-dir volumes/executions --parallel
"""

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from flowrunner.core.config import Config, get_config
from flowrunner.core.errors import ConfigurationError
from flowrunner.core.logging import get_logger
from flowrunner.services.workflow_service import WorkflowService
from flowrunner.storage.execution_store import FileExecutionStore
from flowrunner.workflow.models import ExecutionOutcome, WorkflowDefinition


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flowrunner", description="Run DAG workflows")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Execute a workflow definition file")
    run.add_argument("workflow", type=Path, help="Workflow JSON file (nodes and edges)")
    run.add_argument(
        "--input",
        default="{}",
        help="Run input as a JSON object (default: {})",
    )
    run.add_argument(
        "--store-dir",
        type=Path,
        help="Persist the execution under this directory instead of the configured store",
    )
    run.add_argument(
        "--parallel",
        action="store_true",
        help="Run independent branches concurrently",
    )
    return parser


def load_workflow(path: Path) -> WorkflowDefinition:
    """
    Raises:
        ConfigurationError: If the file is missing or not a valid workflow
    """
    if not path.exists():
        raise ConfigurationError(f"Workflow file not found: {path}", config_file=str(path))
    try:
        return WorkflowDefinition(**json.loads(path.read_text()))
    except (json.JSONDecodeError, TypeError, PydanticValidationError) as e:
        raise ConfigurationError(f"Invalid workflow file: {e}", config_file=str(path))


def parse_input(raw: str) -> Dict[str, Any]:
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"--input is not valid JSON: {e}")
    if not isinstance(value, dict):
        raise ConfigurationError("--input must be a JSON object")
    return value


async def run_command(args: argparse.Namespace, config: Config) -> ExecutionOutcome:
    if args.parallel:
        config = replace(config, parallel_execution=True)

    workflow = load_workflow(args.workflow)
    input_data = parse_input(args.input)

    store = FileExecutionStore(args.store_dir) if args.store_dir else None
    service = WorkflowService.from_config(config, store=store)
    try:
        return await service.run_workflow(
            workflow.nodes,
            workflow.edges,
            input_data=input_data,
            workflow_id=workflow.workflow_id or args.workflow.stem,
            triggered_by="cli",
        )
    finally:
        await service.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = get_config()
    except ConfigurationError as e:
        get_logger("flowrunner.cli").error(str(e))
        return 2
    logger = get_logger("flowrunner.cli", config.log_level, config.log_format)

    try:
        outcome = asyncio.run(run_command(args, config))
    except ConfigurationError as e:
        logger.error(str(e))
        return 2

    print(json.dumps(outcome.model_dump(), indent=2, default=str))
    return 0 if outcome.success else 1


if __name__ == "__main__":
    sys.exit(main())
