"""
FlowBridge command line converter.

Usage:
    flowbridge-convert workflow.json                 # n8n -> Make.com (detected)
    flowbridge-convert scenario.json -o out.json     # Make.com -> n8n
    flowbridge-convert workflow.json --report report.yaml --strict

Output:
    - converted document (JSON, stdout when no -o is given)
    - optional conversion report (YAML): logs, unmapped types, review list, debug
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from flowbridge.core.errors import ConverterError, ErrorCode, FileError, get_error_handler
from flowbridge.models.workflow_models import ConversionResult, LogLevel

logger = logging.getLogger("flowbridge.cli")


def load_document(path: str) -> Any:
    """Read a workflow JSON file."""
    file_path = Path(path)
    if not file_path.exists():
        raise FileError(f"File not found: {path}", file_path=path)
    try:
        with open(file_path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise FileError(
            f"Invalid JSON in {path}: {e}",
            file_path=path,
            code=ErrorCode.FILE_INVALID_FORMAT,
            cause=e,
            suggestion="Export the workflow again from the source platform",
        )


def write_output(text: str, path: Optional[str]) -> None:
    if path is None:
        sys.stdout.write(text + "\n")
        return
    try:
        Path(path).write_text(text + "\n", encoding="utf-8")
    except OSError as e:
        raise FileError(f"Cannot write {path}: {e}", file_path=path, cause=e)


def build_report(result: ConversionResult) -> str:
    """YAML conversion report."""
    data = result.to_dict()
    data.pop("convertedWorkflow")
    return yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="flowbridge-convert",
        description="Convert workflows between n8n and Make.com",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  flowbridge-convert workflow.json -o scenario.json
  flowbridge-convert scenario.json --to n8n --preserve-ids
  flowbridge-convert workflow.json --report report.yaml --mapping-accuracy 80
        """
    )
    parser.add_argument("input", help="Workflow JSON file (n8n workflow or Make.com blueprint)")
    parser.add_argument("-o", "--output", help="Write the converted document here instead of stdout")
    parser.add_argument("--from", dest="source", metavar="PLATFORM", help="Source platform (n8n or make)")
    parser.add_argument("--to", dest="target", metavar="PLATFORM", help="Target platform (n8n or make)")
    parser.add_argument("--preserve-ids", action="store_true", help="Keep source ids where possible")
    parser.add_argument("--strict", action="store_true", help="Report ambiguous expressions as errors")
    parser.add_argument("--evaluate", action="store_true", help="Evaluate expressions instead of rewriting them")
    parser.add_argument(
        "--mapping-accuracy",
        type=int,
        metavar="N",
        help="Ignore mappings with an accuracy below N (0-100)"
    )
    parser.add_argument("--report", metavar="FILE", help="Write a YAML conversion report")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the converter.

    Returns:
        0 on success, 1 when the conversion logged errors, 2 on I/O or input failures
    """
    load_dotenv()

    from flowbridge.core.config import settings
    from flowbridge.services.converter.orchestrator import get_workflow_converter

    logging.basicConfig(
        level=getattr(logging, settings.log_level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    args = parse_args(argv)

    options: Dict[str, Any] = {
        "preserveIds": args.preserve_ids,
        "strictMode": args.strict,
        "evaluateExpressions": args.evaluate,
    }
    if args.mapping_accuracy is not None:
        options["mappingAccuracy"] = args.mapping_accuracy

    errors = get_error_handler()
    try:
        document = load_document(args.input)
        result = get_workflow_converter().convert_sync(document, args.source, args.target, options)
        write_output(json.dumps(result.converted_workflow, indent=2, ensure_ascii=False), args.output)
        if args.report:
            write_output(build_report(result), args.report)
    except ConverterError as e:
        errors.handle(e)
        print(f"Error: {e}", file=sys.stderr)
        if e.suggestion:
            print(f"Suggestion: {e.suggestion}", file=sys.stderr)
        return 2

    for log in result.warnings:
        errors.add_warning(log.message)
    logger.info(
        f"{len(result.logs_of(LogLevel.ERROR))} errors, {len(result.warnings)} warnings, "
        f"{len(result.unmapped_nodes)} unmapped node types"
    )
    return 1 if result.errors else 0


if __name__ == "__main__":
    sys.exit(main())
