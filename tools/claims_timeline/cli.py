import argparse
import json
import logging
import os
import sys

from apps.worker.pipeline import ClaimsTimelineParser
from apps.worker.steps.step00_read import decode_document
from packages.shared.error_messages import recovery_suggestions, user_friendly_message
from packages.shared.errors import ParseFailure, ValidationFailure
from packages.shared.models import DateFailurePolicy, SortDirection
from packages.shared.schema_validator import load_parser_config
from packages.shared.storage import read_text


def _debug_enabled() -> bool:
    return os.getenv("CLAIMS_PARSER_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}


def _build_parser(args) -> ClaimsTimelineParser:
    parser = ClaimsTimelineParser()
    if args.config:
        parser.update_config(load_parser_config(args.config))
    overrides = {}
    if getattr(args, "newest_first", False):
        overrides["sort_direction"] = SortDirection.NEWEST_FIRST
    if getattr(args, "on_date_failure", None):
        overrides["on_date_failure"] = DateFailurePolicy(args.on_date_failure)
    if overrides:
        parser.update_config(parser.config.model_copy(update=overrides))
    return parser


def _report(error: ParseFailure) -> None:
    print(user_friendly_message(error), file=sys.stderr)
    suggestions = recovery_suggestions(error)
    if suggestions:
        print("\nWhat you can try:", file=sys.stderr)
        for item in suggestions:
            print(f"  • {item}", file=sys.stderr)


def cmd_parse(args) -> int:
    parser = _build_parser(args)
    result = parser.parse(args.file)
    payload = result.to_payload()
    text = json.dumps(payload, indent=2)
    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            f.write(text)
        print(
            f"Wrote {result.metadata.total_claims} claims "
            f"({', '.join(result.metadata.claim_types) or 'none'}) to {args.out}"
        )
    else:
        print(text)
    for warning in result.warnings:
        print(f"warning [{warning.code}] {warning.message}", file=sys.stderr)
    return 0


def cmd_classify(args) -> int:
    parser = _build_parser(args)
    if args.probe:
        print(parser.get_parsing_strategy(args.file).value)
        return 0
    text = read_text(args.file)
    try:
        document = decode_document(text, args.file)
    except ValidationFailure:
        document = None
    print(parser.classify(document).value)
    return 0


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(prog="claims-timeline", description="Normalize medical claims JSON into a timeline")
    ap.add_argument("--config", type=str, default=None, help="Parser configuration JSON file")
    sub = ap.add_subparsers(dest="command", required=True)

    p_parse = sub.add_parser("parse", help="Parse a claims file and print the timeline as JSON")
    p_parse.add_argument("file", type=str)
    p_parse.add_argument("--out", type=str, default=None, help="Write the timeline JSON here instead of stdout")
    p_parse.add_argument("--newest-first", action="store_true", help="Sort newest claims first")
    p_parse.add_argument("--on-date-failure", choices=[p.value for p in DateFailurePolicy], default=None)
    p_parse.set_defaults(func=cmd_parse)

    p_classify = sub.add_parser("classify", help="Report which parsing strategy fits a claims file")
    p_classify.add_argument("file", type=str)
    p_classify.add_argument("--probe", action="store_true", help="Run a full parse and report the tier that succeeds")
    p_classify.set_defaults(func=cmd_classify)

    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if _debug_enabled() else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        return args.func(args)
    except ParseFailure as error:
        _report(error)
        return 1


if __name__ == "__main__":
    sys.exit(main())
