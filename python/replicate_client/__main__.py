#!/usr/bin/env python3
"""
Command-line access to predictions.

    python -m replicate_client create owner/model -i prompt="a red fox" --wait
    python -m replicate_client get <id>
    python -m replicate_client list
    python -m replicate_client cancel <id>

Connection settings come from REPLICATE_* environment variables (see
replicate_client.config); LOG_LEVEL sets the log level.
"""

import argparse
import json
import logging
import os
import sys

from .client import Client
from .errors import ReplicateError
from .predictions import Webhook, WebhookEventType

logger = logging.getLogger("replicate-client")


def parse_input(pairs):
    """Turn ``key=value`` pairs into an input mapping.

    Values that parse as JSON (numbers, booleans, lists...) are used
    as such; anything else is kept as a string.
    """
    inputs = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"expected key=value, got {pair!r}")
        try:
            inputs[key] = json.loads(value)
        except json.JSONDecodeError:
            inputs[key] = value
    return inputs


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="replicate_client", description="Manage predictions")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Create a prediction")
    create.add_argument("identifier", help="owner/name, owner/name:version or a version id")
    create.add_argument("-i", "--input", action="append", default=[], metavar="KEY=VALUE")
    create.add_argument("--webhook", help="Webhook URL")
    create.add_argument(
        "--webhook-event",
        action="append",
        default=[],
        choices=[e.value for e in WebhookEventType],
        help="Event to send to the webhook (repeatable)"
    )
    create.add_argument("--stream", action="store_true", help="Request streaming output")
    create.add_argument("--wait", action="store_true", help="Wait for the prediction to finish")

    get = sub.add_parser("get", help="Show a prediction")
    get.add_argument("id")

    cancel = sub.add_parser("cancel", help="Cancel a prediction")
    cancel.add_argument("id")

    sub.add_parser("list", help="List recent predictions")
    return parser


def run(args, client: Client):
    """Execute a parsed command and return what should be printed."""
    if args.command == "create":
        webhook = None
        if args.webhook:
            webhook = Webhook(
                url=args.webhook,
                events=[WebhookEventType(e) for e in args.webhook_event]
            )
        prediction = client.create_prediction(
            args.identifier,
            parse_input(args.input),
            webhook=webhook,
            stream=args.stream
        )
        logger.info(f"Created prediction {prediction.id} ({prediction.to_dict()['status']})")
        if args.wait:
            prediction = client.wait(prediction)
        return prediction.to_dict()
    if args.command == "get":
        return client.get_prediction(args.id).to_dict()
    if args.command == "cancel":
        return client.cancel_prediction(args.id).to_dict()
    page = client.list_predictions()
    return [p.to_dict() for p in page.results]


def main(argv=None):
    """Main entry point."""
    log_level = os.environ.get("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)]
    )

    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        result = run(args, Client())
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except ReplicateError as e:
        logger.error("%s", e)
        sys.exit(1)

    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
