"""
Handles the 'in' command: fetch a repository and materialize its pipelines.

Protocol:
- The request payload is read once from stdin
- Output payload #1 (version and metadata) is written to stdout as soon
  as the repository has been acquired
- DEST is then replaced by the discovered pipeline files
"""

import click
import json
import logging
from pathlib import Path
from typing import Any, Dict

from ..config import load_config, configure_logging
from ..domain.request import FetchRequest
from ..exit_codes import InputError
from ..render import render_discovery_table
from ..services.resource_service import ResourceService
from ..cli_utils import ResourceCommand, standard_command, add_common_options, output_result

logger = logging.getLogger(__name__)

REDACTED = "<redacted>"


def redact_payload(payload: Any) -> Any:
    """Copy of payload safe for logging: key material is masked."""
    if not isinstance(payload, dict):
        return payload
    redacted: Dict[str, Any] = dict(payload)
    source = redacted.get("source")
    if isinstance(source, dict) and source.get("private_key"):
        redacted["source"] = {**source, "private_key": REDACTED}
    return redacted


def read_request(stream, config: Dict[str, Any]) -> FetchRequest:
    """
    Parse the request payload from stream.

    Raises:
        InputError: if the payload is not JSON or lacks source.uri
    """
    raw = stream.read()
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error(f"Request payload is not valid JSON: {raw!r}")
        raise InputError(f"Invalid request payload: {e}")

    try:
        return FetchRequest.from_payload(payload, config)
    except InputError:
        logger.error(f"Invalid request payload: {json.dumps(redact_payload(payload))}")
        raise


@click.command('in', cls=ResourceCommand)
@click.argument('destination', type=click.Path(file_okay=False, path_type=Path))
@add_common_options('verbose', 'quiet')
@standard_command
def in_handler(destination, verbose, quiet):
    """Fetch a repository into DESTINATION and keep only its pipeline files.

    Reads the request payload from stdin and prints the resolved version
    to stdout.
    """
    config = load_config()
    configure_logging(config, verbose)

    request = read_request(click.get_text_stream('stdin'), config)

    destination.mkdir(parents=True, exist_ok=True)
    service = ResourceService(config=config)

    snapshot, version = service.fetch(request, destination)
    output_result(version.to_dict())

    result, written = service.publish(request, snapshot)
    if not quiet:
        render_discovery_table(result, written)
