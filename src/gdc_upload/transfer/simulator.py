"""Local stand-in for gdc-client used in simulation mode and tests."""

from __future__ import annotations

import argparse
import os
import random
import sys
import time

from gdc_upload.transfer.classifier import (
    ALREADY_VALIDATED_MARKER,
    FILE_NOT_FOUND_MARKER_TEMPLATE,
    success_marker,
)

OUTCOMES = ("success", "validated", "missing", "flaky")
_OUTCOME_WEIGHTS = (70, 5, 5, 20)
_SPEED_SECONDS = {"fast": 0.05, "slow": 2.0}


def render_output(outcome: str, external_id: str) -> str:
    """Return gdc-client-like stdout for a simulated outcome."""

    lines = [f"Uploading file {external_id}"]
    if outcome == "success":
        lines.append("Initiating multipart upload")
        lines.append(success_marker(external_id))
    elif outcome == "validated":
        lines.append(f"ERROR: {ALREADY_VALIDATED_MARKER}")
    elif outcome == "missing":
        lines.append(f"ERROR: {FILE_NOT_FOUND_MARKER_TEMPLATE.format(external_id=external_id)}")
    else:
        lines.append("ERROR: Connection reset by peer, upload interrupted")
    return "\n".join(lines) + "\n"


def main(argv: list[str] | None = None) -> int:
    """Print one simulated transfer result."""

    parser = argparse.ArgumentParser(prog="gdcsim")
    parser.add_argument("external_id")
    parser.add_argument("submitter_id")
    parser.add_argument("speed", nargs="?", default="fast", choices=sorted(_SPEED_SECONDS))
    args = parser.parse_args(argv)

    forced = os.getenv("GDC_UPLOAD_SIM_OUTCOME", "").strip().lower()
    if forced and forced not in OUTCOMES:
        parser.error(f"GDC_UPLOAD_SIM_OUTCOME must be one of {', '.join(OUTCOMES)}")
    seed = os.getenv("GDC_UPLOAD_SIM_SEED")
    rng = random.Random(f"{seed}:{args.external_id}" if seed else None)  # noqa: S311
    outcome = forced or rng.choices(OUTCOMES, weights=_OUTCOME_WEIGHTS, k=1)[0]

    time.sleep(_SPEED_SECONDS[args.speed])
    sys.stdout.write(render_output(outcome, args.external_id))
    if outcome == "flaky":
        sys.stderr.write("transfer interrupted\n")
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
