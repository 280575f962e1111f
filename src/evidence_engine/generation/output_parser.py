"""Extract and parse the structured document from accumulated stream text."""

from __future__ import annotations

import json

from pydantic import ValidationError

from evidence_engine.exceptions import StructuralOutputError, TruncatedOutputError
from evidence_engine.generation.output_models import GenerationOutput
from evidence_engine.models.schemas import SynthesisResponse


def extract_last_json_object(text: str) -> str | None:
    """Return the last balanced top-level ``{...}`` in ``text``.

    Braces inside JSON string literals are ignored. An object that is opened
    but never closed (truncated stream) does not count.
    """
    last: str | None = None
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"' and depth > 0:
            in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                last = text[start : i + 1]
    return last


def parse_generation_output(text: str) -> GenerationOutput:
    json_slice = extract_last_json_object(text)
    if json_slice is None:
        raise TruncatedOutputError("Model output truncated before JSON completion")

    try:
        data = json.loads(json_slice)
    except json.JSONDecodeError as e:
        raise StructuralOutputError(f"Model output is not valid JSON: {e}") from e

    try:
        return GenerationOutput.model_validate(data)
    except ValidationError as e:
        raise StructuralOutputError(f"Model output has an unexpected shape: {e}") from e


def parse_synthesis_output(text: str) -> SynthesisResponse:
    """Parse proposed argumentation lines; at least one line is required."""
    json_slice = extract_last_json_object(text)
    if json_slice is None:
        raise TruncatedOutputError("Synthesis output truncated before JSON completion")

    try:
        data = json.loads(json_slice)
    except json.JSONDecodeError as e:
        raise StructuralOutputError(f"Synthesis output is not valid JSON: {e}") from e

    if not data.get("argumentation_lines"):
        raise StructuralOutputError("Synthesis output has no argumentation lines")
    try:
        synthesis = SynthesisResponse.model_validate(data)
    except ValidationError as e:
        raise StructuralOutputError(f"Synthesis output has an unexpected shape: {e}") from e

    for n, line in enumerate(synthesis.argumentation_lines, 1):
        if not line.id:
            line.id = f"line_{n}"
    return synthesis
