import json
from pathlib import Path

from biomarker_ingest.ai.exceptions import AIClientError

PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(name: str, path: Path | None = None) -> str:
    """Load a bundled prompt template.

    Args:
        name: File name inside the bundled prompts directory,
              e.g. ``extraction_prompt.txt``.
        path: Explicit path overriding the bundled file.

    Returns:
        The raw template string with placeholders.

    Raises:
        AIClientError: if the file cannot be read.
    """
    if path is None:
        path = PROMPT_DIR / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise AIClientError(f"Failed to load prompt template: {exc}") from exc


def load_json_schema(name: str, path: Path | None = None) -> dict[str, object]:
    """Load and decode a bundled JSON schema.

    Raises:
        AIClientError: if the file cannot be read or is not a JSON object.
    """
    raw = load_prompt_template(name, path)
    try:
        schema = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise AIClientError(f"Invalid JSON schema {name}: {exc}") from exc
    if not isinstance(schema, dict):
        raise AIClientError(f"JSON schema {name} must be an object")
    return schema
