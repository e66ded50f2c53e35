import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from optin.rules.models import Rules

logger = logging.getLogger(__name__)


def strip_code_fence(content: str) -> str:
    """Return the body of the first ```yaml block, or ``content`` unchanged."""
    yaml_lines = []
    in_block = False
    found_block = False

    for line in content.splitlines():
        s_line = line.strip()
        if s_line.startswith("```yaml"):
            in_block = True
            found_block = True
            continue
        if in_block and s_line.startswith("```"):
            break
        if in_block:
            yaml_lines.append(line)

    return "\n".join(yaml_lines) if found_block else content


def load_rules(path: Path) -> Rules:
    """
    Load and validate the rules file.
    A missing file yields the built-in defaults.
    Raises ValueError if the YAML or the schema is invalid.
    """
    if not path.exists():
        logger.info("No rules file at %s, using defaults", path)
        return Rules()

    with open(path) as f:
        content = f.read()

    try:
        data = yaml.safe_load(strip_code_fence(content))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        return Rules.model_validate(data or {})
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e
