import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from linkdash.rules.models import Rules

DATA_DIR_ENV = "LINKDASH_DATA_DIR"


def load_rules(path: Path) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if YAML or schema invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        rules = Rules.model_validate(data or {})
    except ValidationError as e:
        # Re-raise with a clear message for the caller/logs
        raise ValueError(f"Rules validation failed:\n{e}") from e

    return apply_env_overrides(rules)


def apply_env_overrides(rules: Rules) -> Rules:
    data_dir = os.environ.get(DATA_DIR_ENV)
    if data_dir:
        storage = rules.storage.model_copy(update={"data_dir": data_dir})
        rules = rules.model_copy(update={"storage": storage})
    return rules
