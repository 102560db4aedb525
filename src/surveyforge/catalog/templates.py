"""Loader for the explore templates shipped in templates.yaml."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from surveyforge.core.logging import get_logger
from surveyforge.schemas.template import Template

logger = get_logger("surveyforge.catalog")

TEMPLATES_FILE = Path(__file__).parent / "templates.yaml"


def load_templates(path: Optional[Path] = None) -> list[Template]:
    """
    Load and validate templates from a YAML file.

    Args:
        path: YAML file (defaults to the packaged templates.yaml)

    Returns:
        Templates in file order

    Raises:
        ValueError: If the file is malformed or a template fails validation
    """
    source = path or TEMPLATES_FILE
    try:
        data = yaml.safe_load(source.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid template file {source}: {e}") from e

    templates = []
    for raw in data.get("templates", []):
        try:
            templates.append(Template.model_validate(raw))
        except ValidationError as e:
            raise ValueError(
                f"Invalid template '{raw.get('id', '?')}' in {source}: {e}"
            ) from e

    ids = [t.id for t in templates]
    duplicates = {i for i in ids if ids.count(i) > 1}
    if duplicates:
        raise ValueError(f"Duplicate template ids in {source}: {', '.join(sorted(duplicates))}")

    logger.debug(f"Loaded {len(templates)} templates from {source.name}")
    return templates


@lru_cache(maxsize=1)
def _packaged_templates() -> tuple[Template, ...]:
    return tuple(load_templates())


def list_templates() -> list[Template]:
    """All packaged templates in display order."""
    return list(_packaged_templates())


def get_template(template_id: str) -> Template:
    """
    Return a packaged template by id.

    Raises:
        ValueError: If no template has that id
    """
    for template in _packaged_templates():
        if template.id == template_id:
            return template
    available = ", ".join(t.id for t in _packaged_templates())
    raise ValueError(f"Unknown template: {template_id}. Available templates: {available}")
