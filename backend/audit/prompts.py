"""Prompt template for the profile audit request."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from audit.handles import build_profile_url
from audit.models import EXPECTED_COMPETITORS, NOT_FOUND_SENTINEL
from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

PROMPT_VERSION = "v1"
PROMPT_DIR = Path(__file__).resolve().parent / "config" / "prompts"


def template_name(version: str = PROMPT_VERSION) -> str:
    return f"profile_audit_{version}.txt"


@lru_cache(maxsize=None)
def _load_template(path: Path) -> str:
    if not path.exists():
        raise ConfigurationError(f"Prompt template not found: {path}")
    logger.debug("Prompt loaded", extra={"operation": "prompt_load", "prompt": path.name})
    return path.read_text(encoding="utf-8")


def render_audit_prompt(
    handle: str,
    *,
    version: str = PROMPT_VERSION,
    prompt_dir: Optional[Path] = None,
) -> str:
    """Embed ``handle`` (already canonical) into the audit instructions."""

    path = (prompt_dir or PROMPT_DIR) / template_name(version)
    template = _load_template(path)
    context = {
        "handle": handle,
        "profile_url": build_profile_url(handle),
        "not_found": NOT_FOUND_SENTINEL,
        "competitor_count": EXPECTED_COMPETITORS,
    }
    try:
        return template.format(**context).strip()
    except KeyError as exc:
        missing = exc.args[0]
        raise ConfigurationError(
            f"Prompt context missing required key '{missing}' for template '{path.name}'."
        ) from exc


__all__ = ["PROMPT_VERSION", "PROMPT_DIR", "render_audit_prompt", "template_name"]
