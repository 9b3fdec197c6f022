"""Utility functions"""
import json
import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

REPORT_PREFIX = "Reporte_ANI"
_WHITESPACE = re.compile(r"\s+")


def sanitize_filename(filename: str, max_length: int = 80) -> str:
    """Convert string to safe filename"""
    # Remove or replace unsafe characters
    unsafe_chars = ['<', '>', ':', '"', '|', '?', '*', '/', '\\']
    for char in unsafe_chars:
        filename = filename.replace(char, '_')

    filename = _WHITESPACE.sub('_', filename.strip())
    while '__' in filename:
        filename = filename.replace('__', '_')

    return filename.strip('_')[:max_length]


def report_filename(business_name: str) -> str:
    """PDF filename for a report, e.g. ``Reporte_ANI_Apple_Store.pdf``"""
    safe_name = sanitize_filename(business_name or "")
    if not safe_name:
        return f"{REPORT_PREFIX}.pdf"
    return f"{REPORT_PREFIX}_{safe_name}.pdf"


def save_json_file(data: dict, filepath: Path, indent: int = 2) -> None:
    """Write data as UTF-8 JSON, creating parent directories"""
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=False, default=str)
    logger.info("Saved JSON file", extra={"operation": "save_json", "path": str(filepath)})
