"""
utils/query_parser.py
Extracts scan parameters from a free-text request such as
"find duplicates named report under ./docs that are pdf files".
"""

import re
from typing import Dict

# Pre-compiled regex patterns
_PATTERN_PATH = re.compile(r'\b(?:in|under|at|from)\s+([a-zA-Z]:[\\/][^\s,]+|[.~/][^\s,]*)', re.IGNORECASE)
_PATTERN_TYPE = re.compile(r'(?:that are|type)\s+(\.\w+|\w+)\s+files?')
_PATTERN_KNOWN_EXT = re.compile(r'\.(txt|js|jsx|ts|tsx|json|css|md|py|html|xml|csv|pdf|png|jpg)\b')
_PATTERN_NAME = re.compile(r'(?:named?|called)\s+["\']?([^"\'\s,]+)["\']?', re.IGNORECASE)


def parse_query(text: str) -> Dict[str, str]:
    """
    Parse a natural-language scan request.

    Returns a dict with any of the keys "path", "type" and "name".
    Type comes from "type X files" / "that are X files", otherwise from the
    first well-known extension mentioned.

    Examples:
        "duplicates in ./src" → {"path": "./src"}
        "pdf files named invoice" → {"name": "invoice"}
        "duplicates under /data that are .csv files" → {"path": "/data", "type": ".csv"}
    """
    context: Dict[str, str] = {}
    if not text:
        return context

    path_match = _PATTERN_PATH.search(text)
    if path_match:
        context["path"] = path_match.group(1)

    lowered = text.lower()
    type_match = _PATTERN_TYPE.search(lowered)
    if type_match:
        context["type"] = type_match.group(1)
    else:
        ext_match = _PATTERN_KNOWN_EXT.search(lowered)
        if ext_match:
            context["type"] = ext_match.group(0)

    name_match = _PATTERN_NAME.search(text)
    if name_match:
        context["name"] = name_match.group(1)

    return context
