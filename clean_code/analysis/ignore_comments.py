"""Support for ``clean-code-ignore: <type>`` suppression comments."""

import re
from typing import Sequence

from clean_code.core.models import IssueType

IGNORE_PATTERN = re.compile(r"clean-code-ignore:\s*([a-z-]+)(?:\s|$)", re.IGNORECASE)
IGNORE_ALL_TYPE = "all"


def is_issue_ignored(lines: Sequence[str], line_number: int, issue_type: IssueType) -> bool:
    """
    Check the issue's line and the line before it for an ignore comment.

    Args:
        lines: Text the analyzer was given (block or document)
        line_number: Line of the issue within ``lines``
        issue_type: Type of the issue being reported
    """
    for i in range(max(0, line_number - 1), line_number + 1):
        if i >= len(lines):
            continue

        match = IGNORE_PATTERN.search(lines[i].strip())
        if match:
            ignored = match.group(1).lower()
            if ignored == IGNORE_ALL_TYPE or ignored == issue_type.value:
                return True

    return False
