"""
Small helpers shared by clients and services
"""

import posixpath
import time
from datetime import datetime, timezone
from typing import Optional, Union


def extract_workflow_file_name(workflow_path: str) -> str:
    """.github/workflows/build.yml -> build.yml"""
    return posixpath.basename(workflow_path)


def is_version_greater_or_equal(version1: Optional[str], version2: Optional[str]) -> bool:
    """
    Compare dotted versions part by part

    When one version is a prefix of the other, the longer one wins.
    Missing versions never compare as greater or equal.
    """
    if not version1 or not version2:
        return False

    parts1 = version1.split(".")
    parts2 = version2.split(".")

    for part1, part2 in zip(parts1, parts2):
        number1 = _leading_int(part1)
        number2 = _leading_int(part2)
        if number1 != number2:
            return number1 > number2

    return len(parts1) >= len(parts2)


def _leading_int(part: str) -> int:
    digits = ""
    for char in part.strip():
        if not char.isdigit():
            break
        digits += char
    return int(digits) if digits else 0


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse GitHub ISO-8601 timestamps ('2024-01-01T10:00:00Z')"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def to_epoch_millis(value: Union[str, datetime, None]) -> Optional[int]:
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return int(parsed.timestamp() * 1000)


def from_epoch_millis(value: Union[int, float, str]) -> datetime:
    """Octane reports build times either as epoch millis or as ISO strings"""
    if isinstance(value, str) and not value.strip().lstrip("-").isdigit():
        return parse_timestamp(value)
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


def now_millis() -> int:
    return int(time.time() * 1000)
