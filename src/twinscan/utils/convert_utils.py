"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

utils/convert_utils.py
Size and duration formatting for CLI input and console output.
"""
import re

_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")
_MULTIPLIERS = {"": 1, "K": 1024, "M": 1024 ** 2, "G": 1024 ** 3, "T": 1024 ** 4, "P": 1024 ** 5}

# "100", "1.5GB", "2048 KB", "1K", "4MiB"; binary multiples in every spelling
_PATTERN_SIZE = re.compile(r'^(\d+(?:\.\d*)?|\.\d+)\s*([KMGTP]?)(I?B)?$')


class ConvertUtils:
    @staticmethod
    def bytes_to_human(size_bytes: int) -> str:
        """Render a byte count as e.g. '1.50KB' or '3.20MB'."""
        if size_bytes < 0:
            return "0B"

        value = float(size_bytes)
        for unit in _UNITS[:-1]:
            if value < 1024:
                return f"{value:.2f}{unit}"
            value /= 1024
        return f"{value:.2f}{_UNITS[-1]}"

    @staticmethod
    def human_to_bytes(size_str: str) -> int:
        """
        Parse a size such as '100MB', '1.5G' or '4096' into bytes.
        Raises ValueError for negative or malformed input.
        """
        text = size_str.strip().upper()
        if text.startswith("-"):
            raise ValueError(f"Negative size not allowed: '{size_str}'")

        match = _PATTERN_SIZE.match(text)
        if not match or (match.group(3) == "IB" and not match.group(2)):
            raise ValueError(
                f"Invalid size format: '{size_str}'. "
                f"Supported formats: 1.5GB, 2048KB, 1000, 1K, 1M, etc."
            )

        number, prefix, _ = match.groups()
        return int(float(number) * _MULTIPLIERS[prefix])

    @staticmethod
    def ms_to_human(elapsed_ms: int) -> str:
        """Render a duration in milliseconds as '850ms' or '12.40s'."""
        if elapsed_ms < 1000:
            return f"{max(elapsed_ms, 0)}ms"
        return f"{elapsed_ms / 1000:.2f}s"
