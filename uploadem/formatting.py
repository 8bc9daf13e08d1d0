"""
Module for rendering byte counts, transfer rates and status lines.
"""

_UNITS = (
    ("GB", 1024 ** 3),
    ("MB", 1024 ** 2),
    ("KB", 1024),
)


def format_size(num_bytes: int) -> str:
    """Render a byte count using the largest unit it fills.

    Args:
        num_bytes: Non-negative number of bytes

    Returns:
        e.g. "1023B", "1.00KB", "2.50MB"
    """
    for unit, factor in _UNITS:
        if num_bytes >= factor:
            return f"{num_bytes / factor:.2f}{unit}"
    return f"{int(num_bytes)}B"


def format_rate(bytes_per_second: float) -> str:
    """Render a throughput figure, e.g. "1.50MB/s"."""
    return f"{format_size(bytes_per_second)}/s"


def render_progress(service: str, rate: float, transferred: int,
                    total: int, percent: float) -> str:
    return (
        f"Uploading to {service} "
        f"[{format_rate(rate)} - {format_size(transferred)}/{format_size(total)}"
        f" - {percent:.2f}%]"
    )


def render_starting(service: str) -> str:
    return f"Uploading to {service} [Starting - Connecting...]"


def render_active(service: str, elapsed: float) -> str:
    return f"Uploading to {service} [Active - {int(elapsed)}s elapsed]"


def render_complete(service: str) -> str:
    return f"Uploading to {service} [Complete]"
