# paste_service/utils/sizes.py

_UNITS = ["KiB", "MiB", "GiB", "TiB"]


def to_human_readable_size(num_bytes: int) -> str:
    """10485760 -> '10.000 MiB'; kleiner dan 1 KiB blijft in bytes."""
    size = f"{num_bytes} bytes"
    approx = num_bytes / 1024
    i = 0
    while approx > 1 and i < len(_UNITS):
        size = f"{approx:.3f} {_UNITS[i]}"
        approx /= 1024
        i += 1
    return size
