from dataclasses import dataclass

from .constants import ONE_KIBIBYTE, UNIT_LABELS


@dataclass(frozen=True)
class ScaledMagnitude:
    count: float
    unit: str

    @property
    def exponent(self) -> int:
        """Power of 1024 the unit stands for, B=0 ... PB=5."""
        return UNIT_LABELS.index(self.unit)

    def format(self, decimals: int = 0) -> str:
        return f"{self.count:.{decimals}f} {self.unit}"


def scale_bytes(byte_count: int) -> ScaledMagnitude:
    """
    Return the byte count in a human readable unit.

    e.g.
    2048 bytes are returned as 2.0 KB
    2096 KB are returned as 2.046875 MB

    Counts too large for the last unit stay in PB, even when the value exceeds 1024.
    """
    if byte_count < 0:
        raise ValueError(f"Byte count must not be negative, {byte_count=}")

    count = float(byte_count)
    unit_index = 0
    while count >= ONE_KIBIBYTE and unit_index < len(UNIT_LABELS) - 1:
        count /= ONE_KIBIBYTE
        unit_index += 1

    return ScaledMagnitude(count=count, unit=UNIT_LABELS[unit_index])
