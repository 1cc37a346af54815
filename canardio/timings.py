"""bxCAN bit timing computation."""

from __future__ import annotations

from dataclasses import dataclass

BTR_SILM = 1 << 31

MAX_BS1 = 16
MAX_BS2 = 8
MAX_PRESCALER = 1024
MAX_SAMPLE_POINT_PERMILL = 900
MIN_BITRATE = 1000


class UnsupportedBitRateError(ValueError):
    """No timing solution exists for the requested clock and bit rate."""

    code = 1000


@dataclass
class CanTimings:
    """Timing parameters of a bxCAN controller, stored without decrement."""

    bit_rate_prescaler: int
    bit_segment_1: int
    bit_segment_2: int
    max_resynchronization_jump_width: int = 1

    def to_btr(self, silent: bool = False) -> int:
        """Encode the timings into a bit timing register value."""
        btr = (
            (((self.max_resynchronization_jump_width - 1) & 3) << 24)
            | (((self.bit_segment_1 - 1) & 15) << 16)
            | (((self.bit_segment_2 - 1) & 7) << 20)
            | ((self.bit_rate_prescaler - 1) & 1023)
        )
        if silent:
            btr |= BTR_SILM
        return btr


def compute_can_timings(peripheral_clock_rate: int, target_bitrate: int) -> CanTimings:
    """Find timings that give the highest quanta per bit and a sample point near 87.5%.

    Raises UnsupportedBitRateError if there is no exact solution.
    """
    if target_bitrate < MIN_BITRATE:
        raise UnsupportedBitRateError(f"bit rate {target_bitrate} is below {MIN_BITRATE}")

    max_quanta_per_bit = 10 if target_bitrate >= 1_000_000 else 17
    prescaler_bs = peripheral_clock_rate // target_bitrate

    bs1_bs2_sum = max_quanta_per_bit - 1
    while prescaler_bs % (1 + bs1_bs2_sum) != 0:
        if bs1_bs2_sum <= 2:
            raise UnsupportedBitRateError(
                f"no quanta split for {target_bitrate} at {peripheral_clock_rate} Hz"
            )
        bs1_bs2_sum -= 1

    prescaler = prescaler_bs // (1 + bs1_bs2_sum)
    if not 1 <= prescaler <= MAX_PRESCALER:
        raise UnsupportedBitRateError(f"prescaler {prescaler} out of range")

    # Aim for a sample point of 7/8: first round to nearest, then towards zero.
    bs1 = ((7 * bs1_bs2_sum - 1) + 4) // 8
    bs2 = bs1_bs2_sum - bs1
    sample_point_permill = 1000 * (1 + bs1) // (1 + bs1 + bs2)
    if sample_point_permill > MAX_SAMPLE_POINT_PERMILL:
        bs1 = (7 * bs1_bs2_sum - 1) // 8
        bs2 = bs1_bs2_sum - bs1

    valid = 1 <= bs1 <= MAX_BS1 and 1 <= bs2 <= MAX_BS2
    if not valid or target_bitrate != peripheral_clock_rate // (prescaler * (1 + bs1 + bs2)):
        raise UnsupportedBitRateError(
            f"no exact solution for {target_bitrate} at {peripheral_clock_rate} Hz"
        )

    return CanTimings(
        bit_rate_prescaler=prescaler,
        bit_segment_1=bs1,
        bit_segment_2=bs2,
        max_resynchronization_jump_width=1,
    )