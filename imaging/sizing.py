"""
Thumbnail size calculation.

Pure function, no I/O. Given the real source size and the configured
bounds, returns the size the thumbnail should have:

    source 4000x3000, bounds 800x600  → 800x600
    source 200x150,   bounds 800x600  → 200x150   (never upscale)
    source 800x600,   bounds 0x0      → 800x600   (0 = unconstrained axis)
    source 1000x500,  bounds 800x0    → 800x400

The scale factor is the LARGER of the two ratios, so the result fits
inside both bounds.
"""


def _check_int(value, name: str, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ValueError(f"{name} must be an integer >= {minimum}, got {value!r}")


def calculate(source_w: int, source_h: int, target_w: int, target_h: int) -> tuple[int, int]:
    _check_int(source_w, "source_w", 1)
    _check_int(source_h, "source_h", 1)
    _check_int(target_w, "target_w", 0)
    _check_int(target_h, "target_h", 0)

    ratio_w = source_w / target_w if target_w > 0 else 1.0
    ratio_h = source_h / target_h if target_h > 0 else 1.0

    # Already fits inside the constrained axes → keep as is
    fits_w = target_w == 0 or source_w <= target_w
    fits_h = target_h == 0 or source_h <= target_h
    if fits_w and fits_h:
        return source_w, source_h

    # The axis that decides the ratio lands exactly on its bound;
    # dividing by a float ratio can come out as 799.9999 otherwise.
    if ratio_w >= ratio_h:
        return target_w, max(1, int(source_h / ratio_w))
    return max(1, int(source_w / ratio_h)), target_h
