from wavechain.dsp.chain import MAX_LEVEL, MIN_LEVEL, NUM_EFFECTS


def parse_int_list(text: str) -> list[int]:
    """Parse a comma-separated list of integers."""
    try:
        return [int(part.strip()) for part in text.split(",")]
    except ValueError as e:
        raise ValueError(f"Expected comma-separated integers, got '{text}'") from e


def validate_order_string(type_: object, order: str | None) -> None:
    """Validate that order names every effect identifier exactly once."""
    if order is None:
        return

    values = parse_int_list(order)
    if sorted(values) != list(range(NUM_EFFECTS)):
        raise ValueError(f"Order must be a permutation of 0-{NUM_EFFECTS - 1}")


def validate_level_string(type_: object, levels: str | None) -> None:
    """Validate a list of one 0-100 level per effect."""
    if levels is None:
        return

    values = parse_int_list(levels)
    if len(values) != NUM_EFFECTS:
        raise ValueError(f"Levels must list {NUM_EFFECTS} values")
    if not all(MIN_LEVEL <= v <= MAX_LEVEL for v in values):
        raise ValueError(f"Levels must be between {MIN_LEVEL} and {MAX_LEVEL}")
