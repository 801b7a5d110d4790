"""Output size heuristic for translated chapters."""

SIZE_WARNING_FACTOR = 0.2
MIN_INPUT_BYTES = 100


def is_output_suspiciously_small(
    input_text: str,
    output_text: str,
    factor: float = SIZE_WARNING_FACTOR,
    min_input_bytes: int = MIN_INPUT_BYTES,
) -> bool:
    """True when the output is under factor * input size (UTF-8 bytes).

    Short inputs are never flagged; a one-line chapter can translate to
    almost anything.
    """
    input_size = len(input_text.encode("utf-8"))
    if input_size <= min_input_bytes:
        return False
    output_size = len(output_text.encode("utf-8"))
    return output_size < input_size * factor
