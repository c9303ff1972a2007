LINE_TERMINATORS = frozenset(b"\r\n")


def shrink(data: bytes) -> bytes:
    """Collapse consecutive line terminators into the first one of each run.

    A ``\\n`` or ``\\r`` byte directly preceded by another ``\\n`` or ``\\r`` byte
    is dropped, every other byte is kept in order.

    Args:
        data (bytes): Rendered output.

    Returns:
        bytes: A new buffer without repeated line terminators.
    """
    result = bytearray()
    previous_is_terminator = False
    for byte in data:
        is_terminator = byte in LINE_TERMINATORS
        if not (is_terminator and previous_is_terminator):
            result.append(byte)
        previous_is_terminator = is_terminator
    return bytes(result)
