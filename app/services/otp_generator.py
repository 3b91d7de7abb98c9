import secrets

# Above this length a single 64-bit draw no longer makes modulo bias negligible.
MAX_MODULO_DIGITS = 9


def generate_code(length: int) -> str:
    """
    Return a string of exactly ``length`` decimal digits drawn from a CSPRNG.

    Up to ``MAX_MODULO_DIGITS`` digits the value is a 64-bit draw reduced modulo
    ``10 ** length``; the resulting bias is below 10**9 / 2**64 and is accepted as
    an approximation. Longer codes use ``secrets.randbelow`` which rejection-samples
    and is exactly uniform.
    """

    if isinstance(length, bool) or not isinstance(length, int) or length <= 0:
        raise ValueError(f"OTP length must be a positive integer, got {length!r}")

    upper = 10**length
    if length <= MAX_MODULO_DIGITS:
        value = int.from_bytes(secrets.token_bytes(8), "little") % upper
    else:
        value = secrets.randbelow(upper)
    return str(value).zfill(length)
