import secrets
import string

from qrlinks.config import MAX_CODE_LENGTH

ALPHABET = string.ascii_letters + string.digits


class CodeGenerator:
    """Random short codes. Uniqueness is the caller's job."""

    def __init__(self, length: int = 7, alphabet: str = ALPHABET):
        if not 1 <= length <= MAX_CODE_LENGTH:
            raise ValueError(f"length must be between 1 and {MAX_CODE_LENGTH}")
        self.length = length
        self.alphabet = alphabet

    def generate(self, attempt: int = 0) -> str:
        # each collision widens the code by one character
        length = min(self.length + attempt, MAX_CODE_LENGTH)
        return "".join(secrets.choice(self.alphabet) for _ in range(length))
